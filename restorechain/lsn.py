# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain LSN Comparator - Numeric LSN comparison and continuity checks.

Log Sequence Numbers are usually rendered as fixed-width decimal strings
(``numeric(25,0)`` in backup history tables). They must be compared as
integers: comparing the strings only works while the widths agree, so every
LSN is parsed once into a Python ``int`` and compared numerically afterwards.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Tuple

from restorechain.errors import explain_malformed_lsn
from restorechain.exceptions import MalformedLSNError

_DECIMAL_LSN = re.compile(r"^[0-9]+$")
_HEX_LSN = re.compile(r"^([0-9A-Fa-f]+):([0-9A-Fa-f]+):([0-9A-Fa-f]+)$")

# Decimal rendering of VLF:block:slot is vlf * 10**15 + block * 10**5 + slot
_VLF_FACTOR = 10**15
_BLOCK_FACTOR = 10**5


def parse_lsn(value: Any) -> int:
    """
    Parse an LSN into an integer.

    Accepts non-negative integers, integral Decimals, decimal strings (leading
    zeros and surrounding whitespace allowed) and the hexadecimal
    ``VLF:block:slot`` form shown by DBCC and the log readers.

    Args:
        value: Raw LSN value

    Returns:
        The LSN as an int

    Raises:
        MalformedLSNError: If the value is not a valid LSN
    """
    if isinstance(value, bool):
        raise MalformedLSNError(explain_malformed_lsn(value), details={"value": value})

    if isinstance(value, int):
        if value < 0:
            raise MalformedLSNError(explain_malformed_lsn(value), details={"value": value})
        return value

    if isinstance(value, Decimal):
        try:
            integral = value == value.to_integral_value()
        except InvalidOperation:
            integral = False
        if not integral or value < 0:
            raise MalformedLSNError(
                explain_malformed_lsn(value), details={"value": str(value)}
            )
        return int(value)

    if isinstance(value, str):
        text = value.strip()
        if _DECIMAL_LSN.match(text):
            return int(text)

        match = _HEX_LSN.match(text)
        if match:
            vlf, block, slot = (int(part, 16) for part in match.groups())
            if block >= _VLF_FACTOR // _BLOCK_FACTOR or slot >= _BLOCK_FACTOR:
                raise MalformedLSNError(
                    explain_malformed_lsn(value), details={"value": value}
                )
            return vlf * _VLF_FACTOR + block * _BLOCK_FACTOR + slot

    raise MalformedLSNError(explain_malformed_lsn(value), details={"value": repr(value)})


def compare_lsn(a: Any, b: Any) -> int:
    """
    Compare two LSNs numerically.

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    left = parse_lsn(a)
    right = parse_lsn(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def log_continues(candidate_last_lsn: Any, prior_last_lsn: Any) -> bool:
    """
    Check whether a log backup can follow a prior position in the chain.

    Overlapping log backups are tolerated, so a candidate continues the chain
    when its LastLSN is at or beyond the prior LastLSN.
    """
    return compare_lsn(candidate_last_lsn, prior_last_lsn) >= 0


def same_fork(a: str | None, b: str | None) -> bool:
    """Fork ids match, or at least one side is unknown."""
    if not a or not b:
        return True
    return a.lower() == b.lower()


def find_log_gaps(log_base_lsn: Any, logs: Iterable[Any]) -> List[Tuple[int, int]]:
    """
    Find breaks in a sequence of log backups.

    Each log must start at or before the LastLSN reached so far. A log whose
    FirstLSN lies beyond that point leaves transactions unrecoverable.

    Args:
        log_base_lsn: LSN the log chain starts from
        logs: Log backups in restore order (objects with first_lsn/last_lsn)

    Returns:
        List of (expected_lsn, found_first_lsn) pairs, empty when contiguous
    """
    gaps: List[Tuple[int, int]] = []
    reached = parse_lsn(log_base_lsn)

    for log in logs:
        first = parse_lsn(log.first_lsn)
        last = parse_lsn(log.last_lsn)
        if first > reached:
            gaps.append((reached, first))
        reached = max(reached, last)

    return gaps
