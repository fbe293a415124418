# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers and selection profiles.

These helpers are small, convenient wrappers around create_config() and
SelectionConfig.with_updates(). They make it easy to:

- Build a configuration from environment variables
- Apply ready-made selection profiles
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Dict, List

from restorechain.builder import create_config
from restorechain.config import SelectionConfig
from restorechain.errors import (
    explain_invalid_bool_env,
    explain_invalid_max_workers_env,
    explain_invalid_restore_time_env,
)
from restorechain.exceptions import ConfigurationError
from restorechain.models import coerce_datetime

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str | None) -> bool:
    if value is None or not value.strip():
        return False
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(explain_invalid_bool_env(name, value))


def _parse_restore_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return coerce_datetime(value, "restore_time")
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_restore_time_env(value)) from exc


def _parse_max_workers(value: str | None) -> int:
    if not value:
        return 1
    try:
        workers = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_max_workers_env(value)) from exc
    if workers < 1:
        raise ConfigurationError(explain_invalid_max_workers_env(value))
    return workers


def _parse_list(value: str | None) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def _parse_rename(value: str | None) -> str | Dict[str, str] | None:
    """
    Parse a rename: either "NewName" or "Old1=New1,Old2=New2".
    """
    if not value or not value.strip():
        return None
    if "=" not in value:
        return value.strip()
    mapping: Dict[str, str] = {}
    for pair in _parse_list(value):
        source, _, target = pair.partition("=")
        if not source.strip() or not target.strip():
            raise ConfigurationError(
                f"Invalid RESTORECHAIN_DATABASE_RENAME entry: {pair!r}. "
                "Expected 'NewName' or 'Source=Target,...'."
            )
        mapping[source.strip()] = target.strip()
    return mapping


def create_config_from_env() -> SelectionConfig:
    """
    Create a SelectionConfig from environment variables.

    Optional environment variables:
        - RESTORECHAIN_RESTORE_TIME: ISO 8601 point in time (default: now)
        - RESTORECHAIN_IGNORE_LOGS: boolean (default: false)
        - RESTORECHAIN_IGNORE_DIFFS: boolean (default: false)
        - RESTORECHAIN_CONTINUE: boolean, resume restoring databases
        - RESTORECHAIN_SERVER_NAMES: comma-separated servers/availability groups
        - RESTORECHAIN_DATABASES: comma-separated database names
        - RESTORECHAIN_DATABASE_RENAME: "NewName" or "Old1=New1,Old2=New2"
        - RESTORECHAIN_MAX_WORKERS: databases planned concurrently (default: 1)
    """

    return create_config(
        restore_time=_parse_restore_time(os.getenv("RESTORECHAIN_RESTORE_TIME")),
        ignore_logs=_parse_bool(
            "RESTORECHAIN_IGNORE_LOGS", os.getenv("RESTORECHAIN_IGNORE_LOGS")
        ),
        ignore_diffs=_parse_bool(
            "RESTORECHAIN_IGNORE_DIFFS", os.getenv("RESTORECHAIN_IGNORE_DIFFS")
        ),
        continue_restore=_parse_bool(
            "RESTORECHAIN_CONTINUE", os.getenv("RESTORECHAIN_CONTINUE")
        ),
        server_names=_parse_list(os.getenv("RESTORECHAIN_SERVER_NAMES")),
        databases=_parse_list(os.getenv("RESTORECHAIN_DATABASES")),
        database_rename=_parse_rename(os.getenv("RESTORECHAIN_DATABASE_RENAME")),
        max_workers=_parse_max_workers(os.getenv("RESTORECHAIN_MAX_WORKERS")),
    )


# ============================================================================
# Profiles
# ============================================================================

def full_only(config: SelectionConfig) -> SelectionConfig:
    """
    Restore the latest Full backup and nothing else.

    - No differential backups
    - No log backups
    """

    return config.with_updates(ignore_logs=True, ignore_diffs=True)


def full_and_differential(config: SelectionConfig) -> SelectionConfig:
    """
    Restore to the latest Full/Differential pair, without log backups.

    Useful for refreshing test environments where the exact point in time
    does not matter.
    """

    return config.with_updates(ignore_logs=True, ignore_diffs=False)


def point_in_time(config: SelectionConfig, restore_time: datetime | str) -> SelectionConfig:
    """
    Restore to an exact point in time.

    - Logs enabled (the boundary log is required to stop at the time)
    - Differentials kept to shorten the log chain
    """

    return config.with_updates(
        restore_time=coerce_datetime(restore_time, "restore_time"),
        ignore_logs=False,
    )
