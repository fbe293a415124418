# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for restorechain.

These helpers centralize wording for selection and configuration errors so
that all modules present consistent, actionable messages.
"""

from datetime import datetime
from typing import Any


def explain_malformed_lsn(value: Any) -> str:
    """
    Explain that an LSN value could not be parsed.
    """

    return (
        f"Malformed LSN: {value!r}. "
        "LSNs must be non-negative integers, decimal strings such as "
        "'00000000012300000000100001', or 'VLF:block:slot' hexadecimal form."
    )


def explain_no_full_backup(database: str, restore_time: datetime) -> str:
    """
    Explain that no Full backup qualifies for a database.
    """

    return (
        f"No Full backup of {database!r} finished on or before "
        f"{restore_time.isoformat()}. Choose a later restore time, supply the "
        "missing Full backup, or continue a previous restore."
    )


def explain_missing_file_metadata(database: str, backup_set_id: str) -> str:
    """
    Explain that a selected backup set has no physical files.
    """

    return (
        f"Backup set {backup_set_id!r} of {database!r} was selected but none of "
        "its history records list any file names. The backup history is "
        "incomplete; rescan the backup location before restoring."
    )


def explain_multi_database_rename(databases: list[str]) -> str:
    """
    Explain why a single rename cannot be combined with a multi-database continue.
    """

    return (
        "Cannot continue a restore of several databases with a single target name. "
        f"Databases in the batch: {', '.join(databases)}. "
        "Restrict the batch to one database or pass a per-database rename mapping."
    )


def explain_colliding_rename(target: str, databases: list[str]) -> str:
    """
    Explain that a rename mapping sends two databases to one target.
    """

    return (
        f"Rename mapping sends {', '.join(databases)} to the same target {target!r}; "
        "continuation state for that target would be ambiguous."
    )


def explain_invalid_bool_env(name: str, value: str | None) -> str:
    """
    Explain that a boolean environment variable is invalid.
    """

    return (
        f"Invalid {name} value: {value!r}. "
        "Expected one of: 1, 0, true, false, yes, no, on, off."
    )


def explain_invalid_restore_time_env(value: str | None) -> str:
    """
    Explain that RESTORECHAIN_RESTORE_TIME is invalid.
    """

    return (
        f"Invalid RESTORECHAIN_RESTORE_TIME value: {value!r}. "
        "It must be an ISO 8601 timestamp, e.g. '2026-03-01T12:30:00+00:00'."
    )


def explain_invalid_max_workers_env(value: str | None) -> str:
    """
    Explain that RESTORECHAIN_MAX_WORKERS is invalid.
    """

    return (
        f"Invalid RESTORECHAIN_MAX_WORKERS value: {value!r}. "
        "It must be a positive integer."
    )
