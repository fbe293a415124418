# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Selector - Per-database backup chain selection.

Given the backup history of one database and a target time, this module
picks the Full backup, the Differential built on it, and the transaction log
backups that roll the database forward to the target time. Selection is
driven entirely by LSNs:

1. Full - latest Full finished by the target time (highest LastLSN)
2. Differential - latest Differential whose DatabaseBackupLSN equals the
   Full's CheckpointLSN; a differential based on any other Full is useless
3. Logs - every log backup started before the target time that reaches past
   the LSN restored so far, in LSN order
4. Boundary log - the log backup whose range covers the target time

Getting any of these wrong produces a database that restores cleanly but is
logically inconsistent.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

import structlog

from restorechain.errors import explain_missing_file_metadata, explain_no_full_backup
from restorechain.exceptions import FileMetadataMissingError, NoFullBackupFoundError
from restorechain.lsn import find_log_gaps, log_continues, same_fork
from restorechain.models import (
    BackupDescriptor,
    BackupType,
    ContinuationPoint,
    DatabasePlan,
    FullBase,
    ResolvedFull,
    coerce_datetime,
)
from restorechain.selection.continuation import placeholder_full

logger = structlog.get_logger()


def resolve_file_names(
    history: Sequence[BackupDescriptor],
    backup: BackupDescriptor,
) -> BackupDescriptor:
    """
    Rejoin all physical files of a backup set onto one descriptor.

    Args:
        history: All history records of the database
        backup: The selected record

    Returns:
        Copy of backup carrying every file of its backup set

    Raises:
        FileMetadataMissingError: If no record of the set lists any file
    """
    file_names: List[str] = []
    for record in history:
        if record.backup_set_id != backup.backup_set_id:
            continue
        for name in record.file_names:
            if name not in file_names:
                file_names.append(name)

    if not file_names:
        raise FileMetadataMissingError(
            explain_missing_file_metadata(backup.database, backup.backup_set_id),
            details={
                "database": backup.database,
                "backup_set_id": backup.backup_set_id,
                "backup_type": backup.backup_type.value,
            },
        )

    return replace(backup, file_names=tuple(file_names))


def select_full_backup(
    history: Sequence[BackupDescriptor],
    restore_time: datetime,
) -> BackupDescriptor | None:
    """Latest Full finished by restore_time; ties on LastLSN go to the latest End."""
    fulls = [
        b for b in history
        if b.backup_type == BackupType.FULL and b.end <= restore_time
    ]
    if not fulls:
        return None
    return max(fulls, key=lambda b: (b.last_lsn, b.end))


def select_differential_backup(
    history: Sequence[BackupDescriptor],
    restore_time: datetime,
    full: FullBase,
    redo_start_lsn: int | None = None,
) -> BackupDescriptor | None:
    """
    Latest Differential based on the given Full.

    When continuing, a differential that ends before the redo position has
    nothing left to contribute and is skipped.
    """
    diffs = [
        b for b in history
        if b.backup_type == BackupType.DIFFERENTIAL
        and b.end <= restore_time
        and b.database_backup_lsn == full.checkpoint_lsn
        and (redo_start_lsn is None or log_continues(b.last_lsn, redo_start_lsn))
    ]
    if not diffs:
        return None
    return max(diffs, key=lambda b: (b.last_lsn, b.end))


def select_interior_logs(
    history: Sequence[BackupDescriptor],
    restore_time: datetime,
    log_base_lsn: int,
) -> List[BackupDescriptor]:
    """
    Log backups started before restore_time that continue from log_base_lsn.

    One record per backup set, ordered by (LastLSN, FirstLSN). No-op log
    backups (FirstLSN == LastLSN) carry no log records and are left out.
    """
    by_set: Dict[str, BackupDescriptor] = {}
    for b in history:
        if (
            b.backup_type == BackupType.LOG
            and b.start < restore_time
            and log_continues(b.last_lsn, log_base_lsn)
            and not b.is_noop_log
            and b.backup_set_id not in by_set
        ):
            by_set[b.backup_set_id] = b

    return sorted(
        by_set.values(),
        key=lambda b: (b.last_lsn, b.first_lsn, b.backup_set_id),
    )


def select_boundary_log(
    history: Sequence[BackupDescriptor],
    restore_time: datetime,
    full: FullBase,
    log_base_lsn: int = 0,
) -> BackupDescriptor | None:
    """
    Earliest log backup ending at or after restore_time that belongs to the Full.

    A log ending before log_base_lsn is already covered by the Full or
    Differential and cannot be applied again.
    """
    boundary = [
        b for b in history
        if b.backup_type == BackupType.LOG
        and b.end >= restore_time
        and b.database_backup_lsn >= full.checkpoint_lsn
        and log_continues(b.last_lsn, log_base_lsn)
    ]
    if not boundary:
        return None
    return min(boundary, key=lambda b: (b.last_lsn, b.first_lsn, b.backup_set_id))


def select_backup_chain(
    database: str,
    history: Sequence[BackupDescriptor],
    restore_time: datetime,
    *,
    ignore_logs: bool = False,
    ignore_diffs: bool = False,
    continuation: ContinuationPoint | None = None,
    target_database: str | None = None,
    deduplicate_boundary_log: bool = True,
) -> Tuple[DatabasePlan, List[str]]:
    """
    Select the restore chain for one database.

    Args:
        database: Database name
        history: Backup history of this database only
        restore_time: Point in time to restore to
        ignore_logs: Do not select log backups
        ignore_diffs: Do not select differential backups
        continuation: Continuation point when resuming an earlier restore
        target_database: Name the database is restored as
        deduplicate_boundary_log: Skip the boundary log when it was already
            selected as an interior log

    Returns:
        Tuple of (DatabasePlan, warnings)

    Raises:
        NoFullBackupFoundError: If no Full qualifies and not continuing
        FileMetadataMissingError: If a selected backup set has no files
    """
    restore_time = coerce_datetime(restore_time, "restore_time")
    warnings: List[str] = []

    # Step 1: Full backup (or the placeholder for one already restored)
    full: FullBase
    if continuation is not None:
        full = placeholder_full(continuation)
    else:
        selected_full = select_full_backup(history, restore_time)
        if selected_full is None:
            raise NoFullBackupFoundError(
                explain_no_full_backup(database, restore_time),
                details={
                    "database": database,
                    "restore_time": restore_time.isoformat(),
                },
            )
        full = ResolvedFull(resolve_file_names(history, selected_full))
        logger.debug(
            "full_backup_selected",
            database=database,
            backup_set_id=selected_full.backup_set_id,
            last_lsn=str(selected_full.last_lsn),
        )

    # Step 2: Differential based on that Full
    differential = None
    if not ignore_diffs:
        selected_diff = select_differential_backup(
            history,
            restore_time,
            full,
            redo_start_lsn=continuation.redo_start_lsn if continuation else None,
        )
        if selected_diff is not None:
            differential = resolve_file_names(history, selected_diff)
            logger.debug(
                "differential_backup_selected",
                database=database,
                backup_set_id=selected_diff.backup_set_id,
                last_lsn=str(selected_diff.last_lsn),
            )

    # Step 3: Where the log chain starts
    if differential is not None:
        log_base_lsn = differential.last_lsn
        fork_id = differential.recovery_fork_id or full.recovery_fork_id
    elif isinstance(full, ResolvedFull):
        log_base_lsn = full.last_lsn
        fork_id = full.recovery_fork_id
    else:
        # Pure continuation: nothing restored yet in this run
        log_base_lsn = continuation.redo_start_lsn
        fork_id = continuation.recovery_fork_id

    # Step 4: Log backups
    logs: List[BackupDescriptor] = []
    if not ignore_logs:
        for log in select_interior_logs(history, restore_time, log_base_lsn):
            logs.append(resolve_file_names(history, log))

        boundary = select_boundary_log(history, restore_time, full, log_base_lsn)
        if boundary is not None:
            duplicate = any(log.backup_set_id == boundary.backup_set_id for log in logs)
            if duplicate and deduplicate_boundary_log:
                logger.info(
                    "boundary_log_already_selected",
                    database=database,
                    backup_set_id=boundary.backup_set_id,
                )
                warnings.append(
                    f"Boundary log {boundary.backup_set_id} already selected as an "
                    "interior log; not repeated"
                )
            else:
                logs.append(resolve_file_names(history, boundary))

        for expected, found in find_log_gaps(log_base_lsn, logs):
            logger.warning(
                "log_chain_gap_detected",
                database=database,
                expected_lsn=str(expected),
                found_lsn=str(found),
            )
            warnings.append(
                f"Log chain gap: expected a log backup starting at or before LSN "
                f"{expected}, next log starts at {found}"
            )

        for log in logs:
            if not same_fork(log.recovery_fork_id, fork_id):
                logger.warning(
                    "recovery_fork_mismatch",
                    database=database,
                    backup_set_id=log.backup_set_id,
                    log_fork=log.recovery_fork_id,
                    base_fork=fork_id,
                )
                warnings.append(
                    f"Log backup {log.backup_set_id} is on recovery fork "
                    f"{log.recovery_fork_id}, chain base is on {fork_id}"
                )

    plan = DatabasePlan(
        database=database,
        target_database=target_database or database,
        full=full,
        differential=differential,
        logs=tuple(logs),
        log_base_lsn=log_base_lsn,
        recovery_fork_id=fork_id,
        continuing=continuation is not None,
    )

    logger.info(
        "chain_selected",
        database=database,
        target_database=plan.target_database,
        continuing=plan.continuing,
        full=isinstance(full, ResolvedFull),
        differential=differential is not None,
        logs=len(logs),
    )

    return plan, warnings
