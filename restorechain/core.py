# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Core - Multi-database orchestration of chain selection.

This module groups backup history by database, runs the continuation
resolver and chain selector for each group, and collects one result per
database. A database that fails selection is reported in its own result;
the rest of the batch carries on.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import structlog

from restorechain.config import SelectionConfig
from restorechain.errors import explain_colliding_rename, explain_multi_database_rename
from restorechain.exceptions import (
    HistoryError,
    MultiDatabaseContinuationUnsupportedError,
    RestoreChainError,
)
from restorechain.models import (
    BackupDescriptor,
    ContinuationPoint,
    DatabaseResult,
    LastRestoreRecord,
    RestorePlan,
    record_field,
)
from restorechain.selection import resolve_continuation, select_backup_chain

logger = structlog.get_logger()

# History input: typed descriptors or raw backup history records
HistoryRecord = BackupDescriptor | Mapping[str, Any]


def check_continuation_rename(config: SelectionConfig, databases: Sequence[str]) -> None:
    """
    Pre-flight check for rename + continuation conflicts.

    Continuation state is looked up by target name. A single new name shared
    by several databases, or a mapping that sends two databases to one
    target, makes that lookup ambiguous.

    Raises:
        MultiDatabaseContinuationUnsupportedError: If the rename is ambiguous
    """
    if not config.continue_restore or not config.database_rename:
        return

    if isinstance(config.database_rename, str):
        if len(databases) > 1:
            raise MultiDatabaseContinuationUnsupportedError(
                explain_multi_database_rename(list(databases)),
                details={
                    "databases": list(databases),
                    "database_rename": config.database_rename,
                },
            )
        return

    targets: Dict[str, List[str]] = {}
    for database in databases:
        targets.setdefault(config.target_name_for(database), []).append(database)

    for target, sources in targets.items():
        if len(sources) > 1:
            raise MultiDatabaseContinuationUnsupportedError(
                explain_colliding_rename(target, sources),
                details={"target": target, "databases": sources},
            )


def group_history_by_database(
    history: Iterable[HistoryRecord],
    server_names: Sequence[str] = (),
    databases: Sequence[str] = (),
) -> Dict[str, List[HistoryRecord]]:
    """
    Group history records by database, applying server and database filters.

    Filters compare case-insensitively, like SQL Server names.
    """
    servers = {name.casefold() for name in server_names}
    wanted = {name.casefold() for name in databases}
    groups: Dict[str, List[HistoryRecord]] = {}

    for record in history:
        database = record_field(record, "database")
        if not database:
            logger.warning("history_record_without_database")
            continue
        database = str(database)
        if wanted and database.casefold() not in wanted:
            continue
        if servers:
            server = str(record_field(record, "server_name", "") or "")
            if server.casefold() not in servers:
                continue
        groups.setdefault(database, []).append(record)

    return groups


def _to_descriptors(records: Sequence[HistoryRecord]) -> List[BackupDescriptor]:
    return [
        r if isinstance(r, BackupDescriptor) else BackupDescriptor.from_record(r)
        for r in records
    ]


def _index_by_database(records: Iterable[Any] | None) -> Dict[str, Any]:
    index: Dict[str, Any] = {}
    for record in records or ():
        if isinstance(record, (ContinuationPoint, LastRestoreRecord)):
            database = record.database
        else:
            database = record.get("database", record.get("Database"))
        if database:
            index[str(database)] = record
    return index


def plan_database(
    database: str,
    records: Sequence[HistoryRecord],
    config: SelectionConfig,
    restore_time: datetime,
    continuation_points: Mapping[str, Any],
    last_restores: Mapping[str, Any],
) -> DatabaseResult:
    """
    Select the restore chain for one database and capture any failure.

    Errors from the restorechain taxonomy (no Full, missing files, malformed
    LSNs, bad history records) become part of the result.
    """
    target = config.target_name_for(database)

    try:
        history = _to_descriptors(records)

        points: Dict[str, ContinuationPoint] = {}
        point = continuation_points.get(target)
        if point is not None:
            if not isinstance(point, ContinuationPoint):
                point = ContinuationPoint.from_record(point)
            points[target] = point

        last_records: Dict[str, LastRestoreRecord] = {}
        last = last_restores.get(target)
        if last is not None:
            if not isinstance(last, LastRestoreRecord):
                last = LastRestoreRecord.from_record(last)
            last_records[target] = last

        context = resolve_continuation(database, config, points, last_records)

        plan, warnings = select_backup_chain(
            database,
            history,
            restore_time,
            ignore_logs=config.ignore_logs,
            ignore_diffs=context.ignore_diffs,
            continuation=context.point,
            target_database=target,
            deduplicate_boundary_log=config.deduplicate_boundary_log,
        )

        return DatabaseResult(
            database=database,
            plan=plan,
            warnings=[*context.notices, *warnings],
        )

    except RestoreChainError as e:
        logger.error(
            "database_selection_failed",
            database=database,
            code=e.code,
            error=e.message,
        )
        return DatabaseResult(database=database, error=e)


def select_restore_plan(
    history: Iterable[HistoryRecord],
    config: SelectionConfig | None = None,
    continuation_points: Iterable[ContinuationPoint | Mapping[str, Any]] | None = None,
    last_restores: Iterable[LastRestoreRecord | Mapping[str, Any]] | None = None,
) -> RestorePlan:
    """
    Select restore chains for every database in the backup history.

    This is the main entry point. It:
    1. Groups history by database (after server/database filters)
    2. Rejects ambiguous rename + continuation batches up front
    3. Runs continuation resolution and chain selection per database
    4. Returns results ordered by database name

    Args:
        history: Backup descriptors or raw backup history records
        config: Selection configuration (defaults to SelectionConfig())
        continuation_points: Restore state of databases left restoring
        last_restores: Most recent restore step per database

    Returns:
        RestorePlan with one DatabaseResult per database

    Raises:
        MultiDatabaseContinuationUnsupportedError: If the batch combines
            continuation with an ambiguous rename
    """
    config = config or SelectionConfig()
    restore_time = config.resolve_restore_time()

    groups = group_history_by_database(history, config.server_names, config.databases)
    databases = sorted(groups)

    logger.info(
        "selection_started",
        databases=len(databases),
        restore_time=restore_time.isoformat(),
        continue_restore=config.continue_restore,
    )

    check_continuation_rename(config, databases)

    points = _index_by_database(continuation_points)
    lasts = _index_by_database(last_restores)

    def run(database: str) -> DatabaseResult:
        return plan_database(
            database, groups[database], config, restore_time, points, lasts
        )

    if config.max_workers > 1 and len(databases) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            results = list(executor.map(run, databases))
    else:
        results = [run(database) for database in databases]

    plan = RestorePlan(restore_time=restore_time, results=results)

    logger.info(
        "selection_completed",
        databases=len(results),
        planned=len(plan.plans),
        failed=len(plan.failures),
    )

    return plan


async def plan_restore_from_history(
    config: SelectionConfig,
    history_db_path: Path,
) -> RestorePlan:
    """
    Load backup history and restore state from the history store and select.

    Args:
        config: Selection configuration
        history_db_path: Path to the SQLite history database

    Returns:
        RestorePlan for every database in the store

    Raises:
        HistoryError: If the history store is missing or unreadable
    """
    import aiosqlite

    from restorechain.history import (
        get_continuation_points,
        get_last_restores,
        load_backup_history,
    )

    # Connecting would create an empty store and plan nothing
    if not Path(history_db_path).exists():
        raise HistoryError(
            "History database not found",
            details={"db_path": str(history_db_path)},
        )

    try:
        async with aiosqlite.connect(history_db_path) as db:
            history = await load_backup_history(db)
            points: List[Any] = []
            lasts: List[Any] = []
            if config.continue_restore:
                points = await get_continuation_points(db)
                lasts = await get_last_restores(db)
    except aiosqlite.Error as e:
        raise HistoryError(
            f"History database unreadable: {e}",
            details={"db_path": str(history_db_path)},
        ) from e

    return select_restore_plan(history, config, points, lasts)
