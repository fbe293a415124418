# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain SQLite History - Backup history and restore state store.

This module keeps a local copy of backup history (as collected from msdb or
from scanning backup headers) together with the restore state needed to
continue an interrupted restore:

1. backups - one row per backup history record (one per file of a set)
2. continuation_points - redo position of databases left restoring
3. last_restores - type of the most recent restore step per database

LSNs are stored as TEXT; SQLite integers are 64-bit and LSNs are not.
Rows are returned raw, so a malformed row only fails its own database when
the selection runs.
"""

import json
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable, List, TypedDict

import aiosqlite
import structlog

from restorechain.exceptions import HistoryError
from restorechain.models import (
    BackupDescriptor,
    BackupType,
    ContinuationPoint,
)

logger = structlog.get_logger()


class BackupHistoryRow(TypedDict):
    """Stored backup history record."""

    id: int  # Auto-increment
    database: str
    server_name: str
    backup_type: str
    start: str  # ISO 8601
    end: str  # ISO 8601
    first_lsn: str
    last_lsn: str
    checkpoint_lsn: str
    database_backup_lsn: str
    backup_set_id: str
    file_names: List[str]
    recovery_fork_id: str | None


class ContinuationPointRow(TypedDict):
    """Stored continuation point."""

    database: str
    redo_start_lsn: str
    differential_base_lsn: str
    recovery_fork_id: str | None
    recorded_at: str  # ISO 8601


class LastRestoreRow(TypedDict):
    """Stored last restore step."""

    database: str
    restore_type: str
    restored_at: str  # ISO 8601


async def init_history_db(db_path: Path) -> None:
    """
    Initialize the history database schema.

    Creates tables if they don't exist. This is idempotent.

    Args:
        db_path: Path to the SQLite database file
    """
    try:
        async with aiosqlite.connect(db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS backups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    database_name TEXT NOT NULL,
                    server_name TEXT NOT NULL DEFAULT '',
                    backup_type TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT NOT NULL,
                    first_lsn TEXT NOT NULL,
                    last_lsn TEXT NOT NULL,
                    checkpoint_lsn TEXT NOT NULL,
                    database_backup_lsn TEXT NOT NULL,
                    backup_set_id TEXT NOT NULL,
                    file_names TEXT NOT NULL,
                    recovery_fork_id TEXT,
                    recorded_at TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS continuation_points (
                    database_name TEXT PRIMARY KEY,
                    redo_start_lsn TEXT NOT NULL,
                    differential_base_lsn TEXT NOT NULL,
                    recovery_fork_id TEXT,
                    recorded_at TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE TABLE IF NOT EXISTS last_restores (
                    database_name TEXT PRIMARY KEY,
                    restore_type TEXT NOT NULL,
                    restored_at TEXT NOT NULL
                )
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_backups_database_name
                ON backups(database_name)
            """)

            await db.execute("""
                CREATE INDEX IF NOT EXISTS idx_backups_backup_set_id
                ON backups(backup_set_id)
            """)

            await db.commit()

        logger.info("history_db_initialized", db_path=str(db_path))

    except Exception as e:
        raise HistoryError(
            f"Failed to initialize history database: {e}",
            details={"db_path": str(db_path)},
        )


async def record_backup(
    db: aiosqlite.Connection,
    backup: BackupDescriptor,
) -> int:
    """
    Record one backup history record.

    Args:
        db: SQLite database connection
        backup: Backup descriptor to store

    Returns:
        Row ID of the stored record
    """
    now = datetime.now(UTC).isoformat()

    cursor = await db.execute(
        """
        INSERT INTO backups
        (database_name, server_name, backup_type, start_time, end_time,
         first_lsn, last_lsn, checkpoint_lsn, database_backup_lsn,
         backup_set_id, file_names, recovery_fork_id, recorded_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            backup.database,
            backup.server_name,
            backup.backup_type.value,
            backup.start.isoformat(),
            backup.end.isoformat(),
            str(backup.first_lsn),
            str(backup.last_lsn),
            str(backup.checkpoint_lsn),
            str(backup.database_backup_lsn),
            backup.backup_set_id,
            json.dumps(list(backup.file_names)),
            backup.recovery_fork_id,
            now,
        ),
    )
    await db.commit()

    logger.debug(
        "backup_recorded",
        row_id=cursor.lastrowid,
        database=backup.database,
        backup_set_id=backup.backup_set_id,
        backup_type=backup.backup_type.value,
    )

    return cursor.lastrowid


async def record_backups(
    db: aiosqlite.Connection,
    backups: Iterable[BackupDescriptor],
) -> int:
    """
    Record several backup history records.

    Returns:
        Number of records stored
    """
    count = 0
    for backup in backups:
        await record_backup(db, backup)
        count += 1
    return count


async def load_backup_history(
    db: aiosqlite.Connection,
    database: str | None = None,
    server_name: str | None = None,
) -> List[BackupHistoryRow]:
    """
    Load stored backup history in insertion order.

    Args:
        db: SQLite database connection
        database: Only this database
        server_name: Only this server or availability group

    Returns:
        List of raw backup history rows
    """
    query = """
        SELECT id, database_name, server_name, backup_type, start_time, end_time,
               first_lsn, last_lsn, checkpoint_lsn, database_backup_lsn,
               backup_set_id, file_names, recovery_fork_id
        FROM backups
        WHERE 1 = 1
    """
    params: List = []

    if database:
        query += " AND database_name = ?"
        params.append(database)

    if server_name:
        query += " AND server_name = ?"
        params.append(server_name)

    query += " ORDER BY id"

    rows: List[BackupHistoryRow] = []

    try:
        async with db.execute(query, params) as cursor:
            async for row in cursor:
                try:
                    file_names = json.loads(row[11])
                except (TypeError, ValueError):
                    logger.warning("backup_file_names_unreadable", row_id=row[0])
                    file_names = []
                rows.append(
                    BackupHistoryRow(
                        id=row[0],
                        database=row[1],
                        server_name=row[2],
                        backup_type=row[3],
                        start=row[4],
                        end=row[5],
                        first_lsn=row[6],
                        last_lsn=row[7],
                        checkpoint_lsn=row[8],
                        database_backup_lsn=row[9],
                        backup_set_id=row[10],
                        file_names=file_names,
                        recovery_fork_id=row[12],
                    )
                )
    except aiosqlite.Error as e:
        raise HistoryError(
            f"Failed to load backup history: {e}",
            details={"database": database, "server_name": server_name},
        ) from e

    return rows


async def record_continuation_point(
    db: aiosqlite.Connection,
    point: ContinuationPoint,
) -> None:
    """
    Store (or replace) the continuation point of a database.

    Args:
        db: SQLite database connection
        point: Continuation point, keyed by restored database name
    """
    now = datetime.now(UTC).isoformat()

    await db.execute(
        """
        INSERT INTO continuation_points
        (database_name, redo_start_lsn, differential_base_lsn, recovery_fork_id, recorded_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(database_name) DO UPDATE SET
            redo_start_lsn = excluded.redo_start_lsn,
            differential_base_lsn = excluded.differential_base_lsn,
            recovery_fork_id = excluded.recovery_fork_id,
            recorded_at = excluded.recorded_at
        """,
        (
            point.database,
            str(point.redo_start_lsn),
            str(point.differential_base_lsn),
            point.recovery_fork_id,
            now,
        ),
    )
    await db.commit()

    logger.debug(
        "continuation_point_recorded",
        database=point.database,
        redo_start_lsn=str(point.redo_start_lsn),
    )


async def get_continuation_points(db: aiosqlite.Connection) -> List[ContinuationPointRow]:
    """Load every stored continuation point."""
    points: List[ContinuationPointRow] = []

    try:
        async with db.execute(
            """
            SELECT database_name, redo_start_lsn, differential_base_lsn,
                   recovery_fork_id, recorded_at
            FROM continuation_points
            ORDER BY database_name
            """
        ) as cursor:
            async for row in cursor:
                points.append(
                    ContinuationPointRow(
                        database=row[0],
                        redo_start_lsn=row[1],
                        differential_base_lsn=row[2],
                        recovery_fork_id=row[3],
                        recorded_at=row[4],
                    )
                )
    except aiosqlite.Error as e:
        raise HistoryError(f"Failed to load continuation points: {e}") from e

    return points


async def clear_continuation_point(db: aiosqlite.Connection, database: str) -> bool:
    """
    Remove the continuation point of a database once it is recovered.

    Returns:
        True if a continuation point was removed
    """
    cursor = await db.execute(
        "DELETE FROM continuation_points WHERE database_name = ?",
        (database,),
    )
    await db.commit()
    return cursor.rowcount > 0


async def record_last_restore(
    db: aiosqlite.Connection,
    database: str,
    restore_type: BackupType | str,
) -> None:
    """
    Store the type of the most recent restore step applied to a database.

    Args:
        db: SQLite database connection
        database: Restored database name
        restore_type: Full, Differential or Log
    """
    now = datetime.now(UTC).isoformat()
    parsed = BackupType.parse(restore_type)

    await db.execute(
        """
        INSERT INTO last_restores (database_name, restore_type, restored_at)
        VALUES (?, ?, ?)
        ON CONFLICT(database_name) DO UPDATE SET
            restore_type = excluded.restore_type,
            restored_at = excluded.restored_at
        """,
        (database, parsed.value, now),
    )
    await db.commit()


async def get_last_restores(db: aiosqlite.Connection) -> List[LastRestoreRow]:
    """Load the last restore step of every database."""
    records: List[LastRestoreRow] = []

    try:
        async with db.execute(
            """
            SELECT database_name, restore_type, restored_at
            FROM last_restores
            ORDER BY database_name
            """
        ) as cursor:
            async for row in cursor:
                records.append(
                    LastRestoreRow(
                        database=row[0],
                        restore_type=row[1],
                        restored_at=row[2],
                    )
                )
    except aiosqlite.Error as e:
        raise HistoryError(f"Failed to load last restores: {e}") from e

    return records


async def get_history_stats(db: aiosqlite.Connection) -> dict:
    """
    Summarise stored history.

    Returns:
        Dict with record, backup set and database counts per backup type
    """
    stats: dict = {
        "records": 0,
        "backup_sets": 0,
        "databases": 0,
        "by_type": {},
        "continuation_points": 0,
    }

    try:
        async with db.execute(
            """
            SELECT COUNT(*), COUNT(DISTINCT backup_set_id), COUNT(DISTINCT database_name)
            FROM backups
            """
        ) as cursor:
            row = await cursor.fetchone()
            if row:
                stats["records"], stats["backup_sets"], stats["databases"] = row

        async with db.execute(
            "SELECT backup_type, COUNT(DISTINCT backup_set_id) FROM backups GROUP BY backup_type"
        ) as cursor:
            async for row in cursor:
                stats["by_type"][row[0]] = row[1]

        async with db.execute("SELECT COUNT(*) FROM continuation_points") as cursor:
            row = await cursor.fetchone()
            stats["continuation_points"] = row[0] if row else 0
    except aiosqlite.Error as e:
        raise HistoryError(f"Failed to read history stats: {e}") from e

    return stats
