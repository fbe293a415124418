# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
History Providers - Backup history and restore state storage.
"""

from restorechain.history.sqlite_history import (
    init_history_db,
    record_backup,
    record_backups,
    load_backup_history,
    record_continuation_point,
    get_continuation_points,
    clear_continuation_point,
    record_last_restore,
    get_last_restores,
    get_history_stats,
    BackupHistoryRow,
    ContinuationPointRow,
    LastRestoreRow,
)

from restorechain.history.export import (
    read_history_export,
    write_history_export,
)

__all__ = [
    # SQLite store
    "init_history_db",
    "record_backup",
    "record_backups",
    "load_backup_history",
    "record_continuation_point",
    "get_continuation_points",
    "clear_continuation_point",
    "record_last_restore",
    "get_last_restores",
    "get_history_stats",
    # Types
    "BackupHistoryRow",
    "ContinuationPointRow",
    "LastRestoreRow",
    # Export files
    "read_history_export",
    "write_history_export",
]
