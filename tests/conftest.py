# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for restorechain tests.

Provides backup history builders, history database fixtures, and test
configuration helpers.
"""

import os
import tempfile
from datetime import datetime, timedelta, UTC
from pathlib import Path
from typing import Callable, Generator, List

import pytest
import pytest_asyncio

from restorechain.models import BackupDescriptor, BackupType

# Set test environment variables
os.environ["RESTORECHAIN_ADMIN_API_KEY"] = "test-api-key-12345"

# Reference time all test histories are laid out around
T0 = datetime(2026, 3, 1, 0, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """Timestamp `minutes` after T0."""
    return T0 + timedelta(minutes=minutes)


def backup(
    backup_type: BackupType | str,
    backup_set_id: str,
    *,
    start: int,
    end: int,
    first_lsn: int,
    last_lsn: int,
    checkpoint_lsn: int | None = None,
    database_backup_lsn: int = 0,
    database: str = "Sales",
    server_name: str = "SQL01",
    file_names: List[str] | None = None,
    recovery_fork_id: str | None = "fork-a",
) -> BackupDescriptor:
    """
    Build a backup descriptor with times given in minutes after T0.

    Defaults to one file per backup set and the same recovery fork.
    """
    if file_names is None:
        file_names = [f"/backups/{database}/{backup_set_id}.bak"]
    return BackupDescriptor(
        database=database,
        backup_type=backup_type,
        start=at(start),
        end=at(end),
        first_lsn=first_lsn,
        last_lsn=last_lsn,
        checkpoint_lsn=last_lsn if checkpoint_lsn is None else checkpoint_lsn,
        database_backup_lsn=database_backup_lsn,
        backup_set_id=backup_set_id,
        file_names=file_names,
        server_name=server_name,
        recovery_fork_id=recovery_fork_id,
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_backup() -> Callable[..., BackupDescriptor]:
    """Factory for backup descriptors (see backup())."""
    return backup


@pytest.fixture
def sales_history() -> List[BackupDescriptor]:
    """
    A typical week-night history for one database.

    Full (LSN 90-100), a log at +30m, a Differential at +60m based on the
    Full, then logs at +120m and +180m. Every log is based on the Full.
    """
    return [
        backup(BackupType.FULL, "full-1", start=0, end=10,
               first_lsn=90, last_lsn=100, checkpoint_lsn=100),
        backup(BackupType.LOG, "log-1", start=30, end=35,
               first_lsn=100, last_lsn=130, database_backup_lsn=100),
        backup(BackupType.DIFFERENTIAL, "diff-1", start=60, end=70,
               first_lsn=140, last_lsn=150, checkpoint_lsn=150,
               database_backup_lsn=100),
        backup(BackupType.LOG, "log-2", start=120, end=125,
               first_lsn=130, last_lsn=170, database_backup_lsn=100),
        backup(BackupType.LOG, "log-3", start=180, end=185,
               first_lsn=170, last_lsn=200, database_backup_lsn=100),
    ]


@pytest_asyncio.fixture
async def history_db_path(temp_dir: Path) -> Path:
    """Create a temporary history database."""
    from restorechain.history import init_history_db

    db_path = temp_dir / "history.db"
    await init_history_db(db_path)
    return db_path


@pytest.fixture
def test_config():
    """Create a test configuration restoring to T0 + 150 minutes."""
    from restorechain.config import SelectionConfig

    return SelectionConfig(restore_time=at(150))
