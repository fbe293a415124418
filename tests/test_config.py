# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration Tests for restorechain.

Covers SelectionConfig validation, the functional builder, environment
variables, profiles and the backup descriptor model.
"""

from datetime import datetime, UTC

import pytest

from restorechain import create_config, create_config_from_env
from restorechain.builder import (
    build_from_steps,
    ignore_logs,
    keep_duplicate_boundary_log,
    only_databases,
    rename_database,
    rename_databases,
    with_max_workers,
    with_restore_time,
)
from restorechain.config import SelectionConfig
from restorechain.env import full_and_differential, full_only, point_in_time
from restorechain.exceptions import ConfigurationError, HistoryError, MalformedLSNError
from restorechain.models import (
    BackupDescriptor,
    BackupType,
    ContinuationPoint,
    LastRestoreRecord,
)
from restorechain.selection import resolve_continuation


# ============================================================================
# SelectionConfig
# ============================================================================

def test_default_config():
    """Defaults plan every database to the latest point in time."""
    config = SelectionConfig()

    assert config.restore_time is None
    assert not config.ignore_logs
    assert not config.ignore_diffs
    assert not config.continue_restore
    assert config.deduplicate_boundary_log
    assert config.max_workers == 1
    assert config.resolve_restore_time().tzinfo is not None


def test_config_collects_all_errors():
    """Validation reports every problem at once."""
    with pytest.raises(ConfigurationError) as exc_info:
        SelectionConfig(
            restore_time="yesterday",
            databases=[""],
            database_rename={"Sales": ""},
            max_workers=0,
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 4


def test_config_is_immutable():
    """Frozen config cannot be modified in place."""
    config = SelectionConfig()

    with pytest.raises(AttributeError):
        config.ignore_logs = True  # type: ignore[misc]


def test_with_updates_returns_new_config():
    """with_updates validates and leaves the original untouched."""
    config = SelectionConfig()
    updated = config.with_updates(restore_time="2026-03-01T12:00:00", ignore_diffs=True)

    assert updated.restore_time == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    assert updated.ignore_diffs
    assert not config.ignore_diffs


def test_target_name_for():
    """Renames apply per database, or to every database with a single name."""
    assert SelectionConfig().target_name_for("Sales") == "Sales"
    assert SelectionConfig(database_rename="Copy").target_name_for("Sales") == "Copy"

    mapping = SelectionConfig(database_rename={"Sales": "Sales_Copy"})
    assert mapping.target_name_for("Sales") == "Sales_Copy"
    assert mapping.target_name_for("HR") == "HR"


# ============================================================================
# Builder
# ============================================================================

def test_create_config_simple():
    """The keyword API builds a validated config."""
    config = create_config(
        restore_time="2026-03-01T12:30:00+00:00",
        databases=["Sales"],
        database_rename="Sales_Restored",
        ignore_diffs=True,
        max_workers=2,
    )

    assert config.restore_time == datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
    assert config.databases == ["Sales"]
    assert config.database_rename == "Sales_Restored"
    assert config.ignore_diffs
    assert config.max_workers == 2


def test_build_from_steps():
    """Builder steps compose left to right."""
    config = build_from_steps(
        lambda c: with_restore_time(c, "2026-03-01T12:00:00+00:00"),
        lambda c: only_databases(c, ["Sales"]),
        lambda c: only_databases(c, ["HR"]),
        lambda c: rename_databases(c, {"Sales": "Sales_Copy"}),
        lambda c: rename_databases(c, {"HR": "HR_Copy"}),
        lambda c: with_max_workers(c, 3),
        ignore_logs,
        keep_duplicate_boundary_log,
    )

    assert config.databases == ["Sales", "HR"]
    assert config.database_rename == {"Sales": "Sales_Copy", "HR": "HR_Copy"}
    assert config.max_workers == 3
    assert config.ignore_logs
    assert not config.deduplicate_boundary_log


def test_builder_rejects_bad_values():
    """Builder functions fail fast on obviously wrong input."""
    with pytest.raises(ValueError):
        build_from_steps(lambda c: rename_database(c, ""))

    with pytest.raises(ValueError):
        build_from_steps(lambda c: with_max_workers(c, 0))


# ============================================================================
# Environment and profiles
# ============================================================================

def test_config_from_env(monkeypatch):
    """All settings can come from RESTORECHAIN_* variables."""
    monkeypatch.setenv("RESTORECHAIN_RESTORE_TIME", "2026-03-01T12:00:00+00:00")
    monkeypatch.setenv("RESTORECHAIN_IGNORE_DIFFS", "yes")
    monkeypatch.setenv("RESTORECHAIN_CONTINUE", "1")
    monkeypatch.setenv("RESTORECHAIN_SERVER_NAMES", "SQL01, AG-Sales")
    monkeypatch.setenv("RESTORECHAIN_DATABASES", "Sales,HR")
    monkeypatch.setenv("RESTORECHAIN_DATABASE_RENAME", "Sales=Sales_Copy,HR=HR_Copy")
    monkeypatch.setenv("RESTORECHAIN_MAX_WORKERS", "4")
    monkeypatch.delenv("RESTORECHAIN_IGNORE_LOGS", raising=False)

    config = create_config_from_env()

    assert config.restore_time == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    assert config.ignore_diffs
    assert not config.ignore_logs
    assert config.continue_restore
    assert config.server_names == ["SQL01", "AG-Sales"]
    assert config.databases == ["Sales", "HR"]
    assert config.database_rename == {"Sales": "Sales_Copy", "HR": "HR_Copy"}
    assert config.max_workers == 4


def test_config_from_env_single_rename(monkeypatch):
    """A rename without '=' is one new name."""
    monkeypatch.setenv("RESTORECHAIN_DATABASE_RENAME", "Restored")

    assert create_config_from_env().database_rename == "Restored"


@pytest.mark.parametrize(
    "name,value",
    [
        ("RESTORECHAIN_IGNORE_LOGS", "maybe"),
        ("RESTORECHAIN_RESTORE_TIME", "last tuesday"),
        ("RESTORECHAIN_MAX_WORKERS", "zero"),
        ("RESTORECHAIN_MAX_WORKERS", "0"),
        ("RESTORECHAIN_DATABASE_RENAME", "Sales=,HR=HR_Copy"),
    ],
)
def test_config_from_env_invalid(monkeypatch, name, value):
    """Invalid environment values raise ConfigurationError."""
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        create_config_from_env()


def test_profiles():
    """Profiles only touch the flags they are about."""
    base = SelectionConfig(databases=["Sales"])

    only_full = full_only(base)
    assert only_full.ignore_logs and only_full.ignore_diffs

    with_diff = full_and_differential(base)
    assert with_diff.ignore_logs and not with_diff.ignore_diffs

    pit = point_in_time(full_only(base), "2026-03-01T12:00:00+00:00")
    assert not pit.ignore_logs
    assert pit.restore_time == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    assert pit.databases == ["Sales"]


# ============================================================================
# Model validation
# ============================================================================

def test_backup_type_labels():
    """History labels and msdb type codes map to backup types."""
    assert BackupType.parse("Database") == BackupType.FULL
    assert BackupType.parse("D") == BackupType.FULL
    assert BackupType.parse("Database Differential") == BackupType.DIFFERENTIAL
    assert BackupType.parse("i") == BackupType.DIFFERENTIAL
    assert BackupType.parse("Transaction Log") == BackupType.LOG

    with pytest.raises(ValueError):
        BackupType.parse("Snapshot")


def test_log_with_first_after_last_rejected(make_backup):
    """A log backup cannot end before it starts in LSN terms."""
    with pytest.raises(ValueError):
        make_backup(BackupType.LOG, "log-1", start=0, end=5,
                    first_lsn=200, last_lsn=100)


def test_descriptor_malformed_lsn_names_field(make_backup):
    """The failing LSN field is reported."""
    with pytest.raises(MalformedLSNError) as exc_info:
        make_backup(BackupType.FULL, "full-1", start=0, end=5,
                    first_lsn="abc", last_lsn=100)

    assert exc_info.value.details["field"] == "first_lsn"
    assert exc_info.value.details["database"] == "Sales"


def test_record_missing_required_field():
    """Raw records without required fields are history errors."""
    with pytest.raises(HistoryError):
        BackupDescriptor.from_record({"database": "Sales", "backup_type": "Full"})


def test_descriptor_record_roundtrip_keeps_large_lsns(make_backup):
    """LSNs beyond 64 bits are exported as strings and read back intact."""
    original = make_backup(
        BackupType.FULL, "full-1", start=0, end=5,
        first_lsn=12300000000100001, last_lsn=1234567890123456789012345,
    )

    record = original.to_record()
    assert record["last_lsn"] == "1234567890123456789012345"
    assert BackupDescriptor.from_record(record) == original


# ============================================================================
# Continuation resolver
# ============================================================================

def test_continuation_forces_ignore_diffs_after_log():
    """A Log last-restore forces differentials off."""
    config = SelectionConfig(continue_restore=True)
    point = ContinuationPoint("Sales", redo_start_lsn="500", differential_base_lsn="100")

    context = resolve_continuation(
        "Sales",
        config,
        {"Sales": point},
        {"Sales": LastRestoreRecord("Sales", "Log")},
    )

    assert context.continuing
    assert context.ignore_diffs
    assert context.point.redo_start_lsn == 500
    assert len(context.notices) == 1


def test_continuation_keeps_flags_after_differential():
    """After a Differential restore the caller's flags stand."""
    config = SelectionConfig(continue_restore=True)
    point = ContinuationPoint("Sales", redo_start_lsn=500, differential_base_lsn=100)

    context = resolve_continuation(
        "Sales",
        config,
        {"Sales": point},
        {"Sales": LastRestoreRecord.from_record({"Database": "Sales", "Type": "Differential"})},
    )

    assert context.continuing
    assert not context.ignore_diffs
    assert context.notices == ()


def test_continuation_point_malformed_lsn():
    """Continuation LSNs are validated like history LSNs."""
    with pytest.raises(MalformedLSNError):
        ContinuationPoint("Sales", redo_start_lsn="5x", differential_base_lsn=100)
