# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Models - Typed backup descriptors, restore state and plans.

Backup history arrives from many places (msdb tables, header scans, JSON
exports) with loosely named fields. Everything is normalised here, at
construction time, so the selection code only ever sees validated records:
integer LSNs, timezone-aware timestamps and a known backup type.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union

from restorechain.exceptions import HistoryError, MalformedLSNError, RestoreChainError
from restorechain.lsn import parse_lsn


class BackupType(str, Enum):
    """Kind of backup recorded in history."""

    FULL = "Full"
    DIFFERENTIAL = "Differential"
    LOG = "Log"

    @classmethod
    def parse(cls, value: Any) -> "BackupType":
        """
        Parse a backup type from its name or a backup history label.

        Accepts the enum values, the labels SQL Server writes to backup
        history ("Database", "Database Differential", "Transaction Log") and
        the msdb.backupset type codes (D, I, L), case-insensitively.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unknown backup type: {value!r}")
        try:
            return _BACKUP_TYPE_ALIASES[value.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown backup type: {value!r}") from None


_BACKUP_TYPE_ALIASES: Dict[str, BackupType] = {
    "full": BackupType.FULL,
    "database": BackupType.FULL,
    "d": BackupType.FULL,
    "differential": BackupType.DIFFERENTIAL,
    "diff": BackupType.DIFFERENTIAL,
    "database differential": BackupType.DIFFERENTIAL,
    "i": BackupType.DIFFERENTIAL,
    "log": BackupType.LOG,
    "transaction log": BackupType.LOG,
    "l": BackupType.LOG,
}

_LSN_FIELDS = ("first_lsn", "last_lsn", "checkpoint_lsn", "database_backup_lsn")

# Field name -> accepted keys in raw history records, first match wins
_RECORD_KEYS: Dict[str, Tuple[str, ...]] = {
    "database": ("database", "Database", "DatabaseName"),
    "server_name": (
        "server_name",
        "ServerOrAvailabilityGroupName",
        "AvailabilityGroupName",
        "ServerName",
    ),
    "backup_type": ("backup_type", "type", "Type", "BackupType", "BackupTypeDescription"),
    "start": ("start", "Start", "BackupStartDate"),
    "end": ("end", "End", "BackupFinishDate"),
    "first_lsn": ("first_lsn", "FirstLSN", "FirstLsn"),
    "last_lsn": ("last_lsn", "LastLSN", "LastLsn"),
    "checkpoint_lsn": ("checkpoint_lsn", "CheckpointLSN", "CheckpointLsn"),
    "database_backup_lsn": (
        "database_backup_lsn",
        "DatabaseBackupLSN",
        "DatabaseBackupLsn",
    ),
    "backup_set_id": ("backup_set_id", "BackupSetID", "BackupSetId", "BackupSetGUID"),
    "file_names": ("file_names", "FileNames", "FullName", "Path"),
    "recovery_fork_id": (
        "recovery_fork_id",
        "RecoveryForkID",
        "RecoveryForkId",
        "FirstRecoveryForkID",
    ),
}

_REQUIRED_FIELDS = (
    "database",
    "backup_type",
    "start",
    "end",
    "first_lsn",
    "last_lsn",
    "checkpoint_lsn",
    "database_backup_lsn",
    "backup_set_id",
)

_MISSING = object()


def _pick(record: Mapping[str, Any], name: str) -> Any:
    for key in _RECORD_KEYS[name]:
        if key in record and record[key] is not None:
            return record[key]
    return _MISSING


def coerce_datetime(value: Any, field_name: str = "timestamp") -> datetime:
    """
    Convert a datetime or ISO 8601 string to an aware datetime.

    Naive values are taken as UTC so that history from different providers
    can be compared without TypeError.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Invalid {field_name}: {value!r}") from None
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid {field_name}: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _coerce_file_names(value: Any) -> Tuple[str, ...]:
    if value is None or value is _MISSING:
        return ()
    if isinstance(value, str):
        value = [value]
    names: List[str] = []
    for name in value:
        if not isinstance(name, str):
            raise ValueError(f"File names must be strings, got {name!r}")
        if name.strip() and name not in names:
            names.append(name)
    return tuple(names)


@dataclass(frozen=True)
class BackupDescriptor:
    """
    One backup history record.

    A striped backup produces several records sharing a backup_set_id, each
    listing some of the physical files; the selector rejoins them.
    """

    database: str
    backup_type: BackupType
    start: datetime
    end: datetime
    first_lsn: int
    last_lsn: int
    checkpoint_lsn: int
    database_backup_lsn: int
    backup_set_id: str
    file_names: Tuple[str, ...] = ()
    server_name: str = ""
    recovery_fork_id: str | None = None

    def __post_init__(self) -> None:
        """Normalise and validate fields after creation."""
        if not isinstance(self.database, str) or not self.database:
            raise ValueError(f"database must be a non-empty string, got {self.database!r}")

        object.__setattr__(self, "backup_type", BackupType.parse(self.backup_type))

        for name in _LSN_FIELDS:
            try:
                parsed = parse_lsn(getattr(self, name))
            except MalformedLSNError as e:
                raise MalformedLSNError(
                    e.message,
                    details={**e.details, "field": name, "database": self.database},
                ) from e
            object.__setattr__(self, name, parsed)

        object.__setattr__(self, "start", coerce_datetime(self.start, "start"))
        object.__setattr__(self, "end", coerce_datetime(self.end, "end"))

        if self.backup_set_id is None or str(self.backup_set_id) == "":
            raise ValueError("backup_set_id is required")
        object.__setattr__(self, "backup_set_id", str(self.backup_set_id))
        object.__setattr__(self, "file_names", _coerce_file_names(self.file_names))
        object.__setattr__(self, "server_name", self.server_name or "")

        if self.recovery_fork_id is not None:
            object.__setattr__(self, "recovery_fork_id", str(self.recovery_fork_id))

        if self.backup_type == BackupType.LOG and self.first_lsn > self.last_lsn:
            raise ValueError(
                f"Log backup {self.backup_set_id} of {self.database} has "
                f"first_lsn {self.first_lsn} > last_lsn {self.last_lsn}"
            )

    @property
    def is_noop_log(self) -> bool:
        """A log backup that covers no log records; a boundary marker only."""
        return self.backup_type == BackupType.LOG and self.first_lsn == self.last_lsn

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BackupDescriptor":
        """
        Build a descriptor from a raw backup history record.

        Both snake_case keys and the PascalCase keys of backup history exports
        are accepted.

        Raises:
            MalformedLSNError: If an LSN field cannot be parsed
            HistoryError: If a required field is missing or invalid
        """
        values: Dict[str, Any] = {}
        for name in _RECORD_KEYS:
            value = _pick(record, name)
            if value is _MISSING:
                if name in _REQUIRED_FIELDS:
                    raise HistoryError(
                        f"Backup history record is missing required field {name!r}",
                        details={"keys": sorted(str(k) for k in record.keys())},
                    )
                continue
            values[name] = value

        try:
            return cls(**values)
        except RestoreChainError:
            raise
        except (TypeError, ValueError) as e:
            raise HistoryError(
                f"Invalid backup history record: {e}",
                details={"database": str(values.get("database"))},
            ) from e

    def to_record(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict; LSNs are rendered as strings."""
        return {
            "database": self.database,
            "server_name": self.server_name,
            "backup_type": self.backup_type.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "first_lsn": str(self.first_lsn),
            "last_lsn": str(self.last_lsn),
            "checkpoint_lsn": str(self.checkpoint_lsn),
            "database_backup_lsn": str(self.database_backup_lsn),
            "backup_set_id": self.backup_set_id,
            "file_names": list(self.file_names),
            "recovery_fork_id": self.recovery_fork_id,
        }


def record_field(record: Any, name: str, default: Any = None) -> Any:
    """Read a descriptor field from a BackupDescriptor or a raw history record."""
    if isinstance(record, BackupDescriptor):
        return getattr(record, name)
    value = _pick(record, name)
    return default if value is _MISSING else value


@dataclass(frozen=True)
class ContinuationPoint:
    """Recovery position of a database left in a restoring state."""

    database: str
    redo_start_lsn: int
    differential_base_lsn: int
    recovery_fork_id: str | None = None

    def __post_init__(self) -> None:
        if not self.database:
            raise ValueError("database is required")
        for name in ("redo_start_lsn", "differential_base_lsn"):
            try:
                parsed = parse_lsn(getattr(self, name))
            except MalformedLSNError as e:
                raise MalformedLSNError(
                    e.message,
                    details={**e.details, "field": name, "database": self.database},
                ) from e
            object.__setattr__(self, name, parsed)
        if self.recovery_fork_id is not None:
            object.__setattr__(self, "recovery_fork_id", str(self.recovery_fork_id))

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ContinuationPoint":
        """Build from snake_case or PascalCase keys."""
        try:
            return cls(
                database=record.get("database", record.get("Database")),
                redo_start_lsn=record.get("redo_start_lsn", record.get("RedoStartLSN")),
                differential_base_lsn=record.get(
                    "differential_base_lsn", record.get("DifferentialBaseLSN")
                ),
                recovery_fork_id=record.get(
                    "recovery_fork_id", record.get("RecoveryForkID")
                ),
            )
        except (TypeError, ValueError) as e:
            raise HistoryError(f"Invalid continuation point record: {e}") from e


@dataclass(frozen=True)
class LastRestoreRecord:
    """Type of the most recent restore step applied to a database."""

    database: str
    restore_type: BackupType

    def __post_init__(self) -> None:
        if not self.database:
            raise ValueError("database is required")
        object.__setattr__(self, "restore_type", BackupType.parse(self.restore_type))

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "LastRestoreRecord":
        """Build from snake_case or PascalCase keys."""
        restore_type = record.get("restore_type")
        if restore_type is None:
            restore_type = record.get("RestoreType", record.get("Type"))
        try:
            return cls(
                database=record.get("database", record.get("Database")),
                restore_type=restore_type,
            )
        except (TypeError, ValueError) as e:
            raise HistoryError(f"Invalid last restore record: {e}") from e


@dataclass(frozen=True)
class ResolvedFull:
    """A real Full backup heading the chain."""

    backup: BackupDescriptor

    @property
    def checkpoint_lsn(self) -> int:
        return self.backup.checkpoint_lsn

    @property
    def last_lsn(self) -> int:
        return self.backup.last_lsn

    @property
    def recovery_fork_id(self) -> str | None:
        return self.backup.recovery_fork_id


@dataclass(frozen=True)
class PlaceholderFull:
    """
    Stand-in for the Full backup already restored in an earlier run.

    Only the differential base LSN is known; nothing is restored for it.
    """

    checkpoint_lsn: int
    recovery_fork_id: str | None = None


FullBase = Union[ResolvedFull, PlaceholderFull]


@dataclass(frozen=True)
class RestoreStep:
    """One ordered command for the restore engine."""

    database: str
    target_database: str
    backup: BackupDescriptor
    with_recovery: bool


@dataclass(frozen=True)
class DatabasePlan:
    """Selected backup chain for one database."""

    database: str
    target_database: str
    full: FullBase
    differential: BackupDescriptor | None = None
    logs: Tuple[BackupDescriptor, ...] = ()
    log_base_lsn: int = 0
    recovery_fork_id: str | None = None
    continuing: bool = False

    @property
    def entries(self) -> Tuple[BackupDescriptor, ...]:
        """Backups to apply, in order. A placeholder Full contributes nothing."""
        entries: List[BackupDescriptor] = []
        if isinstance(self.full, ResolvedFull):
            entries.append(self.full.backup)
        if self.differential is not None:
            entries.append(self.differential)
        entries.extend(self.logs)
        return tuple(entries)

    def restore_steps(self, recover: bool = True) -> List[RestoreStep]:
        """
        Turn the plan into restore engine commands.

        Every step but the last leaves the database restoring; the last one
        recovers it when recover is True.
        """
        entries = self.entries
        return [
            RestoreStep(
                database=self.database,
                target_database=self.target_database,
                backup=backup,
                with_recovery=recover and index == len(entries) - 1,
            )
            for index, backup in enumerate(entries)
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        if isinstance(self.full, ResolvedFull):
            full: Dict[str, Any] = {"placeholder": False, **self.full.backup.to_record()}
        else:
            full = {
                "placeholder": True,
                "checkpoint_lsn": str(self.full.checkpoint_lsn),
                "recovery_fork_id": self.full.recovery_fork_id,
            }
        return {
            "database": self.database,
            "target_database": self.target_database,
            "continuing": self.continuing,
            "full": full,
            "differential": (
                self.differential.to_record() if self.differential else None
            ),
            "logs": [log.to_record() for log in self.logs],
            "log_base_lsn": str(self.log_base_lsn),
            "recovery_fork_id": self.recovery_fork_id,
        }


@dataclass
class DatabaseResult:
    """Outcome of chain selection for one database."""

    database: str
    plan: DatabasePlan | None = None
    error: RestoreChainError | None = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.plan is not None and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        error = None
        if self.error is not None:
            error = {
                "code": self.error.code,
                "message": self.error.message,
                "details": {k: str(v) for k, v in self.error.details.items()},
            }
        return {
            "database": self.database,
            "ok": self.ok,
            "plan": self.plan.to_dict() if self.plan else None,
            "error": error,
            "warnings": list(self.warnings),
        }


@dataclass
class RestorePlan:
    """Per-database results of one selection run, ordered by database name."""

    restore_time: datetime
    results: List[DatabaseResult] = field(default_factory=list)

    @property
    def plans(self) -> List[DatabasePlan]:
        return [r.plan for r in self.results if r.ok and r.plan is not None]

    @property
    def failures(self) -> List[DatabaseResult]:
        return [r for r in self.results if not r.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def get(self, database: str) -> DatabaseResult | None:
        for result in self.results:
            if result.database == database:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "restore_time": self.restore_time.isoformat(),
            "succeeded": self.succeeded,
            "databases": [r.to_dict() for r in self.results],
        }
