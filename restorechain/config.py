# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Configuration - Immutable selection settings.

All configuration is frozen (immutable) after creation so that a selection
run, including its per-database workers, sees one consistent set of options.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Dict, List, Mapping

from restorechain.models import coerce_datetime


# Type alias for rename configuration: one new name, or source -> target
RenameConfig = str | Dict[str, str] | None


def _validate_names(names: List[str]) -> bool:
    """Validate a list of server or database names."""
    if not isinstance(names, (list, tuple)):
        return False
    return all(isinstance(name, str) and name.strip() for name in names)


def _validate_rename(rename: RenameConfig) -> bool:
    """Validate a rename setting."""
    if rename is None:
        return True
    if isinstance(rename, str):
        return bool(rename.strip())
    if not isinstance(rename, Mapping):
        return False
    for source, target in rename.items():
        if not isinstance(source, str) or not source:
            return False
        if not isinstance(target, str) or not target:
            return False
    return True


@dataclass(frozen=True)
class SelectionConfig:
    """
    Immutable options for backup chain selection.

    A restore_time of None means "as late as possible" and is resolved to the
    current time when a selection run starts.
    """

    # Point in time to restore to (None: now)
    restore_time: datetime | None = None

    # Stop after Full/Differential; no log backups
    ignore_logs: bool = False

    # Skip differential backups and roll forward from the Full with logs
    ignore_diffs: bool = False

    # Resume databases left restoring by an earlier run
    continue_restore: bool = False

    # Only consider history from these servers or availability groups
    server_names: List[str] = field(default_factory=list)

    # Only plan these databases (empty: every database in the history)
    databases: List[str] = field(default_factory=list)

    # New database name, or a source -> target mapping
    database_rename: RenameConfig = None

    # Skip the boundary log when it is already selected as an interior log
    deduplicate_boundary_log: bool = True

    # Databases planned concurrently
    max_workers: int = 1

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if self.restore_time is not None:
            try:
                object.__setattr__(
                    self, "restore_time", coerce_datetime(self.restore_time, "restore_time")
                )
            except ValueError as e:
                errors.append(str(e))

        if not _validate_names(self.server_names):
            errors.append("server_names must be a list of non-empty strings")

        if not _validate_names(self.databases):
            errors.append("databases must be a list of non-empty strings")

        if not _validate_rename(self.database_rename):
            errors.append(
                "database_rename must be a non-empty string or a mapping of "
                "non-empty source names to non-empty target names"
            )

        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            errors.append(f"max_workers must be >= 1, got {self.max_workers}")

        # Raise all errors at once
        if errors:
            from restorechain.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def with_updates(self, **kwargs) -> "SelectionConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return SelectionConfig(**current)

    def resolve_restore_time(self) -> datetime:
        """Return the configured restore time, or now when unset."""
        return self.restore_time or datetime.now(UTC)

    def target_name_for(self, database: str) -> str:
        """Name the database will be restored as."""
        if isinstance(self.database_rename, str):
            return self.database_rename
        if self.database_rename:
            return self.database_rename.get(database, database)
        return database
