# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Builder - Functional builder pattern for configuration.

This module provides pure functions for building SelectionConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from datetime import datetime
from typing import Any, Callable, Dict, List

from restorechain.config import SelectionConfig
from restorechain.models import coerce_datetime


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "restore_time": None,
        "ignore_logs": False,
        "ignore_diffs": False,
        "continue_restore": False,
        "server_names": [],
        "databases": [],
        "database_rename": None,
        "deduplicate_boundary_log": True,
        "max_workers": 1,
    }


def with_restore_time(config: ConfigDict, restore_time: datetime | str) -> ConfigDict:
    """
    Set the point in time to restore to.

    Args:
        config: Current configuration dictionary
        restore_time: Datetime or ISO 8601 string; naive values are UTC

    Returns:
        New configuration dictionary with restore time set
    """
    return {**config, "restore_time": coerce_datetime(restore_time, "restore_time")}


def ignore_logs(config: ConfigDict) -> ConfigDict:
    """
    Restore Full and Differential backups only.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with log backups ignored
    """
    return {**config, "ignore_logs": True}


def ignore_diffs(config: ConfigDict) -> ConfigDict:
    """
    Skip differential backups and roll forward from the Full with logs.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with differential backups ignored
    """
    return {**config, "ignore_diffs": True}


def continue_restore(config: ConfigDict) -> ConfigDict:
    """
    Resume databases left in a restoring state by an earlier run.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with continuation enabled
    """
    return {**config, "continue_restore": True}


def from_servers(config: ConfigDict, server_names: List[str]) -> ConfigDict:
    """
    Only use backups taken on these servers or availability groups.

    Args:
        config: Current configuration dictionary
        server_names: Server or availability group names

    Returns:
        New configuration dictionary with servers added
    """
    return {**config, "server_names": list(config["server_names"]) + server_names}


def only_databases(config: ConfigDict, databases: List[str]) -> ConfigDict:
    """
    Restrict planning to these databases.

    Args:
        config: Current configuration dictionary
        databases: Database names

    Returns:
        New configuration dictionary with databases added
    """
    return {**config, "databases": list(config["databases"]) + databases}


def rename_database(config: ConfigDict, new_name: str) -> ConfigDict:
    """
    Restore under a new name.

    A single name only makes sense for a single database; combined with
    continuation across several databases it is rejected at selection time.

    Args:
        config: Current configuration dictionary
        new_name: Target database name

    Returns:
        New configuration dictionary with rename set
    """
    if not new_name:
        raise ValueError("new_name must be a non-empty string")
    return {**config, "database_rename": new_name}


def rename_databases(config: ConfigDict, mapping: Dict[str, str]) -> ConfigDict:
    """
    Restore several databases under new names.

    Args:
        config: Current configuration dictionary
        mapping: Source database name -> target database name

    Returns:
        New configuration dictionary with rename mapping merged in
    """
    current = config["database_rename"]
    merged = dict(current) if isinstance(current, dict) else {}
    merged.update(mapping)
    return {**config, "database_rename": merged}


def keep_duplicate_boundary_log(config: ConfigDict) -> ConfigDict:
    """
    Append the boundary log even when it was already selected as an interior log.

    SQL Server rejects a log backup that was already applied, so only use
    this for tooling that collapses repeated entries itself.

    Args:
        config: Current configuration dictionary

    Returns:
        New configuration dictionary with boundary deduplication disabled
    """
    return {**config, "deduplicate_boundary_log": False}


def with_max_workers(config: ConfigDict, max_workers: int) -> ConfigDict:
    """
    Set how many databases are planned concurrently.

    Args:
        config: Current configuration dictionary
        max_workers: Worker count

    Returns:
        New configuration dictionary with max_workers set
    """
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")
    return {**config, "max_workers": max_workers}


def build_config(config_dict: ConfigDict) -> SelectionConfig:
    """
    Validate and build an immutable SelectionConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable SelectionConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    return SelectionConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

    This allows a more readable pipeline style:

        config = pipe(
            lambda c: with_restore_time(c, "2026-03-01T12:00:00+00:00"),
            ignore_diffs,
            continue_restore,
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> SelectionConfig:
    """
    Build config by applying a sequence of builder functions.

    This is a convenience function that combines pipe() and build_config().

    Example:
        config = build_from_steps(
            lambda c: only_databases(c, ["Sales"]),
            ignore_logs,
        )

    Args:
        *steps: Builder functions to apply in sequence

    Returns:
        Validated, immutable SelectionConfig instance
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    *,
    restore_time: datetime | str | None = None,
    ignore_logs: bool = False,
    ignore_diffs: bool = False,
    continue_restore: bool = False,
    server_names: List[str] | None = None,
    databases: List[str] | None = None,
    database_rename: str | Dict[str, str] | None = None,
    **kwargs: Any,
) -> SelectionConfig:
    """
    Create a selection configuration from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Args:
        restore_time: Point in time to restore to (default: now)
        ignore_logs: Restore Full/Differential only
        ignore_diffs: Skip differential backups
        continue_restore: Resume databases left restoring
        server_names: Only use backups from these servers/availability groups
        databases: Only plan these databases
        database_rename: New name, or mapping of source -> target names
        **kwargs: Additional configuration options

    Returns:
        Validated, immutable SelectionConfig instance

    Example:
        # Latest possible point in time, every database
        config = create_config()

        # Point in time restore of one database under a new name
        config = create_config(
            restore_time="2026-03-01T12:30:00+00:00",
            databases=["Sales"],
            database_rename="Sales_Restored",
        )
    """
    config_dict = create_empty_config()

    if restore_time is not None:
        config_dict = with_restore_time(config_dict, restore_time)

    # Parameter names shadow the builder functions of the same name
    config_dict = {
        **config_dict,
        "ignore_logs": bool(ignore_logs),
        "ignore_diffs": bool(ignore_diffs),
        "continue_restore": bool(continue_restore),
    }

    if server_names:
        config_dict = from_servers(config_dict, server_names)

    if databases:
        config_dict = only_databases(config_dict, databases)

    if isinstance(database_rename, str):
        config_dict = rename_database(config_dict, database_rename)
    elif database_rename:
        config_dict = rename_databases(config_dict, database_rename)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
