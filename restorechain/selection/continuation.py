# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain Continuation Resolver - Resuming interrupted restores.

A multi-step restore can stop after any step with the database left in a
restoring state. Resuming it must not start from a Full backup again; instead
the recorded redo position and differential base are used to pick up the
chain where it stopped.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple

import structlog

from restorechain.config import SelectionConfig
from restorechain.models import (
    BackupType,
    ContinuationPoint,
    LastRestoreRecord,
    PlaceholderFull,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ContinuationContext:
    """How the chain selector should treat one database."""

    point: ContinuationPoint | None
    ignore_diffs: bool
    last_restore: LastRestoreRecord | None = None
    notices: Tuple[str, ...] = ()

    @property
    def continuing(self) -> bool:
        return self.point is not None


def index_continuation_points(
    points: Iterable[ContinuationPoint] | None,
) -> Dict[str, ContinuationPoint]:
    """Key continuation points by database name; later entries win."""
    return {point.database: point for point in points or ()}


def index_last_restores(
    records: Iterable[LastRestoreRecord] | None,
) -> Dict[str, LastRestoreRecord]:
    """Key last-restore records by database name; later entries win."""
    return {record.database: record for record in records or ()}


def placeholder_full(point: ContinuationPoint) -> PlaceholderFull:
    """
    Synthesize the Full backup restored by the earlier run.

    Its checkpoint LSN is the differential base, so differential matching
    works exactly as it would against the real Full.
    """
    return PlaceholderFull(
        checkpoint_lsn=point.differential_base_lsn,
        recovery_fork_id=point.recovery_fork_id,
    )


def resolve_continuation(
    database: str,
    config: SelectionConfig,
    continuation_points: Mapping[str, ContinuationPoint],
    last_restores: Mapping[str, LastRestoreRecord],
) -> ContinuationContext:
    """
    Decide whether a database continues an earlier restore.

    Restore state is recorded against the restored (target) name, so lookups
    go through the rename mapping. Once a log backup has been applied a
    differential can no longer be layered in; that forces ignore_diffs.

    Args:
        database: Source database name from backup history
        config: Selection configuration
        continuation_points: Continuation points keyed by target database
        last_restores: Last restore records keyed by target database

    Returns:
        ContinuationContext for the chain selector
    """
    if not config.continue_restore:
        return ContinuationContext(point=None, ignore_diffs=config.ignore_diffs)

    target = config.target_name_for(database)
    point = continuation_points.get(target)

    if point is None:
        logger.info(
            "continuation_point_missing",
            database=database,
            target_database=target,
        )
        return ContinuationContext(
            point=None,
            ignore_diffs=config.ignore_diffs,
            notices=(
                f"No continuation point for {target}; planning a full restore chain",
            ),
        )

    last_restore = last_restores.get(target)
    ignore_diffs = config.ignore_diffs
    notices: Tuple[str, ...] = ()

    if last_restore is not None and last_restore.restore_type == BackupType.LOG:
        if not ignore_diffs:
            logger.info(
                "differentials_disabled_after_log_restore",
                database=database,
                target_database=target,
            )
            notices = (
                f"A log backup was already restored to {target}; differential backups skipped",
            )
        ignore_diffs = True

    logger.debug(
        "continuation_resolved",
        database=database,
        target_database=target,
        redo_start_lsn=str(point.redo_start_lsn),
        differential_base_lsn=str(point.differential_base_lsn),
        ignore_diffs=ignore_diffs,
    )

    return ContinuationContext(
        point=point,
        ignore_diffs=ignore_diffs,
        last_restore=last_restore,
        notices=notices,
    )
