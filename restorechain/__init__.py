# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain - LSN-consistent backup chain selection for database restores.

Given a history of Full, Differential and transaction log backups, computes
the minimal sequence of backups that restores each database to a point in
time, or continues a partially completed restore. Package name: restorechain.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from restorechain.builder import create_config

# Core functions
from restorechain.core import (
    select_restore_plan,
    plan_restore_from_history,
)

# Data model
from restorechain.models import (
    BackupDescriptor,
    BackupType,
    ContinuationPoint,
    LastRestoreRecord,
    DatabasePlan,
    DatabaseResult,
    RestorePlan,
)

# Environment-based configuration and profiles (additional helpers)
from restorechain.env import (
    create_config_from_env,
    full_only,
    full_and_differential,
    point_in_time,
)

__all__ = [
    # Version
    "__version__",
    # Configuration creation (primary user-facing APIs)
    "create_config",
    "create_config_from_env",
    # Core orchestration functions
    "select_restore_plan",
    "plan_restore_from_history",
    # Data model
    "BackupDescriptor",
    "BackupType",
    "ContinuationPoint",
    "LastRestoreRecord",
    "DatabasePlan",
    "DatabaseResult",
    "RestorePlan",
    # Profiles
    "full_only",
    "full_and_differential",
    "point_in_time",
]
