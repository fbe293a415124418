# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Selection Engine - Per-database chain selection and continuation.
"""

from restorechain.selection.selector import (
    select_backup_chain,
    select_full_backup,
    select_differential_backup,
    select_interior_logs,
    select_boundary_log,
    resolve_file_names,
)

from restorechain.selection.continuation import (
    resolve_continuation,
    placeholder_full,
    index_continuation_points,
    index_last_restores,
    ContinuationContext,
)

__all__ = [
    # Selector
    "select_backup_chain",
    "select_full_backup",
    "select_differential_backup",
    "select_interior_logs",
    "select_boundary_log",
    "resolve_file_names",
    # Continuation
    "resolve_continuation",
    "placeholder_full",
    "index_continuation_points",
    "index_last_restores",
    "ContinuationContext",
]
