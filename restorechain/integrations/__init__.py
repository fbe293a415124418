# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI admin endpoints.
"""

from restorechain.integrations.fastapi import (
    register_restorechain_routes,
    verify_api_key,
)

__all__ = [
    "register_restorechain_routes",
    "verify_api_key",
]
