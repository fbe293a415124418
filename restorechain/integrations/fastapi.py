# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain FastAPI Integration - Admin endpoints for FastAPI applications.

This module exposes restore planning over HTTP:
- Protected admin endpoints (Bearer token)
- Restore plan computation from the history store
- History statistics and health checks
"""

import os
import secrets
from datetime import datetime, UTC
from pathlib import Path

import aiosqlite
import structlog
from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from restorechain.config import SelectionConfig
from restorechain.core import plan_restore_from_history
from restorechain.exceptions import (
    ConfigurationError,
    HistoryError,
    MultiDatabaseContinuationUnsupportedError,
)
from restorechain.history import get_history_stats

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> bool:
    """
    Check the Bearer token against RESTORECHAIN_ADMIN_API_KEY.

    An unset key refuses every request.
    Raises:
        HTTPException: 500 if no key is configured, 401 without a Bearer
            token, 403 for a wrong token
    """
    api_key = os.getenv("RESTORECHAIN_ADMIN_API_KEY")
    if not api_key:
        logger.error("admin_api_key_not_configured")
        raise HTTPException(status_code=500, detail="Admin API key is not configured")

    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Bearer token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials.encode(), api_key.encode()):
        logger.warning("admin_api_key_rejected")
        raise HTTPException(status_code=403, detail="Invalid API key")

    return True


def _config_to_dict(config: SelectionConfig) -> dict:
    return {
        "restore_time": config.restore_time.isoformat() if config.restore_time else None,
        "ignore_logs": config.ignore_logs,
        "ignore_diffs": config.ignore_diffs,
        "continue_restore": config.continue_restore,
        "server_names": list(config.server_names),
        "databases": list(config.databases),
        "database_rename": config.database_rename,
        "deduplicate_boundary_log": config.deduplicate_boundary_log,
        "max_workers": config.max_workers,
    }


def register_restorechain_routes(
    app: FastAPI,
    config: SelectionConfig,
    history_db_path: Path,
    prefix: str = "/admin/restorechain",
) -> None:
    """
    Register restorechain admin endpoints on a FastAPI app.

    All endpoints require Bearer token authentication.

    Args:
        app: FastAPI application
        config: Default selection configuration
        history_db_path: Path to the SQLite history database
        prefix: URL prefix for endpoints (default: /admin/restorechain)
    """

    @app.post(f"{prefix}/plan", dependencies=[Depends(verify_api_key)])
    async def compute_plan(
        restore_time: str | None = None,
        continue_restore: bool | None = None,
        ignore_logs: bool | None = None,
        ignore_diffs: bool | None = None,
    ) -> dict:
        """
        Compute a restore plan from the stored backup history.

        Query parameters override the configured defaults for this request.
        """
        overrides: dict = {}
        if restore_time is not None:
            overrides["restore_time"] = restore_time
        if continue_restore is not None:
            overrides["continue_restore"] = continue_restore
        if ignore_logs is not None:
            overrides["ignore_logs"] = ignore_logs
        if ignore_diffs is not None:
            overrides["ignore_diffs"] = ignore_diffs

        try:
            request_config = config.with_updates(**overrides) if overrides else config
            plan = await plan_restore_from_history(request_config, history_db_path)
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except MultiDatabaseContinuationUnsupportedError as e:
            raise HTTPException(status_code=409, detail=e.message)
        except HistoryError as e:
            logger.error("plan_history_unavailable", error=str(e))
            raise HTTPException(status_code=503, detail=e.message)

        return plan.to_dict()

    @app.get(f"{prefix}/history-stats", dependencies=[Depends(verify_api_key)])
    async def history_statistics() -> dict:
        """
        Get backup history statistics.
        """
        if not history_db_path.exists():
            raise HTTPException(status_code=503, detail="History database not found")

        try:
            async with aiosqlite.connect(history_db_path) as db:
                return await get_history_stats(db)
        except (aiosqlite.Error, HistoryError) as e:
            logger.error("history_stats_unavailable", error=str(e))
            raise HTTPException(status_code=503, detail=f"History store unavailable: {e}")

    @app.get(f"{prefix}/health", dependencies=[Depends(verify_api_key)])
    async def health_check() -> dict:
        """
        Health check endpoint.

        Verifies the history store is readable.
        """
        history_ok = False
        history_error = None
        if history_db_path.exists():
            try:
                async with aiosqlite.connect(history_db_path) as db:
                    await db.execute("SELECT 1 FROM backups LIMIT 1")
                history_ok = True
            except Exception as e:
                history_error = str(e)
        else:
            history_error = "history database not found"

        return {
            "status": "healthy" if history_ok else "unhealthy",
            "history_accessible": history_ok,
            "history_error": history_error,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @app.get(f"{prefix}/config", dependencies=[Depends(verify_api_key)])
    async def get_config() -> dict:
        """
        Get the default selection configuration.
        """
        return _config_to_dict(config)
