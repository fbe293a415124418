# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application with restorechain Integration.

This example keeps a local backup history store, imports history exports
collected from SQL Server instances, and serves restore plans over the
admin endpoints.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    RESTORECHAIN_HISTORY_DB: Path of the SQLite history store
    RESTORECHAIN_ADMIN_API_KEY: API key for admin endpoints
    RESTORECHAIN_USE_ENV: "true" to read selection defaults from the
        RESTORECHAIN_* variables (see restorechain.env)
"""

import os
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from restorechain import create_config_from_env
from restorechain.builder import (
    build_config,
    create_empty_config,
    from_servers,
    with_max_workers,
)
from restorechain.exceptions import RestoreChainError
from restorechain.history import (
    init_history_db,
    read_history_export,
    record_backups,
    record_continuation_point,
    record_last_restore,
)
from restorechain.integrations import register_restorechain_routes, verify_api_key
from restorechain.models import BackupDescriptor, BackupType, ContinuationPoint

HISTORY_DB = Path(os.getenv("RESTORECHAIN_HISTORY_DB", "./restorechain_history.db"))


def create_selection_config():
    """
    Create the default selection configuration.

    With RESTORECHAIN_USE_ENV=true the RESTORECHAIN_* variables are used;
    otherwise plan every database from the production servers, four
    databases at a time.
    """
    if os.getenv("RESTORECHAIN_USE_ENV", "false").lower() == "true":
        return create_config_from_env()

    config = create_empty_config()
    config = from_servers(config, ["SQL01", "AG-Sales"])
    config = with_max_workers(config, 4)
    return build_config(config)


try:
    selection_config = create_selection_config()
except RestoreChainError as e:
    print(f"Failed to create restorechain config: {e}")
    # Fall back to defaults for development
    selection_config = build_config(create_empty_config())


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_history_db(HISTORY_DB)
    yield


# Create FastAPI app
app = FastAPI(
    title="Restore Planner",
    description="Example application serving LSN-consistent restore plans",
    version="1.0.0",
    lifespan=lifespan,
)

register_restorechain_routes(app, selection_config, HISTORY_DB)


# ============================================================================
# Application Routes
# ============================================================================


class HistoryImport(BaseModel):
    """History export file to load into the store."""

    path: str


class RestoreProgress(BaseModel):
    """State reported by the restore engine after a step."""

    database: str
    restore_type: str
    redo_start_lsn: str
    differential_base_lsn: str
    recovery_fork_id: str | None = None


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Restore Planner",
        "docs": "/docs",
        "restorechain_admin": "/admin/restorechain/health",
    }


@app.post("/history/import", dependencies=[Depends(verify_api_key)])
async def import_history(request: HistoryImport):
    """Load a JSON or JSON-lines history export into the store."""
    try:
        records = await read_history_export(Path(request.path))
        backups = [BackupDescriptor.from_record(record) for record in records]
    except RestoreChainError as e:
        raise HTTPException(status_code=400, detail=e.message)

    async with aiosqlite.connect(HISTORY_DB) as db:
        imported = await record_backups(db, backups)

    return {"imported": imported}


@app.post("/restore/progress", dependencies=[Depends(verify_api_key)])
async def report_progress(progress: RestoreProgress):
    """
    Record where an interrupted restore stopped.

    A later plan with continue_restore=true picks up from here.
    """
    try:
        point = ContinuationPoint(
            database=progress.database,
            redo_start_lsn=progress.redo_start_lsn,
            differential_base_lsn=progress.differential_base_lsn,
            recovery_fork_id=progress.recovery_fork_id,
        )
        restore_type = BackupType.parse(progress.restore_type)
    except (RestoreChainError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        async with aiosqlite.connect(HISTORY_DB) as db:
            await record_continuation_point(db, point)
            await record_last_restore(db, point.database, restore_type)
    except aiosqlite.Error as e:
        raise HTTPException(status_code=503, detail=f"History store unavailable: {e}")

    return {"recorded": point.database}


# ============================================================================
# restorechain Admin Endpoints (registered above)
# ============================================================================
#
# POST /admin/restorechain/plan          - Compute a restore plan
# GET  /admin/restorechain/history-stats - History statistics
# GET  /admin/restorechain/health        - Health check
# GET  /admin/restorechain/config        - Selection defaults
#
# All admin endpoints require: Authorization: Bearer <RESTORECHAIN_ADMIN_API_KEY>


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
