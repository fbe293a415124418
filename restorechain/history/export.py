# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Chain History Export - Backup history files.

Backup history is often collected on one machine (a scan of the backup share,
or a query against msdb) and planned on another. This module reads and
writes that history as JSON: either a single JSON array, or JSON lines with
one record per line.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

import aiofiles
import structlog

from restorechain.exceptions import HistoryError
from restorechain.models import BackupDescriptor

logger = structlog.get_logger()


async def read_history_export(path: Path) -> List[Dict[str, Any]]:
    """
    Read raw backup history records from a JSON or JSON-lines file.

    Records are returned unvalidated; the selection run converts them per
    database so one bad record does not sink the whole file.

    Args:
        path: Path to the export file

    Returns:
        List of raw history records
    """
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
    except FileNotFoundError:
        raise HistoryError(
            f"History export not found: {path}",
            details={"path": str(path)},
        )
    except Exception as e:
        raise HistoryError(
            f"Failed to read history export: {e}",
            details={"path": str(path)},
        )

    text = content.strip()
    if not text:
        return []

    try:
        if text.startswith("["):
            records = json.loads(text)
        else:
            records = [json.loads(line) for line in text.splitlines() if line.strip()]
    except json.JSONDecodeError as e:
        raise HistoryError(
            f"History export is not valid JSON: {e}",
            details={"path": str(path), "line": e.lineno},
        )

    if not all(isinstance(record, dict) for record in records):
        raise HistoryError(
            "History export must contain JSON objects",
            details={"path": str(path)},
        )

    logger.debug("history_export_read", path=str(path), records=len(records))

    return records


async def write_history_export(
    path: Path,
    backups: Iterable[BackupDescriptor],
) -> int:
    """
    Write backup descriptors as JSON lines.

    The file is written atomically (write to temp, then rename) to
    prevent partial files.

    Args:
        path: Destination file
        backups: Descriptors to export

    Returns:
        Number of records written
    """
    lines = [json.dumps(backup.to_record()) for backup in backups]
    temp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write("\n".join(lines) + ("\n" if lines else ""))
        temp_path.replace(path)
    except Exception as e:
        temp_path.unlink(missing_ok=True)
        raise HistoryError(
            f"Failed to write history export: {e}",
            details={"path": str(path)},
        )

    logger.info("history_export_written", path=str(path), records=len(lines))

    return len(lines)
