"""Backup export/import of the local inventory document."""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from routers.deps import get_local_store, write_errors
from services.transfer import (
    ExportFile,
    ImportMode,
    ImportValidationError,
    clear_all,
    export_document,
    export_filename,
    import_document,
    parse_import,
    preview_import,
)
from storage.local_store import LocalStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse(payload: Any) -> ExportFile:
    try:
        return parse_import(payload)
    except ImportValidationError as e:
        logger.warning("Rejected import: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/export")
async def export_data(store: LocalStore = Depends(get_local_store)):
    backup = export_document(store)
    return Response(
        content=json.dumps(backup.to_json(), indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.post("/import/preview", response_model=Dict)
async def preview(payload: Any = Body(...)):
    """Counts of what a backup holds; nothing is written."""
    return preview_import(_parse(payload)).model_dump()


@router.post("/import", response_model=Dict)
async def import_data(
    payload: Any = Body(...),
    mode: ImportMode = Query("merge"),
    store: LocalStore = Depends(get_local_store),
):
    backup = _parse(payload)
    with write_errors("import data"):
        result = import_document(store, backup, mode)
    return {**result.model_dump(), "message": result.message}


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def clear_data(store: LocalStore = Depends(get_local_store)):
    """Remove all local inventory data. Settings are kept."""
    with write_errors("clear data"):
        clear_all(store)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
