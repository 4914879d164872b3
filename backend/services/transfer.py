"""Backup export and import for the local store.

Export writes ``{version, exportedAt, data: {rooms, boxes, items}}``. Import
checks the file's shape before touching the store, then either merges
(records whose id already exists are skipped) or replaces everything.
"""

import json
import logging
from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from schemas.base import CamelModel, Timestamp, utcnow
from schemas.boxes import Box
from schemas.document import EntityKind
from schemas.items import Item
from schemas.rooms import Room
from storage.local_store import LocalStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

ImportMode = Literal["merge", "replace"]


class ExportData(CamelModel):
    rooms: List[Room] = Field(default_factory=list)
    boxes: List[Box] = Field(default_factory=list)
    items: List[Item] = Field(default_factory=list)


class ExportFile(CamelModel):
    version: str = EXPORT_VERSION
    exported_at: Timestamp
    data: ExportData


class ImportPreview(BaseModel):
    rooms: int
    boxes: int
    items: int


class ImportResult(BaseModel):
    mode: ImportMode
    rooms: int = 0
    boxes: int = 0
    items: int = 0

    @property
    def message(self) -> str:
        verb = "Merged" if self.mode == "merge" else "Imported"
        suffix = " added" if self.mode == "merge" else ""
        return f"{verb}: {self.rooms} rooms, {self.boxes} boxes, {self.items} items{suffix}"


class ImportValidationError(ValueError):
    """The file is not a valid backup; nothing was imported."""


def export_document(store: LocalStore) -> ExportFile:
    doc = store.read()
    return ExportFile(
        exported_at=utcnow(),
        data=ExportData(rooms=doc.rooms, boxes=doc.boxes, items=doc.items),
    )


def export_filename(today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    return f"traxlio-backup-{today.isoformat()}.json"


def parse_import(raw: Union[str, bytes, dict]) -> ExportFile:
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ImportValidationError("Failed to read file. Please ensure it's a valid JSON file.")

    data = raw.get("data") if isinstance(raw, dict) else None
    if not isinstance(data, dict) or not all(
        isinstance(data.get(key), list) for key in ("rooms", "boxes", "items")
    ):
        raise ImportValidationError("Invalid file format. Please select a valid Traxlio backup file.")

    try:
        return ExportFile.model_validate(
            {
                "version": raw.get("version") or EXPORT_VERSION,
                "exportedAt": raw.get("exportedAt") or utcnow(),
                "data": data,
            }
        )
    except ValidationError as e:
        raise ImportValidationError(f"Invalid file format: {e.error_count()} invalid records") from e


def preview_import(backup: ExportFile) -> ImportPreview:
    return ImportPreview(
        rooms=len(backup.data.rooms),
        boxes=len(backup.data.boxes),
        items=len(backup.data.items),
    )


def import_document(store: LocalStore, backup: ExportFile, mode: ImportMode = "merge") -> ImportResult:
    result = ImportResult(mode=mode)
    if mode == "replace":
        store.clear_all()

    doc = store.read()
    for kind, records in (
        (EntityKind.ROOMS, backup.data.rooms),
        (EntityKind.BOXES, backup.data.boxes),
        (EntityKind.ITEMS, backup.data.items),
    ):
        existing = {e.id for e in doc.collection(kind)}
        added = 0
        for record in records:
            if record.id in existing:
                continue
            doc.collection(kind).append(record)
            existing.add(record.id)
            added += 1
        setattr(result, kind.value, added)

    store.write(doc)
    logger.info(result.message)
    return result


def clear_all(store: LocalStore) -> None:
    store.clear_all()
