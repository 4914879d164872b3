"""Local inventory store: the whole inventory as one JSON document.

Every operation reads the full document, changes it in memory and writes it
back in full. There is no locking; concurrent writers race and the last write
wins.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from schemas.activities import Activity
from schemas.base import CamelModel, utcnow
from schemas.document import EntityKind, InventoryDocument
from schemas.shares import Share
from services.activity import ACTIVITY_LIMIT, prepend_activity, recent_activities
from storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_INVENTORY_KEY = "traxlio_inventory"


@dataclass(frozen=True)
class StorageConfig:
    demo_mode: bool = False
    inventory_key: str = DEFAULT_INVENTORY_KEY


def _bump(previous: datetime) -> datetime:
    # updated_at never moves backwards, even if the clock does
    now = utcnow()
    return now if now >= previous else previous


class LocalStore:
    def __init__(self, kv: KeyValueStore, config: Optional[StorageConfig] = None) -> None:
        self.kv = kv
        self.config = config or StorageConfig()

    @property
    def demo_mode(self) -> bool:
        return self.config.demo_mode

    # -- whole document -------------------------------------------------

    def read(self) -> InventoryDocument:
        raw = self.kv.get_item(self.config.inventory_key)
        if not raw:
            return InventoryDocument()
        try:
            payload = json.loads(raw)
        except ValueError as e:
            logger.warning("Discarding unreadable inventory document %r: %s", self.config.inventory_key, e)
            return InventoryDocument()
        if not isinstance(payload, dict):
            logger.warning("Discarding inventory document %r: not an object", self.config.inventory_key)
            return InventoryDocument()

        collections: Dict[str, List[CamelModel]] = {}
        for kind in EntityKind:
            records = payload.get(kind.value)
            # absent or null collections read as empty
            if not isinstance(records, list):
                records = []
            valid = []
            for record in records:
                try:
                    valid.append(kind.model.model_validate(record))
                except ValidationError as e:
                    logger.warning("Skipping invalid %s record in %r: %s", kind.value, self.config.inventory_key, e)
            collections[kind.value] = valid
        return InventoryDocument(**collections)

    def write(self, doc: InventoryDocument) -> None:
        self.kv.set_item(self.config.inventory_key, json.dumps(doc.to_json()))

    def clear_all(self) -> None:
        """Drop the inventory document; other keys (settings) are untouched."""
        self.kv.remove_item(self.config.inventory_key)

    # -- entities -------------------------------------------------------

    def add(self, kind: EntityKind, entity: CamelModel) -> CamelModel:
        doc = self.read()
        doc.collection(kind).append(entity)
        self.write(doc)
        return entity

    def update(self, kind: EntityKind, entity_id: str, changes: Dict[str, Any]) -> Optional[CamelModel]:
        doc = self.read()
        entities = doc.collection(kind)
        for index, current in enumerate(entities):
            if current.id != entity_id:
                continue
            merged = current.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in ("id", "created_at", "updated_at")})
            if "updated_at" in merged:
                merged["updated_at"] = _bump(current.updated_at)
            updated = kind.model.model_validate(merged)
            entities[index] = updated
            self.write(doc)
            return updated
        return None

    def remove(self, kind: EntityKind, entity_id: str) -> None:
        doc = self.read()
        remove_with_children(doc, kind, entity_id)
        self.write(doc)

    def get(self, kind: EntityKind, entity_id: str) -> Optional[CamelModel]:
        return self.read().find(kind, entity_id)

    # -- shares and activities -------------------------------------------

    def get_share(self, share_id: str) -> Optional[Share]:
        return self.read().find(EntityKind.SHARES, share_id)

    def add_activity(self, activity: Activity) -> None:
        doc = self.read()
        doc.activities = prepend_activity(doc.activities, activity, ACTIVITY_LIMIT)
        self.write(doc)

    def recent_activities(self, limit: int = 10) -> List[Activity]:
        return recent_activities(self.read().activities, limit)


def remove_with_children(doc: InventoryDocument, kind: EntityKind, entity_id: str) -> None:
    """Remove an entity in place; rooms take their boxes and items along."""
    if kind is EntityKind.ROOMS:
        doc.rooms = [r for r in doc.rooms if r.id != entity_id]
        box_ids = {b.id for b in doc.boxes if b.room_id == entity_id}
        doc.boxes = [b for b in doc.boxes if b.room_id != entity_id]
        doc.items = [i for i in doc.items if i.box_id not in box_ids]
    elif kind is EntityKind.BOXES:
        doc.boxes = [b for b in doc.boxes if b.id != entity_id]
        doc.items = [i for i in doc.items if i.box_id != entity_id]
    else:
        setattr(doc, kind.value, [e for e in doc.collection(kind) if e.id != entity_id])
