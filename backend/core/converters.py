"""Translate between relational rows and inventory entities.

Rows use snake_case columns and server-issued timestamps; entities are the
pydantic models shared with the local JSON document. SQLite hands datetimes
back without tzinfo, so every timestamp is normalized to UTC here.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from db.activity import Activity as ActivityRow
from db.box import Box as BoxRow
from db.item import Item as ItemRow
from db.room import Room as RoomRow
from db.share import Share as ShareRow
from schemas.activities import Activity
from schemas.base import as_utc
from schemas.boxes import Box
from schemas.document import EntityKind
from schemas.items import Item
from schemas.rooms import Room
from schemas.shares import Share


ROW_MODELS = {
    EntityKind.ROOMS: RoomRow,
    EntityKind.BOXES: BoxRow,
    EntityKind.ITEMS: ItemRow,
    EntityKind.SHARES: ShareRow,
    EntityKind.ACTIVITIES: ActivityRow,
}

# entity attribute -> column, where they differ
_COLUMN_RENAMES = {
    EntityKind.ACTIVITIES: {"timestamp": "created_at"},
}

# columns an update may touch
WRITABLE_COLUMNS = {
    EntityKind.ROOMS: {"name", "description"},
    EntityKind.BOXES: {"room_id", "name", "description", "image"},
    EntityKind.ITEMS: {"box_id", "name", "description", "quantity", "images", "tags", "notes"},
    EntityKind.SHARES: {"type", "resource_id", "is_public", "expires_at"},
    EntityKind.ACTIVITIES: set(),
}


def _ts(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(value)


def room_from_row(row: RoomRow) -> Room:
    return Room(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=_ts(row.created_at),
        updated_at=_ts(row.updated_at),
    )


def box_from_row(row: BoxRow) -> Box:
    return Box(
        id=row.id,
        room_id=row.room_id,
        name=row.name,
        description=row.description,
        image=row.image,
        created_at=_ts(row.created_at),
        updated_at=_ts(row.updated_at),
    )


def item_from_row(row: ItemRow) -> Item:
    return Item(
        id=row.id,
        box_id=row.box_id,
        name=row.name,
        description=row.description,
        quantity=row.quantity,
        images=list(row.images or []),
        tags=list(row.tags or []),
        notes=row.notes,
        created_at=_ts(row.created_at),
        updated_at=_ts(row.updated_at),
    )


def share_from_row(row: ShareRow) -> Share:
    return Share(
        id=row.id,
        type=row.type,
        resource_id=row.resource_id,
        is_public=bool(row.is_public),
        created_at=_ts(row.created_at),
        expires_at=_ts(row.expires_at),
    )


def activity_from_row(row: ActivityRow) -> Activity:
    return Activity(
        id=row.id,
        action=row.action,
        type=row.type,
        resource_id=row.resource_id,
        resource_name=row.resource_name,
        parent_name=row.parent_name,
        timestamp=_ts(row.created_at),
    )


_FROM_ROW = {
    EntityKind.ROOMS: room_from_row,
    EntityKind.BOXES: box_from_row,
    EntityKind.ITEMS: item_from_row,
    EntityKind.SHARES: share_from_row,
    EntityKind.ACTIVITIES: activity_from_row,
}


def row_to_entity(kind: EntityKind, row):
    return _FROM_ROW[kind](row)


def fields_to_columns(kind: EntityKind, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map entity attribute names to column names, dropping unknown keys."""
    renames = _COLUMN_RENAMES.get(kind, {})
    columns = {c.name for c in ROW_MODELS[kind].__table__.columns}
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        column = renames.get(key, key)
        if column in columns and column != "user_id":
            out[column] = value
    return out


def changes_to_columns(kind: EntityKind, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Like ``fields_to_columns`` but restricted to updatable columns."""
    allowed = WRITABLE_COLUMNS[kind]
    return {k: v for k, v in fields_to_columns(kind, changes).items() if k in allowed}
