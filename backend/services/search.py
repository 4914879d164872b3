from collections import Counter
from typing import List, Literal, Optional

from pydantic import BaseModel

from schemas.document import InventoryDocument
from schemas.rooms import Room

MIN_QUERY_LENGTH = 2

RoomSort = Literal["name", "created", "updated", "boxes"]
SortDirection = Literal["asc", "desc"]


class SearchResult(BaseModel):
    type: Literal["box", "item"]
    id: str
    name: str
    description: Optional[str] = None
    parent_name: Optional[str] = None
    parent_id: Optional[str] = None
    tags: List[str] = []


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def search(doc: InventoryDocument, query: str, limit: int = 10) -> List[SearchResult]:
    """Case-insensitive substring search over boxes, then items."""
    needle = (query or "").strip().lower()
    if len(needle) < MIN_QUERY_LENGTH:
        return []

    rooms = {r.id: r for r in doc.rooms}
    boxes = {b.id: b for b in doc.boxes}
    results: List[SearchResult] = []

    for box in doc.boxes:
        if _contains(box.name, needle) or _contains(box.description, needle):
            room = rooms.get(box.room_id)
            results.append(
                SearchResult(
                    type="box",
                    id=box.id,
                    name=box.name,
                    description=box.description,
                    parent_name=room.name if room else None,
                    parent_id=room.id if room else None,
                )
            )

    for item in doc.items:
        if (
            _contains(item.name, needle)
            or _contains(item.description, needle)
            or any(_contains(tag, needle) for tag in item.tags)
            or _contains(item.notes, needle)
        ):
            box = boxes.get(item.box_id)
            results.append(
                SearchResult(
                    type="item",
                    id=item.id,
                    name=item.name,
                    description=item.description,
                    parent_name=box.name if box else None,
                    parent_id=box.id if box else None,
                    tags=list(item.tags),
                )
            )

    return results[:limit]


def sort_rooms(
    doc: InventoryDocument,
    sort_by: RoomSort = "name",
    direction: SortDirection = "asc",
    query: str = "",
) -> List[Room]:
    needle = (query or "").strip().lower()
    rooms = [
        r for r in doc.rooms
        if not needle or _contains(r.name, needle) or _contains(r.description, needle)
    ]

    box_counts = Counter(b.room_id for b in doc.boxes)
    keys = {
        "name": lambda r: r.name.lower(),
        "created": lambda r: r.created_at,
        "updated": lambda r: r.updated_at,
        "boxes": lambda r: box_counts[r.id],
    }
    return sorted(rooms, key=keys.get(sort_by, keys["name"]), reverse=direction == "desc")
