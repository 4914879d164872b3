"""Inventory service: one API over whichever backend holds the user's data.

The service keeps a cached ``InventoryDocument``. Each mutation

1. looks up the previous state (and the parent's name) in the cache,
2. writes through the backend,
3. patches the cache and prepends one activity record,
4. reconciles by reloading the full document from the backend.

Reloads are ticketed against a mutation counter. A reload is applied only if
no mutation started after it was requested and none is still in flight, so
an older reload never overwrites newer state.
"""

import asyncio
import enum
import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union

from sqlalchemy.exc import SQLAlchemyError

from schemas.activities import Activity, ActivityAction
from schemas.base import PartialUpdate, ResourceType
from schemas.boxes import Box, BoxCreate, BoxUpdate
from schemas.document import RESOURCE_KINDS, EntityKind, InventoryDocument
from schemas.items import Item, ItemCreate, ItemUpdate
from schemas.rooms import Room, RoomCreate, RoomUpdate
from schemas.shares import Share, ShareCreate, SharedView
from services.activity import new_activity, prepend_activity, recent_activities
from services.search import RoomSort, SearchResult, SortDirection, search, sort_rooms
from storage.backends import InventoryBackend
from storage.local_store import remove_with_children

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 16
SHARE_ID_ATTEMPTS = 5

# read errors that fall back instead of surfacing
READ_ERRORS = (SQLAlchemyError, OSError)


class LoadState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class MoveResult:
    moved: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def _changes(schema, updates: Union[PartialUpdate, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(updates, dict):
        updates = schema.model_validate(updates)
    return updates.changes()


class InventoryService:
    def __init__(
        self,
        backend: InventoryBackend,
        *,
        fallback: Optional[InventoryBackend] = None,
        reconcile_in_background: bool = False,
    ) -> None:
        self.backend = backend
        self.fallback = fallback
        self.reconcile_in_background = reconcile_in_background
        self.state = LoadState.UNINITIALIZED
        self._doc = InventoryDocument()
        self._mutation_seq = 0
        self._in_flight = 0
        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_using_remote(self) -> bool:
        return self.backend.name == "remote"

    @property
    def is_loading(self) -> bool:
        return self.state is not LoadState.READY

    async def _fetch(self) -> InventoryDocument:
        try:
            return await self.backend.load()
        except READ_ERRORS:
            logger.warning("Failed to load inventory from %s backend", self.backend.name, exc_info=True)
            if self.fallback is not None:
                return await self.fallback.load()
            return self._doc.copy_deep()

    async def _load(self, ticket: int) -> InventoryDocument:
        self.state = LoadState.LOADING
        doc = await self._fetch()
        if ticket == self._mutation_seq and not self._in_flight:
            self._doc = doc
        else:
            logger.debug("Dropping stale reload %s (latest mutation %s)", ticket, self._mutation_seq)
        self.state = LoadState.READY
        return self.document

    async def load(self) -> InventoryDocument:
        return await self._load(self._mutation_seq)

    async def refresh(self) -> InventoryDocument:
        return await self.load()

    async def _reconcile(self) -> None:
        ticket = self._mutation_seq
        if not self.reconcile_in_background:
            await self._load(ticket)
            return
        task = asyncio.create_task(self._load(ticket))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_reconciled(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @asynccontextmanager
    async def _mutation(self):
        self._mutation_seq += 1
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1
        await self._reconcile()

    # ------------------------------------------------------------------
    # Cached reads
    # ------------------------------------------------------------------

    @property
    def document(self) -> InventoryDocument:
        return self._doc.copy_deep()

    @property
    def rooms(self) -> List[Room]:
        return list(self._doc.rooms)

    @property
    def boxes(self) -> List[Box]:
        return list(self._doc.boxes)

    @property
    def items(self) -> List[Item]:
        return list(self._doc.items)

    @property
    def shares(self) -> List[Share]:
        return list(self._doc.shares)

    @property
    def activities(self) -> List[Activity]:
        return list(self._doc.activities)

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._doc.find(EntityKind.ROOMS, room_id)

    def get_box(self, box_id: str) -> Optional[Box]:
        return self._doc.find(EntityKind.BOXES, box_id)

    def get_item(self, item_id: str) -> Optional[Item]:
        return self._doc.find(EntityKind.ITEMS, item_id)

    def get_resource(self, resource_type: ResourceType, resource_id: str) -> Optional[Union[Room, Box, Item]]:
        return self._doc.find(RESOURCE_KINDS[resource_type], resource_id)

    def get_boxes_by_room(self, room_id: str) -> List[Box]:
        return [b for b in self._doc.boxes if b.room_id == room_id]

    def get_items_by_box(self, box_id: str) -> List[Item]:
        return [i for i in self._doc.items if i.box_id == box_id]

    def get_recent_activities(self, limit: int = 10) -> List[Activity]:
        return recent_activities(self._doc.activities, limit)

    def search(self, query: str, limit: int = 10) -> List[SearchResult]:
        return search(self._doc, query, limit=limit)

    def sort_rooms(self, sort_by: RoomSort = "name", direction: SortDirection = "asc", query: str = "") -> List[Room]:
        return sort_rooms(self._doc, sort_by=sort_by, direction=direction, query=query)

    def shared_view(self, share: Share) -> Optional[SharedView]:
        """The read-only view of ``share`` built from the cached document."""
        return build_shared_view(self._doc, share)

    # ------------------------------------------------------------------
    # Cache patching
    # ------------------------------------------------------------------

    def _patch_add(self, kind: EntityKind, entity) -> None:
        self._doc.collection(kind).append(entity)

    def _patch_replace(self, kind: EntityKind, entity) -> None:
        if entity is None:
            return
        entities = self._doc.collection(kind)
        for index, current in enumerate(entities):
            if current.id == entity.id:
                entities[index] = entity
                return

    async def _log(
        self,
        action: ActivityAction,
        resource_type: ResourceType,
        resource_id: str,
        resource_name: str,
        parent_name: Optional[str] = None,
    ) -> None:
        activity = new_activity(action, resource_type, resource_id, resource_name, parent_name)
        try:
            await self.backend.add_activity(activity)
        except SQLAlchemyError:
            # activity rows are best-effort; the mutation already committed
            logger.exception("Failed to log %s of %s %s", action, resource_type, resource_id)
            return
        self._doc.activities = prepend_activity(self._doc.activities, activity)

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    async def create_room(self, name: str, description: Optional[str] = None) -> Room:
        payload = RoomCreate(name=name, description=description)
        async with self._mutation():
            room = await self.backend.create(EntityKind.ROOMS, payload.model_dump())
            self._patch_add(EntityKind.ROOMS, room)
            await self._log("create", "room", room.id, room.name)
        return room

    async def update_room(self, room_id: str, updates: Union[RoomUpdate, Dict[str, Any]]) -> Optional[Room]:
        changes = _changes(RoomUpdate, updates)
        room = self.get_room(room_id)
        async with self._mutation():
            updated = await self.backend.update(EntityKind.ROOMS, room_id, changes)
            self._patch_replace(EntityKind.ROOMS, updated)
            if room is not None:
                await self._log("update", "room", room_id, changes.get("name") or room.name)
        return updated

    async def delete_room(self, room_id: str) -> None:
        room = self.get_room(room_id)
        async with self._mutation():
            await self.backend.remove(EntityKind.ROOMS, room_id)
            remove_with_children(self._doc, EntityKind.ROOMS, room_id)
            if room is not None:
                await self._log("delete", "room", room_id, room.name)

    # ------------------------------------------------------------------
    # Boxes
    # ------------------------------------------------------------------

    async def create_box(
        self,
        room_id: str,
        name: str,
        description: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Box:
        payload = BoxCreate(room_id=room_id, name=name, description=description, image=image)
        room = self.get_room(room_id)
        async with self._mutation():
            box = await self.backend.create(EntityKind.BOXES, payload.model_dump())
            self._patch_add(EntityKind.BOXES, box)
            await self._log("create", "box", box.id, box.name, room.name if room else None)
        return box

    async def update_box(self, box_id: str, updates: Union[BoxUpdate, Dict[str, Any]]) -> Optional[Box]:
        changes = _changes(BoxUpdate, updates)
        box = self.get_box(box_id)
        room = self.get_room(box.room_id) if box else None
        async with self._mutation():
            updated = await self.backend.update(EntityKind.BOXES, box_id, changes)
            self._patch_replace(EntityKind.BOXES, updated)
            if box is not None:
                name = changes.get("name") or box.name
                await self._log("update", "box", box_id, name, room.name if room else None)
        return updated

    async def delete_box(self, box_id: str) -> None:
        box = self.get_box(box_id)
        room = self.get_room(box.room_id) if box else None
        async with self._mutation():
            await self.backend.remove(EntityKind.BOXES, box_id)
            remove_with_children(self._doc, EntityKind.BOXES, box_id)
            if box is not None:
                await self._log("delete", "box", box_id, box.name, room.name if room else None)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def create_item(self, box_id: str, data: Union[ItemCreate, Dict[str, Any]]) -> Item:
        if isinstance(data, dict):
            data = ItemCreate.model_validate(data)
        box = self.get_box(box_id)
        async with self._mutation():
            item = await self.backend.create(EntityKind.ITEMS, {"box_id": box_id, **data.model_dump()})
            self._patch_add(EntityKind.ITEMS, item)
            await self._log("create", "item", item.id, item.name, box.name if box else None)
        return item

    async def update_item(self, item_id: str, updates: Union[ItemUpdate, Dict[str, Any]]) -> Optional[Item]:
        changes = _changes(ItemUpdate, updates)
        item = self.get_item(item_id)
        box = self.get_box(item.box_id) if item else None
        is_move = item is not None and "box_id" in changes and changes["box_id"] != item.box_id

        async with self._mutation():
            updated = await self.backend.update(EntityKind.ITEMS, item_id, changes)
            self._patch_replace(EntityKind.ITEMS, updated)
            if item is not None:
                name = changes.get("name") or item.name
                if is_move:
                    target = self.get_box(changes["box_id"])
                    await self._log("move", "item", item_id, name, target.name if target else None)
                else:
                    await self._log("update", "item", item_id, name, box.name if box else None)
        return updated

    async def delete_item(self, item_id: str) -> None:
        item = self.get_item(item_id)
        box = self.get_box(item.box_id) if item else None
        async with self._mutation():
            await self.backend.remove(EntityKind.ITEMS, item_id)
            remove_with_children(self._doc, EntityKind.ITEMS, item_id)
            if item is not None:
                await self._log("delete", "item", item_id, item.name, box.name if box else None)

    async def move_item(self, item_id: str, target_box_id: str) -> Optional[Item]:
        if self.get_item(item_id) is None:
            raise LookupError(f"Item {item_id} not found")
        if self.get_box(target_box_id) is None:
            raise LookupError(f"Box {target_box_id} not found")
        return await self.update_item(item_id, ItemUpdate(box_id=target_box_id))

    async def move_items(self, item_ids: List[str], target_box_id: str) -> MoveResult:
        """Move each item on its own; earlier moves stay if a later one fails."""
        result = MoveResult()
        for item_id in item_ids:
            try:
                await self.move_item(item_id, target_box_id)
            except (LookupError, SQLAlchemyError, OSError) as e:
                logger.warning("Failed to move item %s to box %s: %s", item_id, target_box_id, e)
                result.failed.append(item_id)
            else:
                result.moved.append(item_id)
        return result

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    async def _new_share_id(self) -> str:
        for _ in range(SHARE_ID_ATTEMPTS):
            candidate = secrets.token_urlsafe(SHARE_TOKEN_BYTES)
            if self._doc.find(EntityKind.SHARES, candidate) is not None:
                continue
            if not await self.backend.share_exists(candidate):
                return candidate
        raise RuntimeError("Could not allocate a unique share id")

    async def create_share(
        self,
        resource_type: ResourceType,
        resource_id: str,
        is_public: bool = True,
        expires_at: Optional[datetime] = None,
    ) -> Share:
        payload = ShareCreate(type=resource_type, resource_id=resource_id, is_public=is_public, expires_at=expires_at)
        share_id = await self._new_share_id()
        async with self._mutation():
            share = await self.backend.create(EntityKind.SHARES, {"id": share_id, **payload.model_dump()})
            self._patch_add(EntityKind.SHARES, share)
        return share

    async def get_share(self, share_id: str) -> Optional[Share]:
        """Cached share, else the backend's; ``expires_at`` is not checked here."""
        share = self._doc.find(EntityKind.SHARES, share_id)
        if share is not None:
            return share
        return await self.backend.get_share(share_id)

    async def delete_share(self, share_id: str) -> None:
        async with self._mutation():
            await self.backend.remove(EntityKind.SHARES, share_id)
            remove_with_children(self._doc, EntityKind.SHARES, share_id)


def build_shared_view(doc: InventoryDocument, share: Share) -> Optional[SharedView]:
    """Read-only rendering of a share's target; None if the target is gone."""
    target = doc.find(RESOURCE_KINDS[share.type], share.resource_id)
    if target is None:
        return None

    view = SharedView(share=share)
    if share.type == "room":
        boxes = [b for b in doc.boxes if b.room_id == target.id]
        box_ids = {b.id for b in boxes}
        view.room = target.to_json()
        view.boxes = [b.to_json() for b in boxes]
        view.items = [i.to_json() for i in doc.items if i.box_id in box_ids]
    elif share.type == "box":
        room = doc.find(EntityKind.ROOMS, target.room_id)
        view.box = target.to_json()
        view.room = room.to_json() if room else None
        view.items = [i.to_json() for i in doc.items if i.box_id == target.id]
    else:
        box = doc.find(EntityKind.BOXES, target.box_id)
        view.item = target.to_json()
        view.box = box.to_json() if box else None
    return view
