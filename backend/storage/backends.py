"""Backends the inventory service can run against.

The service never decides where data lives; callers pick a backend with
``select_backend`` and hand it over.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.concurrency import run_in_threadpool

from schemas.activities import Activity
from schemas.base import utcnow
from schemas.document import EntityKind, InventoryDocument
from schemas.shares import Share
from storage.local_store import LocalStore
from storage.remote_store import RemoteStore

logger = logging.getLogger(__name__)


class InventoryBackend(Protocol):
    name: str

    async def load(self) -> InventoryDocument:
        ...

    async def create(self, kind: EntityKind, fields: Dict[str, Any]):
        ...

    async def update(self, kind: EntityKind, entity_id: str, changes: Dict[str, Any]):
        ...

    async def remove(self, kind: EntityKind, entity_id: str) -> None:
        ...

    async def add_activity(self, activity: Activity) -> None:
        ...

    async def get_share(self, share_id: str) -> Optional[Share]:
        ...

    async def share_exists(self, share_id: str) -> bool:
        ...


class LocalBackend:
    """Runs the synchronous local store in the threadpool so file reads and
    writes never block the event loop."""

    name = "local"

    def __init__(self, store: LocalStore) -> None:
        self.store = store

    async def load(self) -> InventoryDocument:
        return await run_in_threadpool(self.store.read)

    async def create(self, kind: EntityKind, fields: Dict[str, Any]):
        now = utcnow()
        data = dict(fields)
        data.setdefault("id", str(uuid.uuid4()))
        if kind is not EntityKind.ACTIVITIES:
            data.setdefault("created_at", now)
        if kind not in (EntityKind.SHARES, EntityKind.ACTIVITIES):
            data.setdefault("updated_at", now)
        entity = kind.model.model_validate(data)
        return await run_in_threadpool(self.store.add, kind, entity)

    async def update(self, kind: EntityKind, entity_id: str, changes: Dict[str, Any]):
        return await run_in_threadpool(self.store.update, kind, entity_id, changes)

    async def remove(self, kind: EntityKind, entity_id: str) -> None:
        await run_in_threadpool(self.store.remove, kind, entity_id)

    async def add_activity(self, activity: Activity) -> None:
        await run_in_threadpool(self.store.add_activity, activity)

    async def get_share(self, share_id: str) -> Optional[Share]:
        return await run_in_threadpool(self.store.get_share, share_id)

    async def share_exists(self, share_id: str) -> bool:
        return await self.get_share(share_id) is not None


class RemoteBackend:
    name = "remote"

    def __init__(self, store: RemoteStore) -> None:
        self.store = store

    async def load(self) -> InventoryDocument:
        return await self.store.load()

    async def create(self, kind: EntityKind, fields: Dict[str, Any]):
        return await self.store.insert(kind, fields)

    async def update(self, kind: EntityKind, entity_id: str, changes: Dict[str, Any]):
        return await self.store.update(kind, entity_id, changes)

    async def remove(self, kind: EntityKind, entity_id: str) -> None:
        await self.store.delete(kind, entity_id)

    async def add_activity(self, activity: Activity) -> None:
        await self.store.add_activity(activity)

    async def get_share(self, share_id: str) -> Optional[Share]:
        return await self.store.get_share(share_id)

    async def share_exists(self, share_id: str) -> bool:
        return await self.store.share_exists(share_id)


def select_backend(
    *,
    user,
    local: LocalStore,
    session_maker: Optional[async_sessionmaker],
    remote_configured: bool,
) -> InventoryBackend:
    """Remote iff a user is signed in, remote config is valid and a client exists.

    Demo sessions always stay on their own ephemeral local store.
    """
    if user is None or local.demo_mode:
        return LocalBackend(local)
    if not remote_configured:
        logger.info("Remote database not configured; using local storage for user %s", user.id)
        return LocalBackend(local)
    if session_maker is None:
        logger.warning("No database session factory available; using local storage for user %s", user.id)
        return LocalBackend(local)
    return RemoteBackend(RemoteStore(session_maker, user.id))
