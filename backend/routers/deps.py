"""Request-scoped wiring: storage config, local store and inventory service.

This is the only place the demo cookies are read. Everything below gets an
explicit ``StorageConfig`` instead.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError

from core.auth import current_optional_user
from core.config import settings
from db.database import async_session_maker
from db.users import User
from services.inventory import InventoryService
from storage.backends import LocalBackend, select_backend
from storage.kv import DemoSessionRegistry, FileKeyValueStore
from storage.local_store import LocalStore, StorageConfig
from storage.remote_store import ForeignResourceError
from storage.settings import SettingsStore

logger = logging.getLogger(__name__)

DEMO_MODE_COOKIE = "demo_mode"
DEMO_SESSION_COOKIE = "demo_session"

demo_sessions = DemoSessionRegistry(
    max_sessions=settings.demo_session_limit,
    idle_seconds=settings.demo_session_idle_seconds,
)


def get_storage_config(demo_mode: Optional[str] = Cookie(default=None)) -> StorageConfig:
    return StorageConfig(demo_mode=demo_mode == "true", inventory_key=settings.inventory_key)


def get_kv_store(
    response: Response,
    config: StorageConfig = Depends(get_storage_config),
    demo_session: Optional[str] = Cookie(default=None),
):
    if not config.demo_mode:
        return FileKeyValueStore(settings.local_data_dir)
    store = demo_sessions.get(demo_session) if demo_session else None
    if store is None:
        # unknown or expired ids are never adopted; the server issues a new one
        demo_session, store = demo_sessions.start()
        response.set_cookie(DEMO_SESSION_COOKIE, demo_session, httponly=True, samesite="lax")
        logger.info("Started demo session %s (%s live)", demo_session, len(demo_sessions))
    return store


def get_local_store(
    kv=Depends(get_kv_store),
    config: StorageConfig = Depends(get_storage_config),
) -> LocalStore:
    return LocalStore(kv, config)


def get_settings_store(kv=Depends(get_kv_store)) -> SettingsStore:
    return SettingsStore(kv)


async def get_inventory(
    user: Optional[User] = Depends(current_optional_user),
    local: LocalStore = Depends(get_local_store),
) -> InventoryService:
    backend = select_backend(
        user=user,
        local=local,
        session_maker=async_session_maker,
        remote_configured=settings.remote_configured,
    )
    fallback = LocalBackend(local) if backend.name == "remote" else None
    service = InventoryService(backend, fallback=fallback)
    await service.load()
    return service


def not_found(what: str, entity_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} with id {entity_id} not found",
    )


@contextmanager
def write_errors(action: str):
    """Turn backend write failures into HTTP errors."""
    try:
        yield
    except ForeignResourceError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (SQLAlchemyError, OSError) as e:
        logger.exception("Failed to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(e)}",
        )
