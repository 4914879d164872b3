from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response, status

from routers.deps import DEMO_MODE_COOKIE, DEMO_SESSION_COOKIE, demo_sessions, get_settings_store
from storage.settings import SettingsStore, UserSettings, UserSettingsUpdate

router = APIRouter()


@router.get("/", response_model=UserSettings)
async def get_settings(store: SettingsStore = Depends(get_settings_store)):
    return store.load()


@router.put("/", response_model=UserSettings)
async def update_settings(payload: UserSettingsUpdate, store: SettingsStore = Depends(get_settings_store)):
    return store.save(payload)


@router.post("/demo", status_code=status.HTTP_204_NO_CONTENT)
async def start_demo(response: Response):
    """Switch this browser to an ephemeral demo store."""
    response.set_cookie(DEMO_MODE_COOKIE, "true", samesite="lax")
    return None


@router.delete("/demo", status_code=status.HTTP_204_NO_CONTENT)
async def end_demo(response: Response, demo_session: Optional[str] = Cookie(default=None)):
    """Leave demo mode; the session's data is discarded."""
    if demo_session:
        demo_sessions.end(demo_session)
    response.delete_cookie(DEMO_MODE_COOKIE)
    response.delete_cookie(DEMO_SESSION_COOKIE)
    return None
