import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.auth import auth_backend, fastapi_users
from core.config import settings
from db.database import create_db_and_tables, engine
from routers.activities import router as activities_router
from routers.boxes import router as boxes_router
from routers.data import router as data_router
from routers.items import router as items_router
from routers.rooms import router as rooms_router
from routers.search import router as search_router
from routers.settings import router as settings_router
from routers.shares import public_router as public_share_router
from routers.shares import router as shares_router
from schemas.users import UserCreate, UserRead, UserUpdate


def configure_logging() -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    yield
    await engine.dispose()


app = FastAPI(
    title="Traxlio API",
    description="API for tracking rooms, boxes and the items in them",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Inventory routes
app.include_router(rooms_router, prefix="/rooms", tags=["rooms"])
app.include_router(boxes_router, prefix="/boxes", tags=["boxes"])
app.include_router(items_router, prefix="/items", tags=["items"])
app.include_router(shares_router, prefix="/shares", tags=["shares"])
app.include_router(public_share_router, prefix="/share", tags=["shares"])
app.include_router(activities_router, prefix="/activities", tags=["activities"])
app.include_router(search_router, prefix="/search", tags=["search"])

# Backup and preferences
app.include_router(data_router, prefix="/data", tags=["data"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
