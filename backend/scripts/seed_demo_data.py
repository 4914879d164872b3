"""
Seed a sample household (rooms, boxes, items) into the inventory.

Without ``--email`` the data goes into the local JSON store under
LOCAL_DATA_DIR. With ``--email`` the user is created if needed and the data
goes into the relational database for that user.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fastapi_users.password import PasswordHelper
from sqlalchemy import select

from core.config import settings
from db.database import async_session_maker, create_db_and_tables
from db.users import User
from services.inventory import InventoryService
from storage.backends import LocalBackend, RemoteBackend
from storage.kv import FileKeyValueStore
from storage.local_store import LocalStore, StorageConfig
from storage.remote_store import RemoteStore

logger = logging.getLogger("seed_demo_data")

password_helper = PasswordHelper()

HOUSEHOLD = [
    {
        "name": "Garage",
        "description": "Tools and outdoor gear",
        "boxes": [
            {
                "name": "Tools",
                "description": "Power tools and hand tools",
                "items": [
                    {"name": "Drill", "quantity": 1, "tags": ["power tools"]},
                    {"name": "Screwdriver set", "quantity": 1, "tags": ["hand tools"]},
                    {"name": "Tape measure", "quantity": 2},
                ],
            },
            {
                "name": "Camping",
                "items": [
                    {"name": "Tent", "quantity": 1, "notes": "4-person"},
                    {"name": "Headlamp", "quantity": 3, "tags": ["camping", "lights"]},
                ],
            },
        ],
    },
    {
        "name": "Attic",
        "description": "Seasonal storage",
        "boxes": [
            {
                "name": "Winter clothes",
                "items": [
                    {"name": "Scarf", "quantity": 4, "tags": ["winter"]},
                    {"name": "Ski gloves", "quantity": 2, "tags": ["winter", "ski"]},
                ],
            },
            {
                "name": "Holiday decorations",
                "items": [
                    {"name": "String lights", "quantity": 5, "tags": ["lights"]},
                ],
            },
        ],
    },
]


async def get_or_create_user(session, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        is_active=True,
        is_superuser=False,
        is_verified=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def clear_inventory(service: InventoryService) -> None:
    for room in service.rooms:
        await service.delete_room(room.id)


async def seed_household(service: InventoryService) -> int:
    count = 0
    for room_data in HOUSEHOLD:
        room = await service.create_room(room_data["name"], room_data.get("description"))
        for box_data in room_data["boxes"]:
            box = await service.create_box(room.id, box_data["name"], box_data.get("description"))
            for item_data in box_data["items"]:
                await service.create_item(box.id, item_data)
                count += 1
    return count


async def seed(email: str = None, password: str = None, replace: bool = False) -> None:
    if email:
        await create_db_and_tables()
        async with async_session_maker() as session:
            user = await get_or_create_user(session, email, password)
        backend = RemoteBackend(RemoteStore(async_session_maker, user.id))
        target = f"database for {email}"
    else:
        local = LocalStore(FileKeyValueStore(settings.local_data_dir), StorageConfig(inventory_key=settings.inventory_key))
        backend = LocalBackend(local)
        target = f"local store in {settings.local_data_dir}"

    service = InventoryService(backend)
    await service.load()
    if replace:
        await clear_inventory(service)
    elif service.rooms:
        logger.info("Inventory already has %s rooms; use --replace to start over", len(service.rooms))
        return

    count = await seed_household(service)
    logger.info("Seeded %s rooms, %s boxes, %s items into the %s",
                len(service.rooms), len(service.boxes), count, target)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed a sample household inventory")
    parser.add_argument("--email", help="seed the database for this user instead of the local store")
    parser.add_argument("--password", default="demo-password", help="password for a newly created user")
    parser.add_argument("--replace", action="store_true", help="delete existing rooms first")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(seed(args.email, args.password, args.replace))


if __name__ == "__main__":
    main()
