"""User-scoped access to the relational inventory tables.

Every statement carries ``user_id == <owner>`` so one user can never read or
touch another user's rows, whatever the database's own access rules are.
"""

import uuid
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.converters import ROW_MODELS, changes_to_columns, fields_to_columns, row_to_entity
from db.activity import Activity as ActivityRow
from db.box import Box as BoxRow
from db.item import Item as ItemRow
from db.room import Room as RoomRow
from db.share import Share as ShareRow
from schemas.activities import Activity
from schemas.base import as_utc, utcnow
from schemas.document import EntityKind, InventoryDocument
from schemas.shares import Share
from services.activity import ACTIVITY_LIMIT

# (parent column, parent row model) checked on insert/update
_PARENTS = {
    EntityKind.BOXES: ("room_id", RoomRow),
    EntityKind.ITEMS: ("box_id", BoxRow),
}


class ForeignResourceError(LookupError):
    """Raised when a write references a parent the user does not own."""


class RemoteStore:
    def __init__(self, session_maker: async_sessionmaker, user_id: uuid.UUID) -> None:
        self.session_maker = session_maker
        self.user_id = user_id

    def _select(self, kind: EntityKind):
        model = ROW_MODELS[kind]
        stmt = select(model).where(model.user_id == self.user_id)
        if kind is EntityKind.ACTIVITIES:
            return stmt.order_by(model.created_at.desc()).limit(ACTIVITY_LIMIT)
        if kind is EntityKind.SHARES:
            return stmt.order_by(model.created_at.desc())
        return stmt.order_by(model.updated_at.desc())

    async def _list(self, db: AsyncSession, kind: EntityKind) -> list:
        res = await db.execute(self._select(kind))
        return [row_to_entity(kind, row) for row in res.scalars().all()]

    async def _check_parent(self, db: AsyncSession, kind: EntityKind, values: Dict[str, Any]) -> None:
        if kind not in _PARENTS:
            return
        column, parent_model = _PARENTS[kind]
        if column not in values:
            return
        res = await db.execute(
            select(parent_model.id)
            .where(parent_model.id == values[column])
            .where(parent_model.user_id == self.user_id)
        )
        if res.scalar_one_or_none() is None:
            raise ForeignResourceError(f"{column} {values[column]} not found")

    async def list(self, kind: EntityKind) -> list:
        async with self.session_maker() as db:
            return await self._list(db, kind)

    async def load(self) -> InventoryDocument:
        async with self.session_maker() as db:
            return InventoryDocument(
                rooms=await self._list(db, EntityKind.ROOMS),
                boxes=await self._list(db, EntityKind.BOXES),
                items=await self._list(db, EntityKind.ITEMS),
                shares=await self._list(db, EntityKind.SHARES),
                activities=await self._list(db, EntityKind.ACTIVITIES),
            )

    async def insert(self, kind: EntityKind, fields: Dict[str, Any]):
        model = ROW_MODELS[kind]
        values = fields_to_columns(kind, fields)
        async with self.session_maker() as db:
            await self._check_parent(db, kind, values)
            row = model(**values, user_id=self.user_id)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return row_to_entity(kind, row)

    async def update(self, kind: EntityKind, entity_id: str, fields: Dict[str, Any]):
        model = ROW_MODELS[kind]
        values = changes_to_columns(kind, fields)
        async with self.session_maker() as db:
            res = await db.execute(
                select(model).where(model.id == entity_id).where(model.user_id == self.user_id)
            )
            row = res.scalar_one_or_none()
            if row is None:
                return None
            await self._check_parent(db, kind, values)

            for column, value in values.items():
                setattr(row, column, value)
            if "updated_at" in model.__table__.columns:
                now = utcnow()
                previous = as_utc(row.updated_at) if row.updated_at else now
                row.updated_at = now if now >= previous else previous

            await db.commit()
            await db.refresh(row)
            return row_to_entity(kind, row)

    async def delete(self, kind: EntityKind, entity_id: str) -> None:
        model = ROW_MODELS[kind]
        async with self.session_maker() as db:
            if kind is EntityKind.ROOMS:
                box_ids = select(BoxRow.id).where(BoxRow.room_id == entity_id).where(BoxRow.user_id == self.user_id)
                await db.execute(
                    delete(ItemRow)
                    .where(ItemRow.user_id == self.user_id)
                    .where(ItemRow.box_id.in_(box_ids))
                    .execution_options(synchronize_session=False)
                )
                await db.execute(
                    delete(BoxRow).where(BoxRow.user_id == self.user_id).where(BoxRow.room_id == entity_id)
                )
            elif kind is EntityKind.BOXES:
                await db.execute(
                    delete(ItemRow).where(ItemRow.user_id == self.user_id).where(ItemRow.box_id == entity_id)
                )
            await db.execute(delete(model).where(model.id == entity_id).where(model.user_id == self.user_id))
            await db.commit()

    async def add_activity(self, activity: Activity) -> None:
        async with self.session_maker() as db:
            db.add(
                ActivityRow(
                    id=activity.id,
                    user_id=self.user_id,
                    action=activity.action,
                    type=activity.type,
                    resource_id=activity.resource_id,
                    resource_name=activity.resource_name,
                    parent_name=activity.parent_name,
                    created_at=activity.timestamp,
                )
            )
            await db.flush()

            keep = (
                select(ActivityRow.id)
                .where(ActivityRow.user_id == self.user_id)
                .order_by(ActivityRow.created_at.desc())
                .limit(ACTIVITY_LIMIT)
            )
            await db.execute(
                delete(ActivityRow)
                .where(ActivityRow.user_id == self.user_id)
                .where(ActivityRow.id.not_in(keep))
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    async def get_share(self, share_id: str) -> Optional[Share]:
        async with self.session_maker() as db:
            res = await db.execute(
                select(ShareRow).where(ShareRow.id == share_id).where(ShareRow.user_id == self.user_id)
            )
            row = res.scalar_one_or_none()
            return row_to_entity(EntityKind.SHARES, row) if row else None

    async def share_exists(self, share_id: str) -> bool:
        # share ids are global primary keys, so check across all users
        async with self.session_maker() as db:
            return await share_id_taken(db, share_id)


async def share_id_taken(db: AsyncSession, share_id: str) -> bool:
    res = await db.execute(select(ShareRow.id).where(ShareRow.id == share_id))
    return res.scalar_one_or_none() is not None


async def find_public_share(db: AsyncSession, share_id: str) -> Optional[Tuple[Share, uuid.UUID]]:
    """Look a share up across all users; only public shares are returned."""
    res = await db.execute(
        select(ShareRow).where(ShareRow.id == share_id).where(ShareRow.is_public.is_(True))
    )
    row = res.scalar_one_or_none()
    if row is None:
        return None
    return row_to_entity(EntityKind.SHARES, row), row.user_id
