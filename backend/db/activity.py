"""Append-only activity log rows, pruned to the newest entries per user."""

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from .database import Base
from .room import new_id, utcnow


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # 'create' | 'update' | 'delete' | 'move'
    action = Column(Text, nullable=False)
    # 'room' | 'box' | 'item'
    type = Column(Text, nullable=False)
    resource_id = Column(String(36), nullable=False)
    resource_name = Column(String, nullable=False)
    parent_name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)
