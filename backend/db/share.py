from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from .database import Base
from .room import utcnow


class Share(Base):
    __tablename__ = "shares"

    # opaque capability token, issued by the application
    id = Column(String(64), primary_key=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # 'room' | 'box' | 'item'
    type = Column(Text, nullable=False)
    resource_id = Column(String(36), nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=True)
