from fastapi_users.db import SQLAlchemyBaseUserTableUUID, SQLAlchemyUserDatabase
from sqlalchemy.ext.asyncio import AsyncSession
from .database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"


def user_database(session: AsyncSession) -> SQLAlchemyUserDatabase:
    return SQLAlchemyUserDatabase(session, User)
