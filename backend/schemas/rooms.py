from typing import Optional

from pydantic import field_validator

from .base import CamelModel, PartialUpdate, Timestamp, strip_optional, strip_required


class Room(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: Timestamp
    updated_at: Timestamp


class RoomCreate(CamelModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class RoomUpdate(PartialUpdate):
    required_fields = ("name",)

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_required(v)

    @field_validator("description")
    @classmethod
    def _strip_description(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)
