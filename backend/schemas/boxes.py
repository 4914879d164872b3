from typing import Optional

from pydantic import field_validator

from .base import CamelModel, PartialUpdate, Timestamp, strip_optional, strip_required


class Box(CamelModel):
    id: str
    room_id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    created_at: Timestamp
    updated_at: Timestamp


class BoxCreate(CamelModel):
    room_id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None

    @field_validator("room_id", "name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description", "image")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class BoxUpdate(PartialUpdate):
    required_fields = ("name", "room_id")

    room_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None

    @field_validator("room_id", "name")
    @classmethod
    def _strip_optional_required(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_required(v)

    @field_validator("description", "image")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)
