from typing import List, Optional

from pydantic import Field, field_validator

from .base import CamelModel, PartialUpdate, Timestamp, strip_optional, strip_required


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    # tags behave as a set: blanks dropped, first spelling wins
    if tags is None:
        return None
    out: List[str] = []
    seen = set()
    for tag in tags:
        tag = (tag or "").strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        out.append(tag)
    return out


def _clean_images(images: Optional[List[str]]) -> Optional[List[str]]:
    if images is None:
        return None
    return [img for img in images if img and img.strip()]


class Item(CamelModel):
    id: str
    box_id: str
    name: str
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Timestamp
    updated_at: Timestamp


class ItemCreate(CamelModel):
    name: str
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        return strip_required(v)

    @field_validator("description", "notes")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)

    @field_validator("images")
    @classmethod
    def _images(cls, v: List[str]) -> List[str]:
        return _clean_images(v)


class NewItemRequest(ItemCreate):
    box_id: str

    @field_validator("box_id")
    @classmethod
    def _strip_box_id(cls, v: str) -> str:
        return strip_required(v)


class ItemUpdate(PartialUpdate):
    required_fields = ("name", "box_id", "quantity", "images", "tags")

    box_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    images: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None

    @field_validator("box_id", "name")
    @classmethod
    def _strip_optional_required(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return strip_required(v)

    @field_validator("description", "notes")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)

    @field_validator("images")
    @classmethod
    def _images(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_images(v)


class ItemMoveRequest(CamelModel):
    target_box_id: str


class BulkMoveRequest(CamelModel):
    item_ids: List[str]
    target_box_id: str

    @field_validator("item_ids")
    @classmethod
    def _non_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("item_ids must not be empty")
        return v


class BulkMoveResult(CamelModel):
    moved: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
