"""Shared pydantic plumbing for inventory schemas.

Entities are stored on disk with camelCase keys (``roomId``, ``createdAt``) and
ISO-8601 timestamps. Older documents wrapped dates as
``{"__type": "Date", "value": "<iso>"}``; ``Timestamp`` accepts both forms so
those documents load and are rewritten in the plain form on the next save.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Dict, Literal, Optional, Tuple

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


ResourceType = Literal["room", "box", "item"]


def _unwrap_legacy_date(value: Any) -> Any:
    if isinstance(value, dict) and value.get("__type") == "Date":
        return value.get("value")
    return value


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, BeforeValidator(_unwrap_legacy_date), AfterValidator(as_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def strip_required(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("field is required")
    return v


def strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PartialUpdate(CamelModel):
    """Base for ``*Update`` payloads: only fields the caller set are applied."""

    # fields that may be omitted but never cleared
    required_fields: ClassVar[Tuple[str, ...]] = ()

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        for name in self.required_fields:
            if name in data and data[name] is None:
                data.pop(name)
        return data
