from datetime import datetime
from typing import Any, Dict, List, Optional

from .base import CamelModel, ResourceType, Timestamp, as_utc, utcnow


class Share(CamelModel):
    id: str
    type: ResourceType
    resource_id: str
    is_public: bool = True
    created_at: Timestamp
    expires_at: Optional[Timestamp] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= as_utc(now or utcnow())


class ShareCreate(CamelModel):
    type: ResourceType
    resource_id: str
    is_public: bool = True
    expires_at: Optional[Timestamp] = None


class ShareRead(Share):
    url: str


class SharedView(CamelModel):
    """Read-only rendering of whatever a share token points at."""

    share: Share
    room: Optional[Dict[str, Any]] = None
    box: Optional[Dict[str, Any]] = None
    item: Optional[Dict[str, Any]] = None
    boxes: List[Dict[str, Any]] = []
    items: List[Dict[str, Any]] = []
