from typing import Literal, Optional

from .base import CamelModel, ResourceType, Timestamp


ActivityAction = Literal["create", "update", "delete", "move"]


class Activity(CamelModel):
    id: str
    action: ActivityAction
    type: ResourceType
    resource_id: str
    resource_name: str
    parent_name: Optional[str] = None
    timestamp: Timestamp
