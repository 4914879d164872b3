import enum
from typing import Dict, List, Type

from pydantic import Field

from .activities import Activity
from .base import CamelModel
from .boxes import Box
from .items import Item
from .rooms import Room
from .shares import Share


class EntityKind(str, enum.Enum):
    ROOMS = "rooms"
    BOXES = "boxes"
    ITEMS = "items"
    SHARES = "shares"
    ACTIVITIES = "activities"

    @property
    def model(self) -> Type[CamelModel]:
        return ENTITY_MODELS[self]


ENTITY_MODELS: Dict[EntityKind, Type[CamelModel]] = {
    EntityKind.ROOMS: Room,
    EntityKind.BOXES: Box,
    EntityKind.ITEMS: Item,
    EntityKind.SHARES: Share,
    EntityKind.ACTIVITIES: Activity,
}

RESOURCE_KINDS: Dict[str, EntityKind] = {
    "room": EntityKind.ROOMS,
    "box": EntityKind.BOXES,
    "item": EntityKind.ITEMS,
}


class InventoryDocument(CamelModel):
    rooms: List[Room] = Field(default_factory=list)
    boxes: List[Box] = Field(default_factory=list)
    items: List[Item] = Field(default_factory=list)
    shares: List[Share] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)

    def collection(self, kind: EntityKind) -> list:
        return getattr(self, kind.value)

    def find(self, kind: EntityKind, entity_id: str):
        for entity in self.collection(kind):
            if entity.id == entity_id:
                return entity
        return None

    def copy_deep(self) -> "InventoryDocument":
        return self.model_copy(deep=True)
