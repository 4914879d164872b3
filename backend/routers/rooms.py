from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from routers.deps import get_inventory, not_found, write_errors
from schemas.rooms import RoomCreate, RoomUpdate
from services.inventory import InventoryService
from services.search import RoomSort, SortDirection

router = APIRouter()


@router.get("/", response_model=List[Dict])
async def list_rooms(
    sort_by: RoomSort = Query("name", alias="sortBy"),
    direction: SortDirection = "asc",
    q: Optional[str] = None,
    service: InventoryService = Depends(get_inventory),
):
    """List rooms, optionally filtered by name/description and sorted."""
    rooms = service.sort_rooms(sort_by=sort_by, direction=direction, query=q or "")
    return [room.to_json() for room in rooms]


@router.get("/{room_id}", response_model=Dict)
async def get_room(room_id: str, service: InventoryService = Depends(get_inventory)):
    room = service.get_room(room_id)
    if room is None:
        raise not_found("Room", room_id)
    return room.to_json()


@router.get("/{room_id}/boxes", response_model=List[Dict])
async def get_room_boxes(room_id: str, service: InventoryService = Depends(get_inventory)):
    if service.get_room(room_id) is None:
        raise not_found("Room", room_id)
    return [box.to_json() for box in service.get_boxes_by_room(room_id)]


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_room(payload: RoomCreate, service: InventoryService = Depends(get_inventory)):
    with write_errors("create room"):
        room = await service.create_room(payload.name, payload.description)
    return room.to_json()


@router.put("/{room_id}", response_model=Dict)
async def update_room(room_id: str, payload: RoomUpdate, service: InventoryService = Depends(get_inventory)):
    if service.get_room(room_id) is None:
        raise not_found("Room", room_id)
    with write_errors("update room"):
        room = await service.update_room(room_id, payload)
    if room is None:
        raise not_found("Room", room_id)
    return room.to_json()


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(room_id: str, service: InventoryService = Depends(get_inventory)):
    """Delete a room together with its boxes and their items."""
    if service.get_room(room_id) is None:
        raise not_found("Room", room_id)
    with write_errors("delete room"):
        await service.delete_room(room_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
