from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from routers.deps import get_inventory, not_found, write_errors
from schemas.boxes import BoxCreate, BoxUpdate
from services.inventory import InventoryService

router = APIRouter()


@router.get("/", response_model=List[Dict])
async def list_boxes(
    room_id: Optional[str] = Query(None, alias="roomId"),
    service: InventoryService = Depends(get_inventory),
):
    boxes = service.get_boxes_by_room(room_id) if room_id else service.boxes
    return [box.to_json() for box in boxes]


@router.get("/{box_id}", response_model=Dict)
async def get_box(box_id: str, service: InventoryService = Depends(get_inventory)):
    box = service.get_box(box_id)
    if box is None:
        raise not_found("Box", box_id)
    return box.to_json()


@router.get("/{box_id}/items", response_model=List[Dict])
async def get_box_items(box_id: str, service: InventoryService = Depends(get_inventory)):
    if service.get_box(box_id) is None:
        raise not_found("Box", box_id)
    return [item.to_json() for item in service.get_items_by_box(box_id)]


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_box(payload: BoxCreate, service: InventoryService = Depends(get_inventory)):
    if service.get_room(payload.room_id) is None:
        raise not_found("Room", payload.room_id)
    with write_errors("create box"):
        box = await service.create_box(payload.room_id, payload.name, payload.description, payload.image)
    return box.to_json()


@router.put("/{box_id}", response_model=Dict)
async def update_box(box_id: str, payload: BoxUpdate, service: InventoryService = Depends(get_inventory)):
    if service.get_box(box_id) is None:
        raise not_found("Box", box_id)
    changes = payload.changes()
    if "room_id" in changes and service.get_room(changes["room_id"]) is None:
        raise not_found("Room", changes["room_id"])
    with write_errors("update box"):
        box = await service.update_box(box_id, payload)
    if box is None:
        raise not_found("Box", box_id)
    return box.to_json()


@router.delete("/{box_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_box(box_id: str, service: InventoryService = Depends(get_inventory)):
    """Delete a box and every item in it."""
    if service.get_box(box_id) is None:
        raise not_found("Box", box_id)
    with write_errors("delete box"):
        await service.delete_box(box_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
