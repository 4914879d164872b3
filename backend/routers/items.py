from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from routers.deps import get_inventory, not_found, write_errors
from schemas.items import BulkMoveRequest, BulkMoveResult, ItemMoveRequest, ItemUpdate, NewItemRequest
from services.inventory import InventoryService

router = APIRouter()


@router.get("/", response_model=List[Dict])
async def list_items(
    box_id: Optional[str] = Query(None, alias="boxId"),
    service: InventoryService = Depends(get_inventory),
):
    items = service.get_items_by_box(box_id) if box_id else service.items
    return [item.to_json() for item in items]


@router.get("/{item_id}", response_model=Dict)
async def get_item(item_id: str, service: InventoryService = Depends(get_inventory)):
    item = service.get_item(item_id)
    if item is None:
        raise not_found("Item", item_id)
    return item.to_json()


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_item(payload: NewItemRequest, service: InventoryService = Depends(get_inventory)):
    if service.get_box(payload.box_id) is None:
        raise not_found("Box", payload.box_id)
    with write_errors("create item"):
        item = await service.create_item(payload.box_id, payload)
    return item.to_json()


@router.post("/move", response_model=BulkMoveResult)
async def move_items(payload: BulkMoveRequest, service: InventoryService = Depends(get_inventory)):
    """Move several items to one box; failures are reported per item."""
    if service.get_box(payload.target_box_id) is None:
        raise not_found("Box", payload.target_box_id)
    result = await service.move_items(payload.item_ids, payload.target_box_id)
    return BulkMoveResult(moved=result.moved, failed=result.failed)


@router.put("/{item_id}", response_model=Dict)
async def update_item(item_id: str, payload: ItemUpdate, service: InventoryService = Depends(get_inventory)):
    if service.get_item(item_id) is None:
        raise not_found("Item", item_id)
    changes = payload.changes()
    if "box_id" in changes and service.get_box(changes["box_id"]) is None:
        raise not_found("Box", changes["box_id"])
    with write_errors("update item"):
        item = await service.update_item(item_id, payload)
    if item is None:
        raise not_found("Item", item_id)
    return item.to_json()


@router.post("/{item_id}/move", response_model=Dict)
async def move_item(item_id: str, payload: ItemMoveRequest, service: InventoryService = Depends(get_inventory)):
    if service.get_item(item_id) is None:
        raise not_found("Item", item_id)
    if service.get_box(payload.target_box_id) is None:
        raise not_found("Box", payload.target_box_id)
    with write_errors("move item"):
        item = await service.move_item(item_id, payload.target_box_id)
    if item is None:
        raise not_found("Item", item_id)
    return item.to_json()


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: str, service: InventoryService = Depends(get_inventory)):
    if service.get_item(item_id) is None:
        raise not_found("Item", item_id)
    with write_errors("delete item"):
        await service.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
