from typing import Dict, List

from fastapi import APIRouter, Depends, Query

from routers.deps import get_inventory
from services.activity import ACTIVITY_LIMIT
from services.inventory import InventoryService

router = APIRouter()


@router.get("/", response_model=List[Dict])
async def recent_activities(
    limit: int = Query(10, ge=1, le=ACTIVITY_LIMIT),
    service: InventoryService = Depends(get_inventory),
):
    """Most recent activity first."""
    return [activity.to_json() for activity in service.get_recent_activities(limit)]
