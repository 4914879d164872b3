from typing import List

from fastapi import APIRouter, Depends, Query

from routers.deps import get_inventory
from services.inventory import InventoryService
from services.search import SearchResult

router = APIRouter()


@router.get("/", response_model=List[SearchResult])
async def search(
    q: str = "",
    limit: int = Query(10, ge=1, le=100),
    service: InventoryService = Depends(get_inventory),
):
    """Boxes and items whose text contains ``q``; fewer than 2 characters returns nothing."""
    return service.search(q, limit=limit)
