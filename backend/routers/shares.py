from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from core.config import settings
from db.database import async_session_maker
from routers.deps import get_inventory, not_found, write_errors
from schemas.shares import Share, ShareCreate, ShareRead
from services.inventory import InventoryService, build_shared_view
from storage.remote_store import RemoteStore, find_public_share

router = APIRouter()
public_router = APIRouter()


def _read(share: Share) -> Dict:
    return ShareRead(**share.model_dump(), url=f"{settings.share_url_prefix}{share.id}").to_json()


@router.get("/", response_model=List[Dict])
async def list_shares(service: InventoryService = Depends(get_inventory)):
    return [_read(share) for share in service.shares]


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_share(payload: ShareCreate, service: InventoryService = Depends(get_inventory)):
    """Issue a share link for a room, box or item the caller owns."""
    if service.get_resource(payload.type, payload.resource_id) is None:
        raise not_found(payload.type.capitalize(), payload.resource_id)
    with write_errors("create share"):
        share = await service.create_share(
            payload.type,
            payload.resource_id,
            is_public=payload.is_public,
            expires_at=payload.expires_at,
        )
    return _read(share)


@router.get("/{share_id}", response_model=Dict)
async def get_share(share_id: str, service: InventoryService = Depends(get_inventory)):
    share = await service.get_share(share_id)
    if share is None:
        raise not_found("Share", share_id)
    return _read(share)


@router.delete("/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_share(share_id: str, service: InventoryService = Depends(get_inventory)):
    if await service.get_share(share_id) is None:
        raise not_found("Share", share_id)
    with write_errors("delete share"):
        await service.delete_share(share_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@public_router.get("/{share_id}", response_model=Dict)
async def view_share(share_id: str, service: InventoryService = Depends(get_inventory)):
    """Read-only view of a shared resource.

    The caller's own shares are always visible to them. Anyone else only sees
    public shares stored in the relational database.
    """
    share = await service.get_share(share_id)
    owner_doc = None
    if share is None and settings.remote_configured:
        async with async_session_maker() as db:
            found = await find_public_share(db, share_id)
        if found is not None:
            share, owner_id = found
            owner_doc = await RemoteStore(async_session_maker, owner_id).load()

    if share is None:
        raise not_found("Share", share_id)
    if share.is_expired():
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="This share link has expired")

    view = service.shared_view(share) if owner_doc is None else build_shared_view(owner_doc, share)
    if view is None:
        raise not_found(share.type.capitalize(), share.resource_id)
    return view.to_json()
