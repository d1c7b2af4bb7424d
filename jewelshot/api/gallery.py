"""Gallery endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import get_current_user
from jewelshot.api.deps import get_object_store, respond
from jewelshot.db import get_db, User, GenerationMode
from jewelshot.schemas import ActionResult, GalleryFilters, GalleryImage, GalleryPage, GalleryStats
from jewelshot.services import gallery_service
from jewelshot.services.storage_service import ObjectStore

router = APIRouter(prefix="/gallery", tags=["Gallery"])


@router.get("", response_model=ActionResult[GalleryPage])
async def list_images(
    response: Response,
    jewelry_type: Optional[str] = Query(None),
    mode: Optional[GenerationMode] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    sort_by: str = Query("newest", pattern="^(newest|oldest)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's images with filters and pagination"""
    filters = GalleryFilters(
        jewelry_type=jewelry_type,
        mode=mode,
        search_query=search,
        sort_by=sort_by,
        limit=limit,
        offset=offset,
    )
    return respond(await gallery_service.get_gallery_images(db, current_user.id, filters), response)


@router.get("/stats", response_model=ActionResult[GalleryStats])
async def stats(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await gallery_service.get_gallery_stats(db, current_user.id), response)


@router.get("/{image_id}", response_model=ActionResult[GalleryImage])
async def get_image(
    image_id: str,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await gallery_service.get_image_by_id(db, current_user.id, image_id), response)


@router.delete("/{image_id}", response_model=ActionResult[None])
async def delete_image(
    image_id: str,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    """Delete an image, its generations and both stored files"""
    result = await gallery_service.delete_image(db, store, current_user.id, image_id)
    return respond(result, response)
