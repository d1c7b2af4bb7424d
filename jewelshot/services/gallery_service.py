"""Gallery queries - list, inspect and delete a user's generated images"""

import logging
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jewelshot.config import settings
from jewelshot.db.models import AIGeneration, Image, Profile
from jewelshot.schemas import ActionResult, GalleryFilters, GalleryImage, GalleryPage, GalleryStats
from jewelshot.services.errors import log_error, sanitize_error
from jewelshot.services.storage_service import ObjectStore, remove_files
from jewelshot.services.view_cache import get_view_cache, revalidate_path, GALLERY_PATH

logger = logging.getLogger(__name__)

IMAGE_NOT_FOUND = "Image not found"


def _filtered(stmt, user_id: str, filters: GalleryFilters):
    stmt = stmt.where(Image.user_id == user_id)

    if filters.jewelry_type:
        stmt = stmt.where(Image.image_metadata["jewelryType"].as_string() == filters.jewelry_type)

    if filters.mode:
        stmt = stmt.where(Image.image_metadata["mode"].as_string() == filters.mode.value)

    if filters.search_query:
        pattern = f"%{filters.search_query}%"
        prompt_match = (
            select(AIGeneration.id)
            .where(AIGeneration.image_id == Image.id, AIGeneration.prompt.ilike(pattern))
            .exists()
        )
        stmt = stmt.where(or_(Image.file_name.ilike(pattern), prompt_match))

    return stmt


async def get_gallery_images(
    db: AsyncSession,
    user_id: str,
    filters: Optional[GalleryFilters] = None,
) -> ActionResult[GalleryPage]:
    """Filtered, paginated images with their generations and a total count."""
    filters = filters or GalleryFilters()
    cache = get_view_cache()
    # One entry per filter set so each page keeps its own TTL
    view_path = f"{GALLERY_PATH}?{filters.model_dump_json()}"

    cached = cache.get(user_id, view_path)
    if cached is not None:
        return ActionResult.ok(cached)

    try:
        total = await db.execute(_filtered(select(func.count(Image.id)), user_id, filters))
        count = total.scalar_one()

        order = Image.created_at.asc() if filters.sort_by == "oldest" else Image.created_at.desc()
        result = await db.execute(
            _filtered(select(Image), user_id, filters)
            .options(selectinload(Image.generations))
            .order_by(order)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        images = [GalleryImage.model_validate(img) for img in result.scalars().all()]
        page = GalleryPage(images=images, count=count)
    except Exception as e:
        log_error("get_gallery_images", e)
        return ActionResult.fail(sanitize_error(e))

    cache.set(user_id, view_path, page)
    return ActionResult.ok(page)


async def _load_image(db: AsyncSession, user_id: str, image_id: str) -> Optional[Image]:
    result = await db.execute(
        select(Image)
        .where(Image.id == image_id, Image.user_id == user_id)
        .options(selectinload(Image.generations))
    )
    return result.scalar_one_or_none()


async def get_image_by_id(db: AsyncSession, user_id: str, image_id: str) -> ActionResult[GalleryImage]:
    try:
        image = await _load_image(db, user_id, image_id)
        if image is None:
            return ActionResult.fail(IMAGE_NOT_FOUND)
        return ActionResult.ok(GalleryImage.model_validate(image))
    except Exception as e:
        log_error("get_image_by_id", e)
        return ActionResult.fail(sanitize_error(e))


async def delete_image(
    db: AsyncSession,
    store: ObjectStore,
    user_id: str,
    image_id: str,
) -> ActionResult[None]:
    """Delete the row (generations cascade), then both stored objects."""
    try:
        image = await _load_image(db, user_id, image_id)
        if image is None:
            return ActionResult.fail(IMAGE_NOT_FOUND)

        metadata = image.image_metadata or {}
        paths = [image.storage_path]
        original_path = metadata.get("originalPath")
        if isinstance(original_path, str) and original_path:
            paths.append(original_path)
        released = (image.file_size or 0) + int(metadata.get("generatedSize") or 0)

        await db.delete(image)
        await db.commit()

        await remove_files(db, store, paths, settings.images_bucket, user_id, released)
        revalidate_path(GALLERY_PATH, user_id)

        logger.info("Deleted image %s for %s (%d objects)", image_id, user_id, len(paths))
        return ActionResult.ok()
    except Exception as e:
        await db.rollback()
        log_error("delete_image", e)
        return ActionResult.fail(sanitize_error(e))


async def get_gallery_stats(db: AsyncSession, user_id: str) -> ActionResult[GalleryStats]:
    try:
        images = await db.execute(select(func.count(Image.id)).where(Image.user_id == user_id))
        generations = await db.execute(
            select(func.count(AIGeneration.id)).where(AIGeneration.user_id == user_id)
        )
        storage = await db.execute(select(Profile.storage_used).where(Profile.id == user_id))
        return ActionResult.ok(GalleryStats(
            total_images=images.scalar_one(),
            total_generations=generations.scalar_one(),
            storage_used=storage.scalar_one_or_none() or 0,
        ))
    except Exception as e:
        log_error("get_gallery_stats", e)
        return ActionResult.fail(sanitize_error(e))
