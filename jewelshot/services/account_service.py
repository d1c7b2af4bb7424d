"""
Account deletion - removes everything a user owns.

Order is fixed so that a failure partway through leaves the auth identity
in place (the user can sign in and retry):

1. Collect storage keys (edited + original images, avatar)
2. Delete ai_generations, images, purchases rows
3. Remove the stored objects
4. Delete the profile
5. Delete the auth identity
The router clears the session cookie afterwards.
"""

import logging
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.config import settings
from jewelshot.db.models import AIGeneration, Image, Profile, Purchase, User
from jewelshot.schemas import ActionResult
from jewelshot.services.errors import log_error
from jewelshot.services.storage_service import ObjectStore
from jewelshot.services.view_cache import get_view_cache

logger = logging.getLogger(__name__)

ACCOUNT_DELETION_FAILED = "An error occurred while deleting your account"


async def _collect_image_paths(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(
        select(Image.storage_path, Image.image_metadata).where(Image.user_id == user_id)
    )
    paths: List[str] = []
    for storage_path, metadata in result.all():
        if storage_path:
            paths.append(storage_path)
        original_path = (metadata or {}).get("originalPath")
        if isinstance(original_path, str) and original_path:
            paths.append(original_path)
    return paths


async def delete_account(db: AsyncSession, store: ObjectStore, user_id: str) -> ActionResult[None]:
    try:
        image_paths = await _collect_image_paths(db, user_id)
        avatar = await db.execute(select(Profile.avatar_path).where(Profile.id == user_id))
        avatar_path = avatar.scalar_one_or_none()

        await db.execute(delete(AIGeneration).where(AIGeneration.user_id == user_id))
        await db.execute(delete(Image).where(Image.user_id == user_id))
        await db.execute(delete(Purchase).where(Purchase.user_id == user_id))
        await db.commit()

        await store.delete_objects(settings.images_bucket, image_paths)
        if avatar_path:
            await store.delete_objects(settings.avatars_bucket, [avatar_path])

        await db.execute(delete(Profile).where(Profile.id == user_id))
        await db.commit()

        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()

        get_view_cache().invalidate_user(user_id)
        logger.info("Deleted account %s (%d objects)", user_id, len(image_paths) + bool(avatar_path))
        return ActionResult.ok()
    except Exception as e:
        await db.rollback()
        log_error("delete_account", e)
        return ActionResult.fail(ACCOUNT_DELETION_FAILED)
