"""Profile management - settings page reads and writes"""

import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.config import settings
from jewelshot.db.models import Profile, User
from jewelshot.schemas import ActionResult, AvatarResponse, ProfileResponse, ProfileUpdate
from jewelshot.services.auth_service import get_password_hash, verify_password
from jewelshot.services.errors import log_error, sanitize_error
from jewelshot.services.storage_service import ObjectStore
from jewelshot.services.validation import file_extension, validate_password
from jewelshot.services.view_cache import get_view_cache, revalidate_path, SETTINGS_PATH

logger = logging.getLogger(__name__)

PROFILE_NOT_FOUND = "Profile not found"
CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"


async def _get_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def get_user_profile(db: AsyncSession, user_id: str) -> ActionResult[ProfileResponse]:
    cache = get_view_cache()
    cached = cache.get(user_id, SETTINGS_PATH)
    if cached is not None:
        return ActionResult.ok(cached)

    try:
        profile = await _get_profile(db, user_id)
        if profile is None:
            return ActionResult.fail(PROFILE_NOT_FOUND)
        data = ProfileResponse.model_validate(profile)
    except Exception as e:
        log_error("get_user_profile", e)
        return ActionResult.fail(sanitize_error(e))

    cache.set(user_id, SETTINGS_PATH, data)
    return ActionResult.ok(data)


async def update_profile(
    db: AsyncSession,
    user_id: str,
    update: ProfileUpdate,
) -> ActionResult[ProfileResponse]:
    """Apply the fields that were sent; omitted fields keep their value."""
    try:
        profile = await _get_profile(db, user_id)
        if profile is None:
            return ActionResult.fail(PROFILE_NOT_FOUND)

        for field, value in update.model_dump(exclude_unset=True).items():
            setattr(profile, field, value)

        await db.commit()
        await db.refresh(profile)
        revalidate_path(SETTINGS_PATH, user_id)
        return ActionResult.ok(ProfileResponse.model_validate(profile))
    except Exception as e:
        await db.rollback()
        log_error("update_profile", e)
        return ActionResult.fail(sanitize_error(e))


def _validate_avatar(file_name: Optional[str], content_type: Optional[str], size: int) -> Optional[str]:
    if not file_name:
        return "No file provided"
    if not content_type or not content_type.startswith("image/"):
        return "File must be an image"
    if size > settings.max_avatar_bytes:
        return f"File size must be less than {settings.max_avatar_bytes // (1024 * 1024)}MB"
    return None


async def upload_avatar(
    db: AsyncSession,
    store: ObjectStore,
    user_id: str,
    data: bytes,
    file_name: Optional[str],
    content_type: Optional[str],
) -> ActionResult[AvatarResponse]:
    """Store a new avatar and drop the previous one."""
    error = _validate_avatar(file_name, content_type, len(data))
    if error:
        return ActionResult.fail(error)

    try:
        profile = await _get_profile(db, user_id)
        if profile is None:
            return ActionResult.fail(PROFILE_NOT_FOUND)

        bucket = settings.avatars_bucket
        path = f"avatars/{user_id}-{int(time.time() * 1000)}.{file_extension(file_name) or 'png'}"
        await store.put_object(bucket, path, data, content_type)

        if profile.avatar_path and profile.avatar_path != path:
            await store.delete_objects(bucket, [profile.avatar_path])

        profile.avatar_path = path
        profile.avatar_url = store.public_url(bucket, path)
        await db.commit()

        revalidate_path(SETTINGS_PATH, user_id)
        return ActionResult.ok(AvatarResponse(avatar_url=profile.avatar_url))
    except Exception as e:
        await db.rollback()
        log_error("upload_avatar", e)
        return ActionResult.fail(sanitize_error(e))


async def change_password(
    db: AsyncSession,
    user_id: str,
    current_password: str,
    new_password: str,
) -> ActionResult[None]:
    """Verify against the stored hash, then replace it. Sessions are untouched."""
    check = validate_password(new_password)
    if not check.valid:
        return ActionResult.fail(check.error)

    try:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None or not verify_password(current_password, user.hashed_password):
            return ActionResult.fail(CURRENT_PASSWORD_INCORRECT)

        user.hashed_password = get_password_hash(new_password)
        await db.commit()
        logger.info("Password changed for %s", user_id)
        return ActionResult.ok()
    except Exception as e:
        await db.rollback()
        log_error("change_password", e)
        return ActionResult.fail(sanitize_error(e))
