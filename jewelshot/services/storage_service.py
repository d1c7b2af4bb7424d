"""
Storage gateway — S3-compatible object storage with per-account quotas.

Objects are written under collision-resistant keys and served from
``{storage_public_base_url}/{bucket}/{path}``. The quota check runs before
the upload so an over-quota request never transfers the file; the usage
counter itself is bumped afterwards with a conditional UPDATE.
"""

import asyncio
import logging
import secrets
import string
import time
from typing import Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.config import settings
from jewelshot.db.models import Image, Profile
from jewelshot.schemas import ActionResult, UploadResult
from jewelshot.services.errors import (
    StorageError, StorageLimitError, ValidationError, log_error, sanitize_error,
)
from jewelshot.services.validation import ALLOWED_IMAGE_TYPES, file_extension
from jewelshot.services.view_cache import revalidate_path, SETTINGS_PATH

logger = logging.getLogger(__name__)

GIB = 1073741824
_BASE36 = string.digits + string.ascii_lowercase

FILE_IN_GALLERY = "This file belongs to a gallery image. Delete the image from your gallery instead."


class ObjectStore:
    """Thin async wrapper around a boto3 S3 client.

    boto3 is blocking, so each call runs in a worker thread.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        cache_control: Optional[str] = None,
    ):
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url or settings.s3_endpoint_url,
            region_name=region_name or settings.s3_region,
            aws_access_key_id=aws_access_key_id or settings.aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key or settings.aws_secret_access_key,
        )
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")
        self.cache_control = cache_control or settings.storage_cache_control

    async def put_object(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
                CacheControl=self.cache_control,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Upload failed: {exc}") from exc

    async def delete_objects(self, bucket: str, paths: Iterable[str]) -> None:
        keys = [{"Key": p} for p in paths if p]
        if not keys:
            return
        try:
            await asyncio.to_thread(
                self._client.delete_objects,
                Bucket=bucket,
                Delete={"Objects": keys, "Quiet": True},
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Delete failed: {exc}") from exc

    async def object_size(self, bucket: str, path: str) -> int:
        """Size in bytes, or 0 when the object does not exist."""
        try:
            head = await asyncio.to_thread(self._client.head_object, Bucket=bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return 0
            raise StorageError(f"Lookup failed: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Lookup failed: {exc}") from exc
        return int(head.get("ContentLength", 0))

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{path}"


def storage_limit_message(used: int, limit: int) -> str:
    used_gb = used / GIB
    limit_gb = limit / GIB
    return (
        f"Storage limit exceeded. You've used {used_gb:.2f}GB of {limit_gb:.2f}GB. "
        "Please delete some images or upgrade your plan."
    )


def generate_object_path(owner_id: Optional[str], file_name: str) -> str:
    """``uploads/{owner}_{epoch_ms}_{7 base36 chars}.{ext}``"""
    timestamp = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    ext = file_extension(file_name) or "bin"
    return f"uploads/{owner_id or 'anonymous'}_{timestamp}_{suffix}.{ext}"


async def _current_usage(db: AsyncSession, owner_id: str) -> int:
    result = await db.execute(select(Profile.storage_used).where(Profile.id == owner_id))
    return result.scalar_one_or_none() or 0


async def store_file(
    db: AsyncSession,
    store: ObjectStore,
    data: bytes,
    file_name: str,
    content_type: str,
    bucket: str = "images",
    owner_id: Optional[str] = None,
) -> UploadResult:
    """Upload ``data``; raises ValidationError / StorageLimitError / StorageError."""
    size = len(data)
    limit = settings.storage_limit_bytes

    # Quota is checked before size and type
    if owner_id:
        used = await _current_usage(db, owner_id)
        if used + size > limit:
            raise StorageLimitError(storage_limit_message(used, limit))

    if size > settings.max_upload_bytes:
        size_mb = size / 1024 / 1024
        raise ValidationError(
            f"File too large ({size_mb:.2f}MB). "
            f"Maximum file size is {settings.max_upload_bytes // (1024 * 1024)}MB."
        )

    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Invalid file type: {content_type}. Only JPEG, PNG, and WebP are allowed."
        )

    path = generate_object_path(owner_id, file_name)
    await store.put_object(bucket, path, data, content_type)

    if owner_id:
        result = await db.execute(
            update(Profile)
            .where(Profile.id == owner_id, Profile.storage_used + size <= limit)
            .values(storage_used=Profile.storage_used + size)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount == 0:
            # A concurrent upload took the remaining quota
            await store.delete_objects(bucket, [path])
            raise StorageLimitError(storage_limit_message(await _current_usage(db, owner_id), limit))
        revalidate_path(SETTINGS_PATH, owner_id)

    logger.info("Stored %s/%s (%d bytes)", bucket, path, size)
    return UploadResult(url=store.public_url(bucket, path), path=path, bucket=bucket)


async def release_usage(db: AsyncSession, owner_id: str, size: int) -> None:
    """Decrement storage_used by ``size``, never below zero."""
    if size <= 0:
        return
    await db.execute(
        update(Profile)
        .where(Profile.id == owner_id)
        .values(storage_used=case(
            (Profile.storage_used > size, Profile.storage_used - size),
            else_=0,
        ))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    revalidate_path(SETTINGS_PATH, owner_id)


async def remove_files(
    db: AsyncSession,
    store: ObjectStore,
    paths: List[str],
    bucket: str = "images",
    owner_id: Optional[str] = None,
    size: int = 0,
) -> None:
    await store.delete_objects(bucket, paths)
    if owner_id:
        await release_usage(db, owner_id, size)


async def upload_image_to_storage(
    db: AsyncSession,
    store: ObjectStore,
    data: bytes,
    file_name: str,
    content_type: str,
    bucket: str = "images",
    owner_id: Optional[str] = None,
) -> ActionResult[UploadResult]:
    try:
        uploaded = await store_file(db, store, data, file_name, content_type, bucket, owner_id)
        return ActionResult.ok(uploaded)
    except Exception as e:
        log_error("upload_image_to_storage", e)
        return ActionResult.fail(sanitize_error(e))


async def delete_image_from_storage(
    db: AsyncSession,
    store: ObjectStore,
    path: str,
    bucket: str = "images",
    owner_id: Optional[str] = None,
    size: int = 0,
) -> ActionResult[None]:
    """Remove one object. Callers delete dependent rows first."""
    try:
        await remove_files(db, store, [path], bucket, owner_id, size)
        return ActionResult.ok()
    except Exception as e:
        log_error("delete_image_from_storage", e)
        return ActionResult.fail(sanitize_error(e))


async def _referenced_by_image(db: AsyncSession, owner_id: str, path: str) -> bool:
    result = await db.execute(
        select(Image.id)
        .where(
            Image.user_id == owner_id,
            or_(
                Image.storage_path == path,
                Image.image_metadata["originalPath"].as_string() == path,
            ),
        )
        .limit(1)
    )
    return result.first() is not None


async def delete_owned_file(
    db: AsyncSession,
    store: ObjectStore,
    owner_id: str,
    path: str,
    bucket: str = "images",
) -> ActionResult[None]:
    """
    Remove one of ``owner_id``'s objects and give its bytes back to the quota.

    Only ``uploads/{owner}_...`` keys were counted on the way in, so avatar
    keys are removed without touching ``storage_used``. Objects that a
    gallery image still points at are refused; the gallery delete releases
    them together with the row.
    """
    try:
        if await _referenced_by_image(db, owner_id, path):
            raise ValidationError(FILE_IN_GALLERY)
        size = 0
        if path.startswith(f"uploads/{owner_id}_"):
            size = await store.object_size(bucket, path)
        await remove_files(db, store, [path], bucket, owner_id, size)
        logger.info("Deleted %s/%s for %s (%d bytes released)", bucket, path, owner_id, size)
        return ActionResult.ok()
    except Exception as e:
        log_error("delete_owned_file", e)
        return ActionResult.fail(sanitize_error(e))
