"""Storage endpoints - direct image upload and removal"""

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import get_current_user
from jewelshot.api.deps import get_object_store, respond
from jewelshot.config import settings
from jewelshot.db import get_db, User
from jewelshot.schemas import ActionResult, UploadResult
from jewelshot.services.storage_service import (
    ObjectStore, delete_owned_file, upload_image_to_storage,
)

router = APIRouter(prefix="/storage", tags=["Storage"])


def _owns(user: User, path: str) -> bool:
    # Keys are uploads/{owner}_... or avatars/{owner}-...
    name = path.split("/", 1)[-1]
    return name.startswith(f"{user.id}_") or name.startswith(f"{user.id}-")


@router.post("/upload", response_model=ActionResult[UploadResult])
async def upload(
    response: Response,
    file: UploadFile = File(...),
    bucket: str = Form(settings.images_bucket),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    """Upload an image; counts against the caller's storage quota"""
    if bucket not in (settings.images_bucket, settings.avatars_bucket):
        response.status_code = status.HTTP_400_BAD_REQUEST
        return ActionResult.fail(f"Unknown bucket: {bucket}")

    data = await file.read()
    result = await upload_image_to_storage(
        db, store, data, file.filename or "", file.content_type or "", bucket, current_user.id,
    )
    return respond(result, response)


@router.delete("/{bucket}/{path:path}", response_model=ActionResult[None])
async def delete(
    bucket: str,
    path: str,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    """Remove one of the caller's objects and release its quota"""
    if bucket not in (settings.images_bucket, settings.avatars_bucket):
        response.status_code = status.HTTP_400_BAD_REQUEST
        return ActionResult.fail(f"Unknown bucket: {bucket}")
    if not _owns(current_user, path):
        response.status_code = status.HTTP_403_FORBIDDEN
        return ActionResult.fail("You can only delete your own files")

    return respond(await delete_owned_file(db, store, current_user.id, path, bucket), response)
