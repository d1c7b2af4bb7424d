"""Profile / settings endpoints"""

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import get_current_user
from jewelshot.api.deps import get_object_store, respond
from jewelshot.db import get_db, User
from jewelshot.schemas import ActionResult, AvatarResponse, PasswordChange, ProfileResponse, ProfileUpdate
from jewelshot.services import profile_service
from jewelshot.services.storage_service import ObjectStore

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=ActionResult[ProfileResponse])
async def get_profile(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await profile_service.get_user_profile(db, current_user.id), response)


@router.patch("", response_model=ActionResult[ProfileResponse])
async def update_profile(
    body: ProfileUpdate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await profile_service.update_profile(db, current_user.id, body), response)


@router.post("/avatar", response_model=ActionResult[AvatarResponse])
async def upload_avatar(
    response: Response,
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    """Replace the caller's avatar (image/*, up to 2MB)"""
    data = await avatar.read()
    result = await profile_service.upload_avatar(
        db, store, current_user.id, data, avatar.filename, avatar.content_type,
    )
    return respond(result, response)


@router.post("/password", response_model=ActionResult[None])
async def change_password(
    body: PasswordChange,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await profile_service.change_password(
        db, current_user.id, body.current_password, body.new_password,
    )
    return respond(result, response)
