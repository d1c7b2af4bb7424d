"""Account endpoints"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import clear_session_cookie, get_current_user
from jewelshot.api.deps import get_object_store
from jewelshot.db import get_db, User
from jewelshot.schemas import ActionResult
from jewelshot.services.account_service import delete_account
from jewelshot.services.storage_service import ObjectStore

router = APIRouter(prefix="/account", tags=["Account"])


@router.post("/delete", response_model=ActionResult[None])
async def delete_my_account(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    """Permanently delete the caller's data, files and login, then sign out"""
    result = await delete_account(db, store, current_user.id)
    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return result

    clear_session_cookie(response)
    return result
