"""Admin credit grants"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.admin.deps import require_admin
from jewelshot.api.deps import respond
from jewelshot.db import get_db, User
from jewelshot.schemas import ActionResult, AddCreditsRequest, CreditBalance
from jewelshot.services import credit_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/credits", response_model=ActionResult[CreditBalance])
async def grant_credits(
    body: AddCreditsRequest,
    response: Response,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Add credits to any user's balance"""
    logger.info("Admin %s granting %d credits to %s", admin.id, body.amount, body.user_id)
    result = await credit_service.add_credits(db, body.user_id, body.amount)
    return respond(result, response)
