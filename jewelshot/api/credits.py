"""Credit endpoints - balance, purchases and Stripe credit-pack checkout"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.api.auth import get_current_user
from jewelshot.api.deps import respond
from jewelshot.db import get_db, User
from jewelshot.schemas import (
    ActionResult, CheckoutRequest, CheckoutResponse, CreditAvailability, CreditBalance,
    CreditsResponse, PurchaseResponse,
)
from jewelshot.services import credit_service, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credits", tags=["Credits"])


@router.get("", response_model=ActionResult[CreditsResponse])
async def get_credits(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await credit_service.get_user_credits(db, current_user.id), response)


@router.get("/available", response_model=ActionResult[CreditAvailability])
async def credits_available(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await credit_service.has_available_credits(db, current_user.id), response)


@router.post("/deduct", response_model=ActionResult[CreditBalance])
async def deduct(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Use one credit"""
    return respond(await credit_service.deduct_credit(db, current_user.id), response)


@router.get("/purchases", response_model=ActionResult[List[PurchaseResponse]])
async def purchases(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return respond(await credit_service.get_purchase_history(db, current_user.id), response)


@router.post("/checkout", response_model=ActionResult[CheckoutResponse])
async def checkout(
    body: CheckoutRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Start a Stripe Checkout session for a credit pack"""
    result = await stripe_service.start_checkout(db, current_user.id, current_user.email, body.pack_id)
    return respond(result, response)


@router.post("/webhook/stripe")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Stripe webhook receiver (no auth; verified by signature)"""
    payload = await request.body()
    event = stripe_service.verify_webhook(payload, request.headers.get("stripe-signature"))
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        )

    await stripe_service.handle_webhook_event(db, event)
    return {"received": True}
