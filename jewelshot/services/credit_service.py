"""
Credit ledger — per-profile generation credits.

Balances only ever move through single conditional UPDATE statements, so
two concurrent deductions against a balance of one cannot both succeed.
Every balance change invalidates the user's cached studio, gallery and
settings views.
"""

import logging
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.db.models import Profile, Purchase
from jewelshot.schemas import (
    ActionResult, CreditsResponse, CreditBalance, CreditAvailability, PurchaseResponse,
)
from jewelshot.services.errors import InsufficientCreditsError, log_error, sanitize_error
from jewelshot.services.view_cache import (
    revalidate_path, STUDIO_PATH, GALLERY_PATH, SETTINGS_PATH,
)

logger = logging.getLogger(__name__)

INVALID_CREDIT_AMOUNT = "Invalid credit amount"
PROFILE_NOT_FOUND = "Profile not found"


def revalidate_credit_views(user_id: str) -> None:
    for path in (STUDIO_PATH, GALLERY_PATH, SETTINGS_PATH):
        revalidate_path(path, user_id)


async def _read_balance(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(select(Profile.credits).where(Profile.id == user_id))
    credits = result.scalar_one_or_none()
    if credits is None:
        raise LookupError(PROFILE_NOT_FOUND)
    return credits


async def deduct_one(db: AsyncSession, user_id: str) -> int:
    """Atomically take one credit. Raises InsufficientCreditsError at zero."""
    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id, Profile.credits > 0)
        .values(credits=Profile.credits - 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount == 0:
        raise InsufficientCreditsError()

    revalidate_credit_views(user_id)
    return await _read_balance(db, user_id)


async def stage_increment(db: AsyncSession, user_id: str, amount: int) -> None:
    """Add ``amount`` (> 0) credits inside the caller's transaction.

    Nothing is committed; the caller commits and then calls
    ``revalidate_credit_views``.
    """
    if amount <= 0:
        raise ValueError(INVALID_CREDIT_AMOUNT)

    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(credits=Profile.credits + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise LookupError(PROFILE_NOT_FOUND)


async def increment(db: AsyncSession, user_id: str, amount: int) -> int:
    """Atomically add ``amount`` (> 0) credits and return the new balance."""
    await stage_increment(db, user_id, amount)
    await db.commit()

    revalidate_credit_views(user_id)
    return await _read_balance(db, user_id)


async def get_user_credits(db: AsyncSession, user_id: str) -> ActionResult[CreditsResponse]:
    try:
        result = await db.execute(
            select(Profile.credits, Profile.plan).where(Profile.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return ActionResult.fail(PROFILE_NOT_FOUND)
        return ActionResult.ok(CreditsResponse(credits=row.credits, plan=row.plan))
    except Exception as e:
        log_error("get_user_credits", e)
        return ActionResult.fail(sanitize_error(e))


async def deduct_credit(db: AsyncSession, user_id: str) -> ActionResult[CreditBalance]:
    """Use one credit; the envelope carries the remaining balance."""
    try:
        remaining = await deduct_one(db, user_id)
        logger.info("Deducted 1 credit from %s, %d remaining", user_id, remaining)
        return ActionResult.ok(CreditBalance(remaining_credits=remaining))
    except InsufficientCreditsError as e:
        return ActionResult.fail(str(e))
    except Exception as e:
        await db.rollback()
        log_error("deduct_credit", e)
        return ActionResult.fail(sanitize_error(e))


async def add_credits(db: AsyncSession, user_id: str, amount: int) -> ActionResult[CreditBalance]:
    """Grant credits (purchases, refunds, admin grants)."""
    if amount <= 0:
        return ActionResult.fail(INVALID_CREDIT_AMOUNT)
    try:
        balance = await increment(db, user_id, amount)
        logger.info("Added %d credits to %s, balance %d", amount, user_id, balance)
        return ActionResult.ok(CreditBalance(remaining_credits=balance))
    except LookupError as e:
        await db.rollback()
        return ActionResult.fail(str(e))
    except Exception as e:
        await db.rollback()
        log_error("add_credits", e)
        return ActionResult.fail(sanitize_error(e))


async def has_available_credits(db: AsyncSession, user_id: str) -> ActionResult[CreditAvailability]:
    try:
        result = await db.execute(select(Profile.credits).where(Profile.id == user_id))
        credits = result.scalar_one_or_none() or 0
        return ActionResult.ok(CreditAvailability(has_credits=credits > 0))
    except Exception as e:
        log_error("has_available_credits", e)
        return ActionResult.fail(sanitize_error(e))


async def get_purchase_history(db: AsyncSession, user_id: str) -> ActionResult[List[PurchaseResponse]]:
    """Credit-pack purchases, newest first."""
    try:
        result = await db.execute(
            select(Purchase)
            .where(Purchase.user_id == user_id)
            .order_by(Purchase.created_at.desc())
        )
        purchases = [PurchaseResponse.model_validate(p) for p in result.scalars().all()]
        return ActionResult.ok(purchases)
    except Exception as e:
        log_error("get_purchase_history", e)
        return ActionResult.fail(sanitize_error(e))
