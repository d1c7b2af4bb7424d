"""
Stripe integration for one-off credit-pack purchases.

Checkout creates a pending Purchase keyed by the Checkout Session id. The
``checkout.session.completed`` webhook marks it completed and grants the
credits in a single transaction; a session that is already completed is
ignored, so Stripe's retried deliveries never grant twice.
"""

import json
import logging
from datetime import datetime
from typing import Optional

import stripe
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.config import settings
from jewelshot.db.models import Purchase, PurchaseStatus
from jewelshot.schemas import ActionResult, CheckoutResponse
from jewelshot.services import credit_service
from jewelshot.services.errors import ValidationError, log_error, sanitize_error

logger = logging.getLogger(__name__)

PAYMENTS_DISABLED = "Payments are not enabled"


def _get_stripe_client() -> stripe.StripeClient:
    if not settings.stripe_secret_key:
        raise ValueError("STRIPE_SECRET_KEY is not configured")
    return stripe.StripeClient(settings.stripe_secret_key)


def get_pack(pack_id: str) -> dict:
    pack = settings.credit_packs.get(pack_id)
    if not pack:
        raise ValidationError(f"Unknown credit pack: {pack_id}")
    return pack


def create_checkout_session(
    user_id: str,
    user_email: str,
    pack_id: str,
    success_url: str,
    cancel_url: str,
) -> dict:
    """
    Create a Stripe Checkout Session for a credit pack.

    Returns ``{"id": "cs_...", "url": "https://checkout.stripe.com/..."}``.
    """
    client = _get_stripe_client()
    pack = get_pack(pack_id)

    session = client.checkout.sessions.create(
        params={
            "mode": "payment",
            "line_items": [{
                "quantity": 1,
                "price_data": {
                    "currency": "usd",
                    "unit_amount": pack["amount_cents"],
                    "product_data": {"name": f"{pack['credits']} Jewelshot credits"},
                },
            }],
            "customer_email": user_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": {
                "user_id": user_id,
                "pack_id": pack_id,
            },
        }
    )

    return {"id": session.id, "url": session.url}


def verify_webhook(payload: bytes, sig_header: Optional[str]) -> Optional[dict]:
    """
    Verify a Stripe webhook signature and return the parsed event dict,
    or None if the signature is invalid.
    """
    webhook_secret = settings.stripe_webhook_secret
    if not webhook_secret and not settings.debug:
        logger.error("STRIPE_WEBHOOK_SECRET not set; rejecting webhook")
        return None

    try:
        if not webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, skipping signature verification")
            return json.loads(payload)
        event = stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
        return dict(event)
    except stripe.SignatureVerificationError:
        logger.warning("Stripe webhook signature verification failed")
        return None
    except ValueError as exc:
        logger.warning("Malformed Stripe webhook payload: %s", exc)
        return None


async def start_checkout(
    db: AsyncSession,
    user_id: str,
    user_email: str,
    pack_id: str,
) -> ActionResult[CheckoutResponse]:
    if not settings.payments_enabled:
        return ActionResult.fail(PAYMENTS_DISABLED)
    try:
        pack = get_pack(pack_id)
        session = create_checkout_session(
            user_id=user_id,
            user_email=user_email,
            pack_id=pack_id,
            success_url=f"{settings.app_url}/studio?purchase=success",
            cancel_url=f"{settings.app_url}/pricing?purchase=cancelled",
        )
        db.add(Purchase(
            user_id=user_id,
            pack_id=pack_id,
            amount=pack["amount_cents"],
            credits=pack["credits"],
            status=PurchaseStatus.PENDING.value,
            stripe_session_id=session["id"],
        ))
        await db.commit()
        return ActionResult.ok(CheckoutResponse(checkout_url=session["url"], session_id=session["id"]))
    except Exception as e:
        await db.rollback()
        log_error("start_checkout", e)
        return ActionResult.fail(sanitize_error(e))


async def complete_checkout(db: AsyncSession, session_id: str) -> bool:
    """
    Mark the purchase completed and grant its credits in one transaction.

    Returns False if the session is unknown or already completed. Any other
    failure rolls both changes back and re-raises, so the purchase stays
    pending and Stripe's next delivery of the event can try again.
    """
    try:
        result = await db.execute(
            update(Purchase)
            .where(
                Purchase.stripe_session_id == session_id,
                Purchase.status == PurchaseStatus.PENDING.value,
            )
            .values(status=PurchaseStatus.COMPLETED.value, completed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            logger.info("Checkout session %s already processed or unknown", session_id)
            return False

        purchase = (await db.execute(
            select(Purchase.user_id, Purchase.credits, Purchase.pack_id)
            .where(Purchase.stripe_session_id == session_id)
        )).one()
        await credit_service.stage_increment(db, purchase.user_id, purchase.credits)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error("Failed to complete checkout session %s", session_id, exc_info=True)
        raise

    credit_service.revalidate_credit_views(purchase.user_id)
    logger.info("Granted %d credits to %s (pack=%s)", purchase.credits, purchase.user_id, purchase.pack_id)
    return True


async def handle_webhook_event(db: AsyncSession, event: dict) -> None:
    event_type = event.get("type")
    session = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        await complete_checkout(db, session.get("id", ""))
    elif event_type in ("checkout.session.expired", "checkout.session.async_payment_failed"):
        await db.execute(
            update(Purchase)
            .where(
                Purchase.stripe_session_id == session.get("id", ""),
                Purchase.status == PurchaseStatus.PENDING.value,
            )
            .values(status=PurchaseStatus.FAILED.value)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    else:
        logger.debug("Ignoring Stripe event %s", event_type)
