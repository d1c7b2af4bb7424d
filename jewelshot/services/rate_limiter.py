"""
Rate limiter — per-user generation throttle.

Counts the user's AIGeneration rows inside a sliding window. The database
is the only state, so every instance sees the same count. A failing count
query fails open: users are not blocked by a transient database problem.
The failed transaction is rolled back before returning.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from jewelshot.config import settings
from jewelshot.db.models import AIGeneration
from jewelshot.schemas import RateLimitResult

logger = logging.getLogger(__name__)

RATE_LIMIT_CHECK_FAILED = "Rate limit check failed"


async def check_rate_limit(
    db: AsyncSession,
    user_id: str,
    max_requests: Optional[int] = None,
    window_minutes: Optional[int] = None,
) -> RateLimitResult:
    """Check whether ``user_id`` may start another generation."""
    max_requests = max_requests if max_requests is not None else settings.rate_limit_max_requests
    window_minutes = window_minutes if window_minutes is not None else settings.rate_limit_window_minutes

    now = datetime.utcnow()
    window = timedelta(minutes=window_minutes)
    reset_at = now + window

    try:
        result = await db.execute(
            select(func.count(AIGeneration.id)).where(
                AIGeneration.user_id == user_id,
                AIGeneration.created_at >= now - window,
            )
        )
        count = result.scalar_one()
    except Exception as e:
        logger.error("Rate limit check error for %s: %s", user_id, e, exc_info=True)
        # Leave the session usable for the caller's next statement
        await db.rollback()
        return RateLimitResult(
            allowed=True,
            remaining=max_requests,
            reset_at=reset_at,
            error=RATE_LIMIT_CHECK_FAILED,
        )

    return RateLimitResult(
        allowed=count < max_requests,
        remaining=max(0, max_requests - count),
        reset_at=reset_at,
    )


async def get_rate_limit_status(db: AsyncSession, user_id: str) -> RateLimitResult:
    """Read-only view of the current window with configured limits."""
    return await check_rate_limit(db, user_id)
