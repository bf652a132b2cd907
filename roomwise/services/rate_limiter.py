"""
Fixed-window rate limiting per (user, operation).

The check and the increment are separate calls: handlers check before creating
a job and increment only after the job has been committed and enqueued, so a
request rejected by validation or a failed enqueue never consumes quota.
Concurrent increments may lose updates; the limit is approximate.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.core.exceptions import RateLimitExceeded
from roomwise.database.models import RateLimitCounter

logger = logging.getLogger(__name__)

# Requests allowed per user per window
RATE_LIMITS = {
    "analysis": 10,
    "recommendations": 20,
    "visualization": 15,
}


def _window() -> timedelta:
    return timedelta(seconds=settings.rate_limit_window_seconds)


async def _get_counter(db: AsyncSession, user_id: str, operation: str) -> Optional[RateLimitCounter]:
    result = await db.execute(
        select(RateLimitCounter).where(
            RateLimitCounter.user_id == user_id,
            RateLimitCounter.operation == operation,
        )
    )
    return result.scalar_one_or_none()


def _minutes_until_reset(counter: RateLimitCounter, now: datetime) -> int:
    remaining = (counter.window_start + _window() - now).total_seconds()
    return max(1, math.ceil(remaining / 60))


def format_limit_message(operation: str, minutes: int) -> str:
    unit = "minute" if minutes == 1 else "minutes"
    return f"You've reached the hourly limit for {operation}. Try again in {minutes} {unit}."


async def check_rate_limit(
    db: AsyncSession, user_id: str, operation: str, now: Optional[datetime] = None
) -> Optional[str]:
    """
    Return an explanatory message if the user is over the limit, otherwise None.

    A missing counter or an expired window counts as allowed; the window itself
    is only reset by increment_rate_limit.
    """
    if operation not in RATE_LIMITS:
        raise ValueError(f"Unknown rate-limited operation: {operation}")

    now = now or datetime.utcnow()
    counter = await _get_counter(db, user_id, operation)
    if counter is None:
        return None

    if now - counter.window_start > _window():
        return None

    if counter.count >= RATE_LIMITS[operation]:
        return format_limit_message(operation, _minutes_until_reset(counter, now))

    return None


async def increment_rate_limit(
    db: AsyncSession, user_id: str, operation: str, now: Optional[datetime] = None
) -> RateLimitCounter:
    """Count one started job. Creates the counter or resets an expired window."""
    now = now or datetime.utcnow()
    counter = await _get_counter(db, user_id, operation)

    if counter is None:
        counter = RateLimitCounter(user_id=user_id, operation=operation, count=1, window_start=now)
        db.add(counter)
    elif now - counter.window_start > _window():
        counter.count = 1
        counter.window_start = now
    else:
        counter.count = counter.count + 1

    await db.flush()
    return counter


async def enforce_rate_limit(db: AsyncSession, user_id: str, operation: str, now: Optional[datetime] = None) -> None:
    """Raise RateLimitExceeded when check_rate_limit reports the user is over the limit."""
    now = now or datetime.utcnow()
    message = await check_rate_limit(db, user_id, operation, now=now)
    if message is None:
        return

    counter = await _get_counter(db, user_id, operation)
    minutes = _minutes_until_reset(counter, now) if counter else 1
    logger.info(f"Rate limit hit: user={user_id} operation={operation} retry_in={minutes}m")
    raise RateLimitExceeded(message, retry_after_minutes=minutes)
