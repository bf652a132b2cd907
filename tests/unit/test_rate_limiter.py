"""
Unit tests for the fixed-window rate limiter
"""
from datetime import datetime, timedelta

import pytest

from roomwise.core.exceptions import RateLimitExceeded
from roomwise.services.rate_limiter import (
    RATE_LIMITS,
    check_rate_limit,
    enforce_rate_limit,
    format_limit_message,
    increment_rate_limit,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


async def _fill(db, operation, times, now=NOW):
    for _ in range(times):
        await increment_rate_limit(db, "user-1", operation, now=now)
    await db.commit()


class TestCheckRateLimit:
    @pytest.mark.unit
    async def test_no_counter_is_allowed(self, db_session):
        """A user with no history is allowed"""
        assert await check_rate_limit(db_session, "user-1", "analysis", now=NOW) is None

    @pytest.mark.unit
    async def test_under_limit_is_allowed(self, db_session):
        await _fill(db_session, "analysis", RATE_LIMITS["analysis"] - 1)
        assert await check_rate_limit(db_session, "user-1", "analysis", now=NOW) is None

    @pytest.mark.unit
    async def test_at_limit_returns_message_with_minutes(self, db_session):
        """Reaching the limit returns a message naming the minutes until reset"""
        await _fill(db_session, "analysis", RATE_LIMITS["analysis"])

        message = await check_rate_limit(db_session, "user-1", "analysis", now=NOW + timedelta(minutes=20))

        assert message == "You've reached the hourly limit for analysis. Try again in 40 minutes."

    @pytest.mark.unit
    async def test_expired_window_is_allowed_without_reset(self, db_session):
        """A stale window counts as allowed; only increment resets it"""
        await _fill(db_session, "visualization", RATE_LIMITS["visualization"])

        later = NOW + timedelta(hours=1, seconds=1)
        assert await check_rate_limit(db_session, "user-1", "visualization", now=later) is None

        counter = await increment_rate_limit(db_session, "user-1", "visualization", now=later)
        assert counter.count == 1
        assert counter.window_start == later

    @pytest.mark.unit
    async def test_limits_are_per_operation_and_user(self, db_session):
        await _fill(db_session, "analysis", RATE_LIMITS["analysis"])
        assert await check_rate_limit(db_session, "user-1", "recommendations", now=NOW) is None
        assert await check_rate_limit(db_session, "user-2", "analysis", now=NOW) is None

    @pytest.mark.unit
    async def test_unknown_operation(self, db_session):
        with pytest.raises(ValueError):
            await check_rate_limit(db_session, "user-1", "teleport", now=NOW)


class TestEnforceRateLimit:
    @pytest.mark.unit
    async def test_raises_with_retry_after(self, db_session):
        await _fill(db_session, "recommendations", RATE_LIMITS["recommendations"])

        with pytest.raises(RateLimitExceeded) as exc_info:
            await enforce_rate_limit(db_session, "user-1", "recommendations", now=NOW + timedelta(seconds=30))

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after_minutes == 60
        assert "recommendations" in exc_info.value.message

    @pytest.mark.unit
    def test_singular_minute(self):
        assert format_limit_message("analysis", 1).endswith("Try again in 1 minute.")
