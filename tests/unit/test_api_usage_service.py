"""
Unit tests for the API usage ledger and its summary
"""
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from roomwise.core.exceptions import AuthorizationError
from roomwise.database.models import ApiUsageEvent
from roomwise.services.api_cost import TokenUsage
from roomwise.services.api_usage_service import get_usage_summary, record_usage_safely, track_api_usage


class TestTrackApiUsage:
    @pytest.mark.unit
    async def test_resolves_project_and_user_from_room(self, db_session, make_project, make_room):
        """room -> project -> user is filled in when only the room is known"""
        project = await make_project()
        room = await make_room(project, photo_count=0)

        event = await track_api_usage(
            db_session,
            provider="openai",
            model="gpt-4o",
            operation="scene_analysis",
            status="success",
            estimated_cost_usd=0.00751234567,
            usage=TokenUsage(1000, 500, 1500),
            room_id=room.id,
        )

        assert event.project_id == project.id
        assert event.user_id == "user-1"
        assert event.estimated_cost_usd == 0.007512
        assert event.total_tokens == 1500
        assert event.units == 1

    @pytest.mark.unit
    async def test_record_usage_safely_swallows_failures(self, db_session):
        """Ledger failures never propagate to the worker"""
        with patch(
            "roomwise.services.api_usage_service.track_api_usage", new=AsyncMock(side_effect=RuntimeError("db down"))
        ):
            result = await record_usage_safely(
                db_session, provider="openai", model="gpt-4o", operation="scene_analysis", status="failed"
            )
        assert result is None


class TestUsageSummary:
    async def _seed(self, db, project_id, user_id, now):
        rows = [
            ("openai", "gpt-4o", "scene_analysis", 0.01, 100, now - timedelta(days=1)),
            ("openai", "gpt-4o", "recommendations", 0.03, 300, now - timedelta(days=2)),
            ("google", "gemini-2.5-flash-image", "visualization", 0.039, None, now - timedelta(hours=1)),
            ("openai", "gpt-4o", "scene_analysis", 5.0, 1000, now - timedelta(days=45)),
        ]
        for provider, model, operation, cost, tokens, created_at in rows:
            db.add(
                ApiUsageEvent(
                    provider=provider,
                    model=model,
                    operation=operation,
                    status="success",
                    estimated_cost_usd=cost,
                    units=1,
                    total_tokens=tokens,
                    input_tokens=tokens,
                    output_tokens=0 if tokens else None,
                    project_id=project_id,
                    user_id=user_id,
                    created_at=created_at,
                )
            )
        await db.commit()

    @pytest.mark.unit
    async def test_summary_totals_and_grouping(self, db_session, make_project):
        """Events inside the window are totalled and grouped by cost, most expensive first"""
        now = datetime(2026, 3, 1, 12, 0)
        project = await make_project()
        await self._seed(db_session, project.id, "user-1", now)

        summary = await get_usage_summary(db_session, "user-1", now=now)

        assert summary["period_days"] == 30
        assert summary["total_requests"] == 3
        assert summary["total_estimated_cost_usd"] == pytest.approx(0.079)
        assert summary["total_tokens"] == 400
        assert [m["name"] for m in summary["by_provider"]] == ["openai", "google"]
        assert summary["by_provider"][0]["requests"] == 2
        assert summary["by_operation"][0]["name"] == "visualization"
        assert summary["recent_events"][0].operation == "visualization"

    @pytest.mark.unit
    async def test_days_and_limit_are_clamped(self, db_session, make_project):
        now = datetime(2026, 3, 1, 12, 0)
        project = await make_project()
        await self._seed(db_session, project.id, "user-1", now)

        summary = await get_usage_summary(db_session, "user-1", days=5000, limit=0, now=now)

        assert summary["period_days"] == 365
        assert summary["total_requests"] == 4
        assert len(summary["recent_events"]) == 1

    @pytest.mark.unit
    async def test_other_users_project_is_rejected(self, db_session, make_project):
        project = await make_project(user_id="user-2")
        with pytest.raises(AuthorizationError):
            await get_usage_summary(db_session, "user-1", project_id=project.id)

    @pytest.mark.unit
    async def test_only_own_events_are_counted(self, db_session, make_project):
        now = datetime(2026, 3, 1, 12, 0)
        project = await make_project(user_id="user-2")
        await self._seed(db_session, project.id, "user-2", now)

        summary = await get_usage_summary(db_session, "user-1", now=now)

        assert summary["total_requests"] == 0
        assert summary["by_provider"] == []
        result = await db_session.execute(select(ApiUsageEvent))
        assert len(result.scalars().all()) == 4
