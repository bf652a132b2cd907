"""
API Usage Ledger

Append-only record of every external API call attempt (success or failure),
with estimated cost, token counts and the owning room/project/user.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.exceptions import AuthorizationError
from roomwise.database.models import ApiUsageEvent, Project, Room
from roomwise.services.api_cost import TokenUsage, round_usd

logger = logging.getLogger(__name__)

USAGE_STATUS_SUCCESS = "success"
USAGE_STATUS_FAILED = "failed"

DEFAULT_SUMMARY_DAYS = 30
DEFAULT_RECENT_LIMIT = 10


async def track_api_usage(
    db: AsyncSession,
    provider: str,
    model: str,
    operation: str,
    status: str,
    estimated_cost_usd: float = 0.0,
    units: Optional[int] = None,
    usage: Optional[TokenUsage] = None,
    room_id: Optional[str] = None,
    project_id: Optional[str] = None,
    error_message: Optional[str] = None,
) -> ApiUsageEvent:
    """
    Insert one ledger entry and commit it.

    When only a room id is given the project and user are resolved through
    room -> project -> user.
    """
    if not project_id and room_id:
        room = await db.get(Room, room_id)
        project_id = room.project_id if room else None

    user_id = None
    if project_id:
        project = await db.get(Project, project_id)
        user_id = project.user_id if project else None

    event = ApiUsageEvent(
        provider=provider,
        model=model,
        operation=operation,
        status=status,
        estimated_cost_usd=round_usd(estimated_cost_usd or 0.0),
        units=units if units is not None else 1,
        input_tokens=usage.input_tokens if usage else None,
        output_tokens=usage.output_tokens if usage else None,
        total_tokens=usage.total_tokens if usage else None,
        room_id=room_id,
        project_id=project_id,
        user_id=user_id,
        error_message=error_message,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    await db.commit()

    logger.info(
        f"[API Usage] {provider}/{model} - {operation} ({status}): "
        f"tokens={usage.total_tokens if usage else None}, cost=${event.estimated_cost_usd:.6f}"
    )
    return event


async def record_usage_safely(db: AsyncSession, **kwargs) -> Optional[ApiUsageEvent]:
    """Track usage without ever raising; ledger failures must not change a job's outcome."""
    try:
        return await track_api_usage(db, **kwargs)
    except Exception as e:
        logger.warning(f"Failed to log API usage for {kwargs.get('operation')}: {e}")
        try:
            await db.rollback()
        except Exception as rollback_error:
            logger.warning(f"Rollback after usage logging failure also failed: {rollback_error}")
        return None


def _sorted_metrics(groups: Dict[str, Dict[str, float]]) -> List[Dict[str, Any]]:
    metrics = [
        {"name": name, "requests": int(stats["requests"]), "estimated_cost_usd": round_usd(stats["cost"])}
        for name, stats in groups.items()
    ]
    return sorted(metrics, key=lambda m: m["estimated_cost_usd"], reverse=True)


async def get_usage_summary(
    db: AsyncSession,
    user_id: str,
    days: Optional[int] = None,
    project_id: Optional[str] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Summarize the user's API usage over the last ``days`` days.

    ``days`` is clamped to [1, 365] and ``limit`` (recent events) to [1, 100].
    Filtering by project requires that the caller owns it.
    """
    now = now or datetime.utcnow()
    period_days = max(1, min(365, int(days if days is not None else DEFAULT_SUMMARY_DAYS)))
    recent_limit = max(1, min(100, int(limit if limit is not None else DEFAULT_RECENT_LIMIT)))
    start_at = now - timedelta(days=period_days)

    query = select(ApiUsageEvent).where(ApiUsageEvent.created_at >= start_at)
    if project_id:
        project = await db.get(Project, project_id)
        if project is None or project.user_id != user_id:
            raise AuthorizationError("Unauthorized")
        query = query.where(ApiUsageEvent.project_id == project_id)
    else:
        query = query.where(ApiUsageEvent.user_id == user_id)

    result = await db.execute(query.order_by(ApiUsageEvent.created_at.desc()))
    events = result.scalars().all()

    by_provider = defaultdict(lambda: {"requests": 0, "cost": 0.0})
    by_operation = defaultdict(lambda: {"requests": 0, "cost": 0.0})
    by_model = defaultdict(lambda: {"requests": 0, "cost": 0.0})

    total_cost = 0.0
    total_input = 0
    total_output = 0
    total_tokens = 0

    for event in events:
        cost = event.estimated_cost_usd or 0.0
        total_cost += cost
        total_input += event.input_tokens or 0
        total_output += event.output_tokens or 0
        total_tokens += event.total_tokens or 0

        for groups, key in ((by_provider, event.provider), (by_operation, event.operation), (by_model, event.model)):
            groups[key]["requests"] += 1
            groups[key]["cost"] += cost

    return {
        "period_days": period_days,
        "start_at": start_at,
        "end_at": now,
        "total_estimated_cost_usd": round_usd(total_cost),
        "total_requests": len(events),
        "total_input_tokens": total_input,
        "total_output_tokens": total_output,
        "total_tokens": total_tokens,
        "by_provider": _sorted_metrics(by_provider),
        "by_operation": _sorted_metrics(by_operation),
        "by_model": _sorted_metrics(by_model),
        "recent_events": list(events[:recent_limit]),
    }
