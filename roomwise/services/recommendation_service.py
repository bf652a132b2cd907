"""
Request handlers for design recommendation jobs (tiers and custom questions)
"""
import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.core.exceptions import NotFoundError, ValidationError
from roomwise.database.models import Analysis, Project, Recommendation, RecommendationStatus, RecommendationTier, Room
from roomwise.services import job_records, validators
from roomwise.services.analysis_service import latest_completed_analysis
from roomwise.services.job_queue import GENERATE_RECOMMENDATIONS_TASK, JobQueue
from roomwise.services.projects_service import get_owned_room, touch
from roomwise.services.rate_limiter import enforce_rate_limit, increment_rate_limit

logger = logging.getLogger(__name__)

RATE_LIMIT_OPERATION = "recommendations"
GENERATED_TIERS = (RecommendationTier.QUICK_WINS.value, RecommendationTier.TRANSFORMATIONS.value)


def _validate_tier(tier) -> str:
    tier = getattr(tier, "value", tier)
    if tier not in GENERATED_TIERS:
        raise ValidationError(f"Invalid recommendation tier: {tier}")
    return tier


async def _require_completed_analysis(db: AsyncSession, room_id: str) -> Analysis:
    analysis = await latest_completed_analysis(db, room_id)
    if analysis is None:
        raise ValidationError("No completed analysis found for this room")
    return analysis


async def _find_for_tier(db: AsyncSession, room_id: str, tier: str) -> Optional[Recommendation]:
    result = await db.execute(
        select(Recommendation)
        .where(Recommendation.room_id == room_id, Recommendation.tier == tier)
        .order_by(Recommendation.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _dispatch(db: AsyncSession, queue: JobQueue, user_id: str, recommendation: Recommendation) -> None:
    await job_records.schedule(
        db,
        queue,
        job_records.RECOMMENDATION,
        recommendation,
        GENERATE_RECOMMENDATIONS_TASK,
        recommendation_id=recommendation.id,
    )
    await increment_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    await db.commit()


async def _create(
    db: AsyncSession, project: Project, room: Room, analysis: Analysis, tier: str, question: Optional[str] = None
) -> Recommendation:
    recommendation = Recommendation(
        room_id=room.id,
        analysis_id=analysis.id,
        tier=tier,
        question=question,
        status=RecommendationStatus.GENERATING.value,
        items=[],
        attempt=1,
    )
    db.add(recommendation)
    touch(project)
    await db.commit()
    await db.refresh(recommendation)
    return recommendation


async def generate_recommendations(
    db: AsyncSession, queue: JobQueue, user_id: str, room_id: str, tier
) -> Recommendation:
    """
    Generate recommendations for one tier from the room's latest completed analysis.

    A completed or in-flight record for (room, tier) is returned as is; a failed
    one is reset in place and rescheduled.
    """
    room, project = await get_owned_room(db, user_id, room_id)
    tier = _validate_tier(tier)
    analysis = await _require_completed_analysis(db, room.id)
    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)

    existing = await _find_for_tier(db, room.id, tier)
    if existing is not None and existing.status != RecommendationStatus.FAILED.value:
        logger.info(f"[Recommendation {existing.id}] {tier} already {existing.status}")
        return existing

    if existing is not None:
        job_records.reset_for_regeneration(
            job_records.RECOMMENDATION,
            existing,
            {"analysis_id": analysis.id, "product_search_status": None},
        )
        touch(project)
        await db.commit()
        recommendation = existing
    else:
        recommendation = await _create(db, project, room, analysis, tier)

    await _dispatch(db, queue, user_id, recommendation)
    logger.info(f"[Recommendation {recommendation.id}] {tier} generating for room {room.id}")
    return recommendation


async def regenerate_recommendations(
    db: AsyncSession, queue: JobQueue, user_id: str, room_id: str, tier
) -> Recommendation:
    """Reset the (room, tier) record in place and generate again from the latest completed analysis."""
    room, project = await get_owned_room(db, user_id, room_id)
    tier = _validate_tier(tier)
    analysis = await _require_completed_analysis(db, room.id)

    existing = await _find_for_tier(db, room.id, tier)
    if existing is None:
        return await generate_recommendations(db, queue, user_id, room_id, tier)

    stale_after = timedelta(minutes=settings.job_stale_after_minutes)
    if not job_records.can_regenerate(job_records.RECOMMENDATION, existing, stale_after):
        return existing

    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    job_records.reset_for_regeneration(
        job_records.RECOMMENDATION,
        existing,
        {"analysis_id": analysis.id, "product_search_status": None},
    )
    touch(project)
    await db.commit()

    await _dispatch(db, queue, user_id, existing)
    return existing


async def ask_custom_question(
    db: AsyncSession, queue: JobQueue, user_id: str, room_id: str, question: str
) -> Recommendation:
    """Answer a free-form question with a single recommendation item."""
    room, project = await get_owned_room(db, user_id, room_id)
    question = validators.validate_question(question)
    analysis = await _require_completed_analysis(db, room.id)
    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)

    result = await db.execute(
        select(Recommendation).where(
            Recommendation.room_id == room.id,
            Recommendation.tier == RecommendationTier.CUSTOM.value,
            Recommendation.question == question,
            Recommendation.status.in_(list(job_records.RECOMMENDATION.active_states)),
        )
    )
    existing = result.scalars().first()
    if existing is not None:
        return existing

    recommendation = await _create(db, project, room, analysis, RecommendationTier.CUSTOM.value, question=question)
    await _dispatch(db, queue, user_id, recommendation)
    logger.info(f"[Recommendation {recommendation.id}] custom question queued for room {room.id}")
    return recommendation


async def get_owned_recommendation(db: AsyncSession, user_id: str, recommendation_id: str) -> Tuple[Recommendation, Room]:
    recommendation = await db.get(Recommendation, recommendation_id)
    if recommendation is None:
        raise NotFoundError("Recommendation not found")
    room, _ = await get_owned_room(db, user_id, recommendation.room_id)
    return recommendation, room


async def toggle_item_selection(
    db: AsyncSession, user_id: str, recommendation_id: str, item_id: str, selected: bool
) -> Recommendation:
    """Flip one item's ``selected`` flag without touching the job state."""
    recommendation, _ = await get_owned_recommendation(db, user_id, recommendation_id)

    items = list(recommendation.items or [])
    if not any(item.get("id") == item_id for item in items):
        raise NotFoundError("Item not found")

    recommendation.items = [dict(item, selected=selected) if item.get("id") == item_id else item for item in items]
    await db.commit()
    await db.refresh(recommendation)
    return recommendation


async def list_recommendations(db: AsyncSession, user_id: str, room_id: str) -> List[Recommendation]:
    room, _ = await get_owned_room(db, user_id, room_id)
    result = await db.execute(
        select(Recommendation).where(Recommendation.room_id == room.id).order_by(Recommendation.created_at.desc())
    )
    return list(result.scalars().all())
