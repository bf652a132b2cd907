"""
Request handlers for scene analysis jobs
"""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.core.exceptions import ValidationError
from roomwise.database.models import Analysis, AnalysisStatus
from roomwise.services import job_records
from roomwise.services.job_queue import ANALYZE_ROOM_TASK, JobQueue
from roomwise.services.projects_service import get_owned_room, touch
from roomwise.services.rate_limiter import enforce_rate_limit, increment_rate_limit

logger = logging.getLogger(__name__)

RATE_LIMIT_OPERATION = "analysis"


def _photo_ids(room) -> List[str]:
    photo_ids = [p["storage_id"] for p in (room.photos or []) if p.get("storage_id")]
    if not photo_ids:
        raise ValidationError("No photos uploaded")
    return photo_ids


async def _latest(db: AsyncSession, room_id: str, statuses=None) -> Optional[Analysis]:
    query = select(Analysis).where(Analysis.room_id == room_id)
    if statuses:
        query = query.where(Analysis.status.in_(list(statuses)))
    result = await db.execute(query.order_by(Analysis.created_at.desc()).limit(1))
    return result.scalar_one_or_none()


async def latest_completed_analysis(db: AsyncSession, room_id: str) -> Optional[Analysis]:
    return await _latest(db, room_id, statuses=[AnalysisStatus.COMPLETED.value])


async def _dispatch(db: AsyncSession, queue: JobQueue, user_id: str, analysis: Analysis) -> None:
    await job_records.schedule(db, queue, job_records.ANALYSIS, analysis, ANALYZE_ROOM_TASK, analysis_id=analysis.id)
    await increment_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    await db.commit()


async def generate_analysis(db: AsyncSession, queue: JobQueue, user_id: str, room_id: str) -> Analysis:
    """
    Start analyzing the room's current photos.

    If an analysis is already pending or processing for the room, that record
    is returned and nothing new is scheduled.
    """
    room, project = await get_owned_room(db, user_id, room_id)
    photo_ids = _photo_ids(room)
    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)

    existing = await _latest(db, room.id, statuses=job_records.ANALYSIS.active_states)
    if existing is not None:
        logger.info(f"[Analysis {existing.id}] already {existing.status} for room {room.id}")
        return existing

    analysis = Analysis(
        room_id=room.id,
        photo_storage_ids=photo_ids,
        status=AnalysisStatus.PENDING.value,
        attempt=1,
    )
    db.add(analysis)
    touch(project)
    await db.commit()
    await db.refresh(analysis)

    await _dispatch(db, queue, user_id, analysis)
    logger.info(f"[Analysis {analysis.id}] queued for room {room.id} with {len(photo_ids)} photo(s)")
    return analysis


async def regenerate_analysis(db: AsyncSession, queue: JobQueue, user_id: str, room_id: str) -> Analysis:
    """
    Re-run the room's latest analysis in place.

    Terminal records, and records stuck in progress for longer than
    ``job_stale_after_minutes``, are reset and rescheduled; a job that is still
    running normally is returned untouched.
    """
    room, project = await get_owned_room(db, user_id, room_id)
    photo_ids = _photo_ids(room)

    analysis = await _latest(db, room.id)
    if analysis is None:
        return await generate_analysis(db, queue, user_id, room_id)

    stale_after = timedelta(minutes=settings.job_stale_after_minutes)
    if not job_records.can_regenerate(job_records.ANALYSIS, analysis, stale_after):
        return analysis

    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    job_records.reset_for_regeneration(job_records.ANALYSIS, analysis, {"photo_storage_ids": photo_ids})
    touch(project)
    await db.commit()

    await _dispatch(db, queue, user_id, analysis)
    return analysis


async def get_latest_analysis(db: AsyncSession, user_id: str, room_id: str) -> Optional[Analysis]:
    room, _ = await get_owned_room(db, user_id, room_id)
    return await _latest(db, room.id)


async def list_analyses(db: AsyncSession, user_id: str, room_id: str) -> List[Analysis]:
    room, _ = await get_owned_room(db, user_id, room_id)
    result = await db.execute(
        select(Analysis).where(Analysis.room_id == room.id).order_by(Analysis.created_at.desc())
    )
    return list(result.scalars().all())
