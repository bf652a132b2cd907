"""
Request handlers for before/after visualization jobs
"""
import logging
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.core.exceptions import NotFoundError, ValidationError
from roomwise.database.models import Recommendation, Room, Visualization, VisualizationStatus, VisualizationType
from roomwise.services import job_records, validators
from roomwise.services.job_queue import GENERATE_VISUALIZATION_TASK, JobQueue
from roomwise.services.projects_service import get_owned_room, touch
from roomwise.services.rate_limiter import enforce_rate_limit, increment_rate_limit
from roomwise.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)

RATE_LIMIT_OPERATION = "visualization"


def _validate_type(render_type) -> str:
    render_type = getattr(render_type, "value", render_type)
    if render_type not in {t.value for t in VisualizationType}:
        raise ValidationError(f"Invalid visualization type: {render_type}")
    return render_type


def _choose_photo(room: Room, photo_storage_id: Optional[str]) -> str:
    photo_ids = [p.get("storage_id") for p in (room.photos or []) if p.get("storage_id")]
    if photo_storage_id:
        if photo_storage_id not in photo_ids:
            raise ValidationError("Photo does not belong to this room")
        return photo_storage_id
    if not photo_ids:
        raise ValidationError("No photo available for visualization")
    return photo_ids[0]


async def _dispatch(db: AsyncSession, queue: JobQueue, user_id: str, visualization: Visualization) -> None:
    await job_records.schedule(
        db,
        queue,
        job_records.VISUALIZATION,
        visualization,
        GENERATE_VISUALIZATION_TASK,
        visualization_id=visualization.id,
    )
    await increment_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    await db.commit()


async def generate_visualization(
    db: AsyncSession,
    queue: JobQueue,
    user_id: str,
    room_id: str,
    prompt: str,
    render_type=VisualizationType.FULL_RENDER.value,
    photo_storage_id: Optional[str] = None,
    recommendation_id: Optional[str] = None,
    product_image_url: Optional[str] = None,
) -> Visualization:
    """
    Queue an image generation for one of the room's photos (the first photo by default).

    An identical request that is still queued or processing is returned instead
    of starting a second job.
    """
    room, project = await get_owned_room(db, user_id, room_id)
    prompt = validators.validate_prompt(prompt)
    render_type = _validate_type(render_type)
    if product_image_url:
        product_image_url = validators.validate_image_url(product_image_url)
    if recommendation_id:
        recommendation = await db.get(Recommendation, recommendation_id)
        if recommendation is None or recommendation.room_id != room.id:
            raise NotFoundError("Recommendation not found")
    chosen_photo = _choose_photo(room, photo_storage_id)

    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)

    active = await db.execute(
        select(Visualization).where(
            Visualization.room_id == room.id,
            Visualization.original_photo_id == chosen_photo,
            Visualization.type == render_type,
            Visualization.status.in_(list(job_records.VISUALIZATION.active_states)),
        )
    )
    for existing in active.scalars().all():
        if existing.input.get("prompt") == prompt and existing.input.get("product_image_url") == product_image_url:
            logger.info(f"[Visualization {existing.id}] identical request already {existing.status}")
            return existing

    visualization = Visualization(
        room_id=room.id,
        recommendation_id=recommendation_id,
        original_photo_id=chosen_photo,
        type=render_type,
        input={"prompt": prompt, "product_image_url": product_image_url},
        status=VisualizationStatus.QUEUED.value,
        attempt=1,
    )
    db.add(visualization)
    touch(project)
    await db.commit()
    await db.refresh(visualization)

    await _dispatch(db, queue, user_id, visualization)
    logger.info(f"[Visualization {visualization.id}] queued for room {room.id}")
    return visualization


async def get_owned_visualization(db: AsyncSession, user_id: str, visualization_id: str) -> Tuple[Visualization, Room]:
    visualization = await db.get(Visualization, visualization_id)
    if visualization is None:
        raise NotFoundError("Visualization not found")
    room, _ = await get_owned_room(db, user_id, visualization.room_id)
    return visualization, room


async def _delete_output(storage: ObjectStorage, visualization: Visualization) -> None:
    storage_id = (visualization.output or {}).get("storage_id")
    if not storage_id:
        return
    try:
        await storage.delete(storage_id)
    except Exception as e:
        logger.error(f"[Visualization {visualization.id}] failed to delete output {storage_id}: {e}")


async def regenerate_visualization(
    db: AsyncSession, queue: JobQueue, storage: ObjectStorage, user_id: str, visualization_id: str
) -> Visualization:
    """Reset a finished (or stuck) visualization in place and run it again with the same input."""
    visualization, room = await get_owned_visualization(db, user_id, visualization_id)

    stale_after = timedelta(minutes=settings.job_stale_after_minutes)
    if not job_records.can_regenerate(job_records.VISUALIZATION, visualization, stale_after):
        return visualization

    await enforce_rate_limit(db, user_id, RATE_LIMIT_OPERATION)
    await _delete_output(storage, visualization)
    job_records.reset_for_regeneration(job_records.VISUALIZATION, visualization)
    await db.commit()

    await _dispatch(db, queue, user_id, visualization)
    return visualization


async def delete_visualization(db: AsyncSession, storage: ObjectStorage, user_id: str, visualization_id: str) -> None:
    visualization, _ = await get_owned_visualization(db, user_id, visualization_id)
    await _delete_output(storage, visualization)
    await db.delete(visualization)
    await db.commit()
    logger.info(f"[Visualization {visualization_id}] deleted")


async def list_visualizations(db: AsyncSession, user_id: str, room_id: str) -> List[Visualization]:
    room, _ = await get_owned_room(db, user_id, room_id)
    result = await db.execute(
        select(Visualization).where(Visualization.room_id == room.id).order_by(Visualization.created_at.desc())
    )
    return list(result.scalars().all())
