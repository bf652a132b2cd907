"""
Project and room management, ownership checks and cascade deletion.

Cascade deletion removes records one child at a time. Storage deletes are
best-effort: a failed blob delete is logged and the cascade continues, so a
blob may be orphaned but a job record never outlives its room.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from roomwise.database.models import Analysis, Project, Recommendation, Room, Visualization
from roomwise.schemas.projects import ProjectCreate, ProjectUpdate, RoomCreate, RoomUpdate
from roomwise.services import validators
from roomwise.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


async def get_owned_project(db: AsyncSession, user_id: str, project_id: str) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project.user_id != user_id:
        raise AuthorizationError("Unauthorized")
    return project


async def get_owned_room(db: AsyncSession, user_id: str, room_id: str) -> Tuple[Room, Project]:
    """Resolve room -> project -> user and make sure the caller owns the room."""
    room = await db.get(Room, room_id)
    if room is None:
        raise NotFoundError("Room not found")
    project = await db.get(Project, room.project_id)
    if project is None or project.user_id != user_id:
        raise AuthorizationError("Unauthorized")
    return room, project


def touch(project: Project) -> None:
    project.updated_at = datetime.utcnow()


def _validate_project_fields(data) -> None:
    if data.budget is not None:
        validators.validate_budget(data.budget.total, data.budget.spent)


def _validate_room_fields(data) -> None:
    if data.type is not None:
        validators.validate_room_type(data.type)
    if data.dimensions is not None:
        validators.validate_dimensions(data.dimensions.width, data.dimensions.length, data.dimensions.height)


# Projects


async def create_project(db: AsyncSession, user_id: str, data: ProjectCreate) -> Project:
    name = validators.validate_name(data.name)
    _validate_project_fields(data)

    project = Project(
        user_id=user_id,
        name=name,
        description=data.description,
        budget=data.budget.model_dump() if data.budget else None,
        style_profile=data.style_profile.model_dump() if data.style_profile else None,
        constraints=data.constraints.model_dump() if data.constraints else None,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    logger.info(f"Created project {project.id} for user {user_id}")
    return project


async def list_projects(db: AsyncSession, user_id: str) -> List[Project]:
    result = await db.execute(
        select(Project).where(Project.user_id == user_id).order_by(Project.updated_at.desc())
    )
    return list(result.scalars().all())


async def update_project(db: AsyncSession, user_id: str, project_id: str, data: ProjectUpdate) -> Project:
    project = await get_owned_project(db, user_id, project_id)
    _validate_project_fields(data)

    if data.name is not None:
        project.name = validators.validate_name(data.name)
    if data.description is not None:
        project.description = data.description
    if data.budget is not None:
        project.budget = data.budget.model_dump()
    if data.style_profile is not None:
        project.style_profile = data.style_profile.model_dump()
    if data.constraints is not None:
        project.constraints = data.constraints.model_dump()
    touch(project)

    await db.commit()
    await db.refresh(project)
    return project


async def delete_project(db: AsyncSession, storage: ObjectStorage, user_id: str, project_id: str) -> None:
    project = await get_owned_project(db, user_id, project_id)
    await cascade_delete_project(db, storage, project)
    await db.commit()


async def cascade_delete_project(db: AsyncSession, storage: ObjectStorage, project: Project) -> None:
    """Delete every room of the project (with their jobs and blobs), then the project. Caller commits."""
    result = await db.execute(select(Room).where(Room.project_id == project.id))
    for room in result.scalars().all():
        await cascade_delete_room(db, storage, room)
    await db.delete(project)
    logger.info(f"Deleted project {project.id}")


# Rooms


async def create_room(db: AsyncSession, user_id: str, data: RoomCreate) -> Room:
    project = await get_owned_project(db, user_id, data.project_id)
    name = validators.validate_name(data.name)
    _validate_room_fields(data)

    room = Room(
        project_id=project.id,
        name=name,
        type=data.type,
        photos=[],
        dimensions=data.dimensions.model_dump() if data.dimensions else None,
        notes=data.notes,
    )
    db.add(room)
    touch(project)
    await db.commit()
    await db.refresh(room)
    logger.info(f"Created room {room.id} in project {project.id}")
    return room


async def list_rooms(db: AsyncSession, user_id: str, project_id: str) -> List[Room]:
    await get_owned_project(db, user_id, project_id)
    result = await db.execute(select(Room).where(Room.project_id == project_id).order_by(Room.created_at))
    return list(result.scalars().all())


async def update_room(db: AsyncSession, user_id: str, room_id: str, data: RoomUpdate) -> Room:
    room, project = await get_owned_room(db, user_id, room_id)
    _validate_room_fields(data)

    if data.name is not None:
        room.name = validators.validate_name(data.name)
    if data.type is not None:
        room.type = data.type
    if data.dimensions is not None:
        room.dimensions = data.dimensions.model_dump()
    if data.notes is not None:
        room.notes = data.notes
    room.updated_at = datetime.utcnow()
    touch(project)

    await db.commit()
    await db.refresh(room)
    return room


async def add_photo(
    db: AsyncSession,
    storage: ObjectStorage,
    user_id: str,
    room_id: str,
    data: bytes,
    content_type: str,
) -> Room:
    room, project = await get_owned_room(db, user_id, room_id)
    if content_type not in settings.allowed_image_types:
        raise ValidationError(f"Unsupported image type: {content_type}")
    if not data:
        raise ValidationError("Uploaded file is empty")
    if len(data) > settings.max_file_size:
        raise ValidationError("Uploaded file is too large")

    storage_id = await storage.store(data, content_type)
    url = await storage.get_url(storage_id)

    # JSON columns are replaced, not mutated in place
    room.photos = list(room.photos or []) + [
        {"storage_id": storage_id, "url": url, "uploaded_at": datetime.utcnow().isoformat()}
    ]
    room.updated_at = datetime.utcnow()
    touch(project)
    await db.commit()
    await db.refresh(room)
    logger.info(f"Added photo {storage_id} to room {room.id}")
    return room


async def remove_photo(db: AsyncSession, storage: ObjectStorage, user_id: str, room_id: str, storage_id: str) -> Room:
    room, project = await get_owned_room(db, user_id, room_id)
    photos = list(room.photos or [])
    remaining = [p for p in photos if p.get("storage_id") != storage_id]
    if len(remaining) == len(photos):
        raise NotFoundError("Photo not found")

    room.photos = remaining
    room.updated_at = datetime.utcnow()
    touch(project)
    await db.commit()
    await _delete_blob(storage, storage_id)
    await db.refresh(room)
    return room


async def delete_room(db: AsyncSession, storage: ObjectStorage, user_id: str, room_id: str) -> None:
    room, project = await get_owned_room(db, user_id, room_id)
    await cascade_delete_room(db, storage, room)
    touch(project)
    await db.commit()


async def _delete_blob(storage: ObjectStorage, storage_id: Optional[str]) -> bool:
    if not storage_id:
        return False
    try:
        await storage.delete(storage_id)
        return True
    except Exception as e:
        logger.error(f"Failed to delete storage object {storage_id}: {e}")
        return False


async def cascade_delete_room(db: AsyncSession, storage: ObjectStorage, room: Room) -> None:
    """Delete visualizations (and outputs), recommendations, analyses, photos, then the room. Caller commits."""
    visualizations = await db.execute(select(Visualization).where(Visualization.room_id == room.id))
    for visualization in visualizations.scalars().all():
        await _delete_blob(storage, (visualization.output or {}).get("storage_id"))
        await db.delete(visualization)
    await db.flush()

    await db.execute(delete(Recommendation).where(Recommendation.room_id == room.id))
    await db.execute(delete(Analysis).where(Analysis.room_id == room.id))

    for photo in room.photos or []:
        await _delete_blob(storage, photo.get("storage_id"))

    await db.delete(room)
    await db.flush()
    logger.info(f"Deleted room {room.id} and its job records")
