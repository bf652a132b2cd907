"""
Rooms and room photo API routes
"""
import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.projects import RoomCreate, RoomResponse, RoomUpdate
from roomwise.services import projects_service
from roomwise.services.storage_service import ObjectStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_data: RoomCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await projects_service.create_room(db, user_id, room_data)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    room, _ = await projects_service.get_owned_room(db, user_id, room_id)
    return room


@router.patch("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: str,
    room_data: RoomUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await projects_service.update_room(db, user_id, room_id, room_data)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """Delete a room with its analyses, recommendations, visualizations and photos."""
    await projects_service.delete_room(db, storage, user_id, room_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{room_id}/photos", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    room_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    data = await file.read()
    return await projects_service.add_photo(db, storage, user_id, room_id, data, file.content_type or "")


@router.delete("/{room_id}/photos/{storage_id}", response_model=RoomResponse)
async def delete_photo(
    room_id: str,
    storage_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    return await projects_service.remove_photo(db, storage, user_id, room_id, storage_id)
