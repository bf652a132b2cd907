"""
Projects API routes
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.projects import ProjectCreate, ProjectResponse, ProjectUpdate, RoomResponse
from roomwise.services import projects_service
from roomwise.services.storage_service import ObjectStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[ProjectResponse])
async def list_projects(user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    """List the current user's projects, most recently updated first."""
    return await projects_service.list_projects(db, user_id)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await projects_service.create_project(db, user_id, project_data)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await projects_service.get_owned_project(db, user_id, project_id)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await projects_service.update_project(db, user_id, project_id, project_data)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """Delete a project with all of its rooms, job records and stored images."""
    await projects_service.delete_project(db, storage, user_id, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/rooms", response_model=List[RoomResponse])
async def list_rooms(project_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await projects_service.list_rooms(db, user_id, project_id)
