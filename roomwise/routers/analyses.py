"""
Scene analysis API routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.jobs import AnalysisResponse
from roomwise.services import analysis_service
from roomwise.services.job_queue import JobQueue, get_job_queue

router = APIRouter()


@router.post("/{room_id}/analyses", response_model=AnalysisResponse, status_code=status.HTTP_202_ACCEPTED)
async def generate_analysis(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    """Start analyzing the room's photos. Returns the pending (or already running) analysis."""
    return await analysis_service.generate_analysis(db, queue, user_id, room_id)


@router.post("/{room_id}/analyses/regenerate", response_model=AnalysisResponse, status_code=status.HTTP_202_ACCEPTED)
async def regenerate_analysis(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    return await analysis_service.regenerate_analysis(db, queue, user_id, room_id)


@router.get("/{room_id}/analyses/latest", response_model=Optional[AnalysisResponse])
async def get_latest_analysis(room_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await analysis_service.get_latest_analysis(db, user_id, room_id)


@router.get("/{room_id}/analyses", response_model=List[AnalysisResponse])
async def list_analyses(room_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)):
    return await analysis_service.list_analyses(db, user_id, room_id)
