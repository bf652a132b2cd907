"""
Design recommendation API routes
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.jobs import (
    CustomQuestionRequest,
    ItemSelectionUpdate,
    RecommendationRequest,
    RecommendationResponse,
)
from roomwise.services import recommendation_service
from roomwise.services.job_queue import JobQueue, get_job_queue

router = APIRouter()


@router.post(
    "/rooms/{room_id}/recommendations", response_model=RecommendationResponse, status_code=status.HTTP_202_ACCEPTED
)
async def generate_recommendations(
    room_id: str,
    request: RecommendationRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    """Generate quick wins or transformations from the room's latest completed analysis."""
    return await recommendation_service.generate_recommendations(db, queue, user_id, room_id, request.tier)


@router.post(
    "/rooms/{room_id}/recommendations/regenerate",
    response_model=RecommendationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def regenerate_recommendations(
    room_id: str,
    request: RecommendationRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    return await recommendation_service.regenerate_recommendations(db, queue, user_id, room_id, request.tier)


@router.post(
    "/rooms/{room_id}/recommendations/custom",
    response_model=RecommendationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ask_custom_question(
    room_id: str,
    request: CustomQuestionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    return await recommendation_service.ask_custom_question(db, queue, user_id, room_id, request.question)


@router.get("/rooms/{room_id}/recommendations", response_model=List[RecommendationResponse])
async def list_recommendations(
    room_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)
):
    return await recommendation_service.list_recommendations(db, user_id, room_id)


@router.get("/recommendations/{recommendation_id}", response_model=RecommendationResponse)
async def get_recommendation(
    recommendation_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)
):
    recommendation, _ = await recommendation_service.get_owned_recommendation(db, user_id, recommendation_id)
    return recommendation


@router.patch("/recommendations/{recommendation_id}/items/{item_id}", response_model=RecommendationResponse)
async def toggle_item_selection(
    recommendation_id: str,
    item_id: str,
    update: ItemSelectionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await recommendation_service.toggle_item_selection(db, user_id, recommendation_id, item_id, update.selected)
