"""
Visualization API routes
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.jobs import VisualizationRequest, VisualizationResponse
from roomwise.services import visualization_service
from roomwise.services.job_queue import JobQueue, get_job_queue
from roomwise.services.storage_service import ObjectStorage, get_storage

router = APIRouter()


@router.post(
    "/rooms/{room_id}/visualizations", response_model=VisualizationResponse, status_code=status.HTTP_202_ACCEPTED
)
async def generate_visualization(
    room_id: str,
    request: VisualizationRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
):
    return await visualization_service.generate_visualization(
        db,
        queue,
        user_id,
        room_id,
        prompt=request.prompt,
        render_type=request.type,
        photo_storage_id=request.photo_storage_id,
        recommendation_id=request.recommendation_id,
        product_image_url=request.product_image_url,
    )


@router.get("/rooms/{room_id}/visualizations", response_model=List[VisualizationResponse])
async def list_visualizations(
    room_id: str, user_id: str = Depends(get_current_user_id), db: AsyncSession = Depends(get_db)
):
    return await visualization_service.list_visualizations(db, user_id, room_id)


@router.post(
    "/visualizations/{visualization_id}/regenerate",
    response_model=VisualizationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def regenerate_visualization(
    visualization_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    queue: JobQueue = Depends(get_job_queue),
    storage: ObjectStorage = Depends(get_storage),
):
    return await visualization_service.regenerate_visualization(db, queue, storage, user_id, visualization_id)


@router.delete("/visualizations/{visualization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_visualization(
    visualization_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    await visualization_service.delete_visualization(db, storage, user_id, visualization_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
