"""
API usage summary route
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.auth import get_current_user_id
from roomwise.core.database import get_db
from roomwise.schemas.usage import UsageSummary
from roomwise.services.api_usage_service import get_usage_summary

router = APIRouter()


@router.get("/summary", response_model=UsageSummary)
async def usage_summary(
    days: Optional[int] = Query(None),
    project_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Estimated spend and request counts for the current user (days clamped to 1-365, limit to 1-100)."""
    return await get_usage_summary(db, user_id, days=days, project_id=project_id, limit=limit)
