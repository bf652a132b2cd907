"""
Pydantic schemas for analysis, recommendation and visualization jobs
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from roomwise.database.models import RecommendationTier, VisualizationType


class AnalysisResponse(BaseModel):
    id: str
    room_id: str
    photo_storage_ids: List[str] = Field(default_factory=list)
    status: str
    results: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    attempt: int
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecommendationRequest(BaseModel):
    tier: RecommendationTier


class CustomQuestionRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)


class ItemSelectionUpdate(BaseModel):
    selected: bool


class RecommendationResponse(BaseModel):
    id: str
    room_id: str
    analysis_id: str
    tier: str
    question: Optional[str] = None
    status: str
    items: List[Dict[str, Any]] = Field(default_factory=list)
    summary: Optional[str] = None
    error: Optional[str] = None
    product_search_status: Optional[str] = None
    attempt: int
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VisualizationRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=1000)
    type: VisualizationType = VisualizationType.FULL_RENDER
    photo_storage_id: Optional[str] = None
    recommendation_id: Optional[str] = None
    product_image_url: Optional[str] = None


class VisualizationResponse(BaseModel):
    id: str
    room_id: str
    recommendation_id: Optional[str] = None
    original_photo_id: str
    type: str
    input: Dict[str, Any]
    output: Optional[Dict[str, Any]] = None
    status: str
    error: Optional[str] = None
    attempt: int
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
