"""
Pydantic schemas for the API usage summary
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class UsageMetric(BaseModel):
    name: str
    requests: int
    estimated_cost_usd: float


class UsageEvent(BaseModel):
    id: str
    provider: str
    model: str
    operation: str
    status: str
    estimated_cost_usd: float
    units: int
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    room_id: Optional[str] = None
    project_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UsageSummary(BaseModel):
    period_days: int
    start_at: datetime
    end_at: datetime
    total_estimated_cost_usd: float
    total_requests: int
    total_input_tokens: int
    total_output_tokens: int
    total_tokens: int
    by_provider: List[UsageMetric]
    by_operation: List[UsageMetric]
    by_model: List[UsageMetric]
    recent_events: List[UsageEvent]
