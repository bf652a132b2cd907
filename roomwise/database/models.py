"""
Database models for projects, rooms, AI job records and usage telemetry
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class AnalysisStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RecommendationStatus(str, enum.Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class VisualizationStatus(str, enum.Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProductSearchStatus(str, enum.Enum):
    PENDING = "pending"
    SEARCHING = "searching"
    COMPLETED = "completed"


class RecommendationTier(str, enum.Enum):
    QUICK_WINS = "quick_wins"
    TRANSFORMATIONS = "transformations"
    CUSTOM = "custom"


class VisualizationType(str, enum.Enum):
    FULL_RENDER = "full_render"
    ITEM_CHANGE = "item_change"
    COLOR_CHANGE = "color_change"
    STYLE_TRANSFER = "style_transfer"


class Project(Base):
    """A user's design project; owns rooms"""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    budget = Column(JSON, nullable=True)  # {"total": float, "spent": float, "currency": str}
    style_profile = Column(JSON, nullable=True)  # primary/secondary styles, color preferences, priorities
    constraints = Column(JSON, nullable=True)  # rental_friendly, pet_friendly, child_friendly, mobility_accessible
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Room(Base):
    """A room inside a project; owns photos and every AI job record"""

    __tablename__ = "rooms"

    id = Column(String(36), primary_key=True, default=new_id)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    type = Column(String(50), nullable=False)
    # [{"storage_id": str, "url": str | None, "uploaded_at": iso str}]
    photos = Column(JSON, nullable=False, default=list)
    dimensions = Column(JSON, nullable=True)  # {"length": float, "width": float, "height": float, "unit": "ft"|"m"}
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Room(id={self.id}, name='{self.name}', type='{self.type}')>"


class Analysis(Base):
    """Scene analysis job for a room's photos"""

    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True, default=new_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    photo_storage_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default=AnalysisStatus.PENDING.value, index=True)
    results = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    attempt = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_analyses_room_status", "room_id", "status"),)


class Recommendation(Base):
    """Design recommendation job for one tier (or one custom question)"""

    __tablename__ = "recommendations"

    id = Column(String(36), primary_key=True, default=new_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    analysis_id = Column(String(36), ForeignKey("analyses.id"), nullable=False)
    tier = Column(String(30), nullable=False)
    question = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=RecommendationStatus.GENERATING.value, index=True)
    items = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=True)
    error = Column(Text, nullable=True)
    product_search_status = Column(String(20), nullable=True)
    attempt = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_recommendations_room_tier", "room_id", "tier"),)


class Visualization(Base):
    """Before/after image generation job"""

    __tablename__ = "visualizations"

    id = Column(String(36), primary_key=True, default=new_id)
    room_id = Column(String(36), ForeignKey("rooms.id"), nullable=False, index=True)
    recommendation_id = Column(String(36), ForeignKey("recommendations.id"), nullable=True)
    original_photo_id = Column(String(200), nullable=False)
    type = Column(String(30), nullable=False)
    input = Column(JSON, nullable=False)  # {"prompt": str, "product_image_url": str | None}
    output = Column(JSON, nullable=True)  # {"storage_id": str, "url": str}
    status = Column(String(20), nullable=False, default=VisualizationStatus.QUEUED.value, index=True)
    error = Column(Text, nullable=True)
    attempt = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)


class ApiUsageEvent(Base):
    """Append-only ledger of external API calls and their estimated cost"""

    __tablename__ = "api_usage_events"

    id = Column(String(36), primary_key=True, default=new_id)
    provider = Column(String(50), nullable=False, index=True)
    model = Column(String(100), nullable=False, index=True)
    operation = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False)  # success / failed
    estimated_cost_usd = Column(Float, nullable=False, default=0.0)
    units = Column(Integer, nullable=False, default=1)
    input_tokens = Column(Integer, nullable=True)
    output_tokens = Column(Integer, nullable=True)
    total_tokens = Column(Integer, nullable=True)
    room_id = Column(String(36), nullable=True, index=True)
    project_id = Column(String(36), nullable=True, index=True)
    user_id = Column(String(128), nullable=True, index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (Index("ix_api_usage_events_user_created", "user_id", "created_at"),)

    def __repr__(self):
        return f"<ApiUsageEvent(provider={self.provider}, model={self.model}, cost={self.estimated_cost_usd})>"


class RateLimitCounter(Base):
    """Fixed-window request counter per (user, operation)"""

    __tablename__ = "rate_limits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False)
    operation = Column(String(50), nullable=False)
    count = Column(Integer, nullable=False, default=0)
    window_start = Column(DateTime, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "operation", name="uq_rate_limits_user_operation"),)
