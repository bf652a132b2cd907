"""
Pydantic schemas for projects and rooms
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Budget(BaseModel):
    total: float = Field(..., ge=0)
    spent: float = Field(0, ge=0)
    currency: str = "USD"


class StyleProfile(BaseModel):
    primary_style: str
    secondary_style: Optional[str] = None
    color_preferences: List[str] = Field(default_factory=list)
    priorities: List[str] = Field(default_factory=list)


class Constraints(BaseModel):
    rental_friendly: bool = False
    pet_friendly: bool = False
    child_friendly: bool = False
    mobility_accessible: bool = False


class Dimensions(BaseModel):
    width: float
    length: float
    height: Optional[float] = None
    unit: str = "ft"


# Request schemas
class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    budget: Optional[Budget] = None
    style_profile: Optional[StyleProfile] = None
    constraints: Optional[Constraints] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    budget: Optional[Budget] = None
    style_profile: Optional[StyleProfile] = None
    constraints: Optional[Constraints] = None


class RoomCreate(BaseModel):
    project_id: str
    name: str = Field(..., min_length=1, max_length=200)
    type: str
    dimensions: Optional[Dimensions] = None
    notes: Optional[str] = Field(None, max_length=2000)


class RoomUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[str] = None
    dimensions: Optional[Dimensions] = None
    notes: Optional[str] = Field(None, max_length=2000)


# Response schemas
class ProjectResponse(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    budget: Optional[Dict[str, Any]] = None
    style_profile: Optional[Dict[str, Any]] = None
    constraints: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RoomPhoto(BaseModel):
    storage_id: str
    url: Optional[str] = None
    uploaded_at: str


class RoomResponse(BaseModel):
    id: str
    project_id: str
    name: str
    type: str
    photos: List[RoomPhoto] = Field(default_factory=list)
    dimensions: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
