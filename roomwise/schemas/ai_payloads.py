"""
Schemas for JSON payloads returned by the chat-completion provider.

Provider text is parsed with json.loads and then validated here; any failure
becomes an InvalidProviderResponse in the worker.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class FurnitureItem(BaseModel):
    item: str
    location: str = ""
    condition: str = ""
    style: str = ""


class LightingAssessment(BaseModel):
    natural: str = "moderate"
    artificial: List[str] = Field(default_factory=list)
    assessment: str = "Unable to assess"


class ColorAssessment(BaseModel):
    dominant: List[str] = Field(default_factory=list)
    accents: List[str] = Field(default_factory=list)
    palette: str = "neutral"


class LayoutAssessment(BaseModel):
    flow: str = "Unable to assess"
    focal_point: Optional[str] = Field(None, alias="focalPoint")
    issues: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class StyleAssessment(BaseModel):
    detected: str
    confidence: float = 0.5
    elements: List[str] = Field(default_factory=list)

    @field_validator("detected")
    @classmethod
    def detected_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("detected style must not be empty")
        return value

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


class SceneAnalysisPayload(BaseModel):
    """Scene analysis: missing descriptive sections get neutral defaults, style is required"""

    furniture: List[FurnitureItem] = Field(default_factory=list)
    lighting: LightingAssessment = Field(default_factory=LightingAssessment)
    colors: ColorAssessment = Field(default_factory=ColorAssessment)
    layout: LayoutAssessment = Field(default_factory=LayoutAssessment)
    style: StyleAssessment
    photo_descriptions: Optional[List[str]] = Field(None, alias="photoDescriptions")

    class Config:
        populate_by_name = True


class ItemCategory(str, Enum):
    FURNITURE = "furniture"
    DECOR = "decor"
    LIGHTING = "lighting"
    TEXTILES = "textiles"
    FIXTURES = "fixtures"
    FLOORING = "flooring"
    ORGANIZATION = "organization"
    PLANTS = "plants"
    ARTWORK = "artwork"
    PAINT = "paint"
    LAYOUT = "layout"
    OTHER = "other"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Difficulty(str, Enum):
    DIY = "diy"
    EASY_INSTALL = "easy_install"
    PROFESSIONAL = "professional"


def _normalize_token(value):
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_").replace("-", "_")
    return value


class CostRange(BaseModel):
    min: float = Field(0, ge=0)
    max: float = Field(..., ge=0)
    currency: str = "USD"

    @model_validator(mode="after")
    def ordered(self):
        if self.max < self.min:
            self.min, self.max = self.max, self.min
        return self


class RecommendationItemPayload(BaseModel):
    id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: str = ""
    category: ItemCategory = ItemCategory.OTHER
    estimated_cost: CostRange = Field(..., alias="estimatedCost")
    impact: Impact = Impact.MEDIUM
    difficulty: Difficulty = Difficulty.DIY
    reasoning: str = ""
    visualization_prompt: Optional[str] = Field(None, alias="visualizationPrompt")
    suggested_photo_index: Optional[int] = Field(None, alias="suggestedPhotoIndex")

    class Config:
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("category", mode="before")
    @classmethod
    def known_category(cls, value):
        value = _normalize_token(value)
        if value in {c.value for c in ItemCategory}:
            return value
        return ItemCategory.OTHER.value

    @field_validator("impact", "difficulty", mode="before")
    @classmethod
    def lowercase_enum(cls, value):
        return _normalize_token(value)

    @field_validator("suggested_photo_index", mode="before")
    @classmethod
    def integer_index(cls, value):
        # Only real integers count as an index; anything else falls back to photo 0
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value


class RecommendationPayload(BaseModel):
    items: List[RecommendationItemPayload] = Field(..., min_length=1)
    summary: Optional[str] = None
