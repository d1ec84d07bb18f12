"""
Stage model definitions for treatment stage detection.
"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator

class StageSource(str, Enum):
    """
    How a stage was resolved.
    """
    CURRENT_MILESTONE = "current_milestone"
    FALLBACK_MILESTONE = "fallback_milestone"
    DAY_BASED = "day_based"

class StageConfidence(str, Enum):
    """
    Confidence conveyed to the user for a resolved stage.
    """
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class StageReference(BaseModel):
    """
    Reference catalog entry describing the stage a milestone belongs to.

    A ``cycle_type`` of None makes the entry apply to every cycle type.
    """
    cycle_type: Optional[str] = None
    milestone_type: str
    name: str
    description: str = ""
    details: Optional[str] = None
    tips: list[str] = Field(default_factory=list)
    stage_id: Optional[str] = None
    ui_priority: Optional[int] = None

    @field_validator("tips", mode="before")
    @classmethod
    def _drop_blank_tips(cls, value):
        if value is None:
            return []
        if isinstance(value, list):
            return [tip.strip() for tip in value if isinstance(tip, str) and tip.strip()]
        return value

class StageInfo(BaseModel):
    """Display fields of a resolved stage."""
    name: str
    description: str
    details: Optional[str] = None

class FallbackMilestone(BaseModel):
    """Recently completed milestone a stage was inferred from."""
    title: str
    days_ago: int

class StageResult(BaseModel):
    """
    Result of stage resolution, used purely for display.
    """
    stage: StageInfo
    source: StageSource
    confidence: StageConfidence
    milestone_type: Optional[str] = None
    fallback_milestone: Optional[FallbackMilestone] = None
    tips: list[str] = Field(default_factory=list)
