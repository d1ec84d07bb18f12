"""
Milestone model definitions for treatment cycle events.
"""
from enum import Enum
import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator

class MilestoneStatus(str, Enum):
    """
    Normalized milestone status.

    UNKNOWN marks a raw status string that matched none of the known values.
    """
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

class Milestone(BaseModel):
    """
    Represents a milestone recorded against a cycle.

    Status is stored as free text as received from the client and is
    normalized with ``src.services.utils.normalize_status`` before use.
    """
    milestone_id: Optional[str] = None
    cycle_id: Optional[str] = None
    type: str = Field(..., min_length=1)
    title: str = ""
    date: Optional[datetime.date] = None  # Planned or actual date, None when unscheduled
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    status: str = MilestoneStatus.PENDING.value
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _default_title(self) -> "Milestone":
        if not self.title.strip():
            # Imported lazily to avoid a models -> services import cycle
            from src.services.utils import format_milestone_title
            self.title = format_milestone_title(self.type)
        return self

    @property
    def effective_date(self) -> Optional[datetime.date]:
        """Actual start date when known, otherwise the planned date."""
        return self.start_date or self.date

class MilestoneSpec(BaseModel):
    """
    One entry of a cycle type's expected milestone timeline.
    """
    name: str
    day_start: int
    day_end: Optional[int] = None
    day_label: Optional[str] = None

    @model_validator(mode="after")
    def _fill_defaults(self) -> "MilestoneSpec":
        if self.day_end is None:
            self.day_end = self.day_start
        if self.day_label is None:
            self.day_label = f"Day {self.day_start}"
        return self

    def contains_day(self, cycle_day: int) -> bool:
        """Check if the cycle day falls inside this milestone's day range."""
        return self.day_start <= cycle_day <= self.day_end
