"""
Cycle model definition for fertility treatment cycles.
"""
from enum import Enum
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, field_validator

class CycleType(str, Enum):
    """
    Treatment cycle categories with a dedicated milestone timeline.
    """
    IVF_FRESH = "ivf_fresh"
    IVF_FROZEN = "ivf_frozen"  # Frozen embryo transfer (FET)
    IUI = "iui"
    EGG_FREEZING = "egg_freezing"

class CycleStatus(str, Enum):
    """
    Lifecycle status of a treatment cycle.
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class Cycle(BaseModel):
    """
    Represents a tracked treatment cycle.

    The type is kept as the raw string supplied by the client; use
    ``canonical_cycle_type`` to map it onto a ``CycleType``.
    """
    cycle_id: Optional[str] = None
    user_id: Optional[str] = None
    type: str = Field(..., min_length=1)
    start_date: date
    end_date: Optional[date] = None
    status: CycleStatus = CycleStatus.ACTIVE
    clinic: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lowercase_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def is_active(self) -> bool:
        """Check if the cycle is still being tracked."""
        return self.status == CycleStatus.ACTIVE

    @property
    def is_ended(self) -> bool:
        """Check if the cycle was completed or cancelled."""
        return self.status in (CycleStatus.COMPLETED, CycleStatus.CANCELLED)
