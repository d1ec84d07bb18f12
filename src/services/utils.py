"""
Shared utility functions for cycle stage services.

These utilities handle normalization of free-text values coming from the
client (statuses, cycle types, milestone names) and the day arithmetic used
across the timeline and stage services.
"""
import re
from typing import Optional
from datetime import date

from aws_lambda_powertools import Logger

from src.models.cycle import CycleType
from src.models.milestone import MilestoneStatus
from src.services.constants import (
    AUTO_NOTE_PREFIXES,
    CYCLE_TYPE_ALIASES,
    MILESTONE_TITLE_PREFIXES,
    MILESTONE_TYPE_ALIASES
)

logger = Logger()

_SEPARATORS = re.compile(r"[\s_-]+")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")
_TITLE_SEPARATORS = re.compile(r"[-_]+")

def normalize_status_text(raw_status: Optional[str]) -> str:
    """
    Normalize a raw status string without interpreting it.

    Lowercases, trims and collapses runs of spaces, underscores and hyphens
    into a single hyphen. Applying it twice gives the same result.

    Example:
        >>> normalize_status_text(" In_Progress ")
        'in-progress'
    """
    if not raw_status:
        return ""
    return _SEPARATORS.sub("-", raw_status.strip().lower()).strip("-")

def normalize_status(raw_status: Optional[str]) -> MilestoneStatus:
    """
    Map a raw milestone status onto ``MilestoneStatus``.

    Exact matches after normalization return their member. A non-exact value
    containing "progress" is treated as in progress; anything else is
    UNKNOWN. Non-exact values are logged at debug level; ``resolve_stage``
    warns about them once per milestone.

    Args:
        raw_status: Status string as stored on the milestone

    Returns:
        Normalized milestone status

    Example:
        >>> normalize_status("In Progress")
        <MilestoneStatus.IN_PROGRESS: 'in-progress'>
    """
    normalized = normalize_status_text(raw_status)
    for status in MilestoneStatus:
        if status is not MilestoneStatus.UNKNOWN and status.value == normalized:
            return status

    status = MilestoneStatus.IN_PROGRESS if "progress" in normalized else MilestoneStatus.UNKNOWN
    logger.debug("Non-standard milestone status", extra={
        "raw_status": raw_status,
        "normalized_status": normalized,
        "status": status.value
    })
    return status

def display_status(raw_status: Optional[str]) -> str:
    """Status value shown to the user; unknown statuses display as pending."""
    status = normalize_status(raw_status)
    if status == MilestoneStatus.UNKNOWN:
        return MilestoneStatus.PENDING.value
    return status.value

def normalize_cycle_type(cycle_type: Optional[str]) -> str:
    """Lowercase a cycle type and use underscores as separators."""
    if not cycle_type:
        return ""
    return _SEPARATORS.sub("_", cycle_type.strip().lower())

def canonical_cycle_type(cycle_type: Optional[str]) -> Optional[CycleType]:
    """
    Resolve a raw cycle type to a known ``CycleType``.

    Example:
        >>> canonical_cycle_type("fresh-ivf")
        <CycleType.IVF_FRESH: 'ivf_fresh'>
        >>> canonical_cycle_type("natural") is None
        True
    """
    return CYCLE_TYPE_ALIASES.get(normalize_cycle_type(cycle_type))

def cycle_type_key(cycle_type: Optional[str]) -> str:
    """Canonical value for known cycle types, normalized raw value otherwise."""
    canonical = canonical_cycle_type(cycle_type)
    return canonical.value if canonical else normalize_cycle_type(cycle_type)

def strip_cycle_prefix(value: str) -> str:
    """Remove one known cycle type prefix such as ``ivf-frozen-``."""
    lowered = value.lower()
    for prefix in MILESTONE_TITLE_PREFIXES:
        if lowered.startswith(prefix) and len(value) > len(prefix):
            return value[len(prefix):]
    return value

def milestone_key(value: Optional[str]) -> str:
    """
    Lookup key for a milestone type or title.

    Types and titles of the same milestone produce the same key, so
    ``"embryo-transfer"``, ``"ivf-frozen-embryo-transfer"`` and
    ``"Embryo transfer"`` all match.
    """
    if not value:
        return ""
    stripped = strip_cycle_prefix(value.strip())
    return _NON_ALPHANUMERIC.sub("", stripped.lower())

def format_milestone_title(raw: Optional[str]) -> str:
    """
    Format a raw milestone type or title for display.

    Strips a known cycle type prefix and capitalizes each hyphen-separated
    word. Titles that already contain a space are returned unchanged, which
    keeps the function idempotent.

    Example:
        >>> format_milestone_title("ivf-frozen-embryo-transfer")
        'Embryo Transfer'
        >>> format_milestone_title("Embryo Transfer")
        'Embryo Transfer'
    """
    if not raw:
        return ""
    value = raw.strip()
    if " " in value:
        return value

    words = [word for word in _TITLE_SEPARATORS.split(strip_cycle_prefix(value)) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)

def map_milestone_type(title: str) -> str:
    """
    Stable milestone type identifier for a display title.

    Example:
        >>> map_milestone_type("Egg Collection")
        'egg-retrieval'
        >>> map_milestone_type("Trigger injection")
        'trigger-injection'
    """
    lowered = title.strip().lower()
    if lowered in MILESTONE_TYPE_ALIASES:
        return MILESTONE_TYPE_ALIASES[lowered]
    slug = re.sub(r"[^a-z0-9]+", "-", lowered)
    return slug.strip("-")

def is_auto_generated_note(notes: Optional[str]) -> bool:
    """Check if a note body was written by the system."""
    if not notes:
        return False
    lowered = notes.strip().lower()
    return any(lowered.startswith(prefix) for prefix in AUTO_NOTE_PREFIXES)

def calculate_cycle_day(start_date: date, target_date: Optional[date] = None) -> int:
    """
    Calculate the day offset of target_date within a cycle.

    The offset is the number of whole days since the cycle started, clamped
    to a minimum of 1.

    Args:
        start_date: Date the cycle began
        target_date: Date to calculate for, defaults to today

    Returns:
        Cycle day (minimum 1)

    Example:
        >>> calculate_cycle_day(date(2025, 1, 1), date(2025, 1, 4))
        3
    """
    if target_date is None:
        target_date = date.today()
    return max((target_date - start_date).days, 1)

def days_since(past_date: date, target_date: Optional[date] = None) -> int:
    """Whole days from past_date to target_date (negative if in the future)."""
    if target_date is None:
        target_date = date.today()
    return (target_date - past_date).days
