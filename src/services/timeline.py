"""
Service module for cycle milestone timelines.

Every cycle type has an ordered list of expected milestones with the cycle
days they usually happen on. This module answers timeline questions against
that table: which milestone a cycle day belongs to, what comes next, when a
milestone is expected and how far along a cycle is.

Typical usage:
    >>> timeline = get_milestone_timeline(cycle.type)
    >>> current = get_milestone_for_day(cycle.type, cycle_day)
    >>> upcoming = get_next_milestone(cycle.type, cycle_day, completed=["Cycle day 1"])
"""
from typing import Dict, Iterable, List, Optional
from datetime import date, timedelta

from src.models.cycle import Cycle
from src.models.milestone import Milestone, MilestoneSpec, MilestoneStatus
from src.services.constants import (
    CYCLE_TYPE_META,
    DEFAULT_CYCLE_LENGTH,
    DEFAULT_MILESTONE_TIMELINE,
    MILESTONE_TIMELINES
)
from src.services.utils import (
    calculate_cycle_day,
    cycle_type_key,
    milestone_key,
    normalize_status
)

def get_milestone_timeline(
    cycle_type: Optional[str],
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> List[MilestoneSpec]:
    """
    Get the ordered expected milestones for a cycle type.

    Args:
        cycle_type: Raw cycle type (any known alias)
        timelines: Optional custom timeline table keyed by cycle type

    Returns:
        Milestone specs in expected order; the default timeline for
        cycle types without a dedicated one

    Example:
        >>> len(get_milestone_timeline("fet"))
        7
    """
    table = MILESTONE_TIMELINES if timelines is None else timelines
    return list(table.get(cycle_type_key(cycle_type), DEFAULT_MILESTONE_TIMELINE))

def find_milestone_spec(
    cycle_type: Optional[str],
    milestone: str,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> Optional[MilestoneSpec]:
    """Find a timeline entry by milestone type or title."""
    key = milestone_key(milestone)
    if not key:
        return None
    for spec in get_milestone_timeline(cycle_type, timelines):
        if milestone_key(spec.name) == key:
            return spec
    return None

def get_milestone_for_day(
    cycle_type: Optional[str],
    cycle_day: int,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> Optional[MilestoneSpec]:
    """
    Select the timeline milestone a cycle day belongs to.

    The first milestone whose day range contains the cycle day wins. Between
    milestones the most recently started one is used, and days before the
    first milestone map to the first one.

    Args:
        cycle_type: Raw cycle type
        cycle_day: Day in the cycle (1-based)
        timelines: Optional custom timeline table

    Returns:
        Matching milestone spec, None for an empty timeline

    Example:
        >>> get_milestone_for_day("ivf_fresh", 3).name
        'Stimulation injections start'
        >>> get_milestone_for_day("fet", 3).name
        'Cycle day 1'
    """
    timeline = get_milestone_timeline(cycle_type, timelines)
    if not timeline:
        return None

    latest_started = None
    for spec in timeline:
        if spec.contains_day(cycle_day):
            return spec
        if spec.day_start <= cycle_day:
            latest_started = spec

    return latest_started or timeline[0]

def get_next_milestone(
    cycle_type: Optional[str],
    cycle_day: int,
    completed: Iterable[str] = (),
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> Optional[MilestoneSpec]:
    """
    Get the next expected milestone that has not been completed.

    Args:
        cycle_type: Raw cycle type
        cycle_day: Current day in the cycle
        completed: Types or titles of milestones already completed
        timelines: Optional custom timeline table

    Returns:
        First milestone on or after cycle_day not yet completed, or None
    """
    completed_keys = {milestone_key(name) for name in completed}
    for spec in get_milestone_timeline(cycle_type, timelines):
        if spec.day_start >= cycle_day and milestone_key(spec.name) not in completed_keys:
            return spec
    return None

def calculate_milestone_date(start_date: date, milestone_day: int) -> date:
    """
    Calculate the expected calendar date of a milestone.

    Counts days the same way as ``calculate_cycle_day``, so for any day of
    1 or more ``calculate_cycle_day(start, calculate_milestone_date(start, day))``
    is that day again. Zero and negative days are offsets on or before the
    start date.

    Example:
        >>> calculate_milestone_date(date(2025, 1, 1), 3)
        datetime.date(2025, 1, 4)
    """
    return start_date + timedelta(days=milestone_day)

def get_expected_day(
    cycle_type: Optional[str],
    milestone: str,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> Optional[int]:
    """Cycle day a milestone usually happens on, None if not in the timeline."""
    spec = find_milestone_spec(cycle_type, milestone, timelines)
    return spec.day_start if spec else None

def predicted_day_text(
    cycle_type: Optional[str],
    milestone: str,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> str:
    """
    Display text for a pending milestone without a real date.

    Example:
        >>> predicted_day_text("ivf_frozen", "Embryo transfer")
        'Usually day 19 of cycle'
        >>> predicted_day_text("ivf_frozen", "Something else")
        'Pending'
    """
    day = get_expected_day(cycle_type, milestone, timelines)
    if day is None:
        return "Pending"
    return f"Usually day {day} of cycle"

def sort_milestones(
    milestones: Iterable[Milestone],
    cycle_type: Optional[str],
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> List[Milestone]:
    """
    Sort recorded milestones by the cycle type's expected order.

    Milestones not found in the timeline go last, ordered by date.
    Returns a new list.
    """
    order = {
        milestone_key(spec.name): index
        for index, spec in reversed(list(enumerate(get_milestone_timeline(cycle_type, timelines))))
    }

    def sort_key(milestone: Milestone):
        index = order.get(milestone_key(milestone.type))
        if index is None:
            index = order.get(milestone_key(milestone.title))
        in_timeline = index is not None
        return (
            not in_timeline,
            index if in_timeline else 0,
            milestone.effective_date or date.max
        )

    return sorted(milestones, key=sort_key)

def get_cycle_type_label(cycle_type: Optional[str], variant: str = "long") -> str:
    """
    Human-readable cycle type label.

    Args:
        cycle_type: Raw cycle type
        variant: "long" for headings, "short" for inline text

    Example:
        >>> get_cycle_type_label("ivf-frozen")
        'FET'
        >>> get_cycle_type_label("donor_conception")
        'Donor Conception'
    """
    if not cycle_type:
        return "Fertility Cycle" if variant == "long" else "cycle"

    meta = CYCLE_TYPE_META.get(cycle_type_key(cycle_type))
    if meta:
        return meta[0] if variant == "long" else meta[1]

    formatted = " ".join(
        word[:1].upper() + word[1:]
        for word in cycle_type_key(cycle_type).split("_") if word
    )
    if variant == "long":
        return formatted
    return formatted.split(" ")[0].lower() if formatted else "cycle"

def get_estimated_cycle_length(cycle_type: Optional[str]) -> int:
    """Estimated cycle length in days for progress calculations."""
    meta = CYCLE_TYPE_META.get(cycle_type_key(cycle_type))
    return meta[2] if meta else DEFAULT_CYCLE_LENGTH

def calculate_cycle_progress(
    cycle: Cycle,
    milestones: Iterable[Milestone],
    target_date: Optional[date] = None,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> float:
    """
    Calculate how far along a cycle is, as a percentage.

    With recorded milestones progress is the share of timeline milestones
    completed; without any it is based on the cycle day against the
    estimated cycle length. Ended cycles never show 100%.

    Args:
        cycle: Cycle to measure
        milestones: Milestones recorded against the cycle
        target_date: Date to measure on, defaults to today
        timelines: Optional custom timeline table

    Returns:
        Progress between 0 and 100
    """
    milestones = list(milestones)
    timeline = get_milestone_timeline(cycle.type, timelines)

    if not milestones or not timeline:
        cycle_day = calculate_cycle_day(cycle.start_date, target_date)
        progress = min(cycle_day / get_estimated_cycle_length(cycle.type) * 100, 100.0)
        return min(progress, 99.0) if cycle.is_ended else progress

    completed = sum(
        1 for milestone in milestones
        if normalize_status(milestone.status) == MilestoneStatus.COMPLETED
    )
    progress = completed / len(timeline) * 100

    if progress >= 100:
        if completed == len(timeline) and not cycle.is_ended:
            return 100.0
        return 99.0

    return progress
