"""
Service module for treatment stage detection.

This module works out which treatment stage a user is currently in from
their active cycle, the milestones recorded against it and the stage
reference catalog. Resolution tries, in order:

1. the milestone currently in progress (high confidence)
2. a milestone completed within the last few days (medium confidence)
3. the milestone the cycle day usually falls on (low confidence)

and returns None when none of them has a catalog entry. Stage detection is
a pure function: it reads its inputs, never modifies them and never raises
for missing reference data.

Typical usage:
    >>> catalog = StageReferenceRepository().get_catalog()
    >>> result = resolve_stage(cycle, milestones, catalog)
    >>> print(generate_stage_report(result, cycle, cycle_day))
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from datetime import date

from aws_lambda_powertools import Logger

from src.models.cycle import Cycle
from src.models.milestone import Milestone, MilestoneSpec, MilestoneStatus
from src.models.stage import (
    FallbackMilestone,
    StageConfidence,
    StageInfo,
    StageReference,
    StageResult,
    StageSource
)
from src.services.constants import MAX_STAGE_TIPS, RECENT_MILESTONE_WINDOW_DAYS
from src.services.reference import StageCatalog
from src.services.timeline import get_cycle_type_label, get_milestone_for_day
from src.services.utils import (
    calculate_cycle_day,
    days_since,
    normalize_status,
    normalize_status_text
)

logger = Logger()

ReferenceData = Union[StageCatalog, Iterable[Union[StageReference, Dict[str, Any]]], None]

STAGE_PENDING_MESSAGE = "Stage information pending"

StatusedMilestones = List[Tuple[Milestone, MilestoneStatus]]

def _normalize_statuses(milestones: Iterable[Milestone]) -> StatusedMilestones:
    """Pair each milestone with its normalized status, warning once per non-standard status."""
    pairs = []
    for milestone in milestones:
        status = normalize_status(milestone.status)
        if status is MilestoneStatus.UNKNOWN or normalize_status_text(milestone.status) != status.value:
            logger.warning("Non-standard milestone status", extra={
                "milestone_id": milestone.milestone_id,
                "milestone_type": milestone.type,
                "raw_status": milestone.status,
                "status": status.value
            })
        pairs.append((milestone, status))
    return pairs

def _latest_with_status(
    pairs: StatusedMilestones,
    status: MilestoneStatus
) -> Optional[Milestone]:
    """Most recently dated milestone with the given status, undated ones last."""
    matching = [m for m, milestone_status in pairs if milestone_status == status]
    if not matching:
        return None
    return max(
        matching,
        key=lambda m: (m.effective_date is not None, m.effective_date or date.min)
    )

def _build_result(
    entry: StageReference,
    source: StageSource,
    confidence: StageConfidence,
    milestone_type: str,
    fallback: Optional[FallbackMilestone] = None
) -> StageResult:
    return StageResult(
        stage=StageInfo(
            name=entry.name,
            description=entry.description or entry.details or "",
            details=entry.details
        ),
        source=source,
        confidence=confidence,
        milestone_type=milestone_type,
        fallback_milestone=fallback,
        tips=list(entry.tips[:MAX_STAGE_TIPS])
    )

def find_current_milestone(milestones: Iterable[Milestone]) -> Optional[Milestone]:
    """Get the most recently dated in-progress milestone."""
    return _latest_with_status(_normalize_statuses(milestones), MilestoneStatus.IN_PROGRESS)

def find_latest_completed_milestone(milestones: Iterable[Milestone]) -> Optional[Milestone]:
    """Get the most recently dated completed milestone."""
    return _latest_with_status(_normalize_statuses(milestones), MilestoneStatus.COMPLETED)

def resolve_stage(
    cycle: Cycle,
    milestones: Iterable[Milestone],
    reference_data: ReferenceData,
    today: Optional[date] = None,
    recency_window_days: int = RECENT_MILESTONE_WINDOW_DAYS,
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> Optional[StageResult]:
    """
    Determine the treatment stage a cycle is currently in.

    Args:
        cycle: Cycle to resolve; only type and start date are used
        milestones: Milestones recorded against the cycle, in any order
        reference_data: Stage catalog or raw reference entries
        today: Date to resolve for, defaults to the current date
        recency_window_days: How many days a completed milestone stays
            relevant when nothing is in progress
        timelines: Optional custom timeline table for the day-based estimate

    Returns:
        StageResult describing the stage and how it was found, or None when
        no catalog entry matches

    Example:
        >>> result = resolve_stage(cycle, milestones, catalog, today=date(2025, 1, 4))
        >>> result.source, result.confidence
        (<StageSource.CURRENT_MILESTONE: 'current_milestone'>, <StageConfidence.HIGH: 'high'>)
    """
    if today is None:
        today = date.today()

    pairs = _normalize_statuses(milestones)
    catalog = StageCatalog.coerce(reference_data)
    cycle_day = calculate_cycle_day(cycle.start_date, today)

    current = _latest_with_status(pairs, MilestoneStatus.IN_PROGRESS)
    if current is not None:
        entry = catalog.lookup(cycle.type, current.type, current.title)
        if entry is not None:
            logger.debug("Stage resolved from in-progress milestone", extra={
                "milestone_type": current.type,
                "stage": entry.name
            })
            return _build_result(
                entry,
                StageSource.CURRENT_MILESTONE,
                StageConfidence.HIGH,
                current.type
            )
        logger.debug("No stage entry for in-progress milestone", extra={
            "cycle_type": cycle.type,
            "milestone_type": current.type
        })

    latest = _latest_with_status(pairs, MilestoneStatus.COMPLETED)
    if latest is not None and latest.effective_date is not None:
        days_ago = days_since(latest.effective_date, today)
        if 0 <= days_ago <= recency_window_days:
            entry = catalog.lookup(cycle.type, latest.type, latest.title)
            if entry is not None:
                logger.debug("Stage resolved from recently completed milestone", extra={
                    "milestone_type": latest.type,
                    "days_ago": days_ago,
                    "stage": entry.name
                })
                return _build_result(
                    entry,
                    StageSource.FALLBACK_MILESTONE,
                    StageConfidence.MEDIUM,
                    latest.type,
                    FallbackMilestone(title=latest.title, days_ago=days_ago)
                )

    expected = get_milestone_for_day(cycle.type, cycle_day, timelines)
    if expected is not None:
        entry = catalog.lookup(cycle.type, expected.name)
        if entry is not None:
            logger.debug("Stage estimated from cycle day", extra={
                "cycle_day": cycle_day,
                "milestone": expected.name,
                "stage": entry.name
            })
            return _build_result(
                entry,
                StageSource.DAY_BASED,
                StageConfidence.LOW,
                expected.name
            )

    logger.info("No stage information available", extra={
        "cycle_type": cycle.type,
        "cycle_day": cycle_day,
        "milestones": len(pairs),
        "reference_entries": len(catalog)
    })
    return None

def generate_stage_report(
    result: Optional[StageResult],
    cycle: Cycle,
    cycle_day: int
) -> str:
    """
    Generate a text summary of the current stage.

    Args:
        result: Resolved stage, or None when no stage was found
        cycle: Cycle the stage belongs to
        cycle_day: Current day in the cycle

    Returns:
        Formatted report string
    """
    header = f"🗓️ {get_cycle_type_label(cycle.type)} · Day {cycle_day}"
    if result is None:
        return "\n".join([header, "", f"⏳ {STAGE_PENDING_MESSAGE}"])

    report = [
        header,
        "",
        f"📍 Current Stage: {result.stage.name}",
        result.stage.description,
    ]

    if result.source == StageSource.FALLBACK_MILESTONE and result.fallback_milestone:
        days = result.fallback_milestone.days_ago
        report.append(
            f"Based on recent progress from {result.fallback_milestone.title} "
            f"({days} day{'s' if days != 1 else ''} ago)"
        )
    elif result.source == StageSource.DAY_BASED:
        report.append("Estimated from your cycle day")

    if result.tips:
        report.extend([
            "",
            "💡 Tips:",
            *[f"• {tip}" for tip in result.tips]
        ])

    return "\n".join(report)
