"""
Milestone record helpers.

Cycles show every expected milestone of their timeline. Milestones the user
has not recorded yet are represented by pending placeholders built from the
timeline; a placeholder becomes a real record the first time the user edits
it.
"""
import uuid
from typing import Dict, Iterable, List, Optional

from aws_lambda_powertools import Logger

from src.models.cycle import Cycle
from src.models.milestone import Milestone, MilestoneSpec, MilestoneStatus
from src.services.constants import AUTO_NOTE_TEXT
from src.services.timeline import calculate_milestone_date, get_milestone_timeline
from src.services.utils import is_auto_generated_note, map_milestone_type, milestone_key

logger = Logger()

def build_pending_milestones(
    cycle: Cycle,
    recorded: Iterable[Milestone] = (),
    timelines: Optional[Dict[str, List[MilestoneSpec]]] = None
) -> List[Milestone]:
    """
    Build pending placeholders for timeline milestones not yet recorded.

    Args:
        cycle: Cycle to build placeholders for
        recorded: Milestones already stored for the cycle
        timelines: Optional custom timeline table

    Returns:
        Placeholder milestones without an id, in timeline order
    """
    recorded_keys = set()
    for milestone in recorded:
        recorded_keys.add(milestone_key(milestone.type))
        recorded_keys.add(milestone_key(milestone.title))

    placeholders = []
    for spec in get_milestone_timeline(cycle.type, timelines):
        if milestone_key(spec.name) in recorded_keys:
            continue
        placeholders.append(Milestone(
            cycle_id=cycle.cycle_id,
            type=map_milestone_type(spec.name),
            title=spec.name,
            date=calculate_milestone_date(cycle.start_date, spec.day_start),
            status=MilestoneStatus.PENDING.value,
            notes=f"{AUTO_NOTE_TEXT} ({spec.day_label})"
        ))
    return placeholders

def is_placeholder(milestone: Milestone) -> bool:
    """Check if a milestone is an unsaved timeline placeholder."""
    return milestone.milestone_id is None and is_auto_generated_note(milestone.notes)

def promote_pending_milestone(template: Milestone, **changes) -> Milestone:
    """
    Turn a pending placeholder into a milestone record.

    The template is left untouched. The returned milestone has a new id and
    the requested changes applied; the auto-generated note is dropped unless
    the changes provide notes of their own.

    Args:
        template: Placeholder built by ``build_pending_milestones``
        **changes: Field updates from the user's first edit

    Returns:
        New milestone ready to be saved
    """
    notes = template.notes
    if is_auto_generated_note(notes):
        notes = None

    data = template.model_dump()
    data.update(notes=notes, milestone_id=template.milestone_id or str(uuid.uuid4()))
    data.update(changes)

    promoted = Milestone.model_validate(data)
    logger.info("Promoted pending milestone", extra={
        "cycle_id": promoted.cycle_id,
        "milestone_id": promoted.milestone_id,
        "milestone_type": promoted.type
    })
    return promoted

def visible_notes(milestone: Milestone) -> str:
    """Notes shown in edit views; auto-generated note bodies are hidden."""
    if is_auto_generated_note(milestone.notes):
        return ""
    return milestone.notes or ""
