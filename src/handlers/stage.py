"""
Lambda handler for treatment stage detection.
"""
import datetime
import json
from typing import Dict, Optional

from aws_lambda_powertools import Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import BaseModel, Field, ValidationError

from src.models.milestone import MilestoneStatus
from src.models.stage import StageResult
from src.services.exceptions import ReferenceDataError
from src.services.reference import StageCatalog, StageReferenceRepository
from src.services.stage import generate_stage_report, resolve_stage
from src.services.timeline import (
    calculate_cycle_progress,
    calculate_milestone_date,
    get_next_milestone
)
from src.services.tracker import TrackerRepository
from src.services.utils import calculate_cycle_day, normalize_status
from src.utils.clients import get_clients
from src.utils.logging import logger

tracer = Tracer()

class StageRequest(BaseModel):
    """Stage detection request model."""
    user_id: str = Field(..., min_length=1)
    date: Optional[datetime.date] = None

class NextMilestone(BaseModel):
    """Next expected milestone of the cycle."""
    title: str
    expected_date: datetime.date
    day_label: str

class StageResponse(BaseModel):
    """Stage detection response model."""
    cycle_id: Optional[str] = None
    cycle_type: str
    cycle_day: int
    stage: Optional[StageResult] = None
    report: str
    next_milestone: Optional[NextMilestone] = None
    progress: float

class NoActiveCycleError(Exception):
    """Raised when the user has no active cycle."""
    pass

def _response(status_code: int, body: str) -> Dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": body
    }

@logger.inject_lambda_context
@tracer.capture_lambda_handler
def handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Handle stage detection requests.

    Args:
        event: API Gateway Lambda proxy event
        context: Lambda context

    Returns:
        API Gateway Lambda proxy response
    """
    try:
        body = event.get("body") or "{}"
        request = StageRequest(**(json.loads(body) if isinstance(body, str) else body))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("Invalid stage request", extra={"error": str(e)})
        return _response(400, json.dumps({"error": "Invalid request"}))

    try:
        tracker, references = get_clients()
        response = analyze_stage(request, tracker, references)
        return _response(200, response.model_dump_json())

    except NoActiveCycleError as e:
        logger.info("No active cycle", extra={"user_id": request.user_id})
        return _response(404, json.dumps({"error": str(e)}))

    except Exception as e:
        logger.exception("Failed to detect stage", extra={"user_id": request.user_id})
        return _response(500, json.dumps({"error": str(e)}))

def _load_catalog(references: StageReferenceRepository) -> StageCatalog:
    try:
        return references.get_catalog()
    except ReferenceDataError:
        logger.exception("Stage reference data unavailable, continuing without it")
        return StageCatalog()

def analyze_stage(
    request: StageRequest,
    tracker: TrackerRepository,
    references: StageReferenceRepository
) -> StageResponse:
    """
    Resolve the stage of the user's active cycle.

    Args:
        request: Stage detection request
        tracker: Cycle and milestone repository
        references: Stage reference repository

    Returns:
        Stage response with stage, report, next milestone and progress

    Raises:
        NoActiveCycleError: If the user has no active cycle
    """
    today = request.date or datetime.date.today()

    cycle = tracker.get_active_cycle(request.user_id)
    if cycle is None:
        raise NoActiveCycleError("No active cycle found")

    milestones = tracker.get_milestones(cycle.cycle_id) if cycle.cycle_id else []
    cycle_day = calculate_cycle_day(cycle.start_date, today)

    result = resolve_stage(cycle, milestones, _load_catalog(references), today=today)

    completed = [
        name
        for m in milestones
        if normalize_status(m.status) == MilestoneStatus.COMPLETED
        for name in (m.type, m.title)
    ]
    upcoming = get_next_milestone(cycle.type, cycle_day, completed)
    next_milestone = None
    if upcoming is not None:
        next_milestone = NextMilestone(
            title=upcoming.name,
            expected_date=calculate_milestone_date(cycle.start_date, upcoming.day_start),
            day_label=upcoming.day_label
        )

    logger.info("Resolved stage", extra={
        "user_id": request.user_id,
        "cycle_id": cycle.cycle_id,
        "cycle_day": cycle_day,
        "stage": result.stage.name if result else None,
        "source": result.source.value if result else None
    })

    return StageResponse(
        cycle_id=cycle.cycle_id,
        cycle_type=cycle.type,
        cycle_day=cycle_day,
        stage=result,
        report=generate_stage_report(result, cycle, cycle_day),
        next_milestone=next_milestone,
        progress=round(calculate_cycle_progress(cycle, milestones, today), 1)
    )
