"""
Cycle and milestone persistence service.

Cycles are stored under their user's partition and milestones under their
cycle's partition in the tracker table:

    PK=USER#{user_id}    SK=CYCLE#{cycle_id}
    PK=CYCLE#{cycle_id}  SK=MILESTONE#{milestone_id}

Typical usage:
    repository = TrackerRepository(get_dynamo())
    cycle = repository.get_active_cycle(user_id)
    milestones = repository.get_milestones(cycle.cycle_id)
"""
import uuid
from typing import Any, Dict, List, Optional

from aws_lambda_powertools import Logger
from pydantic import ValidationError

from src.models.cycle import Cycle, CycleStatus
from src.models.milestone import Milestone
from src.services.exceptions import (
    ActiveCycleConflictError,
    CycleNotFoundError,
    TrackerError
)
from src.utils.dynamo import (
    create_cycle_pk,
    create_cycle_sk,
    create_milestone_sk,
    create_pk
)

logger = Logger()

def _serialize(model) -> Dict[str, Any]:
    """Model fields as a DynamoDB item, dropping empty values."""
    return {k: v for k, v in model.model_dump(mode="json").items() if v is not None}

class TrackerRepository:
    """Access to a user's cycles and milestones."""

    def __init__(self, dynamo):
        """
        Initialize the repository.

        Args:
            dynamo: DynamoDBClient for the tracker table
        """
        self.dynamo = dynamo

    def get_cycles(self, user_id: str) -> List[Cycle]:
        """
        Get all cycles of a user, most recent start date first.

        Items that fail validation are skipped and logged.

        Raises:
            TrackerError: If the table cannot be queried
        """
        try:
            items = self.dynamo.query_items(
                partition_key="PK",
                partition_value=create_pk(user_id)
            )
        except Exception as e:
            logger.error("Error retrieving cycles", extra={
                "user_id": user_id,
                "error": str(e),
                "error_type": e.__class__.__name__
            })
            raise TrackerError(f"Failed to retrieve cycles: {str(e)}") from e

        cycles = []
        for item in items:
            if not item.get("SK", "").startswith("CYCLE#"):
                continue
            try:
                cycles.append(Cycle(**{k: v for k, v in item.items() if k not in ("PK", "SK")}))
            except ValidationError as e:
                logger.warning("Skipping invalid cycle item", extra={
                    "user_id": user_id,
                    "sk": item.get("SK"),
                    "error": str(e)
                })
        return sorted(cycles, key=lambda c: c.start_date, reverse=True)

    def get_active_cycle(self, user_id: str) -> Optional[Cycle]:
        """
        Get the user's active cycle.

        If stored data holds more than one active cycle the most recently
        started one is returned and the inconsistency is logged.

        Returns:
            Active cycle or None
        """
        active = [c for c in self.get_cycles(user_id) if c.is_active]
        if len(active) > 1:
            logger.warning("Multiple active cycles found", extra={
                "user_id": user_id,
                "cycle_ids": [c.cycle_id for c in active]
            })
        return active[0] if active else None

    def get_cycle(self, user_id: str, cycle_id: str) -> Cycle:
        """
        Get a single cycle.

        Raises:
            CycleNotFoundError: If the cycle does not exist
        """
        item = self.dynamo.get_item({
            "PK": create_pk(user_id),
            "SK": create_cycle_sk(cycle_id)
        })
        if not item:
            raise CycleNotFoundError(f"Cycle {cycle_id} not found")
        return Cycle(**{k: v for k, v in item.items() if k not in ("PK", "SK")})

    def get_milestones(self, cycle_id: str) -> List[Milestone]:
        """
        Get all milestones recorded against a cycle.

        Raises:
            TrackerError: If the table cannot be queried
        """
        try:
            items = self.dynamo.query_items(
                partition_key="PK",
                partition_value=create_cycle_pk(cycle_id)
            )
        except Exception as e:
            logger.error("Error retrieving milestones", extra={
                "cycle_id": cycle_id,
                "error": str(e),
                "error_type": e.__class__.__name__
            })
            raise TrackerError(f"Failed to retrieve milestones: {str(e)}") from e

        milestones = []
        for item in items:
            if not item.get("SK", "").startswith("MILESTONE#"):
                continue
            try:
                milestones.append(Milestone(**{k: v for k, v in item.items() if k not in ("PK", "SK")}))
            except ValidationError as e:
                logger.warning("Skipping invalid milestone item", extra={
                    "cycle_id": cycle_id,
                    "sk": item.get("SK"),
                    "error": str(e)
                })
        return milestones

    def save_cycle(self, cycle: Cycle) -> Cycle:
        """
        Create or update a cycle.

        Args:
            cycle: Cycle to store; user_id is required

        Returns:
            Stored cycle, with an id assigned if it had none

        Raises:
            ValueError: If the cycle has no user_id
            ActiveCycleConflictError: If another cycle of the user is active
        """
        if not cycle.user_id:
            raise ValueError("Cycle must belong to a user")

        if cycle.cycle_id is None:
            cycle = cycle.model_copy(update={"cycle_id": str(uuid.uuid4())})

        if cycle.status == CycleStatus.ACTIVE:
            other = self.get_active_cycle(cycle.user_id)
            if other is not None and other.cycle_id != cycle.cycle_id:
                raise ActiveCycleConflictError(
                    f"User {cycle.user_id} already has active cycle {other.cycle_id}"
                )

        self.dynamo.put_item({
            "PK": create_pk(cycle.user_id),
            "SK": create_cycle_sk(cycle.cycle_id),
            **_serialize(cycle)
        })
        logger.info("Saved cycle", extra={
            "user_id": cycle.user_id,
            "cycle_id": cycle.cycle_id,
            "status": cycle.status.value
        })
        return cycle

    def save_milestone(self, milestone: Milestone) -> Milestone:
        """
        Create or update a milestone.

        Raises:
            ValueError: If the milestone has no cycle_id
        """
        if not milestone.cycle_id:
            raise ValueError("Milestone must belong to a cycle")

        if milestone.milestone_id is None:
            milestone = milestone.model_copy(update={"milestone_id": str(uuid.uuid4())})

        self.dynamo.put_item({
            "PK": create_cycle_pk(milestone.cycle_id),
            "SK": create_milestone_sk(milestone.milestone_id),
            **_serialize(milestone)
        })
        logger.info("Saved milestone", extra={
            "cycle_id": milestone.cycle_id,
            "milestone_id": milestone.milestone_id,
            "milestone_type": milestone.type
        })
        return milestone
