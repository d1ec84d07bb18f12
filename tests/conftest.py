"""
Pytest configuration and shared fixtures.
"""
import os

os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "cycle_stage_tracker_tests")

import pytest
from dataclasses import dataclass
from datetime import date
from typing import List

from src.models.cycle import Cycle
from src.models.milestone import Milestone
from src.models.stage import StageReference
from src.services.reference import StageCatalog

@dataclass
class LambdaContext:
    """Minimal Lambda context for handler tests."""
    function_name: str = "stage-handler"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:eu-west-1:123456789012:function:stage-handler"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"

@pytest.fixture
def lambda_context() -> LambdaContext:
    return LambdaContext()

@pytest.fixture
def fresh_ivf_cycle() -> Cycle:
    """Create an active fresh IVF cycle starting 2025-01-01."""
    return Cycle(
        cycle_id="cycle-1",
        user_id="123",
        type="ivf_fresh",
        start_date=date(2025, 1, 1),
        status="active"
    )

@pytest.fixture
def fet_cycle() -> Cycle:
    """Create an active frozen embryo transfer cycle starting 2025-01-01."""
    return Cycle(
        cycle_id="cycle-2",
        user_id="123",
        type="ivf-frozen",
        start_date=date(2025, 1, 1),
        status="active"
    )

@pytest.fixture
def reference_entries() -> List[StageReference]:
    """Create a small stage reference catalog."""
    return [
        StageReference(
            cycle_type="ivf_fresh",
            milestone_type="stimulation-injections-start",
            name="Ovarian Stimulation",
            description="Daily injections help several follicles grow.",
            tips=["Inject at the same time each day"]
        ),
        StageReference(
            milestone_type="antagonist-injections-start",
            name="Preventing Early Ovulation",
            description="Antagonist injections stop ovulation happening too soon."
        ),
        StageReference(
            milestone_type="egg-retrieval",
            name="Egg Collection",
            description="Mature eggs are collected under sedation.",
            details="Rest today. Arrange a driver."
        ),
        StageReference(
            milestone_type="embryo-transfer",
            name="Embryo Transfer",
            description="An embryo is placed in the uterus.",
            tips=["Keep taking medication", "Gentle walks are fine", "Plan a quiet evening", "Avoid hot baths"]
        ),
        StageReference(
            cycle_type="ivf_frozen",
            milestone_type="cycle-day-1",
            name="FET Preparation",
            description="Your frozen transfer cycle has started."
        ),
        StageReference(
            milestone_type="cycle-day-1",
            name="Cycle Start",
            description="Day 1 of your treatment cycle."
        ),
        StageReference(
            milestone_type="fertilisation-report",
            name="Fertilisation",
            description="The lab reports on fertilisation."
        ),
    ]

@pytest.fixture
def catalog(reference_entries) -> StageCatalog:
    return StageCatalog(reference_entries)

@pytest.fixture
def make_milestone():
    """Factory for milestones attached to cycle-1."""
    def _make(milestone_type: str, status: str = "pending", on: date = None, **kwargs) -> Milestone:
        return Milestone(cycle_id="cycle-1", type=milestone_type, status=status, date=on, **kwargs)
    return _make
