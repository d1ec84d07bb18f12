"""
Tests for normalization helpers and cycle day arithmetic.
"""
import pytest
from datetime import date

from src.models.cycle import CycleType
from src.models.milestone import MilestoneStatus
from src.services.utils import (
    calculate_cycle_day,
    canonical_cycle_type,
    cycle_type_key,
    days_since,
    display_status,
    format_milestone_title,
    is_auto_generated_note,
    map_milestone_type,
    milestone_key,
    normalize_status,
    normalize_status_text
)

RAW_STATUSES = [
    "in-progress", "In Progress", "in_progress", "  IN  PROGRESS ", "In-Progress",
    "completed", "COMPLETED ", "pending", "Cancelled", "done", "", "in--progress__now",
]

@pytest.mark.parametrize("raw", ["in-progress", "In Progress", "In_Progress", "in_progress", "  IN  PROGRESS ", "In-Progress"])
def test_in_progress_spellings(raw):
    """Test that every spelling of in-progress normalizes the same way."""
    assert normalize_status_text(raw) == "in-progress"
    assert normalize_status(raw) == MilestoneStatus.IN_PROGRESS

@pytest.mark.parametrize("raw", RAW_STATUSES)
def test_normalize_status_text_is_idempotent(raw):
    once = normalize_status_text(raw)
    assert normalize_status_text(once) == once

@pytest.mark.parametrize("raw,expected", [
    ("Completed", MilestoneStatus.COMPLETED),
    ("CANCELLED", MilestoneStatus.CANCELLED),
    ("pending", MilestoneStatus.PENDING),
    ("inprogress", MilestoneStatus.IN_PROGRESS),
    ("progressing", MilestoneStatus.IN_PROGRESS),
    ("done", MilestoneStatus.UNKNOWN),
    ("", MilestoneStatus.UNKNOWN),
    (None, MilestoneStatus.UNKNOWN),
])
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected

def test_display_status():
    """Test unknown statuses are shown as pending."""
    assert display_status("done") == "pending"
    assert display_status("In Progress") == "in-progress"
    assert display_status("completed") == "completed"

@pytest.mark.parametrize("raw,expected", [
    ("ivf-frozen-embryo-transfer", "Embryo Transfer"),
    ("iui-procedure", "Procedure"),
    ("egg-freezing-eggs-frozen", "Eggs Frozen"),
    ("cycle-day-1", "Cycle Day 1"),
    ("egg_retrieval", "Egg Retrieval"),
    ("Embryo Transfer", "Embryo Transfer"),
    ("Insemination (IUI)", "Insemination (IUI)"),
    ("ivf-", "Ivf"),
    ("", ""),
])
def test_format_milestone_title(raw, expected):
    assert format_milestone_title(raw) == expected

@pytest.mark.parametrize("raw", [
    "ivf-frozen-embryo-transfer", "fet-medication-starts", "cycle-day-1", "a--b__c",
    "ivf-frozen-", "IUI", "Embryo Transfer", "trigger", "-leading-", "",
])
def test_format_milestone_title_is_idempotent(raw):
    once = format_milestone_title(raw)
    assert format_milestone_title(once) == once

def test_milestone_key_matches_types_and_titles():
    assert milestone_key("embryo-transfer") == milestone_key("Embryo transfer")
    assert milestone_key("ivf-frozen-embryo-transfer") == milestone_key("Embryo Transfer")
    assert milestone_key("insemination-iui") == milestone_key("Insemination (IUI)")
    assert milestone_key(None) == ""

@pytest.mark.parametrize("title,expected", [
    ("Egg Collection", "egg-retrieval"),
    ("Frozen embryo transfer", "embryo-transfer"),
    ("Trigger injection", "trigger-injection"),
    ("Insemination (IUI)", "insemination-iui"),
])
def test_map_milestone_type(title, expected):
    assert map_milestone_type(title) == expected

@pytest.mark.parametrize("raw,expected", [
    ("ivf", CycleType.IVF_FRESH),
    ("IVF Fresh", CycleType.IVF_FRESH),
    ("fresh-ivf", CycleType.IVF_FRESH),
    ("ivf-frozen", CycleType.IVF_FROZEN),
    ("FET", CycleType.IVF_FROZEN),
    ("iui", CycleType.IUI),
    ("egg-freezing", CycleType.EGG_FREEZING),
    ("natural", None),
    (None, None),
])
def test_canonical_cycle_type(raw, expected):
    assert canonical_cycle_type(raw) == expected

def test_cycle_type_key_keeps_unknown_types():
    assert cycle_type_key("Fresh IVF") == "ivf_fresh"
    assert cycle_type_key("Donor Conception") == "donor_conception"
    assert cycle_type_key(None) == ""

@pytest.mark.parametrize("notes,expected", [
    ("Created from cycle template (Day 3)", True),
    ("Auto-generated milestone", True),
    ("  expected based on cycle template", True),
    ("Felt fine after the scan", False),
    (None, False),
])
def test_is_auto_generated_note(notes, expected):
    assert is_auto_generated_note(notes) == expected

def test_calculate_cycle_day():
    """Test cycle day is whole days since start, never below 1."""
    start = date(2025, 1, 1)
    assert calculate_cycle_day(start, date(2025, 1, 4)) == 3
    assert calculate_cycle_day(start, date(2025, 1, 2)) == 1
    assert calculate_cycle_day(start, start) == 1
    assert calculate_cycle_day(start, date(2024, 12, 25)) == 1
    assert calculate_cycle_day(start, date(2025, 2, 1)) == 31

def test_days_since():
    assert days_since(date(2025, 1, 1), date(2025, 1, 4)) == 3
    assert days_since(date(2025, 1, 5), date(2025, 1, 4)) == -1
