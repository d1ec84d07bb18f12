"""
Tests for cycle and milestone persistence.
"""
import pytest
from datetime import date
from unittest.mock import Mock

from src.models.cycle import Cycle, CycleStatus
from src.models.milestone import Milestone
from src.services.exceptions import (
    ActiveCycleConflictError,
    CycleNotFoundError,
    TrackerError
)
from src.services.tracker import TrackerRepository

@pytest.fixture
def repository():
    """Create TrackerRepository with mocked DynamoDB."""
    mock_dynamo = Mock()
    return TrackerRepository(mock_dynamo), mock_dynamo

def _cycle_item(cycle_id, start, status="active", cycle_type="ivf_fresh"):
    return {
        "PK": "USER#123",
        "SK": f"CYCLE#{cycle_id}",
        "cycle_id": cycle_id,
        "user_id": "123",
        "type": cycle_type,
        "start_date": start,
        "status": status
    }

def test_get_cycles_sorted_by_start_date(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [
        _cycle_item("old", "2024-06-01", "completed"),
        _cycle_item("new", "2025-01-01"),
        {"PK": "USER#123", "SK": "PROFILE", "name": "Test"},
        {"PK": "USER#123", "SK": "CYCLE#broken", "type": "ivf"},
    ]

    cycles = tracker.get_cycles("123")

    assert [c.cycle_id for c in cycles] == ["new", "old"]
    assert cycles[0].start_date == date(2025, 1, 1)
    assert cycles[1].status == CycleStatus.COMPLETED
    mock_dynamo.query_items.assert_called_once_with(
        partition_key="PK",
        partition_value="USER#123"
    )

def test_get_active_cycle(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [
        _cycle_item("old", "2024-06-01", "completed"),
        _cycle_item("current", "2025-01-01", "Active"),
    ]

    assert tracker.get_active_cycle("123").cycle_id == "current"

def test_get_active_cycle_prefers_most_recent(repository):
    """Test inconsistent data with two active cycles returns the newest."""
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [
        _cycle_item("first", "2024-11-01"),
        _cycle_item("second", "2025-01-01"),
    ]

    assert tracker.get_active_cycle("123").cycle_id == "second"

def test_get_active_cycle_none(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [_cycle_item("old", "2024-06-01", "cancelled")]

    assert tracker.get_active_cycle("123") is None

def test_query_failure_raises_tracker_error(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.side_effect = Exception("DynamoDB error")

    with pytest.raises(TrackerError, match="DynamoDB error"):
        tracker.get_cycles("123")
    with pytest.raises(TrackerError):
        tracker.get_milestones("cycle-1")

def test_get_cycle(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.get_item.return_value = _cycle_item("cycle-1", "2025-01-01")

    cycle = tracker.get_cycle("123", "cycle-1")

    assert cycle.cycle_id == "cycle-1"
    mock_dynamo.get_item.assert_called_once_with({"PK": "USER#123", "SK": "CYCLE#cycle-1"})

def test_get_cycle_not_found(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.get_item.return_value = None

    with pytest.raises(CycleNotFoundError):
        tracker.get_cycle("123", "missing")

def test_get_milestones(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [
        {
            "PK": "CYCLE#cycle-1",
            "SK": "MILESTONE#m1",
            "milestone_id": "m1",
            "cycle_id": "cycle-1",
            "type": "ivf-fresh-egg-retrieval",
            "date": "2025-01-13",
            "status": "In Progress"
        },
        {"PK": "CYCLE#cycle-1", "SK": "MILESTONE#m2", "status": "completed"},
    ]

    milestones = tracker.get_milestones("cycle-1")

    assert len(milestones) == 1
    assert milestones[0].title == "Egg Retrieval"
    assert milestones[0].date == date(2025, 1, 13)
    assert milestones[0].status == "In Progress"

def test_save_cycle_assigns_id(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = []

    saved = tracker.save_cycle(Cycle(user_id="123", type="fet", start_date=date(2025, 1, 1)))

    assert saved.cycle_id is not None
    item = mock_dynamo.put_item.call_args[0][0]
    assert item["PK"] == "USER#123"
    assert item["SK"] == f"CYCLE#{saved.cycle_id}"
    assert item["start_date"] == "2025-01-01"
    assert item["status"] == "active"
    assert "end_date" not in item

def test_save_cycle_rejects_second_active_cycle(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [_cycle_item("current", "2025-01-01")]

    with pytest.raises(ActiveCycleConflictError):
        tracker.save_cycle(Cycle(user_id="123", type="iui", start_date=date(2025, 2, 1)))
    mock_dynamo.put_item.assert_not_called()

def test_save_cycle_updates_active_cycle(repository):
    tracker, mock_dynamo = repository
    mock_dynamo.query_items.return_value = [_cycle_item("current", "2025-01-01")]

    tracker.save_cycle(Cycle(cycle_id="current", user_id="123", type="ivf_fresh",
                             start_date=date(2025, 1, 1), clinic="City Clinic"))

    assert mock_dynamo.put_item.call_args[0][0]["clinic"] == "City Clinic"

def test_save_ended_cycle_skips_conflict_check(repository):
    tracker, mock_dynamo = repository

    tracker.save_cycle(Cycle(cycle_id="old", user_id="123", type="iui",
                             start_date=date(2024, 6, 1), status="completed"))

    mock_dynamo.query_items.assert_not_called()
    assert mock_dynamo.put_item.called

def test_save_cycle_requires_user(repository):
    tracker, _ = repository

    with pytest.raises(ValueError):
        tracker.save_cycle(Cycle(type="fet", start_date=date(2025, 1, 1)))

def test_save_milestone(repository):
    tracker, mock_dynamo = repository

    saved = tracker.save_milestone(Milestone(cycle_id="cycle-1", type="embryo-transfer", date=date(2025, 1, 19)))

    item = mock_dynamo.put_item.call_args[0][0]
    assert item["PK"] == "CYCLE#cycle-1"
    assert item["SK"] == f"MILESTONE#{saved.milestone_id}"
    assert item["title"] == "Embryo Transfer"
    assert item["date"] == "2025-01-19"

def test_save_milestone_requires_cycle(repository):
    tracker, _ = repository

    with pytest.raises(ValueError):
        tracker.save_milestone(Milestone(type="embryo-transfer"))
