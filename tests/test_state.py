"""
Tests for state models

Tests ItemResult invariants, RunState derivations and immutability.
"""
import pytest
from dataclasses import FrozenInstanceError

from batch_executor.models.state import (
    ItemResult,
    ItemStatus,
    OperationStatus,
    RunState,
    compute_progress,
)


class TestItemResult:
    """Tests for ItemResult"""

    def test_success_carries_value(self):
        result = ItemResult.success("a", value={"deleted": True})

        assert result.status == ItemStatus.SUCCESS
        assert result.value == {"deleted": True}
        assert result.error is None
        assert result.attempts == 1
        assert result.succeeded
        assert not result.failed

    def test_failure_carries_error(self):
        error = RuntimeError("boom")
        result = ItemResult.failure("b", error, attempts=4)

        assert result.status == ItemStatus.FAILED
        assert result.error is error
        assert result.value is None
        assert result.attempts == 4
        assert result.failed

    def test_success_without_value_is_allowed(self):
        """Operations returning None still succeed"""
        result = ItemResult.success("a")
        assert result.value is None
        assert result.succeeded

    def test_failure_requires_error(self):
        with pytest.raises(ValueError, match="requires an error"):
            ItemResult(id="x", status=ItemStatus.FAILED)

    def test_failure_rejects_value(self):
        with pytest.raises(ValueError, match="cannot carry a value"):
            ItemResult(id="x", status=ItemStatus.FAILED, value=1, error=RuntimeError("e"))

    def test_success_rejects_error(self):
        with pytest.raises(ValueError, match="cannot carry an error"):
            ItemResult(id="x", status=ItemStatus.SUCCESS, error=RuntimeError("e"))

    def test_immutability(self):
        result = ItemResult.success("a")
        with pytest.raises(FrozenInstanceError):
            result.id = "b"

    def test_to_dict(self):
        ok = ItemResult.success("a", value=3).to_dict()
        assert ok == {"id": "a", "status": "success", "attempts": 1, "value": 3}

        bad = ItemResult.failure("b", KeyError("missing")).to_dict()
        assert bad["status"] == "failed"
        assert bad["error_type"] == "KeyError"
        assert "missing" in bad["error"]
        assert "value" not in bad


class TestComputeProgress:
    """Tests for compute_progress"""

    def test_zero_total(self):
        assert compute_progress(0, 0) == 0

    def test_rounding(self):
        assert compute_progress(1, 3) == 33
        assert compute_progress(2, 3) == 67
        assert compute_progress(3, 3) == 100

    def test_halves_round_up(self):
        assert compute_progress(1, 8) == 13
        assert compute_progress(1, 200) == 1


class TestRunState:
    """Tests for RunState"""

    def test_idle_state(self):
        state = RunState.idle()

        assert state.status == OperationStatus.IDLE
        assert state.total == 0
        assert state.processed == 0
        assert state.succeeded == 0
        assert state.failed == 0
        assert state.progress == 0
        assert state.results == ()
        assert state.failed_ids == []

    def test_started_state(self):
        state = RunState.started(5)

        assert state.status == OperationStatus.RUNNING
        assert state.total == 5
        assert state.processed == 0
        assert state.remaining == 5

    def test_with_result_returns_new_state(self):
        state = RunState.started(2)
        new_state = state.with_result(ItemResult.success("a"))

        assert state.processed == 0
        assert new_state.processed == 1
        assert new_state is not state

    def test_counts_are_derived_from_results(self):
        state = RunState.started(4)
        state = state.with_result(ItemResult.success("a"))
        state = state.with_result(ItemResult.failure("b", RuntimeError("x")))
        state = state.with_result(ItemResult.success("c"))

        assert state.processed == 3
        assert state.succeeded == 2
        assert state.failed == 1
        assert state.succeeded + state.failed == state.processed
        assert state.progress == 75
        assert state.failed_ids == ["b"]
        assert [r.id for r in state.results] == ["a", "b", "c"]

    def test_with_status_keeps_results(self):
        state = RunState.started(1).with_result(ItemResult.success("a"))
        completed = state.with_status(OperationStatus.COMPLETED)

        assert completed.status == OperationStatus.COMPLETED
        assert completed.results == state.results

    def test_status_helpers(self):
        assert OperationStatus.RUNNING.is_active
        assert OperationStatus.PAUSED.is_active
        assert not OperationStatus.IDLE.is_active
        assert OperationStatus.COMPLETED.is_terminal
        assert OperationStatus.CANCELLED.is_terminal
        assert not OperationStatus.RUNNING.is_terminal

    def test_to_dict(self):
        state = RunState.started(2).with_result(ItemResult.failure("a", RuntimeError("x")))
        data = state.to_dict()

        assert data["status"] == "running"
        assert data["total"] == 2
        assert data["processed"] == 1
        assert data["failed"] == 1
        assert data["progress"] == 50
        assert data["failed_ids"] == ["a"]
        assert len(data["results"]) == 1
