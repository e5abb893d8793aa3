"""Tests for data models."""

import pytest
from pydantic import ValidationError

from taskstack.models import (
    CollectionState,
    StepStatus,
    Result,
    CollectionResult,
    StepRecord,
)


class TestResult:
    """Tests for the Result model."""

    def test_ok_result(self):
        """Test building a successful result."""
        result = Result.ok("done", exit_code=0)

        assert result.success
        assert result.message == "done"
        assert result.error_message is None
        assert result.output_data == {}

    def test_failure_result(self):
        """Test building a failed result."""
        result = Result.failure("boom", exit_code=3)

        assert not result.success
        assert result.error_message == "boom"
        assert result.exit_code == 3

    def test_failure_requires_error_message(self):
        """Test that a failure without a reason is rejected."""
        with pytest.raises(ValidationError):
            Result(success=False)

        with pytest.raises(ValidationError):
            Result(success=False, error_message="")

    def test_with_step_reattributes_failure(self):
        """Test that the outer step wins and the inner step moves into the message."""
        result = Result.failure("boom").with_step("inner")
        assert result.step_description == "inner"

        outer = result.with_step("outer")
        assert outer.step_description == "outer"
        assert outer.error_message == "inner: boom"
        assert outer.output_data["inner_step"] == "inner"

    def test_with_step_same_description(self):
        """Test that re-attributing to the same step changes nothing."""
        result = Result.failure("boom").with_step("step")

        assert result.with_step("step").error_message == "boom"

    def test_with_step_reattributes_success(self):
        """Test that successful results keep their message untouched."""
        outer = Result.ok("fine").with_step("inner").with_step("outer")

        assert outer.step_description == "outer"
        assert outer.message == "fine"
        assert outer.output_data == {"inner_step": "inner"}

    def test_with_step_returns_copy(self):
        """Test that with_step leaves the original untouched."""
        result = Result.ok()
        attributed = result.with_step("step")

        assert result.step_description is None
        assert attributed.step_description == "step"

    def test_duration_unknown_without_timing(self):
        """Test duration when timestamps are missing."""
        assert Result.ok().duration_seconds is None


class TestCollectionResult:
    """Tests for aggregating results."""

    def test_aggregate_all_success(self):
        """Test aggregate of successful steps."""
        result = CollectionResult.aggregate(
            [Result.ok(), Result.ok()],
            [Result.ok()],
        )

        assert result.success
        assert len(result.all_results) == 3
        assert result.failed_step is None
        assert result.completion_failures == []

    def test_aggregate_empty(self):
        """Test that nothing to do counts as success."""
        assert CollectionResult.aggregate([]).success

    def test_main_failure_preferred(self):
        """Test that the first main failure wins over completion failures."""
        main_fail = Result.failure("main broke", exit_code=2).with_step("B")
        completion_fail = Result.failure("cleanup broke").with_step("X")

        result = CollectionResult.aggregate(
            [Result.ok().with_step("A"), main_fail],
            [completion_fail],
        )

        assert not result.success
        assert result.step_description == "B"
        assert result.error_message == "main broke"
        assert result.exit_code == 2
        assert result.failed_step.step_description == "B"
        assert [r.step_description for r in result.completion_failures] == ["X"]

    def test_completion_failure_reported_when_main_succeeds(self):
        """Test that a completion failure still fails the aggregate."""
        result = CollectionResult.aggregate(
            [Result.ok().with_step("A")],
            [Result.ok().with_step("X"), Result.failure("nope").with_step("Y")],
        )

        assert not result.success
        assert result.step_description == "Y"
        assert result.failed_step is None

    def test_skipped_steps_kept(self):
        """Test that skipped step descriptions are carried."""
        result = CollectionResult.aggregate(
            [Result.failure("x").with_step("A")],
            skipped_steps=["B", "C"],
        )

        assert result.skipped_steps == ["B", "C"]


class TestStepRecord:
    """Tests for the StepRecord model."""

    def test_lifecycle(self):
        """Test start and finish of a step."""
        record = StepRecord(description="step")
        assert record.status == StepStatus.PENDING
        assert not record.is_terminal

        record.start()
        assert record.status == StepStatus.RUNNING
        assert record.started_at is not None

        result = record.finish(Result.ok())
        assert record.status == StepStatus.COMPLETED
        assert record.is_terminal
        assert result.started_at == record.started_at
        assert result.completed_at == record.completed_at
        assert record.duration_seconds is not None
        assert result.duration_seconds >= 0

    def test_failed_step(self):
        """Test finishing with a failure."""
        record = StepRecord(description="step")
        record.start()
        record.finish(Result.failure("bad"))

        assert record.status == StepStatus.FAILED

    def test_skip(self):
        """Test skipping a step."""
        record = StepRecord(description="step")
        record.skip()

        assert record.status == StepStatus.SKIPPED
        assert record.is_terminal
        assert record.result is None


class TestCollectionState:
    """Tests for collection state helpers."""

    def test_terminal_states(self):
        assert CollectionState.COMPLETED.is_terminal
        assert CollectionState.FAILED.is_terminal
        assert not CollectionState.PARTIALLY_RUN.is_terminal

    def test_states_accepting_steps(self):
        assert CollectionState.BUILDING.accepts_steps
        assert CollectionState.PARTIALLY_RUN.accepts_steps
        assert not CollectionState.RUNNING.accepts_steps
        assert not CollectionState.COMPLETED.accepts_steps
        assert not CollectionState.FAILED.accepts_steps
