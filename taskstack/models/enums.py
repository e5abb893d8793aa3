"""Enumerations for taskstack."""

from enum import Enum


class CollectionState(str, Enum):
    """Lifecycle state of a task collection."""

    BUILDING = "building"
    """Steps and completion steps may be appended."""

    RUNNING = "running"
    """One of the execution entry points is currently executing."""

    PARTIALLY_RUN = "partially_run"
    """Main steps were attempted; completion steps have not run yet."""

    COMPLETED = "completed"
    """All main steps succeeded and all completion steps ran."""

    FAILED = "failed"
    """A main step failed; completion steps still ran."""

    @property
    def is_terminal(self) -> bool:
        return self in (CollectionState.COMPLETED, CollectionState.FAILED)

    @property
    def accepts_steps(self) -> bool:
        return self in (CollectionState.BUILDING, CollectionState.PARTIALLY_RUN)


class StepStatus(str, Enum):
    """Status of a single step inside a collection."""

    PENDING = "pending"
    """Step has not started."""

    RUNNING = "running"
    """Step is currently executing."""

    COMPLETED = "completed"
    """Step finished successfully."""

    FAILED = "failed"
    """Step reported a failure (or raised)."""

    SKIPPED = "skipped"
    """Step was never attempted because an earlier main step failed."""
