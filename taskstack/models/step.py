"""Step records - per-step bookkeeping kept by a collection."""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict

from .enums import StepStatus
from .result import Result


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StepRecord(BaseModel):
    """
    Records what happened to one step of a collection.

    The collection creates a record when a step is appended and updates it
    as the step runs; callers can inspect the records for diagnostics.
    """

    model_config = ConfigDict(use_enum_values=True)

    description: str
    """Human-readable description of the step."""

    is_completion: bool = False
    """Whether the step belongs to the completion sequence."""

    status: StepStatus = StepStatus.PENDING
    """Current status of this step."""

    result: Optional[Result] = None
    """The result the step returned, once it ran."""

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def start(self) -> None:
        """Mark the step as started."""
        self.status = StepStatus.RUNNING
        self.started_at = _now()

    def finish(self, result: Result) -> Result:
        """Record the step's result and return it with timing attached."""
        self.completed_at = _now()
        self.status = StepStatus.COMPLETED if result.success else StepStatus.FAILED
        self.result = result.model_copy(
            update={"started_at": self.started_at, "completed_at": self.completed_at}
        )
        return self.result

    def skip(self) -> None:
        """Mark the step as skipped by a short-circuit."""
        self.status = StepStatus.SKIPPED

    @property
    def duration_seconds(self) -> Optional[float]:
        """Calculate how long this step took to execute."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            StepStatus.COMPLETED,
            StepStatus.FAILED,
            StepStatus.SKIPPED,
        )
