"""Result models - outcomes of steps and of whole collections."""

from datetime import datetime
from typing import Optional, Any, Iterable
from pydantic import BaseModel, Field, model_validator


class Result(BaseModel):
    """
    Outcome of executing one step.

    A failed result must always say why: constructing one with
    ``success=False`` and no ``error_message`` is rejected by validation.
    """

    success: bool = True
    """Whether the step did what it was asked to do."""

    error_message: Optional[str] = None
    """Why the step failed (required when success is False)."""

    step_description: Optional[str] = None
    """Description of the step that produced this result."""

    exit_code: Optional[int] = None
    """Exit code for process-like steps."""

    message: Optional[str] = None
    """Optional human-readable note on success."""

    output_data: dict[str, Any] = Field(default_factory=dict)
    """Anything the step wants to hand back (captured output, paths, ...)."""

    error_traceback: Optional[str] = None
    """Traceback when the failure came from an exception."""

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _failure_needs_error(self) -> "Result":
        if not self.success and not self.error_message:
            raise ValueError("A failed result must carry an error message")
        return self

    @classmethod
    def ok(cls, message: Optional[str] = None, **kwargs: Any) -> "Result":
        """Build a successful result."""
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failure(cls, error: str, **kwargs: Any) -> "Result":
        """Build a failed result."""
        return cls(success=False, error_message=error, **kwargs)

    def with_step(self, description: str) -> "Result":
        """
        Return a copy attributed to ``description``.

        A result already attributed to another step (one returned by a nested
        collection) keeps that step in ``output_data["inner_step"]`` and, on
        failure, as a prefix of the error message.
        """
        if self.step_description == description:
            return self

        update: dict[str, Any] = {"step_description": description}
        inner = self.step_description
        if inner:
            update["output_data"] = {**self.output_data, "inner_step": inner}
            if not self.success:
                update["error_message"] = f"{inner}: {self.error_message}"
        return self.model_copy(update=update)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class CollectionResult(Result):
    """
    Aggregate outcome of a collection run.

    Every result produced by a main or completion step is kept, in the order
    the steps executed. The top-level error fields mirror the first main-step
    failure, or the first completion failure when all main steps succeeded.
    """

    step_results: list[Result] = Field(default_factory=list)
    """Results of the main steps that were attempted."""

    completion_results: list[Result] = Field(default_factory=list)
    """Results of the completion steps that ran."""

    skipped_steps: list[str] = Field(default_factory=list)
    """Descriptions of main steps never attempted due to a short-circuit."""

    @classmethod
    def aggregate(
        cls,
        step_results: Iterable[Result],
        completion_results: Iterable[Result] = (),
        skipped_steps: Iterable[str] = (),
    ) -> "CollectionResult":
        """Combine individual results into one outcome."""
        step_results = list(step_results)
        completion_results = list(completion_results)

        main_failure = next((r for r in step_results if not r.success), None)
        completion_failure = next((r for r in completion_results if not r.success), None)
        first_failure = main_failure or completion_failure

        fields: dict[str, Any] = {
            "step_results": step_results,
            "completion_results": completion_results,
            "skipped_steps": list(skipped_steps),
        }
        if first_failure is None:
            return cls(success=True, **fields)

        return cls(
            success=False,
            error_message=first_failure.error_message,
            step_description=first_failure.step_description,
            exit_code=first_failure.exit_code,
            error_traceback=first_failure.error_traceback,
            **fields,
        )

    @property
    def failed_step(self) -> Optional[Result]:
        """The main-step result that stopped the sequence, if any."""
        return next((r for r in self.step_results if not r.success), None)

    @property
    def completion_failures(self) -> list[Result]:
        return [r for r in self.completion_results if not r.success]

    @property
    def all_results(self) -> list[Result]:
        return [*self.step_results, *self.completion_results]
