"""Collection - ordered steps with guaranteed completion steps."""

import traceback
from typing import Optional, Callable, Any
import logging

from ..models import (
    CollectionState,
    CollectionResult,
    Result,
    StepRecord,
    StepStatus,
)
from ..tasks.base import Task, ProgressMessage

logger = logging.getLogger(__name__)


class CollectionStateError(RuntimeError):
    """Raised when a collection is used in a state that does not allow it."""


class Collection:
    """
    An ordered list of steps plus an ordered list of completion steps.

    Main steps run strictly in append order and stop at the first failure.
    Completion steps (cleanup, rollback, restoring a branch...) run once the
    main sequence is over, whatever its outcome, each one isolated from the
    failures of the others.

    Usage:
        collection = Collection()
        tmp = TmpDirTask()
        tmp.add_to_collection(collection)
        WriteToFileTask(tmp.path / "file.txt").line("x").add_to_collection(collection)

        # Optionally force the early steps now; cleanup stays pending
        collection.run_without_completion()

        result = collection.run()
        if not result.success:
            print(result.step_description, result.error_message)

    Cleanup only happens when run() is called. A collection discarded after
    run_without_completion() leaves whatever its main steps created in place.
    """

    EVENTS = (
        "step_started",
        "step_finished",
        "completion_finished",
        "collection_finished",
    )

    def __init__(self, name: str = "collection"):
        self.name = name

        self._steps: list[Task] = []
        self._completions: list[Task] = []
        self._step_records: list[StepRecord] = []
        self._completion_records: list[StepRecord] = []

        # State
        self._state = CollectionState.BUILDING
        self._next_step = 0
        self._main_failed = False

        # Callbacks
        self._callbacks: dict[str, list[Callable]] = {event: [] for event in self.EVENTS}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CollectionState:
        """Current lifecycle state."""
        return self._state

    @property
    def steps(self) -> tuple[Task, ...]:
        return tuple(self._steps)

    @property
    def completion_steps(self) -> tuple[Task, ...]:
        return tuple(self._completions)

    @property
    def records(self) -> tuple[StepRecord, ...]:
        """Per-step records, main steps first."""
        return (*self._step_records, *self._completion_records)

    @property
    def results(self) -> list[Result]:
        """Results of every step that has run so far, in execution order."""
        return [r.result for r in self.records if r.result is not None]

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def add_step(self, task: Task) -> None:
        """
        Append a task to the main sequence.

        Raises:
            CollectionStateError: If the collection no longer accepts steps
        """
        self._check_appendable("a step")
        self._steps.append(task)
        self._step_records.append(StepRecord(description=task.get_description()))
        logger.debug(f"Collection '{self.name}': added step {task.get_description()!r}")

    def add_completion_step(self, task: Task) -> None:
        """
        Append a task to the completion sequence.

        Completion tasks must be safe to run even if the work they clean up
        after never fully happened.

        Raises:
            CollectionStateError: If the collection no longer accepts steps
        """
        self._check_appendable("a completion step")
        self._completions.append(task)
        self._completion_records.append(
            StepRecord(description=task.get_description(), is_completion=True)
        )
        logger.debug(
            f"Collection '{self.name}': added completion step {task.get_description()!r}"
        )

    def add(self, task: Task) -> None:
        """Append a task to whichever sequence its is_completion flag names."""
        # Go through the task's own hooks so it can register its cleanup
        if task.is_completion:
            task.add_as_completion(self)
        else:
            task.add_to_collection(self)

    def progress_message(self, text: str) -> ProgressMessage:
        """Append a progress message between steps."""
        message = ProgressMessage(text)
        self.add_step(message)
        return message

    def _check_appendable(self, what: str) -> None:
        if not self._state.accepts_steps:
            raise CollectionStateError(
                f"Cannot add {what} to collection '{self.name}' "
                f"in state '{self._state.value}'"
            )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def run(self) -> CollectionResult:
        """
        Run all pending main steps, then every completion step.

        Returns:
            Aggregate result over all main and completion steps

        Raises:
            CollectionStateError: If the collection is running or already complete
        """
        self._begin("run")

        self._run_main_steps()
        self._run_completion_steps()

        self._state = CollectionState.FAILED if self._main_failed else CollectionState.COMPLETED

        result = CollectionResult.aggregate(
            self._results_of(self._step_records),
            self._results_of(self._completion_records),
            self._skipped_descriptions(),
        )

        logger.info(
            f"Collection '{self.name}' finished with state {self._state.value}"
            + ("" if result.success else f": {result.step_description}: {result.error_message}")
        )
        self._emit("collection_finished", self, result)
        return result

    def run_without_completion(self) -> CollectionResult:
        """
        Run all pending main steps but defer the completion steps.

        The collection ends up partially run: more steps may be appended and
        a later run() executes them followed by the completion steps.

        Returns:
            Aggregate result over the main steps only

        Raises:
            CollectionStateError: If the collection is running or already complete
        """
        self._begin("run_without_completion")

        self._run_main_steps()
        self._state = CollectionState.PARTIALLY_RUN

        logger.info(
            f"Collection '{self.name}' partially run "
            f"({len(self._completions)} completion steps deferred)"
        )
        return CollectionResult.aggregate(
            self._results_of(self._step_records),
            skipped_steps=self._skipped_descriptions(),
        )

    def _begin(self, entry_point: str) -> None:
        if self._state.is_terminal:
            raise CollectionStateError(
                f"Cannot call {entry_point}() on collection '{self.name}': "
                f"it already finished ({self._state.value})"
            )
        if self._state == CollectionState.RUNNING:
            raise CollectionStateError(
                f"Cannot call {entry_point}() on collection '{self.name}' while it is running"
            )
        self._state = CollectionState.RUNNING

    def _run_main_steps(self) -> None:
        """Execute main steps not attempted yet; skip everything after a failure."""
        while self._next_step < len(self._steps):
            index = self._next_step
            self._next_step += 1

            task = self._steps[index]
            record = self._step_records[index]

            if self._main_failed:
                record.skip()
                logger.debug(f"Skipping step {record.description!r} after earlier failure")
                continue

            result = self._execute(task, record)
            if not result.success:
                self._main_failed = True
                logger.warning(
                    f"Step {record.description!r} failed in collection '{self.name}': "
                    f"{result.error_message}"
                )

    def _run_completion_steps(self) -> None:
        """Execute every completion step once; failures do not stop the others."""
        for task, record in zip(self._completions, self._completion_records):
            result = self._execute(task, record)
            if not result.success:
                logger.warning(
                    f"Completion step {record.description!r} failed in collection "
                    f"'{self.name}': {result.error_message}"
                )
            self._emit("completion_finished", task, result)

    def _execute(self, task: Task, record: StepRecord) -> Result:
        """Run a single task, turning anything it raises into a failed result."""
        record.start()
        self._emit("step_started", task, record)

        try:
            result = task.execute()
            if not isinstance(result, Result):
                raise TypeError(
                    f"{task!r}.execute() returned {type(result).__name__}, expected Result"
                )
        except Exception as e:
            logger.error(
                f"Error executing step {record.description!r} in collection '{self.name}': {e}\n"
                f"{traceback.format_exc()}"
            )
            result = Result.failure(
                str(e) or e.__class__.__name__,
                error_traceback=traceback.format_exc(),
            )

        result = record.finish(result.with_step(record.description))
        self._emit("step_finished", task, result)
        return result

    def _results_of(self, records: list[StepRecord]) -> list[Result]:
        return [r.result for r in records if r.result is not None]

    def _skipped_descriptions(self) -> list[str]:
        return [r.description for r in self._step_records if r.status == StepStatus.SKIPPED]

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Register an event callback."""
        if event not in self._callbacks:
            raise ValueError(f"Unknown collection event '{event}'")
        self._callbacks[event].append(callback)

    def off(self, event: str, callback: Callable) -> None:
        """Unregister an event callback."""
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _emit(self, event: str, *args) -> None:
        """Emit an event to all registered callbacks."""
        for callback in self._callbacks.get(event, []):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in callback for event '{event}': {e}")

    def __len__(self) -> int:
        return len(self._steps) + len(self._completions)

    def __bool__(self) -> bool:
        # An empty collection is still a collection
        return True

    def __repr__(self) -> str:
        return (
            f"<Collection {self.name!r} state={self._state.value} "
            f"steps={len(self._steps)} completions={len(self._completions)}>"
        )
