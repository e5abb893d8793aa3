"""Tests for the task collection engine."""

import tempfile

import pytest

from taskstack.engine import Collection, CollectionStateError
from taskstack.models import CollectionState, Result, StepStatus
from taskstack.tasks import Task, CallableTask, ProgressMessage, TmpDirTask


# -------------------------------------------------------------------------
# Test Tasks
# -------------------------------------------------------------------------

class RecordingTask(Task):
    """Appends its name to a shared trace when it runs."""

    def __init__(self, name: str, trace: list, succeed: bool = True, is_completion: bool = False):
        self.description = name
        self.trace = trace
        self.succeed = succeed
        self.is_completion = is_completion

    def execute(self) -> Result:
        self.trace.append(self.description)
        if self.succeed:
            return Result.ok()
        return Result.failure(f"{self.description} failed", exit_code=5)


class RaisingTask(Task):
    description = "raiser"

    def execute(self) -> Result:
        raise ValueError("exploded")


class NotAResultTask(Task):
    description = "bad return"

    def execute(self):
        return "done"


@pytest.fixture
def trace():
    return []


def build(trace, main, completions=()):
    """Build a collection from (name, succeed) pairs."""
    collection = Collection()
    for name, succeed in main:
        collection.add_step(RecordingTask(name, trace, succeed))
    for name, succeed in completions:
        collection.add_completion_step(RecordingTask(name, trace, succeed))
    return collection


class TestShortCircuit:
    """Main steps stop at the first failure."""

    @pytest.mark.parametrize("failing", [0, 1, 2, 3])
    def test_steps_after_failure_never_run(self, trace, failing):
        """Test that steps after the first failure are skipped."""
        names = ["s0", "s1", "s2", "s3"]
        collection = build(trace, [(n, i != failing) for i, n in enumerate(names)])

        result = collection.run()

        assert trace == names[: failing + 1]
        assert not result.success
        assert result.step_description == names[failing]
        assert result.skipped_steps == names[failing + 1:]
        assert collection.state == CollectionState.FAILED

    def test_all_succeed(self, trace):
        """Test a fully successful run."""
        collection = build(trace, [("a", True), ("b", True)], [("x", True)])

        result = collection.run()

        assert result.success
        assert trace == ["a", "b", "x"]
        assert collection.state == CollectionState.COMPLETED

    def test_failure_carries_exit_code(self, trace):
        """Test that the aggregate keeps the failing step's exit code."""
        result = build(trace, [("a", False)]).run()

        assert result.exit_code == 5
        assert result.error_message == "a failed"


class TestCompletionSteps:
    """Completion steps always run, exactly once."""

    @pytest.mark.parametrize("main", [[], [("a", True)], [("a", False), ("b", True)]])
    def test_completions_run_whatever_the_outcome(self, trace, main):
        """Test completions run after success, failure or an empty main sequence."""
        collection = build(trace, main, [("x", True), ("y", True), ("z", True)])

        collection.run()

        assert trace[-3:] == ["x", "y", "z"]
        assert trace.count("x") == 1

    def test_failing_completion_does_not_stop_others(self, trace):
        """Test isolation of completion failures."""
        collection = build(trace, [("a", True)], [("x", True), ("y", False), ("z", True)])

        result = collection.run()

        assert trace == ["a", "x", "y", "z"]
        assert not result.success
        assert result.step_description == "y"
        assert len(result.completion_results) == 3

    def test_completion_failure_keeps_completed_state(self, trace):
        """Test that the state reflects the main sequence only."""
        collection = build(trace, [("a", True)], [("x", False)])

        result = collection.run()

        assert collection.state == CollectionState.COMPLETED
        assert not result.success

    def test_main_failure_reported_over_completion_failure(self, trace):
        """Test which failure the aggregate reports."""
        collection = build(trace, [("a", False)], [("x", False)])

        result = collection.run()

        assert result.step_description == "a"
        assert result.failed_step.step_description == "a"
        assert len(result.completion_failures) == 1

    def test_raising_completion_still_lets_others_run(self, trace):
        """Test that an exception in a completion step is contained."""
        collection = Collection()
        collection.add_completion_step(RaisingTask())
        collection.add_completion_step(RecordingTask("after", trace))

        result = collection.run()

        assert trace == ["after"]
        assert result.error_message == "exploded"

    def test_add_routes_by_flag(self, trace):
        """Test that add() follows is_completion."""
        collection = Collection()
        collection.add(RecordingTask("cleanup", trace, is_completion=True))
        collection.add(RecordingTask("work", trace))

        collection.run()

        assert trace == ["work", "cleanup"]
        assert len(collection.steps) == 1
        assert len(collection.completion_steps) == 1

    def test_add_registers_task_cleanup(self):
        """Test that add() lets a temporary directory schedule its deletion."""
        with tempfile.TemporaryDirectory() as base:
            collection = Collection()
            tmp = TmpDirTask(base=base)
            collection.add(tmp)

            collection.run_without_completion()
            assert tmp.path.is_dir()

            result = collection.run()

            assert result.success
            assert len(collection.completion_steps) == 1
            assert not tmp.path.exists()


class TestScenarios:
    """End-to-end traces."""

    def test_failure_in_the_middle(self, trace):
        """Test [A ok, B fail, C ok] with completions [X, Y]."""
        collection = build(
            trace,
            [("A", True), ("B", False), ("C", True)],
            [("X", True), ("Y", True)],
        )

        result = collection.run()

        assert trace == ["A", "B", "X", "Y"]
        assert not result.success
        assert result.step_description == "B"
        assert result.skipped_steps == ["C"]

        statuses = [r.status for r in collection.records]
        assert statuses == [
            StepStatus.COMPLETED,
            StepStatus.FAILED,
            StepStatus.SKIPPED,
            StepStatus.COMPLETED,
            StepStatus.COMPLETED,
        ]

    def test_partial_run_then_append(self, trace):
        """Test [A] partially run, D appended, then completed with [X]."""
        collection = build(trace, [("A", True)], [("X", True)])

        partial = collection.run_without_completion()
        assert partial.success
        assert trace == ["A"]
        assert collection.state == CollectionState.PARTIALLY_RUN

        collection.add_step(RecordingTask("D", trace))
        result = collection.run()

        assert trace == ["A", "D", "X"]
        assert result.success
        assert collection.state == CollectionState.COMPLETED

    def test_partial_run_then_append_failing(self, trace):
        """Test that the aggregate fails when the appended step fails."""
        collection = build(trace, [("A", True)], [("X", True)])
        collection.run_without_completion()
        collection.add_step(RecordingTask("D", trace, succeed=False))

        result = collection.run()

        assert trace == ["A", "D", "X"]
        assert not result.success
        assert result.step_description == "D"


class TestPartialRun:
    """Deferred completion."""

    def test_nothing_appended_runs_only_completions(self, trace):
        """Test that main steps are not re-executed."""
        collection = build(trace, [("A", True), ("B", True)], [("X", True)])

        collection.run_without_completion()
        collection.run()

        assert trace == ["A", "B", "X"]

    def test_partial_result_excludes_completions(self, trace):
        """Test the partial aggregate covers main steps only."""
        collection = build(trace, [("A", True)], [("X", False)])

        partial = collection.run_without_completion()

        assert partial.success
        assert partial.completion_results == []

    def test_partial_failure_skips_appended_steps(self, trace):
        """Test that steps appended after a failed partial run never run."""
        collection = build(trace, [("A", False)], [("X", True)])

        partial = collection.run_without_completion()
        assert not partial.success
        assert collection.state == CollectionState.PARTIALLY_RUN

        collection.add_step(RecordingTask("D", trace))
        result = collection.run()

        assert trace == ["A", "X"]
        assert result.step_description == "A"
        assert result.skipped_steps == ["D"]
        assert collection.state == CollectionState.FAILED

    def test_completion_appended_after_partial_run(self, trace):
        """Test completions may still be added while partially run."""
        collection = build(trace, [("A", True)])
        collection.run_without_completion()

        collection.add_completion_step(RecordingTask("X", trace))
        collection.run()

        assert trace == ["A", "X"]

    def test_repeated_partial_runs(self, trace):
        """Test alternating partial runs never repeat a step."""
        collection = build(trace, [("A", True)], [("X", True)])

        collection.run_without_completion()
        collection.add_step(RecordingTask("B", trace))
        collection.run_without_completion()
        collection.run()

        assert trace == ["A", "B", "X"]

    def test_abandoned_partial_run_never_completes(self, trace):
        """Test that dropping a partially run collection triggers nothing."""
        collection = build(trace, [("A", True)], [("X", True)])
        collection.run_without_completion()

        del collection

        assert trace == ["A"]


class TestStateErrors:
    """Misuse of the state machine raises."""

    @pytest.mark.parametrize("succeed", [True, False])
    def test_append_after_terminal_state(self, trace, succeed):
        """Test that appending after run() raises and changes nothing."""
        collection = build(trace, [("A", succeed)], [("X", True)])
        collection.run()
        steps_before = collection.steps
        completions_before = collection.completion_steps

        with pytest.raises(CollectionStateError):
            collection.add_step(RecordingTask("late", trace))
        with pytest.raises(CollectionStateError):
            collection.add_completion_step(RecordingTask("late", trace))

        assert collection.steps == steps_before
        assert collection.completion_steps == completions_before
        assert len(collection.records) == 2

    def test_run_twice(self, trace):
        """Test that a finished collection cannot run again."""
        collection = build(trace, [("A", True)], [("X", True)])
        collection.run()

        with pytest.raises(CollectionStateError):
            collection.run()
        with pytest.raises(CollectionStateError):
            collection.run_without_completion()

        assert trace == ["A", "X"]

    def test_reentrant_run_fails_the_step(self, trace):
        """Test that a step calling run() on its own collection fails."""
        collection = Collection()
        collection.add_step(CallableTask("reenter", lambda: collection.run()))
        collection.add_completion_step(RecordingTask("X", trace))

        result = collection.run()

        assert not result.success
        assert "while it is running" in result.error_message
        assert trace == ["X"]

    def test_append_while_running(self, trace):
        """Test that a step cannot grow its own collection."""
        collection = Collection()
        collection.add_step(
            CallableTask("grow", lambda: collection.add_step(RecordingTask("new", trace)))
        )

        result = collection.run()

        assert not result.success
        assert result.error_message.startswith("Cannot add a step")
        assert len(collection.steps) == 1
        assert trace == []

    def test_state_error_is_runtime_error(self):
        assert issubclass(CollectionStateError, RuntimeError)


class TestStepErrors:
    """Exceptions inside steps become failed results."""

    def test_raising_step_becomes_failure(self, trace):
        """Test exception conversion."""
        collection = Collection()
        collection.add_step(RaisingTask())
        collection.add_step(RecordingTask("next", trace))

        result = collection.run()

        assert not result.success
        assert result.error_message == "exploded"
        assert result.step_description == "raiser"
        assert "ValueError" in result.error_traceback
        assert trace == []

    def test_non_result_return_is_failure(self):
        """Test that returning something else than a Result fails the step."""
        collection = Collection()
        collection.add_step(NotAResultTask())

        result = collection.run()

        assert not result.success
        assert "expected Result" in result.error_message


class TestHelpers:
    """Progress messages, callable tasks, queries and callbacks."""

    def test_progress_message(self, trace):
        """Test that progress messages print and never fail."""
        printed = []
        collection = Collection()
        message = collection.progress_message("Working")
        message._printer = printed.append

        result = collection.run()

        assert result.success
        assert printed == ["➜  Working"]
        assert isinstance(collection.steps[0], ProgressMessage)

    def test_callable_task_returns(self):
        """Test the CallableTask return value mapping."""
        assert CallableTask("none", lambda: None).execute().success
        assert not CallableTask("false", lambda: False).execute().success
        assert CallableTask("result", lambda: Result.ok("x")).execute().message == "x"

    def test_results_in_execution_order(self, trace):
        """Test the results query."""
        collection = build(trace, [("A", True), ("B", True)], [("X", True)])
        collection.run()

        assert [r.step_description for r in collection.results] == ["A", "B", "X"]

    def test_task_run_standalone(self, trace):
        """Test running a task without building a collection."""
        result = RecordingTask("solo", trace).run()

        assert result.success
        assert trace == ["solo"]

    def test_fluent_helpers_return_task(self, trace):
        """Test add_to_collection / add_as_completion chaining."""
        collection = Collection()
        task = RecordingTask("a", trace)

        assert task.add_to_collection(collection) is task
        assert RecordingTask("x", trace).add_as_completion(collection).description == "x"
        assert len(collection) == 2

    def test_callbacks(self, trace):
        """Test event callbacks fire in order."""
        events = []
        collection = build(trace, [("A", True)], [("X", True)])
        collection.on("step_started", lambda task, record: events.append(("start", task.description)))
        collection.on("completion_finished", lambda task, result: events.append(("done", task.description)))
        collection.on("collection_finished", lambda c, result: events.append(("end", result.success)))

        collection.run()

        assert events == [("start", "A"), ("start", "X"), ("done", "X"), ("end", True)]

    def test_failing_callback_is_ignored(self, trace):
        """Test that callback errors do not change the outcome."""
        collection = build(trace, [("A", True)])

        def broken(*args):
            raise RuntimeError("callback broke")

        collection.on("step_finished", broken)
        result = collection.run()

        assert result.success
        assert trace == ["A"]

    def test_off_and_unknown_event(self, trace):
        """Test unregistering callbacks and rejecting unknown events."""
        events = []
        collection = build(trace, [("A", True)])
        callback = lambda task, result: events.append(task.description)
        collection.on("step_finished", callback)
        collection.off("step_finished", callback)

        with pytest.raises(ValueError):
            collection.on("nope", callback)

        collection.run()
        assert events == []


class TestNestedCollections:
    """Steps that run a collection of their own."""

    def test_failure_credited_to_outer_step(self, trace):
        """Test that the aggregate names the outer step, not the inner one."""
        inner = Collection(name="inner")
        inner.add_step(RecordingTask("inner git checkout", trace, succeed=False))

        outer = Collection(name="outer")
        outer.add_step(RecordingTask("Generate documentation", trace))
        outer.add_step(CallableTask("Publish site", inner.run))
        outer.add_step(RecordingTask("Bump version", trace))

        result = outer.run()

        assert not result.success
        assert result.step_description == "Publish site"
        assert result.error_message == "inner git checkout: inner git checkout failed"
        assert result.failed_step.output_data["inner_step"] == "inner git checkout"
        assert result.skipped_steps == ["Bump version"]
        assert trace == ["Generate documentation", "inner git checkout"]

    def test_success_credited_to_outer_step(self, trace):
        """Test attribution of a successful nested run."""
        inner = Collection(name="inner")
        inner.add_step(RecordingTask("inner", trace))

        outer = Collection(name="outer")
        outer.add_step(CallableTask("wrapper", inner.run))
        outer.run()

        assert [r.step_description for r in outer.results] == ["wrapper"]

    def test_empty_collection_is_truthy(self):
        """Test that an empty collection is not mistaken for a missing one."""
        collection = Collection()

        assert len(collection) == 0
        assert collection
