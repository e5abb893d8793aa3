"""Base Task class - the step interface consumed by collections."""

from abc import ABC, abstractmethod
from typing import Optional, Any, Callable, TYPE_CHECKING
import logging

from ..models import Result

if TYPE_CHECKING:
    from ..engine.collection import Collection

logger = logging.getLogger(__name__)


class Task(ABC):
    """
    Base class for every unit of work a collection can run.

    A task wraps one external operation (a process, a git command stack, a
    filesystem change...) and reports the outcome as a Result. Operational
    failures are returned, not raised, so that a collection can always run
    its completion steps afterwards.

    Each task must implement:
    - execute(): perform the operation and return a Result

    Builders are fluent, so a task is usually configured and attached in a
    single expression:

        GitStack().checkout("site").merge("main").add_to_collection(collection)
        GitStack().checkout(branch).add_as_completion(collection)
    """

    description: str = ""
    """Human-readable description used in progress output."""

    is_completion: bool = False
    """Whether Collection.add() should route this task to the completion sequence."""

    @abstractmethod
    def execute(self) -> Result:
        """
        Perform the operation.

        Returns:
            Result describing the outcome
        """
        pass

    def get_description(self) -> str:
        """Get the description, falling back to the class name."""
        return self.description or self.__class__.__name__

    def add_to_collection(self, collection: "Collection") -> "Task":
        """Append this task to the main sequence of ``collection``."""
        collection.add_step(self)
        return self

    def add_as_completion(self, collection: "Collection") -> "Task":
        """Append this task to the completion sequence of ``collection``."""
        collection.add_completion_step(self)
        return self

    def run(self) -> Result:
        """
        Run this task on its own.

        The task is placed in a fresh collection, so any completion work it
        registers (see TmpDirTask) still runs before this returns.
        """
        from ..engine.collection import Collection

        collection = Collection(name=self.get_description())
        self.add_to_collection(collection)
        return collection.run()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.get_description()!r}>"


class CallableTask(Task):
    """
    Adapts a plain callable into a task.

    The callable may return a Result, ``False`` (failure) or anything else
    (success).
    """

    def __init__(
        self,
        description: str,
        fn: Callable[[], Any],
        is_completion: bool = False,
    ):
        self.description = description
        self.fn = fn
        self.is_completion = is_completion

    def execute(self) -> Result:
        outcome = self.fn()
        if isinstance(outcome, Result):
            return outcome
        if outcome is False:
            return Result.failure(f"{self.description} reported failure")
        return Result.ok()


class ProgressMessage(Task):
    """Prints a line of progress between steps; never fails."""

    def __init__(self, text: str, printer: Optional[Callable[[str], None]] = None):
        self.text = text
        self.description = f"Progress: {text}"
        self._printer = printer or print

    def execute(self) -> Result:
        logger.info(self.text)
        self._printer(f"➜  {self.text}")
        return Result.ok(self.text)
