"""Documentation generator task."""

import inspect
import os
from pathlib import Path
from typing import Optional
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)

# Inherited plumbing that is not part of a task's builder API
_SKIPPED_METHODS = {"execute", "run", "get_description", "add_to_collection", "add_as_completion"}


def _first_line(doc: Optional[str]) -> str:
    doc = inspect.cleandoc(doc or "")
    return doc.split("\n", 1)[0].strip()


def _summary(doc: Optional[str]) -> str:
    """First paragraph of a docstring."""
    doc = inspect.cleandoc(doc or "")
    return doc.split("\n\n", 1)[0].strip()


class GenerateDocsTask(Task):
    """
    Writes a markdown page documenting task classes.

    Each class gets a section with its docstring summary and one bullet per
    public builder method.

    Example:
        GenerateDocsTask("docs/tasks/process.md").prepend("# Process Tasks") \\
            .doc_class(ExecTask).doc_class(ParallelExecTask).run()
    """

    def __init__(self, target: str | os.PathLike):
        self.target = Path(target)
        self._classes: list[type] = []
        self._header: list[str] = []

    def doc_class(self, cls: type) -> "GenerateDocsTask":
        self._classes.append(cls)
        return self

    def prepend(self, text: str) -> "GenerateDocsTask":
        """Add text above the class sections."""
        self._header.append(text)
        return self

    def get_description(self) -> str:
        return self.description or f"Generate {self.target}"

    def render(self) -> str:
        parts = list(self._header)
        for cls in self._classes:
            parts.append(self._render_class(cls))
        return "\n\n".join(parts).rstrip() + "\n"

    def _render_class(self, cls: type) -> str:
        title = cls.__name__
        if title.endswith("Task") and title != "Task":
            title = title[: -len("Task")]

        lines = [f"## {title}", ""]
        summary = _summary(cls.__doc__)
        if summary:
            lines += [summary, ""]

        for name, member in inspect.getmembers(cls, inspect.isfunction):
            if name.startswith("_") or name in _SKIPPED_METHODS:
                continue
            signature = str(inspect.signature(member)).replace("(self, ", "(").replace("(self)", "()")
            doc = _first_line(member.__doc__)
            lines.append(f"* `{name}{signature}`" + (f" {doc}" if doc else ""))

        return "\n".join(lines)

    def execute(self) -> Result:
        if not self._classes:
            return Result.failure(f"No classes to document in {self.target}")

        try:
            self.target.parent.mkdir(parents=True, exist_ok=True)
            self.target.write_text(self.render(), encoding="utf-8")
        except OSError as e:
            return Result.failure(f"Could not write {self.target}: {e}")

        logger.info(f"Documented {len(self._classes)} classes in {self.target}")
        return Result.ok(output_data={"path": str(self.target), "classes": len(self._classes)})
