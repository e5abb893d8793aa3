"""Changelog task."""

import os
from pathlib import Path
from typing import Optional
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)


class ChangelogTask(Task):
    """
    Adds entries to a markdown changelog under a ``## <version>`` heading.

    The heading is created (newest first, below the title) when the version
    has no section yet; the file is created when it does not exist.

    Example:
        ChangelogTask("CHANGELOG.md").version("1.2.0").change("Fixed the thing").run()
    """

    TITLE = "# Changelog"

    def __init__(self, path: str | os.PathLike = "CHANGELOG.md"):
        self.path = Path(path)
        self._version: Optional[str] = None
        self._changes: list[str] = []

    def version(self, version: str) -> "ChangelogTask":
        self._version = version
        return self

    def change(self, text: str) -> "ChangelogTask":
        """Add one entry."""
        self._changes.append(text.strip())
        return self

    def changes(self, texts: list[str]) -> "ChangelogTask":
        for text in texts:
            self.change(text)
        return self

    def get_description(self) -> str:
        return self.description or f"Update {self.path} for {self._version}"

    def execute(self) -> Result:
        if not self._version:
            return Result.failure("No changelog version given")
        if not self._changes:
            return Result.failure("No changelog entries given")

        try:
            text = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
            self.path.write_text(self.render(text), encoding="utf-8")
        except OSError as e:
            return Result.failure(f"Could not update {self.path}: {e}")

        logger.info(f"Added {len(self._changes)} entries to {self.path} under {self._version}")
        return Result.ok(output_data={"version": self._version, "changes": list(self._changes)})

    def render(self, text: str) -> str:
        """Return ``text`` with this task's entries inserted."""
        heading = f"## {self._version}"
        bullets = [f"* {change}" for change in self._changes]
        lines = text.splitlines()

        if not lines:
            lines = [self.TITLE, ""]

        if heading in lines:
            index = lines.index(heading) + 1
            # Keep the blank line after the heading
            if index < len(lines) and not lines[index].strip():
                index += 1
            lines[index:index] = bullets
        else:
            index = next(
                (i for i, line in enumerate(lines) if line.startswith("## ")),
                len(lines),
            )
            if index == len(lines) and lines[-1].strip():
                lines.append("")
                index += 1
            lines[index:index] = [heading, "", *bullets, ""]

        return "\n".join(lines).rstrip("\n") + "\n"
