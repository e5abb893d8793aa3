"""File content tasks - writing files and replacing text in them."""

import os
from pathlib import Path
from typing import Optional
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)


class WriteToFileTask(Task):
    """
    Writes text to a file, creating parent directories as needed.

    Example:
        WriteToFileTask(tmp.path / "file.txt").line("first").line("second").run()
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._chunks: list[str] = []
        self._append = False

    def line(self, text: str) -> "WriteToFileTask":
        """Add a line (a newline is appended)."""
        self._chunks.append(f"{text}\n")
        return self

    def lines(self, lines: list[str]) -> "WriteToFileTask":
        for text in lines:
            self.line(text)
        return self

    def text(self, text: str) -> "WriteToFileTask":
        """Add raw text."""
        self._chunks.append(text)
        return self

    def append(self, flag: bool = True) -> "WriteToFileTask":
        """Append to the file instead of replacing its contents."""
        self._append = flag
        return self

    @property
    def content(self) -> str:
        return "".join(self._chunks)

    def get_description(self) -> str:
        verb = "Append to" if self._append else "Write"
        return self.description or f"{verb} {self.path}"

    def execute(self) -> Result:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a" if self._append else "w", encoding="utf-8") as f:
                f.write(self.content)
        except OSError as e:
            logger.error(f"Could not write {self.path}: {e}")
            return Result.failure(f"Could not write {self.path}: {e}")

        logger.debug(f"Wrote {len(self.content)} characters to {self.path}")
        return Result.ok(output_data={"path": str(self.path)})


class ReplaceInFileTask(Task):
    """Replaces every occurrence of a text in a file; fails if it is absent."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._from: Optional[str] = None
        self._to = ""

    def from_text(self, text: str) -> "ReplaceInFileTask":
        self._from = text
        return self

    def to_text(self, text: str) -> "ReplaceInFileTask":
        self._to = text
        return self

    def get_description(self) -> str:
        return self.description or f"Replace {self._from!r} with {self._to!r} in {self.path}"

    def execute(self) -> Result:
        if not self._from:
            return Result.failure("No search text given")

        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            return Result.failure(f"Could not read {self.path}: {e}")

        count = content.count(self._from)
        if count == 0:
            return Result.failure(f"{self._from!r} not found in {self.path}")

        try:
            self.path.write_text(content.replace(self._from, self._to), encoding="utf-8")
        except OSError as e:
            return Result.failure(f"Could not write {self.path}: {e}")

        return Result.ok(f"Replaced {count} occurrences", output_data={"replacements": count})
