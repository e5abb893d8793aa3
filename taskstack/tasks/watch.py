"""Watch task - runs callbacks when files change."""

import fnmatch
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional
import logging

from watchfiles import watch, Change

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)


class FileChange(str, Enum):
    """Kind of change reported to a watch callback."""
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


_CHANGE_MAP = {
    Change.added: FileChange.CREATED,
    Change.modified: FileChange.MODIFIED,
    Change.deleted: FileChange.DELETED,
}

DEFAULT_IGNORE_PATTERNS = [
    "*.tmp",
    "*.swp",
    "*~",
    ".DS_Store",
    "__pycache__",
    "*.pyc",
    ".git/*",
]


@dataclass
class Monitor:
    """A set of paths and the callback to run when any of them change."""
    paths: list[Path]
    callback: Callable[[list[tuple[FileChange, Path]]], None]
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))

    def covers(self, path: Path) -> bool:
        """Check whether a changed path belongs to this monitor."""
        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(str(path), pattern):
                return False

        for root in self.paths:
            if path == root or root in path.parents:
                return True
        return False


class WatchTask(Task):
    """
    Blocks, running callbacks for every batch of file changes.

    Each monitor receives the changes under its own paths as a list of
    (FileChange, Path) pairs. A callback that raises is logged and the watch
    keeps going. The task finishes when the stop event is set, after
    ``limit`` batches, or on Ctrl+C.

    Example:
        WatchTask().monitor(["src"], lambda changes: run_tests()).run()
    """

    def __init__(self):
        self._monitors: list[Monitor] = []
        self._limit: Optional[int] = None
        self._stop_event: Optional[threading.Event] = None
        self._debounce_ms = 1600

    def monitor(
        self,
        paths: str | os.PathLike | list[str | os.PathLike],
        callback: Callable[[list[tuple[FileChange, Path]]], None],
        ignore_patterns: Optional[list[str]] = None,
    ) -> "WatchTask":
        """Watch ``paths`` (a path or list of paths) and call ``callback`` on changes."""
        if isinstance(paths, (str, os.PathLike)):
            paths = [paths]
        monitor = Monitor(paths=[Path(p).resolve() for p in paths], callback=callback)
        if ignore_patterns is not None:
            monitor.ignore_patterns = list(ignore_patterns)
        self._monitors.append(monitor)
        return self

    def limit(self, batches: Optional[int]) -> "WatchTask":
        """Stop after this many change batches."""
        self._limit = batches
        return self

    def stop_event(self, event: threading.Event) -> "WatchTask":
        """Stop when ``event`` is set."""
        self._stop_event = event
        return self

    def debounce(self, milliseconds: int) -> "WatchTask":
        self._debounce_ms = milliseconds
        return self

    @property
    def paths(self) -> list[Path]:
        return [p for m in self._monitors for p in m.paths]

    def get_description(self) -> str:
        if self.description:
            return self.description
        return "Watch: " + ", ".join(str(p) for p in self.paths)

    def execute(self) -> Result:
        if not self._monitors:
            return Result.failure("Nothing to watch")

        missing = [p for p in self.paths if not p.exists()]
        if missing:
            return Result.failure(
                "Cannot watch missing paths: " + ", ".join(str(p) for p in missing)
            )

        logger.info(f"Watching {len(self.paths)} paths")
        batches = 0
        for changes in watch(
            *self.paths,
            debounce=self._debounce_ms,
            stop_event=self._stop_event,
            raise_interrupt=False,
        ):
            batches += 1
            self._dispatch(changes)

            if self._limit is not None and batches >= self._limit:
                break

        logger.info(f"Watch finished after {batches} change batches")
        return Result.ok(f"{batches} change batches", output_data={"batches": batches})

    def _dispatch(self, changes: set[tuple[Change, str]]) -> None:
        """Route a batch of raw changes to the monitors that cover them."""
        events = [
            (_CHANGE_MAP[change], Path(path_str))
            for change, path_str in sorted(changes, key=lambda c: c[1])
            if change in _CHANGE_MAP
        ]

        for monitor in self._monitors:
            matched = [(kind, path) for kind, path in events if monitor.covers(path)]
            if not matched:
                continue

            logger.debug(f"Dispatching {len(matched)} changes to {monitor.callback!r}")
            try:
                monitor.callback(matched)
            except Exception as e:
                logger.error(f"Error in watch callback: {e}", exc_info=True)
