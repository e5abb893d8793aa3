"""Filesystem tasks - queued file operations and temporary directories."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)


class FilesystemStack(Task):
    """
    Queues filesystem operations and runs them in order.

    The first operation that raises an OSError stops the stack and becomes
    the failure. Removing a path that does not exist is not an error, so a
    stack of removals is safe to use as a completion step.

    Example:
        FilesystemStack().copy("CHANGELOG.md", "docs/changelog.md").add_to_collection(c)
        FilesystemStack().remove("docs/changelog.md").add_as_completion(c)
    """

    def __init__(self):
        self._operations: list[tuple[str, Callable[[], None]]] = []

    # -------------------------------------------------------------------------
    # Builder
    # -------------------------------------------------------------------------

    def copy(self, source: str | os.PathLike, dest: str | os.PathLike) -> "FilesystemStack":
        """Copy a file or directory tree, overwriting the destination."""
        source, dest = Path(source), Path(dest)
        self._operations.append((f"copy {source} -> {dest}", lambda: self._copy(source, dest)))
        return self

    def rename(
        self,
        source: str | os.PathLike,
        dest: str | os.PathLike,
        force: bool = False,
    ) -> "FilesystemStack":
        """Move/rename a path; refuses to replace an existing destination unless forced."""
        source, dest = Path(source), Path(dest)
        self._operations.append(
            (f"rename {source} -> {dest}", lambda: self._rename(source, dest, force))
        )
        return self

    def remove(self, *paths: str | os.PathLike) -> "FilesystemStack":
        """Remove files or directory trees."""
        for path in map(Path, paths):
            self._operations.append((f"remove {path}", lambda p=path: self._remove(p)))
        return self

    def mkdir(self, path: str | os.PathLike) -> "FilesystemStack":
        """Create a directory and its parents."""
        path = Path(path)
        self._operations.append(
            (f"mkdir {path}", lambda: path.mkdir(parents=True, exist_ok=True))
        )
        return self

    def touch(self, path: str | os.PathLike) -> "FilesystemStack":
        """Create an empty file (or update its timestamp)."""
        path = Path(path)
        self._operations.append((f"touch {path}", lambda: self._touch(path)))
        return self

    @property
    def operations(self) -> list[str]:
        return [name for name, _ in self._operations]

    def get_description(self) -> str:
        if self.description:
            return self.description
        if not self._operations:
            return "Filesystem: (nothing queued)"
        return "Filesystem: " + "; ".join(self.operations)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self) -> Result:
        for name, operation in self._operations:
            try:
                operation()
            except OSError as e:
                logger.error(f"Filesystem operation failed: {name}: {e}")
                return Result.failure(f"{name} failed: {e}")

        return Result.ok(f"{len(self._operations)} filesystem operations")

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    @staticmethod
    def _copy(source: Path, dest: Path) -> None:
        if not source.exists():
            raise FileNotFoundError(f"Source not found: {source}")

        dest.parent.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            shutil.copytree(source, dest, dirs_exist_ok=True)
        else:
            shutil.copy2(source, dest)
        logger.debug(f"Copied: {source} -> {dest}")

    @staticmethod
    def _rename(source: Path, dest: Path, force: bool) -> None:
        if not source.exists():
            raise FileNotFoundError(f"Source not found: {source}")

        if dest.exists():
            if not force:
                raise FileExistsError(f"Destination already exists: {dest}")
            FilesystemStack._remove(dest)

        dest.parent.mkdir(parents=True, exist_ok=True)
        source.rename(dest)
        logger.debug(f"Moved: {source} -> {dest}")

    @staticmethod
    def _remove(path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            return
        logger.debug(f"Removed: {path}")

    @staticmethod
    def _touch(path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()


class TmpDirTask(Task):
    """
    Provides a temporary directory for the rest of a collection.

    The path is chosen when the task is built, so later steps can refer to
    it before anything exists on disk; the directory itself is created when
    the task runs. Adding the task to a collection also schedules deletion
    of the directory as a completion step.
    """

    def __init__(self, prefix: str = "taskstack-", base: Optional[str | os.PathLike] = None):
        base_dir = Path(base) if base is not None else Path(tempfile.gettempdir())
        self._path = base_dir / f"{prefix}{uuid4().hex[:12]}"

    @property
    def path(self) -> Path:
        return self._path

    def get_description(self) -> str:
        return self.description or f"Create temporary directory {self._path}"

    def execute(self) -> Result:
        try:
            self._path.mkdir(parents=True)
        except OSError as e:
            return Result.failure(f"Could not create temporary directory {self._path}: {e}")

        logger.debug(f"Created temporary directory: {self._path}")
        return Result.ok(output_data={"path": str(self._path)})

    def cleanup_task(self) -> FilesystemStack:
        """The completion step that deletes the directory."""
        cleanup = FilesystemStack().remove(self._path)
        cleanup.description = f"Delete temporary directory {self._path}"
        return cleanup

    def add_to_collection(self, collection) -> "TmpDirTask":
        collection.add_step(self)
        collection.add_completion_step(self.cleanup_task())
        return self
