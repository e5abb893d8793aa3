"""Zipapp packing task."""

import fnmatch
import os
import zipapp
from pathlib import Path
from typing import Optional
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = ["__pycache__", "*.pyc", "*.dist-info", "tests", ".git"]


class PackZipappTask(Task):
    """
    Packs a directory into an executable Python zip application.

    Example:
        PackZipappTask(staging, "taskstack.pyz").main("taskstack.cli:main").run()
    """

    def __init__(self, source: str | os.PathLike, target: str | os.PathLike):
        self.source = Path(source)
        self.target = Path(target)
        self._main: Optional[str] = None
        self._interpreter: Optional[str] = "/usr/bin/env python3"
        self._compressed = True
        self._excludes = list(DEFAULT_EXCLUDES)

    def main(self, entry_point: str) -> "PackZipappTask":
        """Set the ``package.module:function`` entry point."""
        self._main = entry_point
        return self

    def interpreter(self, interpreter: Optional[str]) -> "PackZipappTask":
        self._interpreter = interpreter
        return self

    def compressed(self, flag: bool = True) -> "PackZipappTask":
        self._compressed = flag
        return self

    def exclude(self, *patterns: str) -> "PackZipappTask":
        """Leave out files or directories whose name matches any pattern."""
        self._excludes.extend(patterns)
        return self

    def get_description(self) -> str:
        return self.description or f"Pack {self.source} into {self.target}"

    def _include(self, path: Path) -> bool:
        return not any(
            fnmatch.fnmatch(part, pattern)
            for part in path.parts
            for pattern in self._excludes
        )

    def execute(self) -> Result:
        if not self.source.is_dir():
            return Result.failure(f"Source directory not found: {self.source}")

        has_main = (self.source / "__main__.py").exists()
        if not self._main and not has_main:
            return Result.failure(f"No entry point given and no __main__.py in {self.source}")

        try:
            self.target.parent.mkdir(parents=True, exist_ok=True)
            zipapp.create_archive(
                self.source,
                target=self.target,
                interpreter=self._interpreter,
                main=None if has_main else self._main,
                filter=self._include,
                compressed=self._compressed,
            )
        except (OSError, zipapp.ZipAppError) as e:
            logger.error(f"Could not pack {self.source}: {e}")
            return Result.failure(f"Could not pack {self.source}: {e}")

        logger.info(f"Packed {self.source} into {self.target}")
        return Result.ok(output_data={"path": str(self.target)})
