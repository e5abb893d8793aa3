"""Git command stack."""

import os
import subprocess
from pathlib import Path
from typing import Optional
import logging

from ..models import Result
from .base import Task
from .process import ExecTask

logger = logging.getLogger(__name__)


def current_branch(cwd: str | os.PathLike | None = None, git: str = "git") -> str:
    """
    Read the currently checked-out branch.

    Call this while building a collection so the branch to restore is
    captured as data, not looked up again during cleanup.

    Raises:
        RuntimeError: If git cannot determine the branch
    """
    try:
        proc = subprocess.run(
            [git, "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=cwd,
            text=True,
            capture_output=True,
        )
    except OSError as e:
        raise RuntimeError(f"Cannot run {git}: {e}") from e

    if proc.returncode != 0:
        raise RuntimeError(f"Cannot determine current branch: {proc.stderr.strip()}")
    return proc.stdout.strip()


class GitStack(Task):
    """
    Queues git commands and runs them in order, stopping at the first failure.

    Example:
        GitStack().add("-A").commit("auto-update").pull().push().run()
    """

    def __init__(self, git: str = "git"):
        self._git = git
        self._commands: list[list[str]] = []
        self._cwd: Optional[Path] = None
        self._printed = True

    # -------------------------------------------------------------------------
    # Builder
    # -------------------------------------------------------------------------

    def exec(self, *args: str) -> "GitStack":
        """Queue an arbitrary git sub-command."""
        self._commands.append([self._git, *(str(a) for a in args)])
        return self

    def add(self, pathspec: str) -> "GitStack":
        return self.exec("add", pathspec)

    def commit(self, message: str, *options: str) -> "GitStack":
        return self.exec("commit", *options, "-m", message)

    def pull(self, origin: str = "", branch: str = "") -> "GitStack":
        return self.exec("pull", *[a for a in (origin, branch) if a])

    def push(self, origin: str = "", branch: str = "") -> "GitStack":
        return self.exec("push", *[a for a in (origin, branch) if a])

    def checkout(self, branch: str) -> "GitStack":
        return self.exec("checkout", branch)

    def merge(self, branch: str) -> "GitStack":
        return self.exec("merge", branch)

    def tag(self, name: str, message: str = "") -> "GitStack":
        if message:
            return self.exec("tag", "-a", name, "-m", message)
        return self.exec("tag", name)

    def dir(self, cwd: str | os.PathLike) -> "GitStack":
        self._cwd = Path(cwd)
        return self

    def printed(self, flag: bool = True) -> "GitStack":
        self._printed = flag
        return self

    @property
    def commands(self) -> list[list[str]]:
        return [list(c) for c in self._commands]

    def get_description(self) -> str:
        if self.description:
            return self.description
        summary = "; ".join(" ".join(c[1:]) for c in self._commands)
        return f"Git: {summary}" if summary else "Git: (nothing queued)"

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self) -> Result:
        outputs = []
        for args in self._commands:
            task = ExecTask(args).printed(self._printed)
            if self._cwd:
                task.dir(self._cwd)

            result = task.execute()
            outputs.append(result.output_data)
            if not result.success:
                return result.model_copy(update={"output_data": {"commands": outputs}})

        return Result.ok(
            f"Ran {len(self._commands)} git commands",
            exit_code=0,
            output_data={"commands": outputs},
        )
