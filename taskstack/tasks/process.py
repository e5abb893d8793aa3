"""Process execution tasks."""

import os
import shlex
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Mapping, Sequence
import logging

from ..models import Result
from .base import Task

logger = logging.getLogger(__name__)


def _split(command: str | Sequence[str]) -> list[str]:
    args = shlex.split(command) if isinstance(command, str) else [str(a) for a in command]
    if not args:
        raise ValueError("Cannot run an empty command")
    return args


class ExecTask(Task):
    """
    Runs one external command and reports its exit code.

    The command is never passed through a shell; a string is split with
    shlex. Captured stdout/stderr are returned in ``output_data`` and, when
    ``printed`` is on, echoed once the process exits.

    Example:
        ExecTask("mkdocs gh-deploy").dir(project_root).add_to_collection(collection)
    """

    def __init__(self, command: str | Sequence[str]):
        self._args = _split(command)
        self._cwd: Optional[Path] = None
        self._env: dict[str, str] = {}
        self._printed = True
        self._timeout: Optional[float] = None

    # -------------------------------------------------------------------------
    # Builder
    # -------------------------------------------------------------------------

    def arg(self, value: str | os.PathLike) -> "ExecTask":
        """Append a single argument."""
        self._args.append(str(value))
        return self

    def args(self, *values: str | os.PathLike) -> "ExecTask":
        """Append several arguments."""
        self._args.extend(str(v) for v in values)
        return self

    def dir(self, cwd: str | os.PathLike) -> "ExecTask":
        """Set the working directory."""
        self._cwd = Path(cwd)
        return self

    def env(self, overrides: Mapping[str, str]) -> "ExecTask":
        """Add environment variables on top of the current environment."""
        self._env.update(overrides)
        return self

    def printed(self, flag: bool = True) -> "ExecTask":
        """Echo the command's output after it runs."""
        self._printed = flag
        return self

    def timeout(self, seconds: Optional[float]) -> "ExecTask":
        """Kill the process if it runs longer than ``seconds``."""
        self._timeout = seconds
        return self

    @property
    def command(self) -> list[str]:
        return list(self._args)

    @property
    def command_str(self) -> str:
        return shlex.join(self._args)

    def get_description(self) -> str:
        return self.description or f"Exec: {self.command_str}"

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self) -> Result:
        where = f" (in {self._cwd})" if self._cwd else ""
        logger.info(f"Running {self.command_str}{where}")

        try:
            proc = subprocess.run(
                self._args,
                cwd=self._cwd,
                env={**os.environ, **self._env},
                text=True,
                capture_output=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            return Result.failure(
                f"Cannot run {self.command_str}: {e.strerror or e}",
                exit_code=127,
                output_data={"command": self.command_str},
            )
        except subprocess.TimeoutExpired:
            return Result.failure(
                f"{self.command_str} timed out after {self._timeout}s",
                exit_code=124,
                output_data={"command": self.command_str},
            )
        except OSError as e:
            return Result.failure(
                f"Cannot run {self.command_str}: {e}",
                exit_code=126,
                output_data={"command": self.command_str},
            )

        if self._printed:
            if proc.stdout.strip():
                print(proc.stdout.rstrip())
            if proc.stderr.strip():
                print(proc.stderr.rstrip(), file=sys.stderr)

        output = {
            "command": self.command_str,
            "stdout": proc.stdout,
            "stderr": proc.stderr,
        }

        if proc.returncode != 0:
            return Result.failure(
                f"{self.command_str} exited with code {proc.returncode}",
                exit_code=proc.returncode,
                output_data=output,
            )

        return Result.ok(exit_code=0, output_data=output)


class ParallelExecTask(Task):
    """
    Runs several commands at the same time and waits for all of them.

    Fails if any process fails; the error lists every failing command.
    """

    def __init__(self, max_workers: Optional[int] = None):
        self._commands: list[list[str]] = []
        self._cwd: Optional[Path] = None
        self._printed = False
        self._max_workers = max_workers

    def process(self, command: str | Sequence[str]) -> "ParallelExecTask":
        """Add a command to run."""
        self._commands.append(_split(command))
        return self

    def dir(self, cwd: str | os.PathLike) -> "ParallelExecTask":
        self._cwd = Path(cwd)
        return self

    def printed(self, flag: bool = True) -> "ParallelExecTask":
        """Echo each process's output, in the order the processes were added."""
        self._printed = flag
        return self

    @property
    def commands(self) -> list[str]:
        return [shlex.join(c) for c in self._commands]

    def get_description(self) -> str:
        return self.description or f"Parallel exec: {len(self._commands)} processes"

    def execute(self) -> Result:
        if not self._commands:
            return Result.ok("No processes to run")

        tasks = []
        for args in self._commands:
            task = ExecTask(args).printed(False)
            if self._cwd:
                task.dir(self._cwd)
            tasks.append(task)

        workers = self._max_workers or len(tasks)
        logger.info(f"Running {len(tasks)} processes in parallel")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda t: t.execute(), tasks))

        if self._printed:
            for result in results:
                stdout = result.output_data.get("stdout", "")
                if stdout.strip():
                    print(stdout.rstrip())

        output = {"processes": [r.output_data for r in results]}
        failures = [r for r in results if not r.success]
        if failures:
            return Result.failure(
                f"{len(failures)} of {len(results)} processes failed: "
                + "; ".join(r.error_message for r in failures),
                exit_code=failures[0].exit_code,
                output_data=output,
            )

        return Result.ok(f"{len(results)} processes finished", exit_code=0, output_data=output)
