"""Development helpers - a local static file server and a browser opener."""

import os
import sys
import webbrowser
from pathlib import Path
from typing import Callable
import logging

from ..models import Result
from .base import Task
from .process import ExecTask

logger = logging.getLogger(__name__)


class ServerTask(Task):
    """
    Serves a directory over HTTP with ``python -m http.server``.

    Blocks until the server process exits.
    """

    def __init__(self, port: int = 8000):
        self.port = port
        self._dir = Path.cwd()
        self._bind = "127.0.0.1"

    def dir(self, path: str | os.PathLike) -> "ServerTask":
        """Directory to serve."""
        self._dir = Path(path)
        return self

    def bind(self, address: str) -> "ServerTask":
        self._bind = address
        return self

    def command(self) -> ExecTask:
        return (
            ExecTask([sys.executable, "-m", "http.server", str(self.port)])
            .args("--bind", self._bind, "--directory", self._dir)
            .printed(True)
        )

    def get_description(self) -> str:
        return self.description or f"Serve {self._dir} on http://{self._bind}:{self.port}/"

    def execute(self) -> Result:
        if not self._dir.is_dir():
            return Result.failure(f"Directory to serve not found: {self._dir}")

        logger.info(self.get_description())
        return self.command().execute()


class OpenBrowserTask(Task):
    """Opens one or more URLs in the default browser."""

    def __init__(self, urls: str | list[str], opener: Callable[[str], bool] = webbrowser.open):
        self.urls = [urls] if isinstance(urls, str) else list(urls)
        self._opener = opener

    def get_description(self) -> str:
        return self.description or "Open " + ", ".join(self.urls)

    def execute(self) -> Result:
        failed = []
        for url in self.urls:
            logger.info(f"Opening {url}")
            try:
                opened = self._opener(url)
            except webbrowser.Error as e:
                logger.error(f"Could not open {url}: {e}")
                opened = False
            if not opened:
                failed.append(url)

        if failed:
            return Result.failure("Could not open " + ", ".join(failed))
        return Result.ok(f"Opened {len(self.urls)} URLs")
