"""Task library - the steps a collection runs."""

from .base import Task, CallableTask, ProgressMessage
from .process import ExecTask, ParallelExecTask
from .git import GitStack, current_branch
from .filesystem import FilesystemStack, TmpDirTask
from .files import WriteToFileTask, ReplaceInFileTask
from .changelog import ChangelogTask
from .pack import PackZipappTask
from .watch import WatchTask, FileChange
from .docs import GenerateDocsTask
from .development import ServerTask, OpenBrowserTask

__all__ = [
    "Task",
    "CallableTask",
    "ProgressMessage",
    "ExecTask",
    "ParallelExecTask",
    "GitStack",
    "current_branch",
    "FilesystemStack",
    "TmpDirTask",
    "WriteToFileTask",
    "ReplaceInFileTask",
    "ChangelogTask",
    "PackZipappTask",
    "WatchTask",
    "FileChange",
    "GenerateDocsTask",
    "ServerTask",
    "OpenBrowserTask",
]
