"""Build and release workflows for a project.

Each workflow builds tasks from a ProjectConfig, runs them and returns the
Result. The ``build_*`` functions only assemble collections so the wiring
can be inspected without running git, mkdocs or pip.
"""

import inspect
import re
import sys
import tempfile
import threading
import time
from collections import defaultdict
from typing import Callable, Optional, Sequence
import logging

from . import console
from .config import ProjectConfig
from .engine import Collection
from .models import Result
from . import tasks as task_library
from .tasks import (
    Task,
    CallableTask,
    ExecTask,
    ParallelExecTask,
    GitStack,
    current_branch,
    FilesystemStack,
    TmpDirTask,
    WriteToFileTask,
    ReplaceInFileTask,
    ChangelogTask,
    PackZipappTask,
    WatchTask,
    GenerateDocsTask,
    ServerTask,
    OpenBrowserTask,
)

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"""(__version__\s*=\s*)(["'])([^"']+)\2""")

Say = Callable[[str], None]


# -----------------------------------------------------------------------------
# Versions
# -----------------------------------------------------------------------------

def _version_match(config: ProjectConfig) -> re.Match:
    path = config.path(config.version_file)
    match = VERSION_PATTERN.search(path.read_text(encoding="utf-8"))
    if not match:
        raise ValueError(f"No __version__ found in {path}")
    return match


def current_version(config: ProjectConfig) -> str:
    """
    Read ``__version__`` from the configured version file.

    Raises:
        ValueError: If the file has no ``__version__`` assignment
    """
    return _version_match(config).group(3)


def next_version(version: str) -> str:
    """Increment the last numeric component: 1.2.3 -> 1.2.4."""
    parts = version.split(".")
    match = re.match(r"(\d+)(.*)", parts[-1])
    if not match:
        raise ValueError(f"Cannot bump version {version!r}")
    parts[-1] = str(int(match.group(1)) + 1)
    return ".".join(parts)


# -----------------------------------------------------------------------------
# Quality
# -----------------------------------------------------------------------------

def run_tests(config: ProjectConfig, args: Sequence[str] = ()) -> Result:
    """Run the test suite with pytest."""
    return ExecTask([sys.executable, "-m", "pytest", *args]).dir(config.root).run()


def lint(
    config: ProjectConfig,
    path: Optional[str] = None,
    autofix: bool = False,
    ask: Optional[Callable[[str], bool]] = None,
) -> Result:
    """
    Run the configured linter on a file or directory.

    When it reports problems, offers (through ``ask``) to rerun it with
    ``--fix`` unless ``autofix`` already says so.
    """
    target = path or config.source_dir
    result = ExecTask(config.lint_command).arg(target).dir(config.root).run()
    if result.success:
        return result

    if not autofix and ask is not None:
        autofix = ask("Would you like to run the linter's fixer on the reported errors?")
    if autofix:
        result = ExecTask(config.lint_command).args("--fix", target).dir(config.root).run()
    return result


# -----------------------------------------------------------------------------
# Changelog and version
# -----------------------------------------------------------------------------

def changed(config: ProjectConfig, addition: str) -> Result:
    """Add an entry for the current version to the changelog."""
    return (
        ChangelogTask(config.path(config.changelog))
        .version(current_version(config))
        .change(addition)
        .run()
    )


def version_bump(config: ProjectConfig, version: str = "") -> Result:
    """Rewrite ``__version__``; defaults to the next patch version."""
    match = _version_match(config)
    assignment, quote, current = match.groups()
    version = version or next_version(current)
    logger.info(f"Bumping version {current} -> {version}")
    return (
        ReplaceInFileTask(config.path(config.version_file))
        .from_text(match.group(0))
        .to_text(f"{assignment}{quote}{version}{quote}")
        .run()
    )


# -----------------------------------------------------------------------------
# Documentation
# -----------------------------------------------------------------------------

def documented_task_classes() -> dict[str, list[type]]:
    """Public concrete task classes grouped by the module defining them."""
    groups: dict[str, list[type]] = defaultdict(list)
    for name in task_library.__all__:
        cls = getattr(task_library, name)
        if not inspect.isclass(cls) or not issubclass(cls, Task) or inspect.isabstract(cls):
            continue
        group = cls.__module__.rsplit(".", 1)[-1]
        if group == "base":
            continue
        groups[group].append(cls)

    return {g: sorted(classes, key=lambda c: c.__name__) for g, classes in sorted(groups.items())}


def build_docs_collection(config: ProjectConfig) -> Collection:
    collection = Collection(name="docs")
    collection.progress_message("Generate documentation from source code.")

    for group, classes in documented_task_classes().items():
        generator = GenerateDocsTask(config.path(config.docs_dir) / "tasks" / f"{group}.md")
        generator.prepend(f"# {group.replace('_', ' ').title()} Tasks")
        for cls in classes:
            generator.doc_class(cls)
        generator.add_to_collection(collection)

    collection.progress_message("Documentation generation complete.")
    return collection


def docs(config: ProjectConfig) -> Result:
    """Generate the task reference pages."""
    return build_docs_collection(config).run()


# -----------------------------------------------------------------------------
# Publishing
# -----------------------------------------------------------------------------

def build_publish_collection(config: ProjectConfig, branch: str) -> Collection:
    """
    Deploy the site from the site branch, then return to ``branch``.

    The branch and the copied changelog are restored by completion steps, so
    a failed deploy still leaves the working tree as it was.
    """
    collection = Collection(name="publish")
    docs_changelog = config.path(config.docs_dir) / "changelog.md"

    GitStack().dir(config.root) \
        .checkout(config.site_branch) \
        .merge(config.main_branch) \
        .add_to_collection(collection)
    GitStack().dir(config.root).checkout(branch).add_as_completion(collection)

    FilesystemStack() \
        .copy(config.path(config.changelog), docs_changelog) \
        .add_to_collection(collection)
    FilesystemStack().remove(docs_changelog).add_as_completion(collection)

    ExecTask("mkdocs gh-deploy").dir(config.root).add_to_collection(collection)
    return collection


def publish(config: ProjectConfig) -> Result:
    """Build the documentation site and push it to the pages branch."""
    return build_publish_collection(config, current_branch(config.root)).run()


# -----------------------------------------------------------------------------
# Zip application
# -----------------------------------------------------------------------------

def build_pack_collection(config: ProjectConfig, collection: Optional[Collection] = None) -> Collection:
    """
    Install the project into a staging directory and pack it as a zipapp.

    Dependencies are not bundled: compiled extensions cannot be imported
    from inside a zip, so the archive runs on an interpreter that already
    has them.
    """
    if collection is None:
        collection = Collection(name="pack:build")
    staging = TmpDirTask(prefix=f"{config.name}-pack-")
    staging.add_to_collection(collection)

    ExecTask([sys.executable, "-m", "pip", "install", "--no-deps", "--target"]) \
        .arg(staging.path) \
        .arg(config.root) \
        .printed(False) \
        .add_to_collection(collection)

    PackZipappTask(staging.path, config.path(config.zipapp_name)) \
        .main(config.zipapp_entry) \
        .add_to_collection(collection)
    return collection


def pack_build(config: ProjectConfig) -> Result:
    return build_pack_collection(config).run()


def pack_install(config: ProjectConfig) -> Result:
    """Copy the zipapp to the install path (uses sudo)."""
    return (
        ExecTask(["sudo", "cp"])
        .arg(config.path(config.zipapp_name))
        .arg(config.install_path)
        .run()
    )


def build_pack_publish_collection(config: ProjectConfig, branch: str) -> Collection:
    """Pack the zipapp and commit it to the pages branch, then return to ``branch``."""
    collection = Collection(name="pack:publish")
    build_pack_collection(config, collection)

    archive = config.path(config.zipapp_name)
    release = archive.with_name(f"{archive.stem}-release{archive.suffix}")

    FilesystemStack().rename(archive, release, force=True).add_to_collection(collection)
    GitStack().dir(config.root).checkout(config.pages_branch).add_to_collection(collection)
    FilesystemStack().remove(archive).rename(release, archive).add_to_collection(collection)
    GitStack().dir(config.root) \
        .add(config.zipapp_name) \
        .commit(f"{config.zipapp_name} published") \
        .push(config.remote, config.pages_branch) \
        .add_to_collection(collection)

    GitStack().dir(config.root).checkout(branch).add_as_completion(collection)
    return collection


def pack_publish(config: ProjectConfig) -> Result:
    return build_pack_publish_collection(config, current_branch(config.root)).run()


# -----------------------------------------------------------------------------
# Release
# -----------------------------------------------------------------------------

def build_release_collection(config: ProjectConfig, description: str) -> Collection:
    """
    Docs, commit and push, zipapp, site, release notes, then the version bump.

    Each sub-workflow runs as one step; the first failure stops the release.
    """
    version = current_version(config)
    collection = Collection(name="release")

    CallableTask("Generate documentation", lambda: docs(config)).add_to_collection(collection)
    GitStack().dir(config.root) \
        .add("-A") \
        .commit("auto-update") \
        .pull() \
        .push() \
        .add_to_collection(collection)
    CallableTask("Publish zipapp", lambda: pack_publish(config)).add_to_collection(collection)
    CallableTask("Publish site", lambda: publish(config)).add_to_collection(collection)

    notes = ExecTask(["gh", "release", "create", version, "--title", version, "--notes", description])
    if config.repository:
        notes.args("--repo", config.repository)
    notes.dir(config.root).add_to_collection(collection)

    CallableTask("Bump version", lambda: version_bump(config)).add_to_collection(collection)
    return collection


def release(config: ProjectConfig, description: str, say: Say = console.say) -> Result:
    say(f"Releasing {config.name} {current_version(config)}")
    return build_release_collection(config, description).run()


# -----------------------------------------------------------------------------
# Demos
# -----------------------------------------------------------------------------

def try_tmp_dir(say: Say = console.say, base: Optional[str] = None) -> Result:
    """Create a temporary directory early, then let the collection delete it."""
    collection = Collection(name="try:tmp-dir")

    # The path is known now; the directory appears when the task runs
    tmp = TmpDirTask(base=base)
    tmp.add_to_collection(collection)
    WriteToFileTask(tmp.path / "file.txt").line("Example file").add_to_collection(collection)

    # Running with run() here would also delete the directory
    early = collection.run_without_completion()
    if not early.success:
        say("Could not create temporary directory.")
        return early

    if tmp.path.is_dir():
        say(f"Created a temporary directory at {tmp.path}")
    else:
        say(f"Requested a temporary directory at {tmp.path}, but it was not created")

    result = collection.run()

    if tmp.path.is_dir():
        say(f"The temporary directory at {tmp.path} was not cleaned up after the collection completed.")
    else:
        say(f"The temporary directory at {tmp.path} was automatically deleted.")
    return result


def _chatter(word: str, times: int) -> list[str]:
    script = (
        "import sys, time\n"
        "for i in range(int(sys.argv[2])):\n"
        "    print(sys.argv[1], flush=True)\n"
        "    time.sleep(0.1)\n"
    )
    return [sys.executable, "-c", script, word, str(times)]


def build_para_task(printed: bool = False, error: bool = False) -> ParallelExecTask:
    para = ParallelExecTask().printed(printed)
    for word, times in (("hey", 4), ("hoy", 3), ("gou", 2), ("die", 1)):
        para.process(_chatter(word, times))
    if error:
        para.process([sys.executable, "-c", "open('filenotfound')"])
    return para


def try_para(printed: bool = False, error: bool = False) -> Result:
    """Run a few chatty processes at once."""
    return build_para_task(printed, error).run()


def try_error() -> Result:
    """A command that fails."""
    return ExecTask(["ls", f"xyzzy{int(time.time())}"]).dir(tempfile.gettempdir()).run()


def try_success() -> Result:
    """A command that succeeds."""
    return ExecTask("pwd").run()


def build_watch_task(
    config: ProjectConfig,
    stop_event: Optional[threading.Event] = None,
    limit: Optional[int] = None,
) -> WatchTask:
    """Reinstall the project whenever one of the watched files changes."""

    def reinstall(changes) -> None:
        for kind, path in changes:
            logger.info(f"{path} {kind.value}")
        ExecTask([sys.executable, "-m", "pip", "install", "-e", str(config.root)]).run()

    task = WatchTask().monitor([config.path(p) for p in config.watch_paths], reinstall)
    if stop_event is not None:
        task.stop_event(stop_event)
    return task.limit(limit)


def try_watch(config: ProjectConfig, limit: Optional[int] = None) -> Result:
    return build_watch_task(config, limit=limit).run()


def try_server(config: ProjectConfig) -> Result:
    """Serve the built site locally."""
    return ServerTask(config.server_port).dir(config.path(config.site_dir)).run()


DEMO_URLS = ["https://docs.python.org/3/", "https://pypi.org/"]


def try_open_browser(urls: Optional[list[str]] = None) -> Result:
    return OpenBrowserTask(urls or DEMO_URLS).run()
