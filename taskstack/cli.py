"""Command line entry point."""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__, workflows
from .config import ConfigError, ProjectConfig, load_config_from_yaml, resolve_config_path, write_example_config
from .console import say, yell, ask, ask_default, ask_hidden, confirm
from .models import Result

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

def cmd_test(args, config: ProjectConfig):
    return workflows.run_tests(config, args.pytest_args)


def cmd_lint(args, config: ProjectConfig):
    return workflows.lint(config, args.path, autofix=args.autofix, ask=confirm)


def cmd_changed(args, config: ProjectConfig):
    return workflows.changed(config, args.addition)


def cmd_version_bump(args, config: ProjectConfig):
    return workflows.version_bump(config, args.version)


def cmd_docs(args, config: ProjectConfig):
    return workflows.docs(config)


def cmd_publish(args, config: ProjectConfig):
    return workflows.publish(config)


def cmd_pack_build(args, config: ProjectConfig):
    return workflows.pack_build(config)


def cmd_pack_install(args, config: ProjectConfig):
    return workflows.pack_install(config)


def cmd_pack_publish(args, config: ProjectConfig):
    return workflows.pack_publish(config)


def cmd_release(args, config: ProjectConfig):
    yell(f"Releasing {config.name}")
    description = args.description or ask("Description of release:")
    return workflows.release(config, description)


def cmd_init(args, config: ProjectConfig):
    path = resolve_config_path(args.config)
    if path.exists() and not args.force:
        return Result.failure(f"{path} already exists (use --force to overwrite)")
    write_example_config(path)
    say(f"Wrote {path}")


def cmd_try_tmp_dir(args, config: ProjectConfig):
    return workflows.try_tmp_dir()


def cmd_try_para(args, config: ProjectConfig):
    return workflows.try_para(printed=args.printed, error=args.error)


def cmd_try_watch(args, config: ProjectConfig):
    return workflows.try_watch(config, limit=args.limit)


def cmd_try_input(args, config: ProjectConfig):
    answer = ask("how are you?")
    say(f"You are {answer}")
    if not confirm("Do you want one more question?"):
        return None
    lang = ask_default("what is your favorite scripting language?", "Python")
    say(lang)
    pin = ask_hidden("Ok, now tell your PIN code (it is hidden)")
    yell(f"Ha-ha, your pin code is: {pin}")
    say("Bye!")


def cmd_try_args(args, config: ProjectConfig):
    say(f"The parameter a is {args.a} and b is {args.b}")


def cmd_try_array_args(args, config: ProjectConfig):
    say("The parameters passed are:\n" + "\n".join(f"  {value!r}" for value in args.a))


def cmd_try_optbool(args, config: ProjectConfig):
    if not args.silent:
        say("Hello, world")


def cmd_try_server(args, config: ProjectConfig):
    return workflows.try_server(config)


def cmd_try_open_browser(args, config: ProjectConfig):
    return workflows.try_open_browser(args.urls or None)


def cmd_try_error(args, config: ProjectConfig):
    return workflows.try_error()


def cmd_try_success(args, config: ProjectConfig):
    return workflows.try_success()


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskstack", description="Project build and release tasks")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to the project config (default: $TASKSTACK_CONFIG or taskstack.yaml)")
    parser.add_argument("--log-level", default="warning", help="Log level")
    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    def command(name, handler, help_text):
        p = sub.add_parser(name, help=help_text, description=help_text)
        p.set_defaults(handler=handler)
        return p

    p = command("test", cmd_test, "Run the unit tests")
    p.add_argument("pytest_args", nargs="*", help="Arguments passed to pytest (after --)")

    p = command("lint", cmd_lint, "Run the linter on a file or directory")
    p.add_argument("path", nargs="?", help="File or directory to check (default: the source dir)")
    p.add_argument("--autofix", action="store_true", help="Rerun the linter with --fix on failure")

    p = command("changed", cmd_changed, "Add an entry to the changelog")
    p.add_argument("addition", help="The text to add to the changelog")

    p = command("version-bump", cmd_version_bump, "Update the project version")
    p.add_argument("version", nargs="?", default="", help="New version (default: next patch version)")

    command("docs", cmd_docs, "Generate the task reference documentation")
    command("publish", cmd_publish, "Build the documentation site and deploy it")
    command("pack:build", cmd_pack_build, "Build the zipapp")
    command("pack:install", cmd_pack_install, "Install the zipapp (uses sudo)")
    command("pack:publish", cmd_pack_publish, "Commit the zipapp to the pages branch")

    p = command("release", cmd_release, "Release the project")
    p.add_argument("--description", help="Release notes (asked for when omitted)")

    p = command("init", cmd_init, "Write an example config file")
    p.add_argument("--force", action="store_true", help="Overwrite an existing file")

    command("try:tmp-dir", cmd_try_tmp_dir, "Demonstrate temporary directory cleanup")

    p = command("try:para", cmd_try_para, "Demonstrate parallel execution")
    p.add_argument("--printed", action="store_true", help="Print the output of each process")
    p.add_argument("--error", action="store_true", help="Include an extra process that fails")

    p = command("try:watch", cmd_try_watch, "Reinstall the project when watched files change")
    p.add_argument("--limit", type=int, help="Stop after this many change batches")

    command("try:input", cmd_try_input, "Demonstrate the input helpers")

    p = command("try:args", cmd_try_args, "Demonstrate argument passing")
    p.add_argument("a", help="The first parameter. Required.")
    p.add_argument("b", nargs="?", default="default", help="The second parameter. Optional.")

    p = command("try:array-args", cmd_try_array_args, "Demonstrate variable argument passing")
    p.add_argument("a", nargs="+", help="A list of parameters")

    p = command("try:optbool", cmd_try_optbool, "Demonstrate boolean options")
    p.add_argument("-s", "--silent", action="store_true", help="Suppress output")

    command("try:server", cmd_try_server, "Serve the built site locally")

    p = command("try:open-browser", cmd_try_open_browser, "Open URLs in the browser")
    p.add_argument("urls", nargs="*", help="URLs to open")

    command("try:error", cmd_try_error, "Demonstrate command failure")
    command("try:success", cmd_try_success, "Demonstrate command success")

    return parser


def exit_code_for(result: Optional[Result]) -> int:
    """0 for success (or no result), else the failing exit code or 1."""
    if result is None or result.success:
        return 0
    return result.exit_code or 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config_from_yaml(resolve_config_path(args.config))
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        result = args.handler(args, config)
    except KeyboardInterrupt:
        return 130
    except (OSError, ValueError, RuntimeError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"✖  {e}", file=sys.stderr)
        return 1

    if result is not None and not result.success:
        where = f"{result.step_description}: " if result.step_description else ""
        print(f"✖  {where}{result.error_message}", file=sys.stderr)
    return exit_code_for(result)


if __name__ == "__main__":
    sys.exit(main())
