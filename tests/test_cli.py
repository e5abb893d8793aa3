"""Tests for the command line entry point."""

import tempfile
from pathlib import Path

import pytest

from taskstack import cli
from taskstack.models import Result


@pytest.fixture
def project_dir(monkeypatch):
    """Run commands from an empty project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir).resolve()
        monkeypatch.chdir(root)
        monkeypatch.delenv("TASKSTACK_CONFIG", raising=False)
        yield root


class TestExitCodes:
    """Tests for mapping results to exit codes."""

    def test_success(self):
        assert cli.exit_code_for(None) == 0
        assert cli.exit_code_for(Result.ok()) == 0

    def test_failure_uses_exit_code(self):
        assert cli.exit_code_for(Result.failure("x", exit_code=4)) == 4

    def test_failure_without_exit_code(self):
        assert cli.exit_code_for(Result.failure("x")) == 1


class TestCommands:
    """Tests for running sub-commands through main()."""

    def test_try_args(self, project_dir, capsys):
        assert cli.main(["try:args", "one"]) == 0

        assert "The parameter a is one and b is default" in capsys.readouterr().out

    def test_try_array_args(self, project_dir, capsys):
        assert cli.main(["try:array-args", "x", "y"]) == 0

        out = capsys.readouterr().out
        assert "'x'" in out and "'y'" in out

    def test_try_optbool(self, project_dir, capsys):
        cli.main(["try:optbool"])
        assert "Hello, world" in capsys.readouterr().out

        cli.main(["try:optbool", "-s"])
        assert capsys.readouterr().out == ""

    def test_try_success_and_error(self, project_dir, capsys):
        assert cli.main(["try:success"]) == 0
        assert cli.main(["try:error"]) != 0

        assert "✖" in capsys.readouterr().err

    def test_try_input(self, project_dir, monkeypatch, capsys):
        """Test the interactive demo with scripted answers."""
        answers = iter(["fine", "y", ""])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        monkeypatch.setattr("getpass.getpass", lambda prompt="": "1234")

        assert cli.main(["try:input"]) == 0

        out = capsys.readouterr().out
        assert "You are fine" in out
        assert "Python" in out
        assert "your pin code is: 1234" in out

    def test_try_input_stops_on_no(self, project_dir, monkeypatch, capsys):
        answers = iter(["fine", "n"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

        assert cli.main(["try:input"]) == 0
        assert "Bye!" not in capsys.readouterr().out

    def test_try_open_browser(self, project_dir, monkeypatch):
        opened = []
        monkeypatch.setattr(
            cli.workflows,
            "try_open_browser",
            lambda urls: opened.append(urls) or Result.ok(),
        )

        assert cli.main(["try:open-browser", "http://example.com"]) == 0
        assert opened == [["http://example.com"]]

    def test_init_writes_config(self, project_dir):
        assert cli.main(["init"]) == 0
        assert (project_dir / "taskstack.yaml").exists()

        # Refuses to overwrite without --force
        assert cli.main(["init"]) == 1
        assert cli.main(["init", "--force"]) == 0

    def test_changed_and_version_bump(self, project_dir):
        """Test changelog and version commands against a config file."""
        (project_dir / "pkg").mkdir()
        (project_dir / "pkg" / "__init__.py").write_text('__version__ = "0.1.0"\n')
        (project_dir / "taskstack.yaml").write_text(
            "project:\n  version_file: pkg/__init__.py\n"
        )

        assert cli.main(["changed", "Something new"]) == 0
        assert "* Something new" in (project_dir / "CHANGELOG.md").read_text()

        assert cli.main(["version-bump"]) == 0
        assert '"0.1.1"' in (project_dir / "pkg" / "__init__.py").read_text()

    def test_missing_version_file_reports_error(self, project_dir, capsys):
        """Test that workflow exceptions become exit code 1."""
        assert cli.main(["version-bump"]) == 1
        assert "✖" in capsys.readouterr().err

    def test_invalid_config(self, project_dir):
        (project_dir / "taskstack.yaml").write_text("project:\n  server_port: -1\n")

        assert cli.main(["try:success"]) == 2

    def test_config_option(self, project_dir, capsys):
        other = project_dir / "conf" / "custom.yaml"
        other.parent.mkdir()
        other.write_text("project:\n  name: custom\n")

        assert cli.main(["--config", str(other), "try:optbool"]) == 0

    def test_unknown_command(self, project_dir):
        with pytest.raises(SystemExit):
            cli.main(["nope"])
