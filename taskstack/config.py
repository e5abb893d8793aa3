"""Project configuration loaded from YAML."""

import os
from pathlib import Path
from typing import Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "taskstack.yaml"
CONFIG_ENV_VAR = "TASKSTACK_CONFIG"


class ConfigError(ValueError):
    """Raised when a configuration file holds invalid values."""


class ProjectConfig(BaseModel):
    """
    Settings for the build and release workflows.

    Relative paths are resolved against ``root``, the directory holding
    the configuration file (or the working directory for defaults).
    """

    name: str = "taskstack"
    package: str = "taskstack"
    version_file: str = "taskstack/__init__.py"
    changelog: str = "CHANGELOG.md"
    docs_dir: str = "docs"
    site_dir: str = "site"
    source_dir: str = "taskstack"
    tests_dir: str = "tests"

    main_branch: str = "main"
    site_branch: str = "site"
    pages_branch: str = "gh-pages"
    remote: str = "origin"
    repository: Optional[str] = None

    zipapp_name: str = "taskstack.pyz"
    zipapp_entry: str = "taskstack.cli:main"
    install_path: str = "/usr/local/bin/taskstack"

    watch_paths: list[str] = Field(default_factory=lambda: ["pyproject.toml"])
    server_port: int = 8000
    lint_command: str = "ruff check"

    root: Path = Field(default_factory=Path.cwd)

    @field_validator("server_port")
    @classmethod
    def _port_in_range(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError(f"port {value} out of range")
        return value

    def path(self, relative: str | os.PathLike) -> Path:
        """Resolve a configured path against the project root."""
        path = Path(relative).expanduser()
        return path if path.is_absolute() else self.root / path


def resolve_config_path(explicit: Optional[str | os.PathLike] = None) -> Path:
    """
    Pick the configuration file: an explicit path, else ``$TASKSTACK_CONFIG``,
    else ``taskstack.yaml`` in the working directory.
    """
    if explicit:
        return Path(explicit).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(os.path.expandvars(env_path)).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_config_from_yaml(config_path: Path) -> ProjectConfig:
    """
    Load the project configuration from a YAML file.

    Expected format:

    ```yaml
    project:
      name: taskstack
      changelog: CHANGELOG.md
      site_branch: site
    ```

    A missing or unreadable file gives the defaults (rooted at the file's
    directory).

    Raises:
        ConfigError: If the file holds values that fail validation
    """
    config_path = Path(config_path)
    root = config_path.parent.resolve()

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return ProjectConfig(root=root)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config: {e}")
        return ProjectConfig(root=root)

    if not data:
        return ProjectConfig(root=root)

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: expected a mapping at the top level")

    project = data.get("project", data)
    if not isinstance(project, dict):
        raise ConfigError(f"{config_path}: 'project' must be a mapping")

    try:
        config = ProjectConfig(**{"root": root, **project})
    except ValidationError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    logger.info(f"Loaded project config from {config_path}")
    return config


def save_config_to_yaml(config: ProjectConfig, config_path: Path) -> None:
    """Write ``config`` (without its root) to a YAML file."""
    data = {"project": config.model_dump(exclude={"root"})}

    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    logger.info(f"Saved project config to {config_path}")


# Example configuration template
EXAMPLE_CONFIG = """# taskstack project configuration
#
# Paths are relative to the directory holding this file.

project:
  name: taskstack
  package: taskstack
  version_file: taskstack/__init__.py
  changelog: CHANGELOG.md
  docs_dir: docs
  source_dir: taskstack

  # Branches used by publish / pack:publish
  main_branch: main
  site_branch: site
  pages_branch: gh-pages
  remote: origin
  # GitHub repository for release notes (owner/name)
  repository: example/taskstack

  # Zip application built by pack:build
  zipapp_name: taskstack.pyz
  zipapp_entry: taskstack.cli:main
  install_path: /usr/local/bin/taskstack

  # try:watch reinstalls when these change
  watch_paths:
    - pyproject.toml

  server_port: 8000
  lint_command: ruff check
"""


def write_example_config(config_path: Path) -> None:
    """Write an example configuration file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(EXAMPLE_CONFIG)
    logger.info(f"Wrote example configuration to {config_path}")
