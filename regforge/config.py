"""Settings shared by registry creation, registration and discovery.

Settings come from an optional YAML file::

    depot_path: ~/.julia
    project: ~/work/MyPackage
    default_registry: General
    git_executable: /usr/bin/git
    gitconfig:
      user.name: Registry Bot
      user.email: bot@example.com

Environment variables override the file: ``REGFORGE_DEPOT`` (falling back
to the first entry of ``JULIA_DEPOT_PATH``), ``JULIA_PROJECT`` and
``REGFORGE_GIT``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = Path("~/.config/regforge/config.yaml")


@dataclass
class Settings:
    """Runtime configuration."""

    depot_path: Path = field(default_factory=lambda: Path("~/.julia").expanduser())
    project: Path | None = None  # Active environment; None means the current directory
    default_registry: str = "General"  # Never picked automatically for new packages
    git_executable: str = ""  # Empty: whatever GitPython finds on PATH
    gitconfig: dict[str, str] = field(default_factory=dict)

    @property
    def registries_dir(self) -> Path:
        return self.depot_path / "registries"

    @property
    def git_options(self) -> list[str]:
        """``-c key=value`` options applied to every git invocation."""
        return [f"{k}={v}" for k, v in self.gitconfig.items()]


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML (if present) and the environment."""
    if path is None:
        path = os.environ.get("REGFORGE_CONFIG") or DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    data = {}
    if path.is_file():
        with open(path) as f:
            data = yaml.safe_load(f) or {}

    settings = Settings(
        default_registry=data.get("default_registry", "General"),
        git_executable=data.get("git_executable", ""),
        gitconfig={str(k): str(v) for k, v in data.get("gitconfig", {}).items()},
    )
    if data.get("depot_path"):
        settings.depot_path = Path(data["depot_path"]).expanduser()
    if data.get("project"):
        settings.project = Path(data["project"]).expanduser()

    depot = os.environ.get("REGFORGE_DEPOT")
    if not depot and os.environ.get("JULIA_DEPOT_PATH"):
        depot = os.environ["JULIA_DEPOT_PATH"].split(os.pathsep)[0]
    if depot:
        settings.depot_path = Path(depot).expanduser()
    if os.environ.get("JULIA_PROJECT"):
        settings.project = Path(os.environ["JULIA_PROJECT"]).expanduser()
    if os.environ.get("REGFORGE_GIT"):
        settings.git_executable = os.environ["REGFORGE_GIT"]

    return settings
