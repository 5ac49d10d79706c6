"""Package location: from a name, path or loaded module to the package root.

A package reference is one of four variants, each with its own ``resolve``:

- ``ByPath``: a directory given directly
- ``ByName``: a package developed in the active environment
- ``ByModule``: a loaded module object, located through its ``__file__``
- ``Implicit``: no reference: the active project, or the current directory
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from regforge.config import Settings
from regforge.errors import (
    ManifestInvalid,
    ManifestMissing,
    NotDeveloped,
    PathNotFound,
    UnknownPackage,
)
from regforge.package.manifest import find_manifest_file, read_manifest

ENVIRONMENT_MANIFESTS = ("JuliaManifest.toml", "Manifest.toml")


@dataclass(frozen=True)
class Environment:
    """The active project environment that package names are looked up in."""

    project_dir: Path

    @classmethod
    def from_settings(cls, settings: Settings) -> Environment:
        project = settings.project or Path.cwd()
        project = Path(project).expanduser().resolve()
        return cls(project.parent if project.is_file() else project)

    def manifest_entries(self) -> dict[str, list[dict]]:
        """Package name -> entries of the environment's ``Manifest.toml``."""
        for filename in ENVIRONMENT_MANIFESTS:
            path = self.project_dir / filename
            if path.is_file():
                with open(path, "rb") as f:
                    data = tomllib.load(f)
                if "manifest_format" in data:
                    return data.get("deps", {})
                return {k: v for k, v in data.items() if isinstance(v, list)}
        return {}


@dataclass(frozen=True)
class ByPath:
    path: Path

    def resolve(self, environment: Environment) -> Path:
        path = Path(self.path).expanduser().resolve()
        if not path.is_dir():
            raise PathNotFound(f"{self.path} is not a package directory")
        return path


@dataclass(frozen=True)
class ByName:
    name: str

    def resolve(self, environment: Environment) -> Path:
        entries = environment.manifest_entries().get(self.name)
        if not entries:
            try:
                if read_manifest(environment.project_dir).name == self.name:
                    return environment.project_dir
            except (ManifestMissing, ManifestInvalid):
                pass
            raise UnknownPackage(f"Package {self.name} not found in the active environment")
        entry = entries[0]
        if "path" not in entry:
            raise NotDeveloped(
                f"Package {self.name} is not developed; only developed packages can be registered by name"
            )
        return (environment.project_dir / entry["path"]).resolve()


@dataclass(frozen=True)
class ByModule:
    module: Any

    def resolve(self, environment: Environment) -> Path:
        source = getattr(self.module, "__file__", None)
        if not source:
            raise PathNotFound(f"{self.module!r} has no source file")
        for directory in Path(source).resolve().parents:
            if find_manifest_file(directory) is not None:
                return directory
        raise PathNotFound(f"No package manifest found above {source}")


@dataclass(frozen=True)
class Implicit:
    def resolve(self, environment: Environment) -> Path:
        try:
            read_manifest(environment.project_dir)
        except (ManifestMissing, ManifestInvalid):
            return Path.cwd()
        return environment.project_dir


PackageRef = Union[ByName, ByPath, ByModule, Implicit]


def package_ref(value: Any = None) -> PackageRef:
    """Classify a user-supplied package reference."""
    if value is None:
        return Implicit()
    if isinstance(value, (ByName, ByPath, ByModule, Implicit)):
        return value
    if isinstance(value, Path):
        return ByPath(value)
    if isinstance(value, str):
        if value in (".", "..") or "/" in value or os.sep in value:
            return ByPath(Path(value))
        return ByName(value)
    return ByModule(value)


def find_package_path(value: Any = None, settings: Settings | None = None) -> Path:
    """Resolve a package reference to the package's root directory."""
    return package_ref(value).resolve(Environment.from_settings(settings or Settings()))
