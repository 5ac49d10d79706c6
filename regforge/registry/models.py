"""Registry data models: index entries, installed registries and registration state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from regforge.package.manifest import PackageManifest


@dataclass
class PackageRecord:
    """A package entry in ``Registry.toml``."""

    name: str
    path: str  # Registry-relative, always forward slashes


@dataclass
class RegistryIndex:
    """Top-level registry metadata and its package table."""

    name: str
    uuid: str
    repo: str = ""
    description: str | None = None
    packages: dict[str, PackageRecord] = field(default_factory=dict)  # UUID -> record

    def uuid_for_name(self, name: str) -> str | None:
        for uuid, record in self.packages.items():
            if record.name == name:
                return uuid
        return None


@dataclass
class KnownRegistry:
    """A registry installed in the depot, as found by discovery."""

    name: str
    uuid: str
    path: Path  # Directory, or descriptor file for a packed registry
    packages: dict[str, PackageRecord] = field(default_factory=dict)


class RegistrationResult(Enum):
    """Outcome of a registration that did not fail."""

    REGISTERED = "registered"
    ALREADY_REGISTERED = "already_registered"


@dataclass
class RegistrationAttempt:
    """Everything known about one ``register`` call while it runs."""

    package_path: Path
    manifest: PackageManifest
    registry_path: Path | None = None
    tree_hash: str = ""
    subdir: str = ""
    commit_hash: str = ""
    package_repo: str | None = None
    is_temporary_clone: bool = False
    is_new_package: bool = False
