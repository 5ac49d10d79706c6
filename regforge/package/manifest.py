"""Package manifest reading.

A package declares its identity in ``JuliaProject.toml`` or, failing that,
``Project.toml``::

    name = "Foo"
    uuid = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
    version = "1.0.0"

    [deps]
    Bar = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"

    [compat]
    Bar = "0.5, 1"
    julia = "1.6"
"""

from __future__ import annotations

import logging
import tomllib
import uuid as uuidlib
from dataclasses import dataclass, field
from pathlib import Path

from regforge.errors import ManifestInvalid, ManifestMissing
from regforge.versions import Version

logger = logging.getLogger(__name__)

MANIFEST_FILENAMES = ("JuliaProject.toml", "Project.toml")


@dataclass(frozen=True)
class PackageManifest:
    """Declared identity of a package at its current commit."""

    name: str
    uuid: str
    version: Version
    deps: dict[str, str] = field(default_factory=dict)
    compat: dict[str, str] = field(default_factory=dict)

    @property
    def qualified_id(self) -> str:
        return f"{self.name} v{self.version}"


def find_manifest_file(package_dir: str | Path) -> Path | None:
    """Return the manifest file of *package_dir* that declares a name."""
    package_dir = Path(package_dir)
    for filename in MANIFEST_FILENAMES:
        path = package_dir / filename
        if not path.is_file():
            continue
        try:
            data = _load(path)
        except tomllib.TOMLDecodeError as e:
            logger.debug("Ignoring unparsable %s: %s", path, e)
            continue
        if data.get("name"):
            return path
    return None


def read_manifest(package_dir: str | Path) -> PackageManifest:
    """Read the manifest of the package rooted at *package_dir*.

    Raises:
        ManifestMissing: If no manifest file yields a package name.
        ManifestInvalid: If the uuid or version is absent or malformed.
    """
    path = find_manifest_file(package_dir)
    if path is None:
        raise ManifestMissing(f"{package_dir} does not have a Project.toml or JuliaProject.toml file")

    data = _load(path)
    name = data["name"]
    if "uuid" not in data:
        raise ManifestInvalid(f"{path} is missing the uuid field")
    if "version" not in data:
        raise ManifestInvalid(f"{path} is missing the version field")

    try:
        version = Version.parse(data["version"])
    except ValueError as e:
        raise ManifestInvalid(f"{path}: {e}") from e

    deps = {}
    for dep_name, dep_uuid in data.get("deps", {}).items():
        deps[dep_name] = _normalize_uuid(dep_uuid, path, f"[deps] {dep_name}")

    compat = {str(k): str(v) for k, v in data.get("compat", {}).items()}

    return PackageManifest(
        name=name,
        uuid=_normalize_uuid(data["uuid"], path, "uuid"),
        version=version,
        deps=deps,
        compat=compat,
    )


def _normalize_uuid(value, path: Path, what: str) -> str:
    try:
        return str(uuidlib.UUID(str(value)))
    except ValueError as e:
        raise ManifestInvalid(f"{path}: invalid UUID for {what}: {value!r}") from e


def _load(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)
