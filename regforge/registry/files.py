"""Reading and writing registry files.

Layout of a registry working copy::

    Registry.toml            name, uuid, repo, description, [packages]
    F/Foo/Package.toml       name, uuid, repo, subdir
    F/Foo/Versions.toml      one table per version: git-tree-sha1 (, yanked)
    F/Foo/Deps.toml          range-keyed tables: dependency name -> UUID
    F/Foo/Compat.toml        range-keyed tables: dependency name -> range(s)

``Deps.toml`` and ``Compat.toml`` are stored compressed: each key is a
version range covering every registered version that shares the values
below it, so a dependency that never changed takes a single entry.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

import tomli_w

from regforge.registry.models import PackageRecord, RegistryIndex
from regforge.versions import Version, VersionRange, compress_versions

REGISTRY_FILE = "Registry.toml"
PACKAGE_FILE = "Package.toml"
VERSIONS_FILE = "Versions.toml"
DEPS_FILE = "Deps.toml"
COMPAT_FILE = "Compat.toml"
PACKAGE_FILES = (PACKAGE_FILE, VERSIONS_FILE, DEPS_FILE, COMPAT_FILE)


def load_toml(path: str | Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _dump_toml(path: Path, data: dict) -> None:
    with open(path, "wb") as f:
        tomli_w.dump(data, f)


# ---------------------------------------------------------------------------
# Registry.toml
# ---------------------------------------------------------------------------


def parse_registry(text: str) -> RegistryIndex:
    data = tomllib.loads(text)
    return RegistryIndex(
        name=data["name"],
        uuid=data["uuid"],
        repo=data.get("repo", ""),
        description=data.get("description"),
        packages={
            uuid: PackageRecord(name=entry["name"], path=entry["path"])
            for uuid, entry in data.get("packages", {}).items()
        },
    )


def read_registry(registry_dir: str | Path) -> RegistryIndex:
    return parse_registry((Path(registry_dir) / REGISTRY_FILE).read_text())


def write_registry(registry_dir: str | Path, index: RegistryIndex) -> None:
    """Write ``Registry.toml`` with one inline table per package, sorted by UUID."""
    lines = [
        f"name = {_quote(index.name)}",
        f"uuid = {_quote(index.uuid)}",
        f"repo = {_quote(index.repo)}",
        "",
    ]
    if index.description is not None:
        lines += [f"description = {_quote(index.description)}", ""]
    lines.append("[packages]")
    for uuid in sorted(index.packages):
        record = index.packages[uuid]
        lines.append(f"{uuid} = {{ name = {_quote(record.name)}, path = {_quote(record.path)} }}")
    (Path(registry_dir) / REGISTRY_FILE).write_text("\n".join(lines) + "\n")


def _quote(value: str) -> str:
    # A JSON string literal is a valid TOML basic string.
    return json.dumps(value, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Package.toml / Versions.toml
# ---------------------------------------------------------------------------


def read_package_file(package_dir: Path) -> dict:
    path = package_dir / PACKAGE_FILE
    return load_toml(path) if path.is_file() else {}


def write_package_file(package_dir: Path, name: str, uuid: str, repo: str, subdir: str = "") -> None:
    data = {"name": name, "uuid": uuid, "repo": repo}
    if subdir:
        data["subdir"] = subdir
    _dump_toml(package_dir / PACKAGE_FILE, data)


def read_versions(package_dir: Path) -> dict[str, dict]:
    path = package_dir / VERSIONS_FILE
    return load_toml(path) if path.is_file() else {}


def write_versions(package_dir: Path, versions: dict[str, dict]) -> None:
    ordered = dict(sorted(versions.items(), key=lambda item: Version.parse(item[0])))
    _dump_toml(package_dir / VERSIONS_FILE, ordered)


def registered_versions(package_dir: Path) -> list[Version]:
    return sorted(Version.parse(v) for v in read_versions(package_dir))


# ---------------------------------------------------------------------------
# Compressed Deps.toml / Compat.toml
# ---------------------------------------------------------------------------


def load_compressed(path: Path, versions: list[Version]) -> dict[Version, dict]:
    """Expand a compressed file into ``version -> {name: value}`` for *versions*."""
    if not path.is_file():
        return {}
    uncompressed: dict[Version, dict] = {}
    for key, data in load_toml(path).items():
        spec = VersionRange.parse(key)
        for version in versions:
            if version in spec:
                uncompressed.setdefault(version, {}).update(data)
    return uncompressed


def compress(uncompressed: dict[Version, dict], versions: list[Version]) -> dict[str, dict]:
    """Group identical ``name = value`` pairs under the fewest version ranges."""
    inverted: dict[tuple, list[Version]] = {}
    for version, data in uncompressed.items():
        for name, value in data.items():
            hashable = tuple(value) if isinstance(value, list) else value
            inverted.setdefault((name, hashable), []).append(version)

    compressed: dict[VersionRange, dict] = {}
    for (name, value), members in inverted.items():
        value = list(value) if isinstance(value, tuple) else value
        for r in compress_versions(versions, members):
            compressed.setdefault(r, {})[name] = value

    ordered = sorted(compressed, key=lambda r: (r.lower.parts, r.upper.parts))
    return {str(r): dict(sorted(compressed[r].items())) for r in ordered}


def save_compressed(path: Path, uncompressed: dict[Version, dict], versions: list[Version]) -> None:
    _dump_toml(path, compress(uncompressed, versions))
