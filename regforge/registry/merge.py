"""Merging packages from one registry working copy into another.

The result is written to the target working copy but not committed.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from regforge.errors import InvalidOptions, MergeConflict
from regforge.registry.files import (
    COMPAT_FILE,
    DEPS_FILE,
    PACKAGE_FILES,
    load_compressed,
    read_registry,
    read_versions,
    registered_versions,
    save_compressed,
    write_registry,
    write_versions,
)
from regforge.registry.models import PackageRecord

logger = logging.getLogger(__name__)


def merge(
    target_path: str | Path,
    source_path: str | Path,
    *,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
    merge_packages: bool = False,
) -> list[str]:
    """Copy packages from the source registry into the target registry.

    Returns the names of the packages that were copied or merged.

    Raises:
        InvalidOptions: If both *include* and *exclude* are given, or either
            names a package missing from the source.
        MergeConflict: On a name or UUID collision (unless *merge_packages*
            allows merging the same package), or conflicting version data.
    """
    if include is not None and exclude is not None:
        raise InvalidOptions("Packages can be either included or excluded, not both.")

    target_path, source_path = Path(target_path), Path(source_path)
    target = read_registry(target_path)
    source = read_registry(source_path)

    packages = dict(source.packages)
    source_names = {record.name for record in packages.values()}
    if include is not None:
        missing = sorted(set(include) - source_names)
        if missing:
            raise InvalidOptions(f"Included packages {missing} do not exist in the source registry")
        packages = {u: r for u, r in packages.items() if r.name in include}
    if exclude is not None:
        missing = sorted(set(exclude) - source_names)
        if missing:
            raise InvalidOptions(f"Excluded packages {missing} do not exist in the source registry")
        packages = {u: r for u, r in packages.items() if r.name not in exclude}

    merged = []
    for uuid, record in sorted(packages.items(), key=lambda item: item[1].name):
        existing = target.packages.get(uuid)
        other_uuid = target.uuid_for_name(record.name)
        if existing is None and other_uuid is None:
            _copy_package(target_path, source_path, record)
            target.packages[uuid] = PackageRecord(record.name, record.path)
        elif existing is not None and existing.name == record.name and merge_packages:
            _merge_package(target_path / existing.path, source_path / record.path, record.name)
        elif existing is not None and existing.name != record.name:
            raise MergeConflict(
                f"UUID {uuid} is {existing.name} in the target registry but {record.name} in the source."
            )
        elif other_uuid is not None and other_uuid != uuid:
            raise MergeConflict(
                f"{record.name} has UUID {other_uuid} in the target registry but {uuid} in the source."
            )
        else:
            raise MergeConflict(f"The target registry already contains {record.name}.")
        merged.append(record.name)

    write_registry(target_path, target)
    logger.info("Merged %d package(s) into %s", len(merged), target_path)
    return merged


def _copy_package(target_path: Path, source_path: Path, record: PackageRecord) -> None:
    package_dir = target_path / record.path
    if package_dir.exists():
        raise MergeConflict(f"Package dir {record.path} already exists in target registry.")
    package_dir.mkdir(parents=True)
    for filename in PACKAGE_FILES:
        source_file = source_path / record.path / filename
        if source_file.is_file():
            shutil.copyfile(source_file, package_dir / filename)


def _merge_package(target_dir: Path, source_dir: Path, name: str) -> None:
    target_versions = read_versions(target_dir)
    source_versions = read_versions(source_dir)
    for version, info in source_versions.items():
        current = target_versions.get(version)
        if current is not None and current.get("git-tree-sha1") != info.get("git-tree-sha1"):
            raise MergeConflict(f"{name} v{version} has different tree hashes in the two registries.")

    source_pool = registered_versions(source_dir)
    target_pool = registered_versions(target_dir)
    tables = {f: load_compressed(target_dir / f, target_pool) for f in (DEPS_FILE, COMPAT_FILE)}
    for filename, data in tables.items():
        data.update(load_compressed(source_dir / filename, source_pool))

    write_versions(target_dir, {**source_versions, **target_versions})
    pool = registered_versions(target_dir)
    for filename, data in tables.items():
        save_compressed(target_dir / filename, data, pool)
