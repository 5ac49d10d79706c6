"""Registry mutation: writes the package index entry and the four package files.

The mutator writes to the working copy only. Committing (or rolling back)
is left to the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from regforge.errors import PackageUrlMissing
from regforge.package.manifest import PackageManifest
from regforge.registry.files import (
    COMPAT_FILE,
    DEPS_FILE,
    load_compressed,
    read_package_file,
    read_versions,
    registered_versions,
    save_compressed,
    write_package_file,
    write_registry,
    write_versions,
)
from regforge.registry.models import PackageRecord, RegistryIndex
from regforge.versions import compat_ranges

logger = logging.getLogger(__name__)


def package_directory_name(name: str) -> str:
    """Registry-relative directory of a new package, ``<L>/<Name>`` on every OS."""
    return f"{name[:1].upper()}/{name}"


class RegistryMutator:
    """Applies one package version to a registry working copy."""

    def __init__(self, registry_path: str | Path, index: RegistryIndex):
        self.registry_path = Path(registry_path)
        self.index = index

    def apply(
        self,
        manifest: PackageManifest,
        tree_hash: str,
        repo: str | None = None,
        subdir: str = "",
    ) -> Path:
        """Record *manifest* at *tree_hash* and return the package directory.

        *repo* replaces the recorded repository URL when given; it is
        required the first time a package is registered.
        """
        existing = self.index.packages.get(manifest.uuid)
        if existing is None and not repo:
            raise PackageUrlMissing(
                f"No repository URL for new package {manifest.name}; pass one explicitly."
            )

        package_dir = self.ensure_package(manifest)
        self.update_package_file(manifest, package_dir, repo, subdir)
        self.update_versions_file(manifest, package_dir, tree_hash)
        self.update_deps_file(manifest, package_dir)
        self.update_compat_file(manifest, package_dir)
        return package_dir

    def ensure_package(self, manifest: PackageManifest) -> Path:
        """Return the package directory, allocating it and its index entry if new."""
        record = self.index.packages.get(manifest.uuid)
        if record is None:
            logger.debug("Creating directory for new package %s", manifest.name)
            record = PackageRecord(name=manifest.name, path=package_directory_name(manifest.name))
            self.index.packages[manifest.uuid] = record
            write_registry(self.registry_path, self.index)
        package_dir = self.registry_path / record.path
        package_dir.mkdir(parents=True, exist_ok=True)
        return package_dir

    def update_package_file(
        self, manifest: PackageManifest, package_dir: Path, repo: str | None, subdir: str
    ) -> None:
        current = read_package_file(package_dir)
        if current and not repo:
            return
        write_package_file(package_dir, manifest.name, manifest.uuid, repo, subdir)

    def update_versions_file(self, manifest: PackageManifest, package_dir: Path, tree_hash: str) -> None:
        versions = read_versions(package_dir)
        versions[str(manifest.version)] = {"git-tree-sha1": tree_hash}
        write_versions(package_dir, versions)

    def update_deps_file(self, manifest: PackageManifest, package_dir: Path) -> None:
        self._update_compressed(package_dir / DEPS_FILE, manifest, dict(manifest.deps))

    def update_compat_file(self, manifest: PackageManifest, package_dir: Path) -> None:
        data = {}
        for name, spec in manifest.compat.items():
            ranges = [str(r) for r in compat_ranges(spec)]
            data[name] = ranges[0] if len(ranges) == 1 else ranges
        self._update_compressed(package_dir / COMPAT_FILE, manifest, data)

    def _update_compressed(self, path: Path, manifest: PackageManifest, data: dict) -> None:
        # Versions.toml already lists the new version, so the pool includes it.
        versions = registered_versions(path.parent)
        uncompressed = load_compressed(path, versions)
        uncompressed[manifest.version] = data
        save_compressed(path, uncompressed, versions)
