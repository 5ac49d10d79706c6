"""Consistency checks run before a registration touches any file.

The checks only read the registry; the first failing check raises and
nothing has been written at that point.
"""

from __future__ import annotations

import logging
from pathlib import Path

from regforge.errors import (
    InvalidCompatRange,
    NameChangeNotSupported,
    NameMismatch,
    SelfDependency,
    UuidChangeNotAllowed,
    VersionConflict,
    WrongStdlibUuid,
)
from regforge.package.manifest import PackageManifest
from regforge.package.stdlib import STDLIB_UUIDS
from regforge.registry.files import read_versions
from regforge.registry.models import RegistryIndex
from regforge.versions import VersionRange, semver_spec

logger = logging.getLogger(__name__)

RUNTIME_COMPAT_KEY = "julia"
_LEGACY_RUNTIME = VersionRange.parse("0-0.6")


def is_already_registered(
    manifest: PackageManifest,
    tree_hash: str,
    index: RegistryIndex,
    registry_path: Path,
    ignore_reregistration: bool = False,
) -> bool:
    """Return True if this exact version is registered and nothing is left to do.

    Raises:
        VersionConflict: If the version is registered with a different tree
            hash and *ignore_reregistration* is not set.
    """
    record = index.packages.get(manifest.uuid)
    if record is None:
        return False
    entry = read_versions(registry_path / record.path).get(str(manifest.version))
    if entry is None:
        return False

    if entry.get("git-tree-sha1") == tree_hash:
        logger.info("This version has already been registered and is unchanged.")
        return True
    if ignore_reregistration:
        logger.warning(
            "%s is already registered with tree hash %s; ignoring the changed content (%s).",
            manifest.qualified_id,
            entry.get("git-tree-sha1"),
            tree_hash,
        )
        return True
    raise VersionConflict(
        f"{manifest.qualified_id} has already been registered with a different tree hash "
        f"({entry.get('git-tree-sha1')}, now {tree_hash})."
    )


def check_identity(manifest: PackageManifest, index: RegistryIndex) -> None:
    record = index.packages.get(manifest.uuid)
    if record is not None:
        if record.name != manifest.name:
            raise NameChangeNotSupported(
                f"UUID {manifest.uuid} is registered as {record.name}; "
                f"changing package names to {manifest.name} is not supported."
            )
        return
    other = index.uuid_for_name(manifest.name)
    if other is not None:
        raise UuidChangeNotAllowed(
            f"{manifest.name} is registered with UUID {other}; changing UUIDs is not allowed."
        )


def check_dependencies(manifest: PackageManifest, index: RegistryIndex) -> None:
    if manifest.uuid in manifest.deps.values():
        raise SelfDependency(f"{manifest.name} lists itself as a dependency.")

    logger.debug("Verifying package name and uuid in deps")
    for name, uuid in manifest.deps.items():
        record = index.packages.get(uuid)
        if record is not None:
            if record.name != name:
                raise NameMismatch(
                    f"Error in `[deps]`: UUID {uuid} refers to package '{record.name}' "
                    f"in registry but deps file has '{name}'"
                )
        elif name in STDLIB_UUIDS:
            if STDLIB_UUIDS[name] != uuid:
                raise WrongStdlibUuid(
                    f"Error in `[deps]`: UUID {uuid} for package {name} should be {STDLIB_UUIDS[name]}"
                )
        # Anything else may live in another registry; it is not looked up.


def check_compat(manifest: PackageManifest) -> None:
    for name, spec_text in manifest.compat.items():
        try:
            spec = semver_spec(spec_text)
        except ValueError as e:
            raise InvalidCompatRange(f"Error in `[compat]`: {e}") from e
        if name == RUNTIME_COMPAT_KEY and any(
            not _LEGACY_RUNTIME.intersect(r).is_empty for r in spec.ranges
        ):
            raise InvalidCompatRange(
                f"Error in `[compat]`: {RUNTIME_COMPAT_KEY} version < 0.7 not allowed ({spec_text!r})"
            )


def check_consistency(manifest: PackageManifest, index: RegistryIndex) -> None:
    """Run identity, dependency and compatibility checks in that order."""
    check_identity(manifest, index)
    check_dependencies(manifest, index)
    check_compat(manifest)
