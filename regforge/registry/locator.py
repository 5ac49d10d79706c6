"""Registry location: from a name, path or URL to a usable git working copy."""

from __future__ import annotations

import logging
import tarfile
import tomllib
from pathlib import Path

from regforge.config import Settings
from regforge.errors import AmbiguousRegistry, NoRegistry, RegistryNotFound
from regforge.package.manifest import PackageManifest
from regforge.registry.discovery import read_packed_registry
from regforge.registry.files import REGISTRY_FILE, read_registry
from regforge.registry.models import KnownRegistry
from regforge.utils.git_ops import RepoHandle, clone_temporary, open_repository

logger = logging.getLogger(__name__)


def find_registry_path(
    registry: str | None,
    manifest: PackageManifest,
    known_registries: list[KnownRegistry],
    default_registry: str = "General",
) -> Path | str:
    """Resolve a registry reference.

    With a reference, the order is: name of a known registry, existing
    local path, otherwise a URL (returned unchanged). Without one, the
    known registry that already holds the package is used, or else the
    only known registry besides *default_registry*.
    """
    if registry is not None:
        for known in known_registries:
            if known.name == registry:
                return known.path
        path = Path(registry).expanduser()
        if path.exists():
            return path.resolve()
        return registry

    holding = [r for r in known_registries if manifest.uuid in r.packages]
    if len(holding) == 1:
        return holding[0].path
    if len(holding) > 1:
        names = ", ".join(r.name for r in holding)
        raise AmbiguousRegistry(
            f"{manifest.name} is registered in more than one registry ({names}); "
            "specify which one to use."
        )

    candidates = [r for r in known_registries if r.name != default_registry]
    if not candidates:
        raise NoRegistry(f"No registry to register {manifest.name} in; specify one.")
    if len(candidates) > 1:
        names = ", ".join(r.name for r in candidates)
        raise AmbiguousRegistry(f"Multiple registries are installed ({names}); specify which one to use.")
    return candidates[0].path


def check_git_registry(registry: Path | str, settings: Settings) -> RepoHandle:
    """Return a handle on a git working copy of *registry*.

    A local git working copy is used in place. URLs, registry snapshots
    without git metadata and packed registry descriptors are cloned into a
    temporary directory that the handle removes on exit.

    Raises:
        RegistryNotFound: If no registry working copy can be produced.
    """
    path = Path(registry).expanduser()
    if path.is_file():
        try:
            url = read_packed_registry(path).repo
        except (KeyError, OSError, tarfile.TarError, tomllib.TOMLDecodeError) as e:
            raise RegistryNotFound(f"{path} is not a registry descriptor: {e}") from e
        return _temporary_clone(url, settings)

    if path.is_dir():
        if open_repository(path, settings.git_options) is not None:
            if not (path / REGISTRY_FILE).is_file():
                raise RegistryNotFound(f"{path} does not contain a {REGISTRY_FILE}")
            return RepoHandle(local_path=path.resolve())
        if not (path / REGISTRY_FILE).is_file():
            raise RegistryNotFound(f"{path} is neither a git working copy nor a registry")
        logger.debug("%s is a registry snapshot without git metadata", path)
        return _temporary_clone(read_registry(path).repo, settings)

    return _temporary_clone(str(registry), settings)


def _temporary_clone(url: str, settings: Settings) -> RepoHandle:
    if not url:
        raise RegistryNotFound("The registry does not record a repository URL to clone from.")
    clone_dir = clone_temporary(url, settings.git_options)
    handle = RepoHandle(local_path=clone_dir, source_url=url, is_temp_clone=True)
    if not (clone_dir / REGISTRY_FILE).is_file():
        handle.cleanup()
        raise RegistryNotFound(f"{url} does not contain a {REGISTRY_FILE}")
    return handle
