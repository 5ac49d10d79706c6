"""Discovery of the registries installed in the depot.

``<depot>/registries`` holds either unpacked registries (a directory with a
``Registry.toml``) or packed ones: a ``<Name>.toml`` descriptor next to the
``.tar.gz`` archive it points at via its ``path`` key.
"""

from __future__ import annotations

import logging
import tarfile
import tomllib
from pathlib import Path

from regforge.config import Settings
from regforge.registry.files import REGISTRY_FILE, load_toml, parse_registry, read_registry
from regforge.registry.models import KnownRegistry, RegistryIndex

logger = logging.getLogger(__name__)


def discover_registries(settings: Settings) -> list[KnownRegistry]:
    """List the registries installed under ``settings.registries_dir``."""
    registries_dir = settings.registries_dir
    if not registries_dir.is_dir():
        return []

    known = []
    for entry in sorted(registries_dir.iterdir()):
        if entry.is_dir() and (entry / REGISTRY_FILE).is_file():
            index = read_registry(entry)
        elif entry.is_file() and entry.suffix == ".toml":
            try:
                index = read_packed_registry(entry)
            except (KeyError, OSError, tarfile.TarError, tomllib.TOMLDecodeError) as e:
                logger.debug("Skipping %s: %s", entry, e)
                continue
        else:
            continue
        known.append(KnownRegistry(index.name, index.uuid, entry, index.packages))
    return known


def read_packed_registry(descriptor: str | Path) -> RegistryIndex:
    """Read ``Registry.toml`` out of the archive a descriptor file points at."""
    descriptor = Path(descriptor)
    archive = descriptor.parent / load_toml(descriptor)["path"]
    with tarfile.open(archive, "r:gz") as tar:
        for member in tar.getmembers():
            if member.isfile() and Path(member.name).as_posix().lstrip("./") == REGISTRY_FILE:
                return parse_registry(tar.extractfile(member).read().decode())
    raise KeyError(f"{archive} does not contain a {REGISTRY_FILE}")
