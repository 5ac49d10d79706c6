"""Registry creation."""

from __future__ import annotations

import logging
import shutil
import uuid as uuidlib
from pathlib import Path

from regforge.config import Settings, load_settings
from regforge.errors import RegistryExists
from regforge.registry.files import REGISTRY_FILE, write_registry
from regforge.registry.models import RegistryIndex
from regforge.utils.git_ops import clone_into, init_repository, use_git_executable

logger = logging.getLogger(__name__)


def create_registry(
    name_or_path: str | Path,
    repo: str,
    *,
    description: str | None = None,
    push: bool = False,
    branch: str | None = None,
    uuid: str | None = None,
    settings: Settings | None = None,
) -> Path:
    """Create a registry working copy and return its path.

    A bare name creates the registry in the depot's ``registries``
    directory; anything with a path separator is used as a path. The last
    path component becomes the registry name.

    With *push*, *repo* is cloned first so that the new registry follows
    the upstream default branch (unless *branch* is given), and the
    initial commit is pushed. *uuid* is only meant for reproducible tests.

    Raises:
        RegistryExists: If the target path exists, or *repo* already holds
            a registry.
    """
    settings = settings or load_settings()
    use_git_executable(settings.git_executable)
    path = _registry_target(name_or_path, settings)
    if path.exists():
        raise RegistryExists(f"{path} already exists.")

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if push:
            git = clone_into(repo, path, settings.git_options)
            if (path / REGISTRY_FILE).exists():
                raise RegistryExists(f"{repo} already contains a registry")
        else:
            git = init_repository(path, settings.git_options)
        if branch:
            git.checkout_new_branch(branch)

        index = RegistryIndex(
            name=path.name,
            uuid=uuid or str(uuidlib.uuid4()),
            repo=repo,
            description=description,
        )
        write_registry(path, index)
        git.commit("Create registry.")
        if push:
            git.push(branch)
        elif repo:
            git.add_remote(repo)
    except BaseException:
        shutil.rmtree(path, ignore_errors=True)
        raise

    logger.info("Created registry %s at %s", path.name, path)
    return path


def _registry_target(name_or_path: str | Path, settings: Settings) -> Path:
    text = str(name_or_path)
    if isinstance(name_or_path, Path) or len(Path(text).parts) > 1 or text in (".", ".."):
        return Path(text).expanduser().resolve()
    return settings.registries_dir / Path(text).name
