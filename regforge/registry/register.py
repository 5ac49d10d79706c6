"""Registration: the transactional path from a package working copy to a registry commit.

The steps always run in this order, and a failure at any step aborts the
whole registration:

1. resolve the package directory and read its manifest
2. refuse a dirty package working copy
3. resolve the registry and obtain a working copy (possibly a temporary clone)
4. refuse a dirty registry working copy
5. compute the package tree hash
6. stop early if this exact version is already registered
7. run the consistency checks
8. write the registry files
9. commit, and push if requested

Once step 8 has started, a failure resets the registry working copy to the
commit it had on entry and removes untracked files. With ``commit=False``
the caller owns the uncommitted changes and nothing is reset.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from regforge.config import Settings, load_settings
from regforge.errors import (
    DirtyWorkingCopy,
    InvalidOptions,
    NoRemote,
    PackageUrlMissing,
    PathNotFound,
    PushRequired,
)
from regforge.package.manifest import read_manifest
from regforge.package.resolver import find_package_path
from regforge.registry.checks import check_consistency, is_already_registered
from regforge.registry.discovery import discover_registries
from regforge.registry.files import read_package_file, read_registry
from regforge.registry.locator import check_git_registry, find_registry_path
from regforge.registry.models import (
    KnownRegistry,
    RegistrationAttempt,
    RegistrationResult,
    RegistryIndex,
)
from regforge.registry.mutator import RegistryMutator
from regforge.utils.git_ops import GitRepository, open_repository, use_git_executable

logger = logging.getLogger(__name__)


def register(package: Any = None, **kwargs) -> bool:
    """Register *package* (or a new version of it) in a registry.

    Returns True if a new version was registered, False if this exact
    version was already registered. See ``do_register`` for the options.
    """
    return do_register(package, **kwargs) is RegistrationResult.REGISTERED


def do_register(
    package: Any = None,
    *,
    registry: str | None = None,
    commit: bool = True,
    push: bool = True,
    repo: str | None = None,
    branch: str | None = None,
    ignore_reregistration: bool = False,
    create_gitlab_mr: bool = False,
    settings: Settings | None = None,
    known_registries: list[KnownRegistry] | None = None,
) -> RegistrationResult:
    """Register a package version and report what happened.

    Args:
        package: Package name, path or loaded module; None for the active project.
        registry: Registry name, local path or URL; None to pick automatically.
        commit: Commit the registry changes. Without a commit nothing is pushed
            or rolled back.
        push: Push the commit to the registry's origin.
        repo: Repository URL to record for the package, replacing any
            recorded one. Derived from the package's git remote for new
            packages when omitted.
        branch: Commit on this new branch and push it, then return to the
            original branch.
        ignore_reregistration: Treat a changed re-registration of an
            existing version as a no-op with a warning instead of an error.
        create_gitlab_mr: Ask a GitLab remote to open a merge request via
            push options. Requires commit and push.
        settings: Runtime settings; loaded from config/environment if None.
        known_registries: Installed registries; discovered from the depot if None.

    Raises:
        RegistryError: A subclass describing the first failed check.
    """
    settings = settings or load_settings()
    use_git_executable(settings.git_executable)
    if create_gitlab_mr and not (commit and push):
        raise InvalidOptions("create_gitlab_mr requires both commit and push.")

    package_path = find_package_path(package, settings)
    manifest = read_manifest(package_path)

    package_git = open_repository(package_path, settings.git_options, search_parent_directories=True)
    if package_git is None:
        raise PathNotFound(f"{package_path} is not inside a git repository")
    if commit and package_git.is_dirty():
        raise DirtyWorkingCopy(f"Package repo {package_path} is dirty. Stash or commit files.")

    if known_registries is None:
        known_registries = discover_registries(settings)
    registry_ref = find_registry_path(registry, manifest, known_registries, settings.default_registry)

    with check_git_registry(registry_ref, settings) as handle:
        if handle.is_temp_clone and not (commit and push):
            raise PushRequired(
                f"{handle.display_path} is only available as a temporary clone; "
                "commit and push are required to keep the changes."
            )
        registry_git = GitRepository(handle.local_path, settings.git_options)
        if commit and registry_git.is_dirty():
            raise DirtyWorkingCopy(f"Registry repo {handle.display_path} is dirty. Stash or commit files.")

        tree_hash, subdir, commit_hash = package_git.tree_hash()
        attempt = RegistrationAttempt(
            package_path=package_path,
            manifest=manifest,
            registry_path=handle.local_path,
            tree_hash=tree_hash,
            subdir=subdir,
            commit_hash=commit_hash,
            is_temporary_clone=handle.is_temp_clone,
        )
        logger.info(
            "Registering package %s (uuid %s) from %s in %s, tree %s",
            manifest.qualified_id,
            manifest.uuid,
            package_path,
            handle.display_path,
            tree_hash,
        )
        return _register_version(
            attempt,
            package_git,
            registry_git,
            commit=commit,
            push=push,
            repo=repo,
            branch=branch,
            ignore_reregistration=ignore_reregistration,
            create_gitlab_mr=create_gitlab_mr,
        )


def _register_version(
    attempt: RegistrationAttempt,
    package_git: GitRepository,
    registry_git: GitRepository,
    *,
    commit: bool,
    push: bool,
    repo: str | None,
    branch: str | None,
    ignore_reregistration: bool,
    create_gitlab_mr: bool,
) -> RegistrationResult:
    manifest = attempt.manifest
    index = read_registry(attempt.registry_path)

    if is_already_registered(
        manifest, attempt.tree_hash, index, attempt.registry_path, ignore_reregistration
    ):
        return RegistrationResult.ALREADY_REGISTERED

    check_consistency(manifest, index)

    attempt.is_new_package = manifest.uuid not in index.packages
    attempt.package_repo = repo or _package_repo(attempt, index, package_git)
    if create_gitlab_mr and not branch:
        branch = f"{manifest.name}/v{manifest.version}"

    entry_commit = registry_git.head_commit()
    entry_branch = registry_git.current_branch()
    branch_created = False
    try:
        RegistryMutator(attempt.registry_path, index).apply(
            manifest,
            attempt.tree_hash,
            repo=repo or (attempt.package_repo if attempt.is_new_package else None),
            subdir=attempt.subdir,
        )
        if commit:
            if branch:
                registry_git.checkout_new_branch(branch)
                branch_created = True
            registry_git.commit(commit_message(attempt))
            if push:
                options = gitlab_push_options(attempt) if create_gitlab_mr else None
                registry_git.push(branch, options)
            if branch_created and entry_branch:
                registry_git.checkout(entry_branch)
    except Exception:
        if commit:
            _rollback(registry_git, entry_commit, entry_branch, branch if branch_created else None)
        raise

    return RegistrationResult.REGISTERED


def _package_repo(attempt: RegistrationAttempt, index: RegistryIndex, package_git: GitRepository) -> str:
    """The recorded repository URL, or the package remote for a new package."""
    if not attempt.is_new_package:
        record = index.packages[attempt.manifest.uuid]
        return read_package_file(attempt.registry_path / record.path).get("repo", "")
    try:
        return package_git.remote_url()
    except NoRemote as e:
        raise PackageUrlMissing(
            f"{attempt.manifest.name} is a new package and its repository has no remote; "
            "pass the repository URL explicitly."
        ) from e


def _rollback(registry_git: GitRepository, entry_commit: str, entry_branch: str | None, new_branch: str | None) -> None:
    logger.warning("Registration failed; resetting registry to %s", entry_commit)
    registry_git.reset(entry_commit)
    registry_git.clean()
    if new_branch:
        if entry_branch:
            registry_git.checkout(entry_branch)
        registry_git.delete_branch(new_branch)


def commit_message(attempt: RegistrationAttempt) -> str:
    manifest = attempt.manifest
    kind = "New package" if attempt.is_new_package else "New version"
    lines = [
        f"{kind}: {manifest.name} v{manifest.version}",
        "",
        f"UUID: {manifest.uuid}",
        f"Repo: {attempt.package_repo}",
        f"Tree: {attempt.tree_hash}",
    ]
    if attempt.subdir:
        lines.append(f"Subdir: {attempt.subdir}")
    return "\n".join(lines) + "\n"


def gitlab_push_options(attempt: RegistrationAttempt) -> list[str]:
    """Push options asking GitLab to open and auto-merge a merge request."""
    manifest = attempt.manifest
    kind = "New package" if attempt.is_new_package else "New version"
    user = os.environ.get("GITLAB_USER_LOGIN", "")
    description = (
        f"• Registering package: {manifest.name}<br>"
        f"• Repository: {attempt.package_repo}<br>"
        f"• Version: v{manifest.version}<br>"
        f"• Commit: {attempt.commit_hash}<br>"
        f"• Triggered by: @{user}<br>"
    )
    return [
        "merge_request.create",
        f"merge_request.title={kind}: {manifest.name} v{manifest.version}",
        f"merge_request.description={description}",
        "merge_request.merge_when_pipeline_succeeds",
        "merge_request.remove_source_branch",
    ]
