"""Git operations: clone, inspect and update package and registry working copies."""

from __future__ import annotations

import logging
import shlex
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

import git
from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from regforge.errors import AmbiguousRemote, NoRemote, PathNotFound, RegistryNotFound

logger = logging.getLogger(__name__)


@dataclass
class RepoHandle:
    """A registry working copy handed out by ``check_git_registry``.

    Leaving the ``with`` block deletes the directory when it is a temporary
    clone; a working copy used in place is left alone.
    """

    local_path: Path
    source_url: str = ""  # Clone URL, empty for a working copy used in place
    is_temp_clone: bool = False

    def __enter__(self) -> RepoHandle:
        return self

    def __exit__(self, *exc) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if not self.is_temp_clone:
            return
        logger.debug("Removing temporary registry clone %s", self.local_path)
        shutil.rmtree(self.local_path, ignore_errors=True)

    @property
    def display_path(self) -> str:
        """The registry as named in messages: its URL when cloned."""
        return self.source_url or str(self.local_path)


class GitRepository:
    """A git working copy, optionally narrowed to a subdirectory.

    ``git_options`` are ``key=value`` strings passed as ``-c`` options to
    every git command run through this object.
    """

    def __init__(
        self,
        path: str | Path,
        git_options: list[str] | None = None,
        search_parent_directories: bool = False,
    ):
        self.path = Path(path).resolve()
        self.git_options = list(git_options or [])
        self.repo = Repo(self.path, search_parent_directories=search_parent_directories)

    @property
    def root(self) -> Path:
        return Path(self.repo.working_tree_dir).resolve()

    @property
    def subdir(self) -> str:
        """Path of the wrapped directory relative to the repository root."""
        rel = self.path.relative_to(self.root).as_posix()
        return "" if rel == "." else rel

    @property
    def _git(self):
        # GitPython keeps ``-c`` options for the next command only.
        return self.repo.git(c=self.git_options) if self.git_options else self.repo.git

    # -- inspection -----------------------------------------------------------

    def is_dirty(self) -> bool:
        """True if tracked content under the wrapped directory differs from HEAD."""
        return self.repo.is_dirty(untracked_files=False, path=self.subdir or None)

    def tree_hash(self) -> tuple[str, str, str]:
        """Return ``(tree hash, subdir, commit hash)`` of the wrapped directory at HEAD."""
        commit = self.repo.head.commit
        subdir = self.subdir
        try:
            tree = commit.tree / subdir if subdir else commit.tree
        except KeyError:
            raise PathNotFound(f"{self.path} is not committed in {self.root}")
        return tree.hexsha, subdir, commit.hexsha

    def remote_url(self) -> str:
        """URL of the only configured remote.

        Raises:
            NoRemote: If the repository has no remote.
            AmbiguousRemote: If the repository has more than one remote.
        """
        remotes = self.repo.remotes
        if not remotes:
            raise NoRemote(f"Repository {self.root} does not have a remote.")
        if len(remotes) > 1:
            names = ", ".join(r.name for r in remotes)
            raise AmbiguousRemote(f"Repository {self.root} has multiple remotes: {names}")
        return self._git.remote("get-url", remotes[0].name)

    def head_commit(self) -> str:
        return self.repo.head.commit.hexsha

    def current_branch(self) -> str | None:
        """Name of the checked out branch, or None for a detached HEAD."""
        if self.repo.head.is_detached:
            return None
        return self.repo.active_branch.name

    # -- mutation ---------------------------------------------------------------

    def commit(self, message: str) -> bool:
        """Stage everything and commit. Returns False if there was nothing to commit."""
        self._git.add("--all")
        if not self.repo.is_dirty(index=True, working_tree=False, untracked_files=False):
            logger.info("nothing to commit")
            return False
        logger.debug("Committing in %s", self.root)
        self._git.commit("-q", "-m", message)
        return True

    def push(self, branch: str | None = None, push_options: list[str] | None = None) -> None:
        """Push *branch* (default: the current branch) to origin, setting upstream."""
        branch = branch or self.current_branch() or "HEAD"
        args = [f"--push-option={option}" for option in push_options or []]
        logger.info("Pushing %s to origin", branch)
        self._git.push(*args, "--set-upstream", "origin", branch)

    def reset(self, commit: str) -> None:
        self._git.reset("--hard", "-q", commit)

    def clean(self) -> None:
        self._git.clean("-f", "-d", "-q")

    def checkout(self, branch: str) -> None:
        self._git.checkout("-q", branch)

    def checkout_new_branch(self, branch: str) -> None:
        self._git.checkout("-q", "-b", branch)

    def delete_branch(self, branch: str) -> None:
        self._git.branch("-D", branch)

    def add_remote(self, url: str, name: str = "origin") -> None:
        self._git.remote("add", name, url)


def open_repository(
    path: str | Path, git_options: list[str] | None = None, search_parent_directories: bool = False
) -> GitRepository | None:
    """Open a working copy, or return None if *path* is not one."""
    try:
        return GitRepository(path, git_options, search_parent_directories)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return None


def clone_temporary(url: str, git_options: list[str] | None = None) -> Path:
    """Clone *url* into a fresh temporary directory and return its path.

    Raises:
        RegistryNotFound: If the clone fails.
    """
    clone_dir = Path(tempfile.mkdtemp(prefix="regforge_"))
    logger.info("Cloning %s into temporary directory %s", url, clone_dir)
    try:
        clone_into(url, clone_dir, git_options)
    except GitCommandError as e:
        shutil.rmtree(clone_dir, ignore_errors=True)
        raise RegistryNotFound(f"Could not clone registry from {url}: {e.stderr.strip()}") from e
    return clone_dir


def clone_into(url: str, path: str | Path, git_options: list[str] | None = None) -> GitRepository:
    """Clone *url* into *path*, recording *git_options* in the clone's config."""
    # GitPython joins multi_options and splits them again with shlex.
    Repo.clone_from(
        url,
        path,
        multi_options=[f"--config={shlex.quote(option)}" for option in git_options or []],
        allow_unsafe_options=True,
    )
    return GitRepository(path, git_options)


def init_repository(path: str | Path, git_options: list[str] | None = None) -> GitRepository:
    """Initialize a new, empty working copy at *path*."""
    Repo.init(path)
    return GitRepository(path, git_options)


def use_git_executable(executable: str) -> None:
    """Point GitPython at *executable*; an empty value keeps the current git."""
    if executable:
        logger.debug("Using git executable %s", executable)
        git.refresh(executable)
