"""Helpers that build package and registry working copies for the tests."""

from __future__ import annotations

from pathlib import Path

import tomli_w
from git import Repo

from regforge.config import Settings
from regforge.registry.create import create_registry

TEST_GITCONFIG = {
    "user.name": "regforge tests",
    "user.email": "regforge-tests@example.com",
}

REGISTRY_UUID = "ed6ca2f6-392d-11ea-3224-d3daf7fee369"
REGISTRY_REPO = "git@example.com:Julia/TestRegistry.git"


def make_settings(root: Path) -> Settings:
    return Settings(depot_path=root / "depot", project=root, gitconfig=dict(TEST_GITCONFIG))


def make_registry(path: Path, settings: Settings) -> Path:
    return create_registry(
        path,
        REGISTRY_REPO,
        description="For testing purposes only.",
        uuid=REGISTRY_UUID,
        settings=settings,
    )


def _open_or_init(top_dir: Path, remote: str | None) -> Repo:
    if (top_dir / ".git").is_dir():
        return Repo(top_dir)
    top_dir.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(top_dir)
    with repo.config_writer() as cw:
        cw.set_value("user", "name", TEST_GITCONFIG["user.name"])
        cw.set_value("user", "email", TEST_GITCONFIG["user.email"])
    if remote:
        repo.create_remote("origin", remote)
    return repo


def prepare_package(
    packages_dir: Path,
    name: str,
    uuid: str,
    version: str | None,
    deps: dict | None = None,
    compat: dict | None = None,
    subdir: str = "",
    manifest_file: str = "Project.toml",
    remote: str | None = "default",
) -> Path:
    """Create or update a package repository and commit its manifest.

    Returns the package directory (the repository root, or *subdir* in it).
    """
    top_dir = packages_dir / name
    if remote == "default":
        remote = f"git@example.com:Julia/{name}.jl.git"
    repo = _open_or_init(top_dir, remote)

    package_dir = top_dir / subdir
    (package_dir / "src").mkdir(parents=True, exist_ok=True)
    project = {"name": name, "uuid": uuid}
    if version is not None:
        project["version"] = version
    if deps:
        project["deps"] = deps
    if compat:
        project["compat"] = compat
    (package_dir / manifest_file).write_text(tomli_w.dumps(project))
    (package_dir / "README.md").write_text(f"# {name}\n")
    (package_dir / "src" / f"{name}.jl").write_text(f"module {name}\nend\n")
    if subdir:
        (top_dir / "README.md").write_text("# Top Level README\n")

    repo.git.add("--all")
    if repo.git.status("--porcelain"):
        repo.git.commit("-q", "-m", f"Version {version}")
    return package_dir


def snapshot(root: Path) -> dict[str, bytes]:
    """Every file under *root* except git metadata, keyed by relative path."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".git" not in p.relative_to(root).parts
    }
