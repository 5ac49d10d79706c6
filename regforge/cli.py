"""regforge CLI: create registries and register package versions."""

import logging

import click
from git import GitCommandError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from regforge import __version__
from regforge.errors import RegistryError

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="YAML settings file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """regforge: maintain a git-backed package registry.

    Registers packages and new package versions in a registry working copy,
    checking that names, UUIDs, dependencies and compat ranges stay
    consistent, then commits and pushes the result.
    """
    from regforge.config import load_settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = load_settings(config_path)


def _fail(error: Exception) -> None:
    if isinstance(error, RegistryError):
        console.print(f"[red]Error[/] [dim]({error.code})[/] {error}")
    else:
        console.print(f"[red]git failed:[/] {error}")
    raise SystemExit(1)


# ── Create ───────────────────────────────────────────────────────────


@main.command()
@click.argument("name_or_path")
@click.argument("repo")
@click.option("--description", "-d", default=None, help="Purpose of the registry")
@click.option("--push/--no-push", default=False, help="Push the new registry to REPO")
@click.option("--branch", "-b", default=None, help="Branch to create the registry on")
@click.pass_obj
def create(settings, name_or_path: str, repo: str, description: str | None, push: bool, branch: str | None):
    """Create a new registry.

    NAME_OR_PATH is a registry name (created in the depot) or a path.
    REPO is the URL the registry will be published at.
    """
    from regforge.registry.create import create_registry

    try:
        path = create_registry(
            name_or_path, repo, description=description, push=push, branch=branch, settings=settings
        )
    except (RegistryError, GitCommandError) as e:
        _fail(e)
    console.print(f"\n[green]Registry created at:[/] {path}")


# ── Register ─────────────────────────────────────────────────────────


@main.command(name="register")
@click.argument("package", required=False)
@click.option("--registry", "-r", default=None, help="Registry name, path or URL")
@click.option("--commit/--no-commit", default=True, help="Commit the registry changes")
@click.option("--push/--no-push", default=True, help="Push the registry commit")
@click.option("--repo", default=None, help="Package repository URL to record")
@click.option("--branch", "-b", default=None, help="Commit on a new registry branch")
@click.option("--ignore-reregistration", is_flag=True, help="Skip changed re-registrations with a warning")
@click.option("--gitlab-mr", is_flag=True, help="Open a GitLab merge request through push options")
@click.pass_obj
def register_command(
    settings,
    package: str | None,
    registry: str | None,
    commit: bool,
    push: bool,
    repo: str | None,
    branch: str | None,
    ignore_reregistration: bool,
    gitlab_mr: bool,
):
    """Register a package, or a new version of a package.

    PACKAGE is a developed package name or a package path; it defaults to
    the active project.
    """
    from regforge.registry.models import RegistrationResult
    from regforge.registry.register import do_register

    try:
        result = do_register(
            package,
            registry=registry,
            commit=commit,
            push=push,
            repo=repo,
            branch=branch,
            ignore_reregistration=ignore_reregistration,
            create_gitlab_mr=gitlab_mr,
            settings=settings,
        )
    except (RegistryError, GitCommandError) as e:
        _fail(e)

    if result is RegistrationResult.REGISTERED:
        console.print("\n[green]Registered.[/]")
    else:
        console.print("\n[yellow]Nothing to do:[/] this version is already registered.")


# ── Merge ────────────────────────────────────────────────────────────


@main.command(name="merge")
@click.argument("target_path")
@click.argument("source_path")
@click.option("--include", "-i", multiple=True, help="Only merge these packages")
@click.option("--exclude", "-x", multiple=True, help="Merge everything but these packages")
@click.option("--merge-packages", is_flag=True, help="Merge versions of packages present in both")
def merge_command(target_path: str, source_path: str, include: tuple, exclude: tuple, merge_packages: bool):
    """Copy packages from SOURCE_PATH into the registry at TARGET_PATH."""
    from regforge.registry.merge import merge

    try:
        names = merge(
            target_path,
            source_path,
            include=list(include) or None,
            exclude=list(exclude) or None,
            merge_packages=merge_packages,
        )
    except RegistryError as e:
        _fail(e)

    if not names:
        console.print("[yellow]No packages merged.[/]")
        return

    table = Table(title=f"Merged into {target_path} ({len(names)} packages)")
    table.add_column("Package", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)
    console.print("Review the result and commit it.")


if __name__ == "__main__":
    main()
