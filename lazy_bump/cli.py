"""CLI entry point for lazy-bump."""

from __future__ import annotations

import click

from lazy_bump.errors import LazyBumpError
from lazy_bump.models import BumpType
from lazy_bump.pipeline import create_change, run_bump, run_check

BUMP_CHOICES = click.Choice([t.value for t in BumpType], case_sensitive=False)


@click.group()
@click.version_option(package_name="lazy-bump")
def cli() -> None:
    """Change-file driven version bumps for uv workspaces."""


@cli.command()
@click.argument("package")
@click.option("-t", "--type", "bump", type=BUMP_CHOICES, required=True, help="Bump type.")
@click.option("-m", "--message", required=True, help="Changelog description.")
@click.option(
    "--dependent-type",
    type=BUMP_CHOICES,
    default=None,
    help="Bump type dependents receive because of this change.",
)
@click.option("--author", default=None, help="Author recorded in the change file.")
def change(
    package: str,
    bump: str,
    message: str,
    dependent_type: str | None,
    author: str | None,
) -> None:
    """Record a pending change for PACKAGE."""
    try:
        path = create_change(
            package,
            BumpType.parse(bump),
            message,
            dependent_type=BumpType.parse(dependent_type) if dependent_type else None,
            author=author,
        )
    except LazyBumpError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"✓ Wrote {path.name}")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Print the plan without writing files.")
@click.option("--commit", is_flag=True, help="Commit the bumped files.")
def bump(dry_run: bool, commit: bool) -> None:
    """Apply pending change files: bump versions and write changelogs."""
    try:
        run_bump(dry_run=dry_run, commit=commit)
    except LazyBumpError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.option(
    "--branch",
    default="origin/main",
    show_default=True,
    help="Target branch to compare against.",
)
def check(branch: str) -> None:
    """Fail if changed packages lack change files or change files were deleted."""
    try:
        problems = run_check(branch)
    except LazyBumpError as exc:
        raise click.ClickException(str(exc)) from exc
    if problems:
        raise click.ClickException("\n".join(problems))
