"""Command-line interface for Quire.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the output directory.

Exit codes of ``quire build``:
- 0: every post, page and asset was built.
- 1: the build finished but some items were skipped.
- 2: a stage failed and the build was aborted.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__

EXIT_OK = 0
EXIT_ITEMS_SKIPPED = 1
EXIT_ABORTED = 2


@click.group()
@click.version_option(version=__version__, prog_name="quire")
def cli():
    """Quire static site builder."""


@cli.command()
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Project root (defaults to the current directory)",
)
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Output directory (overrides quire.yaml output_dir)",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
def build(project: Path, output: Path | None, verbose: bool):
    """Build the site into the output directory."""
    _setup_logging(verbose)
    project_root = project.resolve()
    from .build import BuildError, build_site

    try:
        report = build_site(project_root, output_dir_override=output)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Stage: {exc.stage}", fg="yellow"), err=True)
        if exc.source_path is not None:
            click.echo(
                click.style(f"  File: {_display_path(exc.source_path, project_root)}", fg="yellow"),
                err=True,
            )
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(EXIT_ABORTED) from None

    for failure in report.failures:
        click.echo(
            click.style(f"Skipped {_display_path(failure.path, project_root)}: ", fg="yellow")
            + failure.message,
            err=True,
        )
    click.echo(
        f"Built {len(report.posts)} posts, {len(report.pages)} pages and "
        f"{len(report.assets)} assets into {report.output_dir}"
    )
    if not report.ok:
        raise SystemExit(EXIT_ITEMS_SKIPPED)


def main():
    """Entry point for the CLI application."""
    cli()


def _setup_logging(verbose: bool) -> None:
    """Send pipeline log records to stderr as plain messages."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        force=True,
    )


def _display_path(path: Path, project_root: Path) -> str:
    """Show a path relative to the project root when it lies inside it."""
    try:
        return str(path.resolve().relative_to(project_root))
    except ValueError:
        return str(path)
