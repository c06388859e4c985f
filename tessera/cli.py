"""Command-line interface for Tessera.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the output directory.
- watch: Rebuild the whole site whenever a source file changes.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__
from .errors import BuildError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_config_option = click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (default: tessera.yaml)",
)
_verbose_option = click.option("-v", "--verbose", is_flag=True, help="Log debug output")
_quiet_option = click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors")


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
def cli():
    """Tessera static site builder."""


@cli.command()
@_config_option
@_verbose_option
@_quiet_option
def build(config_file: Path | None, verbose: bool, quiet: bool):
    """Build the site into the output directory."""
    _configure_logging(verbose, quiet)
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(project_root, config_file)
    except BuildError as exc:
        _report_failure(exc, project_root)
        raise SystemExit(1) from None
    click.echo(
        f"Built {result.rendered} pages and copied {result.copied} files "
        f"into {result.output_dir}"
    )


@cli.command()
@_config_option
@_verbose_option
@_quiet_option
def watch(config_file: Path | None, verbose: bool, quiet: bool):
    """Rebuild the whole site whenever a source file changes."""
    _configure_logging(verbose, quiet)
    project_root = Path.cwd()
    from .watcher import SiteWatcher

    try:
        watcher = SiteWatcher(project_root, config_file)
    except BuildError as exc:
        _report_failure(exc, project_root)
        raise SystemExit(1) from None
    watcher.start()


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet cannot be used together")
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def _report_failure(exc: BuildError, project_root: Path) -> None:
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    if exc.source_path is not None:
        rel_path = _display_path(exc.source_path, project_root)
        click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _display_path(path: Path, project_root: Path) -> Path:
    try:
        return Path(path).resolve().relative_to(project_root.resolve())
    except ValueError:
        return Path(path)


def main():
    """Entry point for the tessera command."""
    cli()
