"""Command-line interface for oranda.

This module defines the CLI commands using the Click framework.

Commands:
- build: Build the site into the dist directory.
- serve: Serve the built site.
- dev: Build, serve, and rebuild whenever a watched file changes.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

import click

from . import __version__, message
from .errors import BuildError, OrandaError

_path = click.Path(path_type=Path)


@click.group()
@click.version_option(version=__version__, prog_name="oranda")
@click.option("-v", "--verbose", is_flag=True, help="Print debug output")
def cli(verbose: bool):
    """oranda: static landing pages for your projects."""
    message.set_verbose(verbose)
    message.logger.setLevel(logging.DEBUG if verbose else logging.NOTSET)


@cli.command()
@click.option("--project-root", type=_path, hidden=True, help="Path to the root dir of the project")
@click.option("--config-path", type=_path, hidden=True, help="Path to the oranda.json")
def build(project_root: Path | None, config_path: Path | None):
    """Build the site into the dist directory."""
    from .build import build_site

    with _fatal_errors():
        result = build_site(project_root, config_path)
    message.success(f"Built {len(result.pages)} pages into {result.output_dir}")


@cli.command()
@click.option("--port", type=click.IntRange(1, 65535), help="The port for the file server")
@click.option("--project-root", type=_path, hidden=True, help="Path to the root dir of the project")
@click.option("--config-path", type=_path, hidden=True, help="Path to the oranda.json")
def serve(port: int | None, project_root: Path | None, config_path: Path | None):
    """Serve the built site."""
    from .server import serve_site

    with _fatal_errors():
        serve_site(port=port, project_root=project_root, config_path=config_path)


@cli.command()
@click.option("--port", type=click.IntRange(1, 65535), help="The port for the file server")
@click.option("--project-root", type=_path, hidden=True, help="Path to the root dir of the project")
@click.option("--config-path", type=_path, hidden=True, help="Path to the oranda.json")
@click.option("--no-first-build", is_flag=True, help="Skip the first build before watching")
@click.option(
    "-i",
    "--include-paths",
    type=_path,
    multiple=True,
    help="Extra path to watch (repeatable)",
)
def dev(
    port: int | None,
    project_root: Path | None,
    config_path: Path | None,
    no_first_build: bool,
    include_paths: tuple[Path, ...],
):
    """Build, serve, and rebuild whenever a watched file changes."""
    from .dev import RebuildOrchestrator

    orchestrator = RebuildOrchestrator(
        project_root=project_root,
        config_path=config_path,
        port=port,
        no_first_build=no_first_build,
        include_paths=include_paths,
    )
    with _fatal_errors():
        try:
            orchestrator.run()
        except KeyboardInterrupt:
            message.info("Stopping dev")


@contextlib.contextmanager
def _fatal_errors():
    """Report OrandaErrors and exit with status 1."""
    try:
        yield
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  File: {exc.source_path}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    except OrandaError as exc:
        message.error(str(exc))
        raise SystemExit(1) from None


def main():
    """Entry point for the CLI application."""
    cli()
