#!/usr/bin/env python3
"""
Main CLI entry point for swarmbox
"""

from pathlib import Path

import typer

from swarmbox import __version__
from swarmbox.cli.command_registry import CommandRegistry
from swarmbox.commands.container import register_commands
from swarmbox.config.constants import DEFAULT_ENV_FILE
from swarmbox.config.settings import get_log_path, load_settings
from swarmbox.error_handling import setup_logging
from swarmbox.runtime.docker import DockerRuntime
from swarmbox.runtime.lifecycle import LifecycleManager


def _version_callback(value: bool):
    if value:
        typer.echo(f"swarmbox version {__version__}")
        raise typer.Exit()


# Callback for global options
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
    env_file: Path = typer.Option(
        Path(DEFAULT_ENV_FILE), "--env-file", envvar="SWARMBOX_ENV_FILE",
        help="Environment file passed to the container",
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit",
    ),
):
    """
    swarmbox - lifecycle manager for the GPU development container

    [bold]Examples:[/bold]

    Build the image and start a background container:
        [cyan]swarmbox build && swarmbox daemon[/cyan]

    Open a shell inside it:
        [cyan]swarmbox exec bash[/cyan]

    Keep it healthy:
        [cyan]swarmbox watch[/cyan]
    """
    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive", err=True)
        raise typer.Exit(1)

    setup_logging(verbose=verbose, quiet=quiet, log_file=get_log_path())
    settings = load_settings(env_file=env_file)
    ctx.obj = LifecycleManager(settings, DockerRuntime())


def create_app() -> typer.Typer:
    """Create and configure the main CLI application"""
    registry = CommandRegistry()
    register_commands(registry)

    app = registry.build_app()
    app.callback()(main)
    return app


# Create the app instance
app = create_app()


def run():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    run()
