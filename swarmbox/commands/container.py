"""
Lifecycle subcommands for the development container.

Each handler pulls the LifecycleManager from the Typer context, runs one
operation, and turns the runtime's exit code into the process exit code.
"""

import functools
import logging
from typing import Callable, List, Optional

import typer
from rich import box
from rich.panel import Panel
from rich.table import Table

from swarmbox.cli.command_registry import Command, CommandRegistry
from swarmbox.config.constants import WEB_UI_PORT
from swarmbox.error_handling import handle_error
from swarmbox.runtime.docker import ContainerState, HealthStatus
from swarmbox.runtime.lifecycle import LifecycleManager
from swarmbox.runtime.supervisor import HealthSupervisor
from swarmbox.utils.output import console

logger = logging.getLogger(__name__)

_HEALTH_COLORS = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.STARTING: "yellow",
    HealthStatus.UNHEALTHY: "red",
    HealthStatus.NONE: "dim",
}


def _show_details(ctx: Optional[typer.Context]) -> bool:
    if ctx is None:
        return False
    return bool(ctx.find_root().params.get("verbose"))


def lifecycle_command(operation: str):
    """Report failures through handle_error and propagate exit codes."""
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                code = func(*args, **kwargs)
            except typer.Exit:
                raise
            except Exception as e:
                handle_error(e, operation, show_details=_show_details(kwargs.get("ctx")))
            else:
                if code:
                    raise typer.Exit(code)
        return wrapper
    return decorator


def _manager(ctx: typer.Context) -> LifecycleManager:
    return ctx.obj


@lifecycle_command("build")
def build(
    ctx: typer.Context,
    args: Optional[List[str]] = typer.Argument(None, help="Extra arguments for docker build"),
):
    """Build the Docker image."""
    return _manager(ctx).build(args or [])


@lifecycle_command("start")
def start(ctx: typer.Context):
    """Run or start the container with hardened flags (interactive)."""
    return _manager(ctx).start()


@lifecycle_command("daemon")
def daemon(ctx: typer.Context):
    """Run the container in background mode (detached)."""
    manager = _manager(ctx)
    code = manager.daemon()
    if code:
        return code

    console.print(f"Container '{manager.name}' running in background")
    console.print("Access with: [cyan]swarmbox exec bash[/cyan]")
    console.print("View logs with: [cyan]swarmbox logs[/cyan]")
    console.print(f"Web UI available at: http://localhost:{WEB_UI_PORT}")
    return 0


@lifecycle_command("exec")
def exec_(
    ctx: typer.Context,
    command: List[str] = typer.Argument(..., help="Command to run inside the container"),
):
    """Run a command inside the running container."""
    return _manager(ctx).exec(command)


@lifecycle_command("logs")
def logs(ctx: typer.Context):
    """Tail container logs."""
    return _manager(ctx).logs()


@lifecycle_command("health")
def health(ctx: typer.Context):
    """Show container health status."""
    console.print(_manager(ctx).health().value)


@lifecycle_command("status")
def status(ctx: typer.Context):
    """Show detailed container status."""
    manager = _manager(ctx)
    snapshot = manager.status()
    if snapshot is None:
        console.print(f"Container '{manager.name}' does not exist")
        return

    table = Table(title="Container Status", box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("State")
    table.add_row(snapshot.info.name, snapshot.info.status, snapshot.info.raw_state)
    console.print(table)

    color = _HEALTH_COLORS[snapshot.health]
    health_text = snapshot.health.value if snapshot.health != HealthStatus.NONE else "N/A"
    console.print(f"Health: [{color}]{health_text}[/{color}]")
    console.print(f"Ports: {', '.join(snapshot.ports) if snapshot.ports else 'None'}")
    console.print(f"Image: {snapshot.image or 'N/A'}")

    if snapshot.stats is None:
        console.print("Resource Usage: [dim]Stats not available[/dim]")
        return

    usage = Table(title="Resource Usage", box=box.SIMPLE)
    for column in ("CPU %", "Memory", "Net I/O", "Block I/O"):
        usage.add_column(column)
    usage.add_row(
        snapshot.stats.get("CPUPerc", "-"),
        snapshot.stats.get("MemUsage", "-"),
        snapshot.stats.get("NetIO", "-"),
        snapshot.stats.get("BlockIO", "-"),
    )
    console.print(usage)


@lifecycle_command("stop")
def stop(ctx: typer.Context):
    """Stop the container."""
    return _manager(ctx).stop()


@lifecycle_command("rm")
def rm(ctx: typer.Context):
    """Remove the container."""
    manager = _manager(ctx)
    code = manager.remove()
    if code == 0:
        logger.debug(f"Container '{manager.name}' is now {ContainerState.REMOVED.value}")
    return code


@lifecycle_command("restart")
def restart(ctx: typer.Context):
    """Restart the container (works whether it is running or stopped)."""
    return _manager(ctx).restart()


@lifecycle_command("watch")
def watch(ctx: typer.Context):
    """Check health every 60s and restart the container if unhealthy."""
    supervisor = HealthSupervisor(_manager(ctx))
    with supervisor.signal_handlers():
        supervisor.run()


@lifecycle_command("cleanup")
def cleanup(ctx: typer.Context):
    """Clean up Docker resources (system and volume prune)."""
    console.print("Cleaning up Docker resources...")
    code = _manager(ctx).cleanup()
    if code == 0:
        console.print("[green]Cleanup complete[/green]")
    return code


@lifecycle_command("persist")
def persist(ctx: typer.Context):
    """Save analysis outputs to persistent storage."""
    console.print("Saving analysis outputs to persistent storage...")
    result = _manager(ctx).persist()

    lines = [
        f"Analysis: {result.backup_dir}/",
        f"Outputs:  {result.output_dir}/",
        f"Logs:     {result.log_file or 'not saved'}",
        f"State:    {result.state_file or 'not saved'}",
    ]
    console.print(Panel("\n".join(lines), title="Data saved to", border_style="green"))


def register_commands(registry: CommandRegistry) -> None:
    """Fill the dispatch table with every lifecycle handler."""
    registry.register(Command.BUILD, build, passthrough=True)
    registry.register(Command.START, start)
    registry.register(Command.DAEMON, daemon)
    registry.register(Command.EXEC, exec_, passthrough=True)
    registry.register(Command.LOGS, logs)
    registry.register(Command.HEALTH, health)
    registry.register(Command.STATUS, status)
    registry.register(Command.STOP, stop)
    registry.register(Command.RM, rm)
    registry.register(Command.RESTART, restart)
    registry.register(Command.WATCH, watch)
    registry.register(Command.CLEANUP, cleanup)
    registry.register(Command.PERSIST, persist)
