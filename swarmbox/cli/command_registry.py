"""
Command registration for swarmbox.

Subcommands form a closed enum. Handlers are registered against it and
the registry refuses to build an app while any member lacks a handler.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List

import typer

# Lets typer pass `exec ls -la` style trailing arguments through untouched
PASSTHROUGH_CONTEXT = {"allow_extra_args": True, "ignore_unknown_options": True}


class Command(str, Enum):
    """Every lifecycle subcommand the CLI exposes"""
    BUILD = "build"
    START = "start"
    DAEMON = "daemon"
    EXEC = "exec"
    LOGS = "logs"
    HEALTH = "health"
    STATUS = "status"
    STOP = "stop"
    RM = "rm"
    RESTART = "restart"
    WATCH = "watch"
    CLEANUP = "cleanup"
    PERSIST = "persist"


@dataclass
class CommandDefinition:
    """Definition of a single CLI command"""
    command: Command
    function: Callable
    help: str
    passthrough: bool = False

    def __post_init__(self):
        if not callable(self.function):
            raise ValueError(f"Command {self.command.value} function must be callable")


class CommandRegistry:
    """Dispatch table from Command to handler"""

    def __init__(self):
        self.commands: Dict[Command, CommandDefinition] = {}
        self.errors: List[str] = []

    def register(
        self,
        command: Command,
        function: Callable,
        help: str = "",
        passthrough: bool = False,
    ) -> bool:
        """Register the handler for one command"""
        if command in self.commands:
            self.errors.append(f"Duplicate command: {command.value}")
            return False

        # Extract help from docstring if not provided
        if not help and function.__doc__:
            help = function.__doc__.strip().split('\n')[0]

        self.commands[command] = CommandDefinition(
            command=command,
            function=function,
            help=help,
            passthrough=passthrough,
        )
        return True

    def missing(self) -> List[Command]:
        """Commands with no registered handler"""
        return [command for command in Command if command not in self.commands]

    def validate(self) -> bool:
        """Validate the current registry state"""
        for command in self.missing():
            self.errors.append(f"No handler registered for command: {command.value}")
        return not self.errors

    def build_app(
        self,
        name: str = "swarmbox",
        help: str = "Lifecycle manager for the GPU development container",
    ) -> typer.Typer:
        """Build the typer application in Command declaration order"""
        if not self.validate():
            raise RuntimeError("; ".join(self.errors))

        app = typer.Typer(
            name=name,
            help=help,
            add_completion=True,
            no_args_is_help=True,
            rich_markup_mode="rich",
        )

        for command in Command:
            cmd_def = self.commands[command]
            app.command(
                name=command.value,
                help=cmd_def.help,
                context_settings=PASSTHROUGH_CONTEXT if cmd_def.passthrough else None,
            )(cmd_def.function)

        return app

