"""
Centralized error handling for swarmbox

This module provides standardized error handling with:
- Rich Console for user-facing error messages
- Structured logging for developer diagnostics
- Custom exception classes for the lifecycle failure modes
- Consistent formatting and exit codes
"""

import logging
import sys
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .config.constants import LOG_BACKUP_COUNT, MAX_LOG_BYTES

# Global console instance for error display
console = Console(stderr=True)

# Global logger for diagnostics
logger = logging.getLogger("swarmbox")


class ErrorSeverity(Enum):
    """Error severity levels for categorization"""
    ERROR = "error"
    CRITICAL = "critical"  # nothing else can work, e.g. no docker daemon


class ErrorCategory(Enum):
    """Error categories for better handling"""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    EXTERNAL_TOOL = "external_tool"
    INTERNAL = "internal"


class SwarmboxError(Exception):
    """Base exception class for swarmbox-specific errors"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        exit_code: int = 1
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.suggestion = suggestion
        self.exit_code = exit_code


class RuntimeUnavailableError(SwarmboxError):
    """The container runtime could not be reached (preflight failure)"""

    def __init__(self, message: str = "Docker daemon not accessible", **kwargs):
        kwargs.setdefault(
            "suggestion", "Start the Docker daemon and check that your user can reach it."
        )
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(
            message,
            category=ErrorCategory.EXTERNAL_TOOL,
            **kwargs
        )


class RuntimeCommandError(SwarmboxError):
    """A runtime invocation that had to succeed returned non-zero"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.EXTERNAL_TOOL,
            **kwargs
        )


class ContainerNotRunningError(SwarmboxError):
    """A command that needs a running container found none"""

    def __init__(self, container_name: str, **kwargs):
        kwargs.setdefault("details", {"container": container_name})
        kwargs.setdefault("suggestion", "Start it first with: swarmbox daemon")
        super().__init__(
            f"Container '{container_name}' is not running",
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.container_name = container_name


class ContainerNotFoundError(SwarmboxError):
    """A command that needs an existing container found none"""

    def __init__(self, container_name: str, **kwargs):
        kwargs.setdefault("details", {"container": container_name})
        kwargs.setdefault("suggestion", "Create it first with: swarmbox daemon")
        super().__init__(
            f"Container '{container_name}' does not exist",
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.container_name = container_name


class ConfigurationError(SwarmboxError):
    """Errors related to local configuration"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Set up logging for swarmbox

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Only show errors on the console
        log_file: Optional log file path (file logging is skipped when None)
    """
    if verbose:
        console_level = logging.DEBUG
    elif quiet:
        console_level = logging.ERROR
    else:
        console_level = logging.INFO

    detailed_formatter = logging.Formatter(
        '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s'
    )
    simple_formatter = logging.Formatter('%(levelname)s: %(message)s')

    # Clear any existing handlers
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(simple_formatter)
    logger.addHandler(console_handler)

    if log_file is None:
        return

    try:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        # If we can't create log file, continue without it
        logger.debug(f"Could not create log file {log_file}: {e}")


def handle_error(
    error: Exception,
    operation: str = "unknown",
    show_details: bool = False
) -> None:
    """
    Report an error to the operator and exit with its code

    Args:
        error: The exception to handle
        operation: Description of the operation that failed
        show_details: Whether to show technical details to user
    """
    if isinstance(error, SwarmboxError):
        _handle_swarmbox_error(error, operation, show_details)
    else:
        _handle_generic_error(error, operation, show_details)


def _handle_swarmbox_error(
    error: SwarmboxError,
    operation: str,
    show_details: bool
) -> None:
    """Handle SwarmboxError instances with rich formatting"""
    log_message = f"{operation}: {error.category.value}: {error.message}"

    if error.severity == ErrorSeverity.CRITICAL:
        logger.critical(log_message)
    else:
        logger.error(log_message)

    _display_user_error(error, show_details)
    raise typer.Exit(error.exit_code)


def _handle_generic_error(
    error: Exception,
    operation: str,
    show_details: bool
) -> None:
    """Handle generic Python exceptions"""
    logger.error(f"Unexpected error during {operation}: {error}", exc_info=True)

    wrapped_error = SwarmboxError(
        message=f"An unexpected error occurred during {operation}",
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.ERROR,
        details={"original_error": str(error), "error_type": type(error).__name__},
        suggestion="Re-run with --verbose and check the log file for details."
    )

    _display_user_error(wrapped_error, show_details)
    raise typer.Exit(1)


def _display_user_error(error: SwarmboxError, show_details: bool) -> None:
    """Display error to user with Rich formatting"""
    color = "red"

    message = Text()
    message.append(error.message, style=f"bold {color}")

    if show_details and error.details:
        details_text = "\n".join(f"- {k}: {v}" for k, v in error.details.items())
        message.append(f"\n\nDetails:\n{details_text}", style=f"dim {color}")

    if error.suggestion:
        message.append(f"\n\nSuggestion: {error.suggestion}", style="cyan")

    panel = Panel(
        message,
        title=f"[bold]{error.category.value.replace('_', ' ').title()} Error[/bold]",
        title_align="left",
        border_style=color,
        padding=(0, 1)
    )

    console.print(panel)
