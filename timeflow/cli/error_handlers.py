"""Error handling for CLI commands.

Each error family maps to its own exit code so scripts can react to, for
example, an invalid timer transition differently from a storage failure.
"""

import sys
import traceback

import click
from pydantic import ValidationError

from timeflow.cli.utils.formatters import format_error, format_warning
from timeflow.errors import (
    DataIntegrityViolation,
    InvalidTimerState,
    SessionCorrupted,
    StorageError,
    StorageQuotaExceeded,
    TimeflowError,
)

EXIT_GENERAL = 1
EXIT_INVALID_TIMER_STATE = 2
EXIT_SESSION_CORRUPTED = 3
EXIT_DATA_INTEGRITY = 4
EXIT_QUOTA_EXCEEDED = 5
EXIT_STORAGE = 6
EXIT_NOT_FOUND = 7
EXIT_INVALID_INPUT = 8
EXIT_CANCELLED = 130
EXIT_UNEXPECTED = 255

# Most specific classes first
_TIMEFLOW_ERRORS = [
    (InvalidTimerState, "Timer Error", EXIT_INVALID_TIMER_STATE),
    (SessionCorrupted, "Recovery Error", EXIT_SESSION_CORRUPTED),
    (DataIntegrityViolation, "Data Integrity Error", EXIT_DATA_INTEGRITY),
    (StorageQuotaExceeded, "Storage Full", EXIT_QUOTA_EXCEEDED),
    (StorageError, "Storage Error", EXIT_STORAGE),
]


def _echo_error(message: str) -> None:
    click.echo(format_error(message), err=True)


def _echo_hint(hint: str) -> None:
    click.echo(format_warning(f"Hint: {hint}"), err=True)


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Handle CLI errors with user-friendly messages.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code for the error type
    """
    if isinstance(error, TimeflowError):
        title, code = "Error", EXIT_GENERAL
        for error_class, error_title, error_code in _TIMEFLOW_ERRORS:
            if isinstance(error, error_class):
                title, code = error_title, error_code
                break

        _echo_error(f"{title}: {error.message}")
        if error.recovery_hint:
            _echo_hint(error.recovery_hint)
        return code

    if isinstance(error, KeyError):
        # KeyError str() wraps the message in quotes
        message = error.args[0] if error.args else "record"
        _echo_error(f"Not Found: {message}")
        _echo_hint("Check the id with the matching 'list' command")
        return EXIT_NOT_FOUND

    if isinstance(error, ValidationError):
        _echo_error(f"Invalid Input: {error.error_count()} validation error(s)")
        for detail in error.errors():
            location = ".".join(str(part) for part in detail["loc"]) or "input"
            click.echo(f"  {location}: {detail['msg']}", err=True)
        return EXIT_INVALID_INPUT

    if isinstance(error, ValueError):
        _echo_error(f"Invalid Input: {error}")
        return EXIT_INVALID_INPUT

    if isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"), err=True)
        return EXIT_CANCELLED

    _echo_error(f"Unexpected Error: {type(error).__name__}")
    click.echo(str(error), err=True)

    if debug:
        click.echo("\nFull stack trace:", err=True)
        click.echo(traceback.format_exc(), err=True)
    else:
        click.echo(
            format_warning("\nRun with --debug flag for full stack trace"), err=True
        )

    return EXIT_UNEXPECTED


def with_error_handling(debug: bool = False):
    """
    Context manager adding standardized error handling to CLI commands.

    Click's own exceptions (usage errors, ``ctx.exit``) pass through
    untouched; anything else is rendered by :func:`handle_cli_error` and
    turned into the matching exit code.

    Args:
        debug: Whether to show full stack traces

    Example:
        @click.command()
        @click.pass_obj
        def pause(app):
            with with_error_handling(app.debug):
                app.engine.pause()
    """

    class ErrorHandler:
        """Context manager for error handling."""

        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is None or not isinstance(exc_val, Exception):
                return False
            if isinstance(exc_val, (click.ClickException, click.exceptions.Exit)):
                return False
            exit_code = handle_cli_error(exc_val, self.show_debug)
            sys.exit(exit_code)

    return ErrorHandler(debug)
