"""Unit tests for CLI error handling."""

import click
import pytest
from pydantic import ValidationError

from timeflow.cli.error_handlers import (
    EXIT_CANCELLED,
    EXIT_DATA_INTEGRITY,
    EXIT_GENERAL,
    EXIT_INVALID_INPUT,
    EXIT_INVALID_TIMER_STATE,
    EXIT_NOT_FOUND,
    EXIT_QUOTA_EXCEEDED,
    EXIT_SESSION_CORRUPTED,
    EXIT_STORAGE,
    EXIT_UNEXPECTED,
    handle_cli_error,
    with_error_handling,
)
from timeflow.errors import (
    DataIntegrityViolation,
    InvalidTimerState,
    SessionCorrupted,
    StorageError,
    StorageQuotaExceeded,
    TimeflowError,
)
from timeflow.models.project import Project


class TestHandleCliError:
    """Test mapping of exceptions to messages and exit codes."""

    @pytest.mark.parametrize(
        "error,code,title",
        [
            (
                InvalidTimerState("paused", "pause"),
                EXIT_INVALID_TIMER_STATE,
                "Timer Error",
            ),
            (SessionCorrupted("too old"), EXIT_SESSION_CORRUPTED, "Recovery Error"),
            (
                DataIntegrityViolation("Task", "t-1", "Project", "p-9"),
                EXIT_DATA_INTEGRITY,
                "Data Integrity Error",
            ),
            (StorageQuotaExceeded(100, 10), EXIT_QUOTA_EXCEEDED, "Storage Full"),
            (StorageError("disk unavailable"), EXIT_STORAGE, "Storage Error"),
            (TimeflowError("something else"), EXIT_GENERAL, "Error"),
        ],
    )
    def test_timeflow_errors(self, capsys, error, code, title):
        assert handle_cli_error(error) == code

        err = capsys.readouterr().err
        assert f"{title}: {error.message}" in err

    def test_recovery_hint_shown(self, capsys):
        handle_cli_error(InvalidTimerState("stopped", "stop"))

        err = capsys.readouterr().err
        assert "Cannot stop timer while it is stopped" in err
        assert "Hint: Check the timer status before issuing this command" in err

    def test_no_hint_line_without_hint(self, capsys):
        handle_cli_error(StorageError("disk unavailable"))
        assert "Hint" not in capsys.readouterr().err

    def test_key_error_unquoted(self, capsys):
        assert handle_cli_error(KeyError("Task not found: t-9")) == EXIT_NOT_FOUND

        err = capsys.readouterr().err
        assert "Not Found: Task not found: t-9" in err
        assert "'Task" not in err

    def test_validation_error_lists_fields(self, capsys):
        with pytest.raises(ValidationError) as exc_info:
            Project(name=" ", client_name="Acme", currency="dollars")

        assert handle_cli_error(exc_info.value) == EXIT_INVALID_INPUT

        err = capsys.readouterr().err
        assert "Invalid Input: 2 validation error(s)" in err
        assert "name:" in err
        assert "currency:" in err

    def test_value_error(self, capsys):
        assert handle_cli_error(ValueError("bad hours")) == EXIT_INVALID_INPUT
        assert "Invalid Input: bad hours" in capsys.readouterr().err

    def test_abort(self, capsys):
        assert handle_cli_error(click.Abort()) == EXIT_CANCELLED
        assert "Operation cancelled by user" in capsys.readouterr().err

    def test_unexpected_error(self, capsys):
        assert handle_cli_error(RuntimeError("boom")) == EXIT_UNEXPECTED

        err = capsys.readouterr().err
        assert "Unexpected Error: RuntimeError" in err
        assert "--debug" in err
        assert "Full stack trace" not in err

    def test_unexpected_error_debug_trace(self, capsys):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            handle_cli_error(e, debug=True)

        err = capsys.readouterr().err
        assert "Full stack trace:" in err
        assert "Traceback" in err


class TestWithErrorHandling:
    """Test the context manager wrapping command bodies."""

    def test_no_error(self):
        with with_error_handling():
            value = 1
        assert value == 1

    def test_error_exits_with_code(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            with with_error_handling():
                raise InvalidTimerState("running", "start")

        assert exc_info.value.code == EXIT_INVALID_TIMER_STATE

    def test_click_exceptions_pass_through(self):
        with pytest.raises(click.UsageError):
            with with_error_handling():
                raise click.UsageError("Nothing to change")

    def test_keyboard_interrupt_not_handled(self):
        with pytest.raises(KeyboardInterrupt):
            with with_error_handling():
                raise KeyboardInterrupt
