"""Unit tests for CLI main entry point."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from timeflow import __version__
from timeflow.cli import cli


class TestCLIMain:
    """Test suite for CLI main entry point."""

    @pytest.fixture
    def runner(self):
        """Create a Click CLI test runner."""
        return CliRunner()

    def test_cli_group_exists(self, runner):
        """Test that CLI group exists and can be invoked."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Usage:" in result.output

    def test_cli_help_text(self, runner):
        """Test that CLI help text is informative."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Timeflow CLI" in result.output
        assert "Commands:" in result.output

    def test_cli_version_flag(self, runner):
        """Test that --version flag works."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    @pytest.mark.parametrize(
        "command", ["timer", "project", "task", "entry", "report", "validate"]
    )
    def test_commands_registered(self, runner, command):
        result = runner.invoke(cli, ["--help"])
        assert command in result.output

    def test_unknown_command_shows_error(self, runner, app_context):
        """Test that unknown commands show helpful error."""
        result = runner.invoke(cli, ["unknown-command"], obj=app_context)
        assert result.exit_code != 0
        assert "No such command" in result.output

    def test_prebuilt_context_is_used(self, runner, app_context):
        """A context passed in skips loading configuration."""
        with patch("timeflow.cli.load_config") as mock_load:
            result = runner.invoke(cli, ["timer", "status"], obj=app_context)

        assert result.exit_code == 0
        mock_load.assert_not_called()

    def test_debug_flag_reaches_context(self, runner, app_context):
        runner.invoke(cli, ["--debug", "timer", "status"], obj=app_context)
        assert app_context.debug is True

    def test_context_built_from_config(self, runner, test_config):
        """Without a context the group loads settings and configures logging."""
        with patch("timeflow.cli.load_config", return_value=test_config), patch(
            "timeflow.cli.configure_logging"
        ) as mock_logging, patch("timeflow.cli.build_context") as mock_build:
            result = runner.invoke(cli, ["--debug", "project", "list"])

        mock_logging.assert_called()
        logging_config = mock_logging.call_args[0][0]
        assert logging_config.enable_console is True
        assert logging_config.log_file.endswith("timeflow.log")
        mock_build.assert_called_with(test_config, debug=True)
        assert result.exit_code == 0
