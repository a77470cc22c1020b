"""Timeflow CLI.

This module provides a command-line interface for the time-tracking engine.
It includes commands for running the timer, managing projects, tasks and
time entries, and reporting progress and billing.
"""

import click

from timeflow import __version__
from timeflow.cli.commands.entry import entry
from timeflow.cli.commands.project import project
from timeflow.cli.commands.report import report
from timeflow.cli.commands.task import task
from timeflow.cli.commands.timer import timer
from timeflow.cli.commands.validate import validate_data
from timeflow.cli.context import build_context
from timeflow.config.logging_config import LoggingConfig, configure_logging
from timeflow.config.settings import load_config


@click.group(help="Timeflow CLI - Track time and derive progress and billing metrics")
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Show full stack traces on errors")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """Timeflow CLI main entry point."""
    if ctx.obj is not None:
        # Pre-built context (tests)
        ctx.obj.debug = ctx.obj.debug or debug
        return

    config = load_config()
    configure_logging(
        LoggingConfig.from_settings(
            config,
            log_file=str(config.data_dir / "timeflow.log"),
            enable_console=config.debug or debug,
        )
    )
    ctx.obj = build_context(config, debug=debug)


# Register commands
cli.add_command(timer)
cli.add_command(project)
cli.add_command(task)
cli.add_command(entry)
cli.add_command(report)
cli.add_command(validate_data)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
