"""Validate data command."""

import sys

import click

from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import EXIT_GENERAL, with_error_handling
from timeflow.cli.utils.formatters import (
    format_error,
    format_info,
    format_success,
    format_warning,
)
from timeflow.validators.integrity_validator import (
    IntegrityValidator,
    raise_for_violations,
)
from timeflow.validators.validation_report import ValidationReport, ValidationSeverity


@click.command(name="validate")
@click.option(
    "--severity",
    type=click.Choice(["error", "warning", "info"], case_sensitive=False),
    default="warning",
    help="Minimum severity level to display (default: warning)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail with the data integrity exit code on the first dangling reference",
)
@click.pass_obj
def validate_data(app: AppContext, severity: str, strict: bool):
    """Check stored projects, tasks and time entries for integrity problems.

    Checks for:
    - Missing or mismatched project and task references
    - Billable hours above tracked time without an override
    - Open tasks of archived projects

    Returns non-zero exit code if errors are found. With --strict a dangling
    reference exits with the data integrity code instead.

    Example:
        timeflow validate
        timeflow validate --severity info
        timeflow validate --strict
    """
    with with_error_handling(app.debug):
        click.echo(format_info("Validating stored data..."))
        severity_level = ValidationSeverity[severity.upper()]

        report = IntegrityValidator().validate(
            app.projects.all(), app.tasks.all(), app.entries.all()
        )
        shown = ValidationReport()
        for issue in report.issues:
            if issue.severity >= severity_level:
                shown.issues.append(issue)

        click.echo(shown.format())
        click.echo()

        if strict:
            raise_for_violations(report)
        if report.has_errors():
            click.echo(format_error(f"Validation failed: {report.summary()}"))
            sys.exit(EXIT_GENERAL)
        if report.warning_count:
            click.echo(format_warning(f"Validation passed with {report.summary()}"))
        else:
            click.echo(format_success("All records are consistent"))
