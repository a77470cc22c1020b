"""Project commands."""

from decimal import Decimal
from typing import Optional

import click

from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import with_error_handling
from timeflow.cli.utils.formatters import (
    format_info,
    format_money,
    format_optional,
    format_success,
    format_table,
)
from timeflow.cli.utils.params import DECIMAL
from timeflow.models.project import Project, ProjectStatus


@click.group(name="project")
def project():
    """Manage projects."""


@project.command(name="add")
@click.argument("name")
@click.option("--client", "client_name", required=True, help="Client name")
@click.option(
    "--rate", type=DECIMAL, default=Decimal("0"), help="Default rate per hour"
)
@click.option("--currency", default=None, help="ISO currency code")
@click.option("--estimate", type=DECIMAL, default=None, help="Estimated hours")
@click.option("--budget", type=DECIMAL, default=None, help="Budget in currency units")
@click.pass_obj
def add_project(
    app: AppContext,
    name: str,
    client_name: str,
    rate: Decimal,
    currency: Optional[str],
    estimate: Optional[Decimal],
    budget: Optional[Decimal],
):
    """Create a project.

    Example:
        timeflow project add "Website Redesign" --client "Acme Corp" --rate 100
    """
    with with_error_handling(app.debug):
        now = app.clock.now()
        created = app.projects.add(
            Project(
                name=name,
                client_name=client_name,
                default_billing_rate=rate,
                currency=currency or app.config.default_currency,
                estimated_hours=estimate,
                budget=budget,
                created_at=now,
                updated_at=now,
            )
        )
        click.echo(format_success(f"Created project {created.name} ({created.id})"))


@project.command(name="list")
@click.option(
    "--all", "include_archived", is_flag=True, help="Include archived projects"
)
@click.option(
    "--status",
    type=click.Choice([s.value for s in ProjectStatus]),
    default=None,
    help="Only projects with this status",
)
@click.pass_obj
def list_projects(app: AppContext, include_archived: bool, status: Optional[str]):
    """List projects."""
    with with_error_handling(app.debug):
        projects = app.projects.list(include_archived=include_archived, status=status)
        if not projects:
            click.echo(format_info("No projects found."))
            return

        headers = ["ID", "Name", "Client", "Rate", "Status", "Estimate"]
        rows = [
            [
                p.id,
                p.name,
                p.client_name,
                format_money(p.default_billing_rate, p.currency),
                p.status.value,
                format_optional(p.estimated_hours),
            ]
            for p in projects
        ]
        click.echo(format_table(headers, rows))
        click.echo(format_success(f"Found {len(projects)} project(s)"))


@project.command(name="archive")
@click.argument("project_id")
@click.pass_obj
def archive_project(app: AppContext, project_id: str):
    """Archive a project, keeping it for historical reports."""
    with with_error_handling(app.debug):
        archived = app.projects.archive(project_id)
        click.echo(format_success(f"Archived project {archived.name}"))


@project.command(name="delete")
@click.argument("project_id")
@click.pass_obj
def delete_project(app: AppContext, project_id: str):
    """Delete a project nothing references."""
    with with_error_handling(app.debug):
        removed = app.projects.delete(project_id)
        click.echo(format_success(f"Deleted project {removed.name}"))
