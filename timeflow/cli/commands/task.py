"""Task commands."""

import datetime as dt
from decimal import Decimal
from typing import Optional, Tuple

import click

from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import with_error_handling
from timeflow.cli.utils.formatters import (
    format_info,
    format_optional,
    format_success,
    format_table,
)
from timeflow.cli.utils.params import DECIMAL
from timeflow.errors import DataIntegrityViolation
from timeflow.models.task import Task, TaskPriority, TaskStatus
from timeflow.repositories.task_repository import SORT_FIELDS


@click.group(name="task")
def task():
    """Manage tasks."""


@task.command(name="add")
@click.argument("project_id")
@click.argument("title")
@click.option("--estimate", type=DECIMAL, default=None, help="Estimated hours")
@click.option(
    "--rate", type=DECIMAL, default=None, help="Rate overriding the project's"
)
@click.option("--due", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option(
    "--priority",
    type=click.Choice([p.value for p in TaskPriority]),
    default=TaskPriority.MEDIUM.value,
    show_default=True,
)
@click.option("--not-billable", is_flag=True, help="Timer entries are not billable")
@click.pass_obj
def add_task(
    app: AppContext,
    project_id: str,
    title: str,
    estimate: Optional[Decimal],
    rate: Optional[Decimal],
    due: Optional[dt.datetime],
    priority: str,
    not_billable: bool,
):
    """Create a task in PROJECT_ID.

    Example:
        timeflow task add p-1 "Build login page" --estimate 8 --due 2024-03-15
    """
    with with_error_handling(app.debug):
        now = app.clock.now()
        created = app.tasks.add(
            Task(
                project_id=project_id,
                title=title,
                estimated_hours=estimate,
                custom_billing_rate=rate,
                due_date=due.date() if due else None,
                priority=priority,
                is_billable=not not_billable,
                created_at=now,
                updated_at=now,
            )
        )
        click.echo(format_success(f"Created task {created.title} ({created.id})"))


@task.command(name="list")
@click.option("--project", "project_id", default=None, help="Filter by project")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TaskStatus]),
    multiple=True,
    help="Filter by status (repeatable)",
)
@click.option(
    "--priority",
    type=click.Choice([p.value for p in TaskPriority]),
    multiple=True,
    help="Filter by priority (repeatable)",
)
@click.option("--tag", "tags", multiple=True, help="Tag substring (repeatable)")
@click.option("--due-from", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--due-to", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--overdue/--not-overdue", default=None, help="Filter by overdue state")
@click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default=None)
@click.option("--desc", is_flag=True, help="Sort in descending order")
@click.pass_obj
def list_tasks(
    app: AppContext,
    project_id: Optional[str],
    status: Tuple[str, ...],
    priority: Tuple[str, ...],
    tags: Tuple[str, ...],
    due_from: Optional[dt.datetime],
    due_to: Optional[dt.datetime],
    overdue: Optional[bool],
    sort_by: Optional[str],
    desc: bool,
):
    """List tasks with their progress.

    Example:
        timeflow task list --priority high --priority urgent --sort due
    """
    with with_error_handling(app.debug):
        tasks = app.tasks.list(
            project_id=project_id,
            status=status,
            priority=priority,
            tags=tags,
            due_from=due_from.date() if due_from else None,
            due_to=due_to.date() if due_to else None,
            overdue=overdue,
            sort_by=sort_by,
            descending=desc,
        )
        if not tasks:
            click.echo(format_info("No tasks found."))
            return

        entries = app.entries.list(project_id=project_id)
        headers = ["ID", "Project", "Title", "Priority", "Status", "Progress", "Due"]
        rows = []
        for t in tasks:
            progress = app.progress.task_progress(t, entries)
            due = format_optional(t.due_date)
            if app.progress.is_overdue(t):
                due += " (overdue)"
            rows.append(
                [
                    t.id,
                    t.project_id,
                    t.title,
                    t.priority.value,
                    t.status.value,
                    f"{progress}%",
                    due,
                ]
            )

        click.echo(format_table(headers, rows))
        click.echo(format_success(f"Found {len(tasks)} task(s)"))



@task.command(name="status")
@click.argument("task_id")
@click.argument("status", type=click.Choice([s.value for s in TaskStatus]))
@click.pass_obj
def set_task_status(app: AppContext, task_id: str, status: str):
    """Move TASK_ID to STATUS."""
    with with_error_handling(app.debug):
        updated = app.tasks.set_status(task_id, TaskStatus(status))
        click.echo(
            format_success(f"Task {updated.title} is now {updated.status.value}")
        )


@task.command(name="delete")
@click.argument("task_id")
@click.pass_obj
def delete_task(app: AppContext, task_id: str):
    """Delete a task no time entry or running timer references."""
    with with_error_handling(app.debug):
        session = app.recover_timer()
        if session is not None and session.task_id == task_id:
            raise DataIntegrityViolation(
                "Task",
                task_id,
                "TimerSession",
                session.session_id,
                message=f"Task '{task_id}' is being tracked by the active timer",
            )
        removed = app.tasks.delete(task_id)
        click.echo(format_success(f"Deleted task {removed.title}"))
