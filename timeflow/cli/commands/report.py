"""Report commands: project and task summaries, daily breakdown."""

import datetime as dt
from typing import List, Optional

import click
import pandas as pd

from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import with_error_handling
from timeflow.cli.utils.formatters import (
    format_hours,
    format_info,
    format_money,
    format_optional,
    format_percent,
    format_table,
    format_warning,
)
from timeflow.models.project import Project
from timeflow.models.time_entry import TimeEntry

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _with_effective_rates(
    app: AppContext, entries: List[TimeEntry]
) -> List[TimeEntry]:
    """Copies of ``entries`` carrying the rate each one is billed at."""
    priced = []
    for entry in entries:
        if entry.billing_rate is None:
            rate = app.billing.resolve_fallback_rate(
                app.projects.get(entry.project_id),
                app.tasks.get(entry.task_id) if entry.task_id else None,
            )
            entry = entry.model_copy(update={"billing_rate": rate})
        priced.append(entry)
    return priced


def _echo_billing_breakdown(
    app: AppContext, project: Project, entries: List[TimeEntry]
) -> None:
    priced = _with_effective_rates(
        app, [e for e in entries if e.project_id == project.id]
    )
    breakdown = app.billing.billing_breakdown(priced)
    rows = [
        [
            b.status.value,
            b.entry_count,
            format_hours(b.billable_hours),
            format_money(b.amount, project.currency),
        ]
        for b in breakdown.values()
    ]
    click.echo(f"\nBilling for {project.name}:")
    click.echo(format_table(["Status", "Entries", "Billable", "Amount"], rows))


@click.group(name="report")
def report():
    """Progress and billing reports."""


@report.command(name="project")
@click.argument("project_id", required=False)
@click.option("--all", "include_archived", is_flag=True, help="Include archived")
@click.option("--billing", is_flag=True, help="Break amounts down by billing status")
@click.pass_obj
def project_report(
    app: AppContext, project_id: Optional[str], include_archived: bool, billing: bool
):
    """Summarize one project, or every active project."""
    with with_error_handling(app.debug):
        tasks = app.tasks.all()
        entries = app.entries.all()
        if project_id is not None:
            projects = [app.projects.require(project_id)]
            include_archived = True
        else:
            projects = app.projects.list()

        summaries = app.summaries.project_summaries(
            projects, tasks, entries, include_archived=include_archived
        )
        if not summaries:
            click.echo(format_info("No projects to report on."))
            return

        headers = ["Project", "Tracked", "Billable", "Amount", "Tasks", "Progress"]
        rows = [
            [
                s.project.name,
                format_hours(s.total_hours),
                format_hours(s.billable_hours),
                format_money(s.total_billable, s.project.currency),
                f"{s.completed_tasks}/{s.task_count}",
                format_percent(s.progress_percentage),
            ]
            for s in summaries
        ]
        click.echo(format_table(headers, rows))

        if billing:
            for s in summaries:
                _echo_billing_breakdown(app, s.project, entries)

        for s in summaries:
            remaining = app.billing.budget_remaining(s.project, tasks, entries)
            if remaining is not None and remaining < 0:
                click.echo(
                    format_warning(
                        f"{s.project.name} is over budget by "
                        f"{format_money(-remaining, s.project.currency)}"
                    )
                )


@report.command(name="task")
@click.argument("task_id")
@click.pass_obj
def task_report(app: AppContext, task_id: str):
    """Detailed progress and billing for one task."""
    with with_error_handling(app.debug):
        task = app.tasks.require(task_id)
        project = app.projects.get(task.project_id)
        entries = app.entries.list(task_id=task_id)
        summary = app.summaries.task_summary(task, entries, project=project)
        currency = project.currency if project else app.config.default_currency

        due = format_optional(task.due_date)
        if summary.days_until_due is not None:
            due += f" ({summary.days_until_due:+d} days)"

        click.echo(f"Task:        {task.title} [{task.status.value}]")
        click.echo(f"Progress:    {format_percent(summary.progress_percentage)}")
        click.echo(f"Tracked:     {format_hours(summary.total_time)}")
        click.echo(f"Billable:    {format_hours(summary.billable_hours)}")
        click.echo(f"Amount:      {format_money(summary.total_billable, currency)}")
        click.echo(f"Entries:     {summary.entry_count}")
        click.echo(f"Due:         {due}")
        click.echo(f"Forecast:    {format_optional(summary.estimated_completion)}")
        if summary.is_overdue:
            click.echo(format_warning("Task is overdue"))
        elif not app.progress.is_on_track(task, entries):
            click.echo(format_warning("Task is behind schedule"))


@report.command(name="daily")
@click.option("--project", "project_id", default=None, help="Filter by project")
@click.option("--from", "start_date", type=DATE, default=None, help="First day")
@click.option("--to", "end_date", type=DATE, default=None, help="Last day")
@click.option("--weekly", is_flag=True, help="Project by ISO week matrix instead")
@click.pass_obj
def daily_report(
    app: AppContext,
    project_id: Optional[str],
    start_date: Optional[dt.datetime],
    end_date: Optional[dt.datetime],
    weekly: bool,
):
    """Hours and amounts per day (or per project and week)."""
    with with_error_handling(app.debug):
        entries = app.entries.list(
            project_id=project_id,
            start_date=start_date.date() if start_date else None,
            end_date=end_date.date() if end_date else None,
        )
        if not entries:
            click.echo(format_info("No time entries in range."))
            return

        if weekly:
            click.echo(app.aggregator.weekly_matrix(entries).to_string())
            return

        entries = _with_effective_rates(app, entries)
        with pd.option_context("display.width", 120):
            click.echo(app.aggregator.daily_breakdown(entries).to_string())

        summary = app.aggregator.summarize(entries)
        click.echo()
        click.echo(
            f"Total: {format_hours(summary.total_tracked_hours)} tracked, "
            f"{format_hours(summary.average_hours_per_day)} per active day, "
            f"busiest {format_optional(summary.most_productive_day)}"
        )
