"""Time entry commands."""

import datetime as dt
from decimal import Decimal
from typing import Optional, Tuple

import click

from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import with_error_handling
from timeflow.cli.utils.formatters import (
    format_hours,
    format_info,
    format_money,
    format_optional,
    format_success,
    format_table,
)
from timeflow.cli.utils.params import DECIMAL, TIME_OF_DAY
from timeflow.models.time_entry import BillingStatus, TimeEntry

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _at(day: dt.date, seconds: int) -> dt.datetime:
    """Aware local time ``seconds`` after midnight of ``day``."""
    midnight = dt.datetime.combine(day, dt.time())
    return (midnight + dt.timedelta(seconds=seconds)).astimezone()


@click.group(name="entry")
def entry():
    """Record and manage time entries."""


@entry.command(name="add")
@click.argument("project_id")
@click.option("--task", "task_id", default=None, help="Task the work belongs to")
@click.option("--date", "day", type=DATE, default=None, help="Day (default: today)")
@click.option("--start", type=TIME_OF_DAY, required=True, help="Start time (HH:MM)")
@click.option("--end", type=TIME_OF_DAY, required=True, help="End time (HH:MM)")
@click.option(
    "--billable",
    type=DECIMAL,
    default=None,
    help="Billable hours (default: the tracked duration)",
)
@click.option(
    "--override",
    is_flag=True,
    help="Allow billable hours above the tracked duration",
)
@click.option("--rate", type=DECIMAL, default=None, help="Rate for this entry only")
@click.option("--description", "-d", default="")
@click.pass_obj
def add_entry(
    app: AppContext,
    project_id: str,
    task_id: Optional[str],
    day: Optional[dt.datetime],
    start: int,
    end: int,
    billable: Optional[Decimal],
    override: bool,
    rate: Optional[Decimal],
    description: str,
):
    """Record work on PROJECT_ID manually.

    Example:
        timeflow entry add p-1 --task t-1 --start 09:00 --end 11:30 --billable 2
    """
    with with_error_handling(app.debug):
        app.projects.require(project_id)
        if task_id is not None:
            app.tasks.require(task_id)

        work_day = day.date() if day else app.clock.today()
        now = app.clock.now()
        record = TimeEntry(
            project_id=project_id,
            task_id=task_id,
            date=work_day,
            start_time=_at(work_day, start),
            end_time=_at(work_day, end),
            billable_override=override,
            billing_rate=rate,
            description=description,
            created_at=now,
            updated_at=now,
        )
        if billable is None:
            billable = record.duration
        created = app.entries.append(
            record.model_validate({**record.model_dump(), "billable_hours": billable})
        )
        click.echo(
            format_success(
                f"Recorded {format_hours(created.duration)} "
                f"({format_hours(created.billable_hours)} billable) as {created.id}"
            )
        )


@entry.command(name="list")
@click.option("--project", "project_id", default=None, help="Filter by project")
@click.option("--task", "task_id", default=None, help="Filter by task")
@click.option("--from", "start_date", type=DATE, default=None, help="First day")
@click.option("--to", "end_date", type=DATE, default=None, help="Last day")
@click.option(
    "--status",
    type=click.Choice([s.value for s in BillingStatus]),
    default=None,
    help="Filter by billing status",
)
@click.pass_obj
def list_entries(
    app: AppContext,
    project_id: Optional[str],
    task_id: Optional[str],
    start_date: Optional[dt.datetime],
    end_date: Optional[dt.datetime],
    status: Optional[str],
):
    """List time entries."""
    with with_error_handling(app.debug):
        entries = app.entries.list(
            project_id=project_id,
            task_id=task_id,
            start_date=start_date.date() if start_date else None,
            end_date=end_date.date() if end_date else None,
            billing_status=status,
        )
        if not entries:
            click.echo(format_info("No time entries found."))
            return

        headers = ["ID", "Date", "Project", "Task", "Hours", "Billable", "Status"]
        rows = [
            [
                e.id,
                e.date.isoformat(),
                e.project_id,
                format_optional(e.task_id),
                format_hours(e.duration),
                format_hours(e.billable_hours),
                e.billing_status.value + (" *" if e.is_edited else ""),
            ]
            for e in entries
        ]
        click.echo(format_table(headers, rows))
        click.echo(
            format_success(
                f"Found {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}, "
                f"{format_hours(app.billing.total_hours(entries))} tracked"
            )
        )


@entry.command(name="edit")
@click.argument("entry_id")
@click.option("--billable", type=DECIMAL, default=None, help="New billable hours")
@click.option("--override", is_flag=True, help="Allow billable above duration")
@click.option("--description", "-d", default=None)
@click.pass_obj
def edit_entry(
    app: AppContext,
    entry_id: str,
    billable: Optional[Decimal],
    override: bool,
    description: Optional[str],
):
    """Change billable hours or description of ENTRY_ID."""
    with with_error_handling(app.debug):
        changes = {}
        if billable is not None:
            changes["billable_hours"] = billable
        if override:
            changes["billable_override"] = True
        if description is not None:
            changes["description"] = description
        if not changes:
            raise click.UsageError("Nothing to change")

        updated = app.entries.update(entry_id, **changes)
        click.echo(format_success(f"Updated entry {updated.id}"))


@entry.command(name="delete")
@click.argument("entry_id")
@click.pass_obj
def delete_entry(app: AppContext, entry_id: str):
    """Delete ENTRY_ID."""
    with with_error_handling(app.debug):
        app.entries.delete(entry_id)
        click.echo(format_success(f"Deleted entry {entry_id}"))


@entry.command(name="bill")
@click.argument("entry_ids", nargs=-1, required=True)
@click.pass_obj
def bill_entries(app: AppContext, entry_ids: Tuple[str, ...]):
    """Mark ready entries as billed, freezing their current rate."""
    with with_error_handling(app.debug):
        records = [app.entries.require(entry_id) for entry_id in entry_ids]
        not_ready = [r.id for r in records if r.billing_status != BillingStatus.READY]
        if not_ready:
            raise ValueError(f"Entries not ready for billing: {', '.join(not_ready)}")

        billed = []
        # Snapshot per entry: the fallback rate depends on task and project
        for record in records:
            rate = app.billing.resolve_fallback_rate(
                app.projects.get(record.project_id),
                app.tasks.get(record.task_id) if record.task_id else None,
            )
            billed.extend(app.entries.mark_billed([record.id], rate=rate))

        amount = app.billing.billable_amount(billed, 0)
        currency = app.config.default_currency
        click.echo(
            format_success(
                f"Billed {len(billed)} entr{'y' if len(billed) == 1 else 'ies'} "
                f"for {format_money(amount, currency)}"
            )
        )


@entry.command(name="pay")
@click.argument("entry_ids", nargs=-1, required=True)
@click.pass_obj
def pay_entries(app: AppContext, entry_ids: Tuple[str, ...]):
    """Mark billed entries as paid."""
    with with_error_handling(app.debug):
        paid = app.entries.mark_paid(entry_ids)
        click.echo(format_success(f"Marked {len(paid)} entr(ies) as paid"))
