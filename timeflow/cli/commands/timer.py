"""Timer commands: start, pause, resume, stop, discard and status."""

from typing import Optional

import click

from timeflow.calculators.time_utils import ELAPSED_FORMATS, format_duration_human
from timeflow.cli.context import AppContext
from timeflow.cli.error_handlers import with_error_handling
from timeflow.cli.utils.formatters import (
    format_hours,
    format_info,
    format_success,
    format_warning,
)
from timeflow.errors import DataIntegrityViolation
from timeflow.models.timer import TimerStatus


@click.group(name="timer")
def timer():
    """Run the live timer."""


def _describe(app: AppContext) -> str:
    session = app.engine.session
    target = session.project_id
    if session.task_id:
        target += f" / {session.task_id}"
    return f"{target} ({app.engine.format()})"


def _watch(app: AppContext, ticks: Optional[int]) -> None:
    unsubscribe = app.engine.on_tick(
        lambda event: click.echo(f"\r{event.formatted}", nl=False)
    )
    try:
        app.engine.run(max_ticks=ticks)
    except KeyboardInterrupt:
        # Leave the session running; it is recovered on the next command
        pass
    finally:
        unsubscribe()
        click.echo()


@timer.command(name="start")
@click.argument("project_id")
@click.option("--task", "task_id", default=None, help="Task to track")
@click.option("--description", "-d", default="", help="Description of the work")
@click.option("--watch", is_flag=True, help="Keep ticking in the foreground")
@click.option(
    "--ticks",
    type=click.IntRange(min=1),
    default=None,
    help="Stop watching after this many ticks",
)
@click.pass_obj
def start_timer(
    app: AppContext,
    project_id: str,
    task_id: Optional[str],
    description: str,
    watch: bool,
    ticks: Optional[int],
):
    """Start the timer for PROJECT_ID.

    Example:
        timeflow timer start p-1 --task t-1 -d "Login page"
    """
    with with_error_handling(app.debug):
        app.recover_timer()
        app.projects.require(project_id)
        if task_id is not None:
            task = app.tasks.require(task_id)
            if task.project_id != project_id:
                raise DataIntegrityViolation(
                    "Task",
                    task_id,
                    "Project",
                    project_id,
                    message=f"Task '{task_id}' belongs to project '{task.project_id}'",
                )

        app.engine.start(project_id, task_id=task_id, description=description)
        click.echo(format_success(f"Timer started for {_describe(app)}"))

        if watch:
            _watch(app, ticks)


@timer.command(name="pause")
@click.pass_obj
def pause_timer(app: AppContext):
    """Pause the running timer."""
    with with_error_handling(app.debug):
        app.recover_timer()
        app.engine.pause()
        click.echo(format_success(f"Timer paused at {app.engine.format()}"))


@timer.command(name="resume")
@click.option("--watch", is_flag=True, help="Keep ticking in the foreground")
@click.option("--ticks", type=click.IntRange(min=1), default=None)
@click.pass_obj
def resume_timer(app: AppContext, watch: bool, ticks: Optional[int]):
    """Resume the paused timer."""
    with with_error_handling(app.debug):
        app.recover_timer()
        app.engine.resume()
        click.echo(format_success(f"Timer resumed at {app.engine.format()}"))

        if watch:
            _watch(app, ticks)


@timer.command(name="stop")
@click.pass_obj
def stop_timer(app: AppContext):
    """Stop the timer and record a time entry."""
    with with_error_handling(app.debug):
        app.recover_timer()
        entry = app.engine.stop()
        human = format_duration_human(float(entry.duration) * 3600)
        click.echo(
            format_success(
                f"Recorded {format_hours(entry.duration)} ({human}) as entry {entry.id}"
            )
        )


@timer.command(name="discard")
@click.confirmation_option(prompt="Discard the running timer without recording it?")
@click.pass_obj
def discard_timer(app: AppContext):
    """Stop the timer without recording a time entry."""
    with with_error_handling(app.debug):
        app.recover_timer()
        app.engine.discard()
        click.echo(format_warning("Timer discarded"))


@timer.command(name="status")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(ELAPSED_FORMATS),
    default="HH:MM:SS",
    show_default=True,
    help="Elapsed time format",
)
@click.pass_obj
def timer_status(app: AppContext, fmt: str):
    """Show the timer state and elapsed time."""
    with with_error_handling(app.debug):
        app.recover_timer()
        if app.engine.status == TimerStatus.STOPPED:
            click.echo(format_info("Timer is stopped"))
            return

        session = app.engine.session
        click.echo(f"Status:  {app.engine.status.value}")
        click.echo(f"Project: {session.project_id}")
        if session.task_id:
            click.echo(f"Task:    {session.task_id}")
        if session.description:
            click.echo(f"Note:    {session.description}")
        click.echo(f"Started: {session.start_time.astimezone():%Y-%m-%d %H:%M}")
        click.echo(f"Elapsed: {app.engine.format(fmt)}")
