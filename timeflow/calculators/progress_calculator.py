"""Progress, due-date and completion-forecast calculations.

Progress is count-based for projects that have tasks (share of completed
tasks) and time-based otherwise (tracked hours against the estimate). For a
task, time-based progress applies when it has an estimate and the explicit
completion percentage is the fallback. The signals are never blended.

All calculations are pure: inputs are filtered by id internally and never
modified.
"""

import datetime as dt
import math
from decimal import Decimal
from typing import Iterable, List, Optional

from timeflow.models.base import PERCENT_QUANTUM, quantize
from timeflow.models.project import Project
from timeflow.models.task import PINNED_PROGRESS, Task, TaskStatus
from timeflow.models.time_entry import TimeEntry
from timeflow.timer.clock import ClockSource, SystemClock

HUNDRED = Decimal("100")
ZERO = Decimal("0")

# Window of recent activity used for completion forecasts
FORECAST_WINDOW_DAYS = 7

# Allowed lag (percentage points) behind the elapsed share of the schedule
ON_TRACK_MARGIN = Decimal("10")


def _sum_duration(entries: Iterable[TimeEntry]) -> Decimal:
    return sum((entry.duration for entry in entries), ZERO)


def _time_based_progress(tracked: Decimal, estimate: Decimal) -> Decimal:
    return quantize(min(HUNDRED, tracked / estimate * HUNDRED), PERCENT_QUANTUM)


class ProgressCalculator:
    """Derives completion percentages and schedule signals.

    Args:
        clock: Source of "today" for due-date calculations (defaults to
            SystemClock)

    Example:
        >>> calc = ProgressCalculator()
        >>> task = Task(project_id="p-1", title="Proposal", completion_percentage=75)
        >>> calc.task_progress(task, [])
        Decimal('75.00')
    """

    def __init__(self, clock: Optional[ClockSource] = None):
        self.clock = clock or SystemClock()

    def task_entries(self, task: Task, entries: Iterable[TimeEntry]) -> List[TimeEntry]:
        """Entries booked on ``task``."""
        return [entry for entry in entries if entry.task_id == task.id]

    def task_progress(self, task: Task, entries: Iterable[TimeEntry]) -> Decimal:
        """Calculate task completion percentage.

        Rules, first match wins:
        - completed -> 100, cancelled -> 0
        - estimated_hours set -> tracked / estimate * 100, capped at 100
        - explicit completion_percentage, or 0 when unset

        Args:
            task: Task to evaluate
            entries: Time entries (any task; filtered by task id)

        Returns:
            Percentage in [0, 100] with two decimal places
        """
        pinned = PINNED_PROGRESS.get(task.status)
        if pinned is not None:
            return quantize(pinned, PERCENT_QUANTUM)

        if task.estimated_hours:
            tracked = _sum_duration(self.task_entries(task, entries))
            return _time_based_progress(tracked, task.estimated_hours)

        return quantize(task.completion_percentage or ZERO, PERCENT_QUANTUM)

    def project_progress(
        self, project: Project, tasks: Iterable[Task], entries: Iterable[TimeEntry]
    ) -> Decimal:
        """Calculate project completion percentage.

        With at least one task: completed tasks / all tasks * 100. Without
        tasks: tracked hours against ``estimated_hours``. Without either: 0.

        Args:
            project: Project to evaluate
            tasks: Tasks (any project; filtered by project id)
            entries: Time entries (any project; filtered by project id)

        Returns:
            Percentage in [0, 100] with two decimal places
        """
        project_tasks = [task for task in tasks if task.project_id == project.id]

        if project_tasks:
            completed = sum(
                1 for task in project_tasks if task.status == TaskStatus.COMPLETED
            )
            return quantize(
                Decimal(completed) / Decimal(len(project_tasks)) * HUNDRED,
                PERCENT_QUANTUM,
            )

        if project.estimated_hours:
            tracked = _sum_duration(e for e in entries if e.project_id == project.id)
            return _time_based_progress(tracked, project.estimated_hours)

        return quantize(ZERO, PERCENT_QUANTUM)

    def is_overdue(self, task: Task) -> bool:
        """True iff the task has a due date before today and is still open."""
        return task.is_overdue_on(self.clock.today())

    def days_until_due(self, task: Task) -> Optional[int]:
        """Signed days from today to the due date (negative when overdue).

        Returns:
            Day count, or None when the task has no due date
        """
        if task.due_date is None:
            return None
        return (task.due_date - self.clock.today()).days

    def remaining_hours(
        self, task: Task, entries: Iterable[TimeEntry]
    ) -> Optional[Decimal]:
        """Estimated hours not yet tracked, floored at zero (None without estimate)."""
        if not task.estimated_hours:
            return None
        tracked = _sum_duration(self.task_entries(task, entries))
        return max(ZERO, task.estimated_hours - tracked)

    def estimate_completion_date(
        self, task: Task, entries: Iterable[TimeEntry]
    ) -> Optional[dt.date]:
        """Forecast when the task's estimate will be used up.

        The forecast divides the remaining hours by the average hours per
        active day over the trailing seven days.

        Args:
            task: Task to forecast
            entries: Time entries (any task; filtered by task id)

        Returns:
            Forecast date; today when the estimate is already used up; None
            for closed tasks, tasks without an estimate, tasks without any
            entries, or no activity in the trailing window
        """
        if not task.estimated_hours or task.status.is_closed:
            return None

        task_entries = self.task_entries(task, entries)
        if not task_entries:
            return None

        today = self.clock.today()
        remaining = task.estimated_hours - _sum_duration(task_entries)
        if remaining <= 0:
            return today

        window_start = today - dt.timedelta(days=FORECAST_WINDOW_DAYS)
        recent = [entry for entry in task_entries if entry.date >= window_start]
        if not recent:
            return None

        active_days = len({entry.date for entry in recent})
        average_per_day = _sum_duration(recent) / Decimal(active_days)
        if average_per_day <= 0:
            return None

        days = math.ceil(remaining / average_per_day)
        return today + dt.timedelta(days=days)

    def is_on_track(self, task: Task, entries: Iterable[TimeEntry]) -> bool:
        """Whether progress keeps pace with the created -> due schedule.

        Tasks without an estimate or due date, and completed tasks, are on
        track. Cancelled and overdue tasks are not. Otherwise progress may lag
        the elapsed share of the schedule by at most ten points.
        """
        if not task.estimated_hours or task.due_date is None:
            return True
        if task.status == TaskStatus.COMPLETED:
            return True
        if task.status == TaskStatus.CANCELLED:
            return False

        days_left = self.days_until_due(task)
        if days_left is None or days_left < 0:
            return False

        now = self.clock.now()
        due = dt.datetime.combine(task.due_date, dt.time.min, tzinfo=now.tzinfo)
        total = (due - task.created_at).total_seconds()
        if total <= 0:
            return True

        elapsed = (now - task.created_at).total_seconds()
        expected = Decimal(str(elapsed / total)) * HUNDRED
        return self.task_progress(task, entries) >= expected - ON_TRACK_MARGIN
