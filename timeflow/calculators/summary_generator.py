"""Read-only project and task summaries.

Summaries compose ProgressCalculator and BillingCalculator results into one
aggregate per project or task. They are recomputed from the authoritative
collections on demand and never modify their inputs.
"""

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from timeflow.calculators.billing_calculator import BillingCalculator
from timeflow.calculators.progress_calculator import ProgressCalculator
from timeflow.models.base import MONEY_QUANTUM, quantize
from timeflow.models.project import Project
from timeflow.models.task import Task, TaskStatus
from timeflow.models.time_entry import TimeEntry
from timeflow.utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)


@dataclass
class ProjectSummary:
    """Aggregated metrics for one project.

    Attributes:
        project: The summarized project
        total_hours: Tracked hours across the project's entries
        billable_hours: Billable hours across the project's entries
        total_billable: Billable amount rounded to cents
        entry_count: Number of entries
        task_count: Number of tasks
        completed_tasks: Number of completed tasks
        progress_percentage: Project progress (count- or time-based)
        last_activity: Latest entry update, or None without entries
    """

    project: Project
    total_hours: Decimal
    billable_hours: Decimal
    total_billable: Decimal
    entry_count: int
    task_count: int
    completed_tasks: int
    progress_percentage: Decimal
    last_activity: Optional[dt.datetime]


@dataclass
class TaskSummary:
    """Aggregated metrics for one task.

    Attributes:
        task: The summarized task
        total_time: Tracked hours on the task
        billable_hours: Billable hours on the task
        total_billable: Billable amount rounded to cents
        entry_count: Number of entries
        progress_percentage: Task progress
        is_overdue: Due date passed while the task is open
        days_until_due: Signed days to the due date, or None
        last_activity: Latest entry update, or None without entries
        estimated_completion: Forecast completion day, or None
    """

    task: Task
    total_time: Decimal
    billable_hours: Decimal
    total_billable: Decimal
    entry_count: int
    progress_percentage: Decimal
    is_overdue: bool
    days_until_due: Optional[int]
    last_activity: Optional[dt.datetime]
    estimated_completion: Optional[dt.date]


def _last_activity(entries: List[TimeEntry]) -> Optional[dt.datetime]:
    if not entries:
        return None
    return max(entry.updated_at for entry in entries)


class SummaryGenerator:
    """Builds ProjectSummary and TaskSummary views.

    Args:
        progress: Progress calculator (a default one is created when omitted)
        billing: Billing calculator (a default one is created when omitted)
    """

    def __init__(
        self,
        progress: Optional[ProgressCalculator] = None,
        billing: Optional[BillingCalculator] = None,
    ):
        self.progress = progress or ProgressCalculator()
        self.billing = billing or BillingCalculator()

    def project_summary(
        self,
        project: Project,
        tasks: Iterable[Task],
        entries: Iterable[TimeEntry],
    ) -> ProjectSummary:
        """Summarize a project.

        Args:
            project: Project to summarize
            tasks: Tasks (any project; filtered by project id)
            entries: Time entries (any project; filtered by project id)

        Returns:
            ProjectSummary for the project
        """
        tasks = list(tasks)
        entries = list(entries)
        project_tasks = [task for task in tasks if task.project_id == project.id]
        project_entries = [entry for entry in entries if entry.project_id == project.id]

        amount = self.billing.billable_amount_for_project(
            project, tasks, project_entries
        )

        return ProjectSummary(
            project=project,
            total_hours=self.billing.total_hours(project_entries),
            billable_hours=self.billing.billable_hours(project_entries),
            total_billable=quantize(amount, MONEY_QUANTUM),
            entry_count=len(project_entries),
            task_count=len(project_tasks),
            completed_tasks=sum(
                1 for task in project_tasks if task.status == TaskStatus.COMPLETED
            ),
            progress_percentage=self.progress.project_progress(project, tasks, entries),
            last_activity=_last_activity(project_entries),
        )

    def task_summary(
        self,
        task: Task,
        entries: Iterable[TimeEntry],
        project: Optional[Project] = None,
    ) -> TaskSummary:
        """Summarize a task.

        Entries without their own rate are billed at the task's custom rate,
        then the project's default rate (when ``project`` is given), then 0.

        Args:
            task: Task to summarize
            entries: Time entries (any task; filtered by task id)
            project: Owning project, used for its default billing rate

        Returns:
            TaskSummary for the task
        """
        entries = list(entries)
        task_entries = self.progress.task_entries(task, entries)
        fallback = self.billing.resolve_fallback_rate(project, task)
        amount = self.billing.billable_amount(task_entries, fallback)

        return TaskSummary(
            task=task,
            total_time=self.billing.total_hours(task_entries),
            billable_hours=self.billing.billable_hours(task_entries),
            total_billable=quantize(amount, MONEY_QUANTUM),
            entry_count=len(task_entries),
            progress_percentage=self.progress.task_progress(task, entries),
            is_overdue=self.progress.is_overdue(task),
            days_until_due=self.progress.days_until_due(task),
            last_activity=_last_activity(task_entries),
            estimated_completion=self.progress.estimate_completion_date(task, entries),
        )

    @log_function_call
    def project_summaries(
        self,
        projects: Iterable[Project],
        tasks: Iterable[Task],
        entries: Iterable[TimeEntry],
        include_archived: bool = False,
    ) -> List[ProjectSummary]:
        """Summarize several projects.

        Archived projects are left out of active aggregation unless
        ``include_archived`` is set.
        """
        tasks = list(tasks)
        entries = list(entries)
        summaries = [
            self.project_summary(project, tasks, entries)
            for project in projects
            if include_archived or not project.is_archived
        ]
        logger.debug(f"Generated {len(summaries)} project summaries")
        return summaries
