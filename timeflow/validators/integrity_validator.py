"""Cross-record integrity checks for projects, tasks and time entries."""

import logging
from typing import Iterable

from timeflow.errors import DataIntegrityViolation
from timeflow.models.project import Project
from timeflow.models.task import Task, TaskStatus
from timeflow.models.time_entry import TimeEntry
from timeflow.validators.validation_report import (
    ARCHIVED_PARENT,
    BILLABLE_OVERRUN,
    MISSING_PARENT,
    PARENT_MISMATCH,
    ValidationReport,
)

logger = logging.getLogger(__name__)


class IntegrityValidator:
    """Finds references and billing values that break the data model's rules.

    Records are reported, never removed. The checks:
    - tasks whose project is missing (error)
    - entries whose project or task is missing (error)
    - entries whose task belongs to another project (error)
    - billable hours above duration without an override (error)
    - open tasks of archived projects (warning)

    Example:
        >>> report = IntegrityValidator().validate(projects, tasks, entries)
        >>> print(report.format())
    """

    def validate(
        self,
        projects: Iterable[Project],
        tasks: Iterable[Task],
        entries: Iterable[TimeEntry],
    ) -> ValidationReport:
        """Validate the three collections against each other.

        Args:
            projects: All projects (archived included)
            tasks: All tasks
            entries: All time entries

        Returns:
            ValidationReport listing every issue found
        """
        projects_by_id = {project.id: project for project in projects}
        tasks = list(tasks)
        tasks_by_id = {task.id: task for task in tasks}
        report = ValidationReport()

        for task in tasks:
            self._check_task(task, projects_by_id, report)

        for entry in entries:
            self._check_entry(entry, projects_by_id, tasks_by_id, report)

        if report.has_errors():
            logger.warning(f"Integrity check found {report.summary()}")
        else:
            logger.info(f"Integrity check passed: {report.summary()}")
        return report

    def _check_task(self, task, projects_by_id, report: ValidationReport) -> None:
        project = projects_by_id.get(task.project_id)
        if project is None:
            report.add_error(
                "Task",
                task.id,
                "project_id",
                "Referenced project does not exist",
                task.project_id,
                code=MISSING_PARENT,
                context={"parent": "Project"},
            )
        elif project.is_archived and task.status in (
            TaskStatus.PENDING,
            TaskStatus.IN_PROGRESS,
        ):
            report.add_warning(
                "Task",
                task.id,
                "status",
                "Task is still open but its project is archived",
                task.status.value,
                code=ARCHIVED_PARENT,
                context={"project": project.id},
            )

    def _check_entry(
        self, entry, projects_by_id, tasks_by_id, report: ValidationReport
    ) -> None:
        if entry.project_id not in projects_by_id:
            report.add_error(
                "TimeEntry",
                entry.id,
                "project_id",
                "Referenced project does not exist",
                entry.project_id,
                code=MISSING_PARENT,
                context={"parent": "Project"},
            )

        if entry.task_id is not None:
            task = tasks_by_id.get(entry.task_id)
            if task is None:
                report.add_error(
                    "TimeEntry",
                    entry.id,
                    "task_id",
                    "Referenced task does not exist",
                    entry.task_id,
                    code=MISSING_PARENT,
                    context={"parent": "Task"},
                )
            elif task.project_id != entry.project_id:
                report.add_error(
                    "TimeEntry",
                    entry.id,
                    "task_id",
                    f"Task belongs to project '{task.project_id}', "
                    f"not '{entry.project_id}'",
                    entry.task_id,
                    code=PARENT_MISMATCH,
                )

        if entry.billable_hours > entry.duration and not entry.billable_override:
            report.add_error(
                "TimeEntry",
                entry.id,
                "billable_hours",
                f"Billable hours exceed tracked duration ({entry.duration}) "
                "without an override",
                entry.billable_hours,
                code=BILLABLE_OVERRUN,
            )


def raise_for_violations(report: ValidationReport) -> None:
    """Raise DataIntegrityViolation for the first dangling reference in ``report``.

    Raises:
        DataIntegrityViolation: If the report contains a missing-parent issue
    """
    missing = report.by_code(MISSING_PARENT)
    if not missing:
        return

    issue = missing[0]
    parent = (issue.context or {}).get("parent", "record")
    raise DataIntegrityViolation(issue.entity, issue.entity_id, parent, issue.value)
