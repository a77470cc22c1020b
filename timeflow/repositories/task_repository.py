"""Task persistence."""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Iterable, List, Optional, Type, Union

from timeflow.errors import DataIntegrityViolation
from timeflow.models.task import Task, TaskPriority, TaskStatus
from timeflow.repositories.base import KeyedRepository
from timeflow.repositories.project_repository import ProjectRepository

if TYPE_CHECKING:
    from timeflow.repositories.time_entry_repository import TimeEntryRepository

logger = logging.getLogger(__name__)

# Ascending ranks for sorting
PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}
STATUS_RANK = {
    TaskStatus.CANCELLED: 0,
    TaskStatus.COMPLETED: 1,
    TaskStatus.ON_HOLD: 2,
    TaskStatus.PENDING: 3,
    TaskStatus.IN_PROGRESS: 4,
}

SORT_KEYS = {
    "title": lambda t: t.title.casefold(),
    "priority": lambda t: PRIORITY_RANK[t.priority],
    "status": lambda t: STATUS_RANK[t.status],
    "due": lambda t: t.due_date,
    "created": lambda t: t.created_at,
}
SORT_FIELDS = tuple(SORT_KEYS)


def _enum_set(values, enum: Type) -> set:
    if values is None:
        return set()
    if isinstance(values, str):
        values = [values]
    return {enum(v) for v in values}


def _sorted(tasks: List[Task], sort_by: str, descending: bool) -> List[Task]:
    """Stable sort by ``sort_by``; tasks without a due date always sort last."""
    if sort_by not in SORT_KEYS:
        raise ValueError(
            f"Unknown sort field: {sort_by!r}. Must be one of {', '.join(SORT_FIELDS)}"
        )
    key = SORT_KEYS[sort_by]
    if sort_by == "due":
        undated = [t for t in tasks if t.due_date is None]
        tasks = [t for t in tasks if t.due_date is not None]
        return sorted(tasks, key=key, reverse=descending) + undated
    return sorted(tasks, key=key, reverse=descending)


class TaskRepository(KeyedRepository[Task]):
    """Stores tasks under the ``tasks`` key, referencing projects by id."""

    storage_key = "tasks"
    model = Task
    entity_name = "Task"

    def __init__(self, store, clock=None, projects: Optional[ProjectRepository] = None):
        super().__init__(store, clock)
        self.projects = projects
        self._entries: Optional["TimeEntryRepository"] = None

    def bind(self, entries: Optional["TimeEntryRepository"] = None) -> None:
        """Attach the entry repository consulted before a delete."""
        self._entries = entries

    def _check_project(self, task: Task) -> None:
        if self.projects is not None and not self.projects.exists(task.project_id):
            raise DataIntegrityViolation("Task", task.id, "Project", task.project_id)

    def add(self, task: Task) -> Task:
        """
        Store a new task.

        Raises:
            DataIntegrityViolation: If the owning project does not exist
            ValueError: If a task with the same id already exists
        """
        self._check_project(task)
        return self._insert(task)

    def update(self, task_id: str, **changes) -> Task:
        """
        Apply field changes to a task.

        Status changes should go through :meth:`set_status` so a contradicting
        completion percentage is cleared.

        Raises:
            KeyError: If the task does not exist
            DataIntegrityViolation: If the task is moved to a missing project
        """
        updated = self._updated(self.require(task_id), **changes)
        self._check_project(updated)
        return self._replace(updated)

    def set_status(self, task_id: str, status: TaskStatus) -> Task:
        """Move a task to ``status`` (stamps completed_at when completing)."""
        task = self.require(task_id).with_status(
            TaskStatus(status), at=self.clock.now()
        )
        logger.info(f"Task {task_id} moved to {task.status.value}")
        return self._replace(task)

    def list(
        self,
        project_id: Optional[str] = None,
        status: Union[TaskStatus, Iterable[TaskStatus], None] = None,
        priority: Union[TaskPriority, Iterable[TaskPriority], None] = None,
        tags: Optional[Iterable[str]] = None,
        due_from: Optional[dt.date] = None,
        due_to: Optional[dt.date] = None,
        overdue: Optional[bool] = None,
        sort_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Task]:
        """
        List tasks, optionally filtered and sorted.

        Args:
            project_id: Only tasks of this project
            status: One status or several; a task must match one of them
            priority: One priority or several
            tags: Keep tasks with a tag containing any of these
                (case-insensitive)
            due_from: Drop tasks due before this date
            due_to: Drop tasks due after this date. Tasks without a due
                date pass both bounds.
            overdue: True for overdue tasks only, False for the rest
            sort_by: One of SORT_FIELDS; insertion order when None
            descending: Reverse the sort order

        Raises:
            ValueError: If ``sort_by`` is not a known field
        """
        tasks = self.all()
        statuses = _enum_set(status, TaskStatus)
        priorities = _enum_set(priority, TaskPriority)
        needles = [t.casefold() for t in tags or () if t]
        today = self.clock.today() if overdue is not None else None

        def matches(task: Task) -> bool:
            if project_id is not None and task.project_id != project_id:
                return False
            if statuses and task.status not in statuses:
                return False
            if priorities and task.priority not in priorities:
                return False
            if needles and not any(
                needle in tag.casefold() for needle in needles for tag in task.tags
            ):
                return False
            if task.due_date is not None:
                if due_from is not None and task.due_date < due_from:
                    return False
                if due_to is not None and task.due_date > due_to:
                    return False
            if today is not None and task.is_overdue_on(today) != overdue:
                return False
            return True

        tasks = [t for t in tasks if matches(t)]
        if sort_by is not None:
            tasks = _sorted(tasks, sort_by, descending)
        return tasks

    def delete(self, task_id: str) -> Task:
        """
        Delete a task no time entry references.

        Raises:
            KeyError: If the task does not exist
            DataIntegrityViolation: If time entries still reference it
        """
        self.require(task_id)

        if self._entries is not None:
            entries = self._entries.list(task_id=task_id)
            if entries:
                raise DataIntegrityViolation(
                    "Task",
                    task_id,
                    "TimeEntry",
                    entries[0].id,
                    message=(
                        f"Task '{task_id}' is still referenced by "
                        f"{len(entries)} time entry(ies); cancel it instead"
                    ),
                )

        return self._remove(task_id)
