"""Project persistence."""

import logging
from typing import TYPE_CHECKING, List, Optional

from timeflow.errors import DataIntegrityViolation
from timeflow.models.project import Project, ProjectStatus
from timeflow.repositories.base import KeyedRepository

if TYPE_CHECKING:
    from timeflow.repositories.task_repository import TaskRepository
    from timeflow.repositories.time_entry_repository import TimeEntryRepository

logger = logging.getLogger(__name__)


class ProjectRepository(KeyedRepository[Project]):
    """
    Stores projects under the ``projects`` key.

    Projects are archived rather than deleted while anything references
    them; ``delete`` refuses in that case. Wire the task and entry
    repositories with :meth:`bind` to enable the reference check.
    """

    storage_key = "projects"
    model = Project
    entity_name = "Project"

    def __init__(self, store, clock=None):
        super().__init__(store, clock)
        self._tasks: Optional["TaskRepository"] = None
        self._entries: Optional["TimeEntryRepository"] = None

    def bind(
        self,
        tasks: Optional["TaskRepository"] = None,
        entries: Optional["TimeEntryRepository"] = None,
    ) -> None:
        """Attach the repositories consulted before a hard delete."""
        self._tasks = tasks
        self._entries = entries

    def add(self, project: Project) -> Project:
        """
        Store a new project.

        Raises:
            ValueError: If a project with the same id already exists
        """
        return self._insert(project)

    def update(self, project_id: str, **changes) -> Project:
        """
        Apply field changes to a project.

        Args:
            project_id: Project to change
            **changes: Field values by attribute name

        Returns:
            The updated project

        Raises:
            KeyError: If the project does not exist
            pydantic.ValidationError: If the changes are invalid
        """
        updated = self._updated(self.require(project_id), **changes)
        return self._replace(updated)

    def list(
        self, include_archived: bool = True, status: Optional[ProjectStatus] = None
    ) -> List[Project]:
        """
        List projects in insertion order.

        Args:
            include_archived: Include archived projects
            status: Only projects with this status
        """
        projects = self.all()
        if not include_archived:
            projects = [p for p in projects if not p.is_archived]
        if status is not None:
            projects = [p for p in projects if p.status == ProjectStatus(status)]
        return projects

    def archive(self, project_id: str) -> Project:
        """Soft-delete: keep the project for history, drop it from active views."""
        project = self.update(project_id, status=ProjectStatus.ARCHIVED)
        logger.info(f"Archived project {project_id}")
        return project

    def delete(self, project_id: str) -> Project:
        """
        Hard-delete an unreferenced project.

        Raises:
            KeyError: If the project does not exist
            DataIntegrityViolation: If tasks or time entries still reference it
        """
        self.require(project_id)

        if self._tasks is not None:
            tasks = self._tasks.list(project_id=project_id)
            if tasks:
                raise DataIntegrityViolation(
                    "Project",
                    project_id,
                    "Task",
                    tasks[0].id,
                    message=(
                        f"Project '{project_id}' is still referenced by "
                        f"{len(tasks)} task(s); archive it instead"
                    ),
                )

        if self._entries is not None:
            entries = self._entries.list(project_id=project_id)
            if entries:
                raise DataIntegrityViolation(
                    "Project",
                    project_id,
                    "TimeEntry",
                    entries[0].id,
                    message=(
                        f"Project '{project_id}' is still referenced by "
                        f"{len(entries)} time entry(ies); archive it instead"
                    ),
                )

        return self._remove(project_id)
