"""Repositories persisting projects, tasks and time entries in a key-value store."""

from timeflow.repositories.base import KeyedRepository
from timeflow.repositories.project_repository import ProjectRepository
from timeflow.repositories.task_repository import TaskRepository
from timeflow.repositories.time_entry_repository import TimeEntryRepository

__all__ = [
    "KeyedRepository",
    "ProjectRepository",
    "TaskRepository",
    "TimeEntryRepository",
]
