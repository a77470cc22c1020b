"""Data models for the time-tracking engine.

This package contains Pydantic models for all business entities:
- BaseDataModel: Base class with common configuration
- Project: Client project with default billing rate
- Task: Unit of work inside a project
- TimeEntry: Completed period of tracked work
- TimerSession: Persisted snapshot of the running timer
"""

from timeflow.models.base import (
    HOURS_QUANTUM,
    MONEY_QUANTUM,
    PERCENT_QUANTUM,
    BaseDataModel,
)
from timeflow.models.project import Project, ProjectStatus
from timeflow.models.task import Task, TaskPriority, TaskStatus
from timeflow.models.time_entry import BillingStatus, TimeEntry
from timeflow.models.timer import TimerSession, TimerStatus

__all__ = [
    "HOURS_QUANTUM",
    "MONEY_QUANTUM",
    "PERCENT_QUANTUM",
    "BaseDataModel",
    "BillingStatus",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TimeEntry",
    "TimerSession",
    "TimerStatus",
]
