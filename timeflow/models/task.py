"""Task data model.

Tasks are stored independently from projects and reference their owning
project by id. Progress rules pin completed tasks to 100% and cancelled
tasks to 0%, so an explicit completion percentage that contradicts the
status is rejected rather than silently ignored.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional, Set

from pydantic import Field, field_validator, model_validator

from timeflow.models.base import (
    BaseDataModel,
    ensure_aware,
    new_id,
    to_decimal,
    utc_now,
)


class TaskPriority(str, Enum):
    """Task priority level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    """Task workflow status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"

    @property
    def is_closed(self) -> bool:
        """Completed and cancelled tasks no longer accrue progress or due dates."""
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


# Progress a closed status pins the task to
PINNED_PROGRESS = {
    TaskStatus.COMPLETED: Decimal("100"),
    TaskStatus.CANCELLED: Decimal("0"),
}


class Task(BaseDataModel):
    """Represents a unit of work inside a project.

    Attributes:
        id: Unique task identifier
        project_id: Owning project (required)
        title: Task title
        priority: Priority level
        status: Workflow status
        estimated_hours: Optional effort estimate for time-based progress
        completion_percentage: Optional explicit progress (0-100), used only
            when no estimate is set
        custom_billing_rate: Optional rate overriding the project default
        due_date: Optional calendar due date
        tags: Free-form labels
        is_billable: Whether timer entries for this task are billable

    Example:
        >>> task = Task(project_id="p-1", title="Build login page")
        >>> task.status
        <TaskStatus.PENDING: 'pending'>
    """

    id: str = Field(default_factory=new_id, min_length=1)
    project_id: str = Field(..., min_length=1, description="Owning project id")
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    estimated_hours: Optional[Decimal] = Field(default=None, gt=0)
    completion_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    custom_billing_rate: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[dt.date] = None
    tags: Set[str] = Field(default_factory=set)
    is_billable: bool = True
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)
    completed_at: Optional[dt.datetime] = None

    @field_validator("title", "project_id")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Reject empty or whitespace-only strings."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()

    @field_validator(
        "estimated_hours",
        "completion_percentage",
        "custom_billing_rate",
        mode="before",
    )
    @classmethod
    def convert_to_decimal(cls, v):
        """Convert numeric values to Decimal for precision."""
        if v is None:
            return v
        return to_decimal(v)

    @field_validator("created_at", "updated_at", "completed_at")
    @classmethod
    def validate_timestamps(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_pinned_progress(self) -> "Task":
        """Closed tasks cannot carry a contradicting explicit percentage.

        Raises:
            ValueError: If a completed task has a percentage other than 100
                or a cancelled task has one other than 0
        """
        pinned = PINNED_PROGRESS.get(self.status)
        if (
            pinned is not None
            and self.completion_percentage is not None
            and self.completion_percentage != pinned
        ):
            raise ValueError(
                f"A {self.status.value} task cannot have "
                f"completion_percentage={self.completion_percentage} "
                f"(expected {pinned} or unset)"
            )
        return self

    def with_status(
        self, status: TaskStatus, at: Optional[dt.datetime] = None
    ) -> "Task":
        """Return a copy moved to ``status``.

        An explicit completion percentage that the new status would
        contradict is cleared, and ``completed_at`` is stamped when the task
        is completed.

        Args:
            status: Target status
            at: Timestamp of the change (defaults to now)

        Returns:
            New Task instance; this instance is not modified
        """
        at = ensure_aware(at) or utc_now()
        changes = {"status": status, "updated_at": at}
        pinned = PINNED_PROGRESS.get(status)
        if pinned is not None and self.completion_percentage not in (None, pinned):
            changes["completion_percentage"] = None
        changes["completed_at"] = at if status == TaskStatus.COMPLETED else None
        return self.model_validate({**self.model_dump(), **changes})

    def is_overdue_on(self, today: dt.date) -> bool:
        """True iff the task is still open and was due before ``today``."""
        if self.due_date is None or self.status.is_closed:
            return False
        return self.due_date < today
