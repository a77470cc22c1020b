"""Project data model.

This module defines the Project model, which carries the default billing
rate used for every time entry and task that does not override it.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from timeflow.models.base import (
    BaseDataModel,
    ensure_aware,
    new_id,
    to_decimal,
    utc_now,
)


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class Project(BaseDataModel):
    """Represents a client project.

    Projects are never hard-deleted while time entries reference them;
    they are archived instead, which removes them from active aggregation
    while keeping them available for historical reports.

    Attributes:
        id: Unique project identifier
        name: Project name
        client_name: Client the project is billed to
        default_billing_rate: Rate per hour used when neither the entry nor
            its task sets one
        currency: ISO currency code (e.g. "USD")
        status: Project lifecycle status
        estimated_hours: Optional effort estimate, used for time-based progress
        budget: Optional budget in currency units

    Example:
        >>> project = Project(
        ...     name="Website Redesign",
        ...     client_name="Acme Corp",
        ...     default_billing_rate=Decimal("100"),
        ... )
        >>> project.status
        <ProjectStatus.ACTIVE: 'active'>
    """

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, description="Project name")
    client_name: str = Field(..., min_length=1, description="Client name")
    default_billing_rate: Decimal = Field(
        default=Decimal("0"), ge=0, description="Default rate per hour"
    )
    currency: str = Field(default="USD", description="ISO currency code")
    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE)
    estimated_hours: Optional[Decimal] = Field(default=None, gt=0)
    budget: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_billable: bool = True
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @field_validator("name", "client_name")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Reject empty or whitespace-only names."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Currency codes are three letters, stored upper-case."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v!r}")
        return v.upper()

    @field_validator(
        "default_billing_rate", "estimated_hours", "budget", mode="before"
    )
    @classmethod
    def convert_to_decimal(cls, v):
        """Convert numeric values to Decimal for precision."""
        if v is None:
            return v
        return to_decimal(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: dt.datetime) -> dt.datetime:
        return ensure_aware(v)

    @property
    def is_archived(self) -> bool:
        """True when the project is excluded from active aggregation."""
        return self.status == ProjectStatus.ARCHIVED
