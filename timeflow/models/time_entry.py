"""Time entry data model.

A time entry is one completed period of work, produced either by the live
timer or entered manually. Tracked duration and billable hours are stored
independently: billed time may legitimately differ from worked time.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from timeflow.models.base import (
    HOURS_QUANTUM,
    BaseDataModel,
    ensure_aware,
    new_id,
    quantize,
    to_decimal,
    utc_now,
)


class BillingStatus(str, Enum):
    """Billing lifecycle of a time entry."""

    READY = "ready"
    BILLED = "billed"
    PAID = "paid"


class TimeEntry(BaseDataModel):
    """Represents a completed period of tracked work.

    Attributes:
        id: Unique entry identifier
        project_id: Project the work belongs to
        task_id: Optional task the work belongs to
        date: Calendar day the work is booked on
        start_time: Start timestamp
        end_time: End timestamp
        duration: Tracked hours; derived from start/end when omitted
        billable_hours: Hours charged to the client
        billable_override: Explicit audit flag allowing billable hours above
            the tracked duration
        billing_rate: Optional rate snapshot that wins over task/project rates
        billing_status: ready, billed or paid
        from_timer: True when produced by the live timer
        is_edited: True once the entry was changed after creation
        original_duration: Duration before the first edit
        session_id: Timer session that produced the entry

    Example:
        >>> entry = TimeEntry(
        ...     project_id="p-1",
        ...     date=dt.date(2024, 3, 4),
        ...     start_time=dt.datetime(2024, 3, 4, 9, tzinfo=dt.timezone.utc),
        ...     end_time=dt.datetime(2024, 3, 4, 11, tzinfo=dt.timezone.utc),
        ...     billable_hours=Decimal("1.5"),
        ... )
        >>> entry.duration
        Decimal('2.000000')
    """

    id: str = Field(default_factory=new_id, min_length=1)
    project_id: str = Field(..., min_length=1)
    task_id: Optional[str] = None
    date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    duration: Optional[Decimal] = Field(default=None, ge=0)
    billable_hours: Decimal = Field(default=Decimal("0"), ge=0)
    billable_override: bool = False
    billing_rate: Optional[Decimal] = Field(default=None, ge=0)
    billing_status: BillingStatus = BillingStatus.READY
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    from_timer: bool = False
    is_edited: bool = False
    original_duration: Optional[Decimal] = Field(default=None, ge=0)
    session_id: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    @field_validator(
        "duration", "billable_hours", "billing_rate", "original_duration", mode="before"
    )
    @classmethod
    def convert_to_decimal(cls, v):
        """Convert numeric values to Decimal for precision."""
        if v is None:
            return v
        return to_decimal(v)

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: dt.datetime) -> dt.datetime:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_hours(self) -> "TimeEntry":
        """Validate time and billing rules.

        Validates:
        - end_time must not precede start_time
        - duration defaults to end_time - start_time in hours
        - billable_hours may exceed duration only with billable_override

        Raises:
            ValueError: If validation fails
        """
        if self.end_time < self.start_time:
            raise ValueError(
                f"end_time ({self.end_time.isoformat()}) must not be before "
                f"start_time ({self.start_time.isoformat()})"
            )

        if self.duration is None:
            seconds = Decimal(str((self.end_time - self.start_time).total_seconds()))
            # object.__setattr__ avoids re-entering validate_assignment
            object.__setattr__(
                self, "duration", quantize(seconds / Decimal("3600"), HOURS_QUANTUM)
            )

        if self.billable_hours > self.duration and not self.billable_override:
            raise ValueError(
                f"billable_hours ({self.billable_hours}) exceed duration "
                f"({self.duration}); set billable_override to record an "
                "explicit override"
            )
        return self

    @property
    def is_billed(self) -> bool:
        """True once the entry has been invoiced (billed or paid)."""
        return self.billing_status in (BillingStatus.BILLED, BillingStatus.PAID)
