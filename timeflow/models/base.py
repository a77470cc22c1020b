"""Base model for all data models in the time-tracking engine.

This module provides a base Pydantic model with common configuration plus
the Decimal and timestamp helpers shared by every entity.
"""

import datetime as dt
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Hours keep sub-second precision (1 second = 0.000278 h)
HOURS_QUANTUM = Decimal("0.000001")
MONEY_QUANTUM = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.01")


def new_id() -> str:
    """Generate a unique identifier for a stored record."""
    return str(uuid.uuid4())


def utc_now() -> dt.datetime:
    """Current time as a timezone-aware UTC datetime."""
    return dt.datetime.now(dt.timezone.utc)


def ensure_aware(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Attach UTC to naive datetimes; aware values pass through unchanged."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric value to Decimal without float artifacts.

    Args:
        value: int, float, str or Decimal

    Returns:
        The value as a Decimal

    Raises:
        ValueError: If the value cannot be converted to Decimal

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    try:
        return Decimal(str(value))
    except (ValueError, TypeError, ArithmeticError) as e:
        raise ValueError(f"Cannot convert {value!r} to Decimal: {e}")


def quantize(value: Decimal, quantum: Decimal) -> Decimal:
    """Round half-up to the given quantum."""
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


class BaseDataModel(BaseModel):
    """Base class for all data models.

    Provides common configuration for:
    - Validation on assignment
    - camelCase aliases matching the persisted layout
      (``start_time`` is stored as ``startTime``)
    - Rejection of unknown fields

    Example:
        >>> class Sample(BaseDataModel):
        ...     project_id: str
        >>> Sample(project_id="p-1").model_dump(by_alias=True)
        {'projectId': 'p-1'}
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        strict=False,
        extra="forbid",
        frozen=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_record(self) -> dict:
        """Serialize to the JSON-compatible persisted layout."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict):
        """Rebuild a model from its persisted layout."""
        return cls.model_validate(record)
