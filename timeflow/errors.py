"""Exception hierarchy for the time-tracking engine.

Errors fall into two groups:
- Raised errors: InvalidTimerState, SessionCorrupted, DataIntegrityViolation,
  StorageError and StorageQuotaExceeded
- Warnings: PersistenceDegraded and AccuracyDriftExceeded are handed to
  TimerEngine warning subscribers and logged, never raised out of a tick
"""

from typing import Optional


class TimeflowError(Exception):
    """Base exception with a user-facing message and optional recovery hint."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class InvalidTimerState(TimeflowError):
    """Raised when a timer transition is not allowed from the current state."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} timer while it is {current}",
            recovery_hint="Check the timer status before issuing this command",
        )


class SessionCorrupted(TimeflowError):
    """Raised when a persisted timer session fails recovery validation.

    The persisted record has already been discarded when this is raised.
    """

    def __init__(self, reason: str, session_id: Optional[str] = None):
        self.reason = reason
        self.session_id = session_id
        super().__init__(
            f"Persisted timer session discarded: {reason}",
            recovery_hint="Add the lost time manually as a time entry",
        )


class PersistenceDegraded(TimeflowError):
    """Checkpoint writes keep failing; the session is held in memory."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {type(last_error).__name__}: {last_error}" if last_error else ""
        super().__init__(
            f"Timer checkpoint failed after {attempts} attempt(s){detail}",
            recovery_hint="Free up storage space; the timer keeps running",
        )


class AccuracyDriftExceeded(TimeflowError):
    """Clock drift beyond the compensation ceiling (usually sleep/suspend)."""

    def __init__(self, drift_seconds: float, ceiling_seconds: float):
        self.drift_seconds = drift_seconds
        self.ceiling_seconds = ceiling_seconds
        super().__init__(
            f"Timer drift of {drift_seconds:+.1f}s exceeds the "
            f"{ceiling_seconds:.1f}s compensation ceiling",
            recovery_hint="Review the running entry; the system may have slept",
        )


class DataIntegrityViolation(TimeflowError):
    """An entity references a parent that does not exist (or is still referenced)."""

    def __init__(
        self,
        entity: str,
        entity_id: str,
        missing_parent: str,
        parent_id: Optional[str],
        message: Optional[str] = None,
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.missing_parent = missing_parent
        self.parent_id = parent_id
        super().__init__(
            message
            or f"{entity} '{entity_id}' references missing "
            f"{missing_parent} '{parent_id}'",
            recovery_hint="Restore the referenced record or reassign the reference",
        )


class StorageError(TimeflowError):
    """A key-value backend read or write failed."""


class StorageQuotaExceeded(StorageError):
    """A write would exceed the backend's reported quota."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Storage quota exceeded: need {requested} bytes, "
            f"{available} bytes available",
            recovery_hint="Remove old data or raise TIMEFLOW_STORAGE_QUOTA_BYTES",
        )
