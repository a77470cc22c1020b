"""Timer state and persisted session models."""

import datetime as dt
from enum import Enum
from typing import Literal, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from timeflow.models.base import BaseDataModel, ensure_aware


class TimerStatus(str, Enum):
    """State of the timer state machine."""

    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class TimerSession(BaseDataModel):
    """Snapshot of an in-progress timer, persisted on every checkpoint.

    A session exists only while the timer is running or paused; a stopped
    timer has no session. Elapsed time is always recomputed from the wall
    clock as ``end - start_time - accumulated_pause_seconds -
    drift_correction_seconds``, where ``end`` is ``paused_at`` while paused.

    Attributes:
        session_id: Unique session identifier
        project_id: Project being tracked
        task_id: Optional task being tracked
        start_time: Wall-clock start (never moved after start)
        state: "running" or "paused"
        paused_at: When the current pause began (set iff paused)
        accumulated_pause_seconds: Total length of completed pauses
        drift_correction_seconds: Small clock corrections folded in by the
            accuracy check
        last_checkpoint_elapsed: Elapsed seconds at the last checkpoint
        last_accuracy_check: When drift was last measured
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    task_id: Optional[str] = None
    description: str = ""
    start_time: dt.datetime
    state: Literal["running", "paused"] = "running"
    paused_at: Optional[dt.datetime] = None
    accumulated_pause_seconds: float = Field(default=0.0, ge=0)
    drift_correction_seconds: float = 0.0
    last_checkpoint_elapsed: float = Field(default=0.0, ge=0)
    last_accuracy_check: Optional[dt.datetime] = None

    @field_validator("start_time", "paused_at", "last_accuracy_check")
    @classmethod
    def validate_timestamps(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return ensure_aware(v)

    @model_validator(mode="after")
    def validate_pause_marker(self) -> "TimerSession":
        """A paused session records when the pause began; a running one does not."""
        if self.state == "paused" and self.paused_at is None:
            raise ValueError("A paused session requires paused_at")
        if self.state == "running" and self.paused_at is not None:
            raise ValueError("A running session cannot have paused_at")
        if self.paused_at is not None and self.paused_at < self.start_time:
            raise ValueError("paused_at cannot precede start_time")
        return self

    @property
    def status(self) -> TimerStatus:
        return TimerStatus(self.state)

    @property
    def is_paused(self) -> bool:
        return self.state == "paused"

    def elapsed_seconds(self, now: dt.datetime) -> float:
        """Elapsed tracked seconds at ``now``, floored at zero.

        Args:
            now: Current wall-clock time (ignored while paused)

        Returns:
            Elapsed seconds excluding pauses and drift corrections
        """
        end = self.paused_at if self.paused_at is not None else ensure_aware(now)
        elapsed = (
            (end - self.start_time).total_seconds()
            - self.accumulated_pause_seconds
            - self.drift_correction_seconds
        )
        return max(0.0, elapsed)

    def paused(self, at: dt.datetime) -> "TimerSession":
        """Copy of this session paused at ``at``."""
        return self.evolve(state="paused", paused_at=ensure_aware(at))

    def resumed(self, at: dt.datetime) -> "TimerSession":
        """Copy of this session resumed at ``at``; the pause is accumulated."""
        at = ensure_aware(at)
        pause = 0.0
        if self.paused_at:
            pause = max(0.0, (at - self.paused_at).total_seconds())
        return self.evolve(
            state="running",
            paused_at=None,
            accumulated_pause_seconds=self.accumulated_pause_seconds + pause,
        )

    def evolve(self, **changes) -> "TimerSession":
        """Validated copy with ``changes`` applied; model_copy skips validation."""
        return TimerSession.model_validate({**self.model_dump(), **changes})
