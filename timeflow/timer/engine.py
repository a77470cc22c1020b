"""
Timer state machine with drift detection and crash-safe checkpoints.

Elapsed time is always recomputed from the wall clock
(``now - start - pauses - drift corrections``); ticks only refresh the
display and persist a checkpoint. Every ``drift_check_interval_ticks`` ticks
the wall-clock progress since the last reference point is compared with the
monotonic clock:

- within the tolerance the timer is accurate
- up to the compensation ceiling the difference is folded into the session's
  drift correction
- beyond the ceiling (usually sleep/suspend) an AccuracyDriftExceeded warning
  is emitted and nothing is corrected
"""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from timeflow.calculators.time_utils import format_elapsed, seconds_to_decimal_hours
from timeflow.config.settings import TimeflowConfig, get_config
from timeflow.errors import (
    AccuracyDriftExceeded,
    InvalidTimerState,
    PersistenceDegraded,
    StorageError,
    TimeflowError,
)
from timeflow.models.base import new_id
from timeflow.models.time_entry import TimeEntry
from timeflow.models.timer import TimerSession, TimerStatus
from timeflow.timer.clock import ClockSource, SystemClock
from timeflow.utils.logging_utils import LogContext

if TYPE_CHECKING:
    from timeflow.repositories.task_repository import TaskRepository
    from timeflow.repositories.time_entry_repository import TimeEntryRepository
    from timeflow.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class TickEvent:
    """Payload delivered to tick subscribers."""

    session_id: str
    status: TimerStatus
    elapsed_seconds: float
    formatted: str
    tick_count: int
    timestamp: dt.datetime


@dataclass
class AccuracyMetrics:
    """
    Result of one drift check.

    Attributes:
        expected_elapsed: Seconds elapsed since the reference point according
            to the monotonic clock
        actual_elapsed: Seconds the wall-derived elapsed value advanced
        drift: actual_elapsed - expected_elapsed
        is_accurate: Drift within the tolerance
        compensated: Drift was folded into the session's drift correction
        checked_at: Wall-clock time of the check
    """

    expected_elapsed: float
    actual_elapsed: float
    drift: float
    is_accurate: bool
    compensated: bool
    checked_at: dt.datetime


class TimerEngine:
    """
    Single-timer state machine: Stopped -> Running <-> Paused -> Stopped.

    One engine owns at most one TimerSession. Starting while a session is
    active (in memory or persisted by an earlier run) fails with
    InvalidTimerState and leaves the active session untouched.

    Example:
        >>> engine = TimerEngine(SessionStore(InMemoryStore()))
        >>> engine.start("p-1")
        >>> engine.pause()
        >>> engine.resume()
        >>> entry = engine.stop()
    """

    def __init__(
        self,
        session_store: "SessionStore",
        clock: Optional[ClockSource] = None,
        config: Optional[TimeflowConfig] = None,
        entry_repository: Optional["TimeEntryRepository"] = None,
        task_repository: Optional["TaskRepository"] = None,
    ):
        """
        Initialize the engine.

        Args:
            session_store: Persistence for the active session
            clock: Wall and monotonic clock (defaults to SystemClock)
            config: Settings (defaults to the global configuration)
            entry_repository: Receives the entry produced by stop()
            task_repository: Used to look up whether a task is billable
        """
        self.session_store = session_store
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        self.entries = entry_repository
        self.tasks = task_repository

        self._session: Optional[TimerSession] = None
        self._tick_count = 0
        self._reference_monotonic = 0.0
        self._reference_elapsed = 0.0
        self._last_warning: Optional[TimeflowError] = None
        self._tick_subscribers: List[Callable[[TickEvent], None]] = []
        self._warning_subscribers: List[Callable[[TimeflowError], None]] = []

    # State

    @property
    def status(self) -> TimerStatus:
        if self._session is None:
            return TimerStatus.STOPPED
        return self._session.status

    @property
    def session(self) -> Optional[TimerSession]:
        return self._session

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def last_warning(self) -> Optional[TimeflowError]:
        """Most recent warning delivered to subscribers."""
        return self._last_warning

    def _require(self, attempted: str, *allowed: TimerStatus) -> None:
        if self.status not in allowed:
            raise InvalidTimerState(self.status.value, attempted)

    def _log_context(self) -> LogContext:
        session = self._session
        if session is None:
            return LogContext()
        return LogContext(
            session_id=session.session_id,
            project_id=session.project_id,
            task_id=session.task_id,
        )

    # Transitions

    def start(
        self, project_id: str, task_id: Optional[str] = None, description: str = ""
    ) -> TimerSession:
        """
        Start timing work on a project (and optionally a task).

        Args:
            project_id: Project to track
            task_id: Optional task to track
            description: Description carried into the resulting entry

        Returns:
            The new session

        Raises:
            InvalidTimerState: If a session is already active
        """
        self._require("start", TimerStatus.STOPPED)
        if self.session_store.has_active_session():
            raise InvalidTimerState("running in another session", "start")

        self._session = TimerSession(
            session_id=new_id(),
            project_id=project_id,
            task_id=task_id,
            description=description,
            start_time=self.clock.now(),
        )
        self._tick_count = 0
        self._reset_reference()

        with self._log_context():
            logger.info("Timer started")
            self._checkpoint()
        return self._session

    def pause(self) -> TimerSession:
        """
        Freeze the elapsed time.

        Raises:
            InvalidTimerState: If the timer is not running
        """
        self._require("pause", TimerStatus.RUNNING)
        self._session = self._session.paused(self.clock.now())

        with self._log_context():
            logger.info(f"Timer paused at {self.get_elapsed():.1f}s")
            self._checkpoint()
        return self._session

    def resume(self) -> TimerSession:
        """
        Continue a paused timer; the pause is excluded from elapsed time.

        Raises:
            InvalidTimerState: If the timer is not paused
        """
        self._require("resume", TimerStatus.PAUSED)
        self._session = self._session.resumed(self.clock.now())
        self._reset_reference()

        with self._log_context():
            logger.info("Timer resumed")
            self._checkpoint()
        return self._session

    def stop(self) -> TimeEntry:
        """
        Stop the timer and turn the session into a time entry.

        The entry is appended before the persisted session is cleared; if the
        append fails the exception propagates and the timer stays active.
        When the wall clock has been set back before the session start, the
        monotonic clock supplies the elapsed time and an AccuracyDriftExceeded
        warning is emitted.

        Returns:
            The recorded time entry

        Raises:
            InvalidTimerState: If the timer is already stopped
        """
        self._require("stop", TimerStatus.RUNNING, TimerStatus.PAUSED)
        now = self.clock.now()
        session = self._session
        elapsed = session.elapsed_seconds(now)
        end_time = session.paused_at or now
        if end_time < session.start_time:
            elapsed, end_time = self._end_from_monotonic(session, now)
        entry = self._build_entry(session, elapsed, end_time, now)

        with self._log_context():
            if self.entries is not None:
                self.entries.append(entry)

            self._session = None
            self._tick_count = 0
            logger.info(f"Timer stopped after {elapsed:.1f}s ({entry.duration}h)")
            self._clear_store()
        return entry

    def discard(self) -> None:
        """
        Stop without recording a time entry.

        Raises:
            InvalidTimerState: If the timer is already stopped
        """
        self._require("discard", TimerStatus.RUNNING, TimerStatus.PAUSED)
        with self._log_context():
            logger.info(f"Timer discarded at {self.get_elapsed():.1f}s")
            self._session = None
            self._tick_count = 0
            self._clear_store()

    def recover(self) -> Optional[TimerSession]:
        """
        Adopt the persisted session left by an earlier run.

        Time that passed while the application was closed is included, since
        elapsed time is recomputed from the wall clock.

        Returns:
            The recovered session, or None when there is nothing to recover

        Raises:
            InvalidTimerState: If a session is already active in this engine
            SessionCorrupted: If the persisted session failed validation
        """
        self._require("recover", TimerStatus.STOPPED)
        session = self.session_store.load_active_session()
        if session is None:
            return None

        self._session = session
        self._tick_count = 0
        self._reset_reference()

        with self._log_context():
            logger.info(
                f"Recovered {session.state} timer at {self.get_elapsed():.1f}s"
            )
            self._checkpoint()
        return self._session

    # Reading

    def get_elapsed(self) -> float:
        """Elapsed seconds, recomputed from the wall clock (0.0 when stopped)."""
        if self._session is None:
            return 0.0
        return self._session.elapsed_seconds(self.clock.now())

    def format(self, fmt: str = "HH:MM:SS", show_milliseconds: bool = False) -> str:
        """Current elapsed time formatted with :func:`format_elapsed`."""
        return format_elapsed(self.get_elapsed(), fmt, show_milliseconds)

    # Ticking

    def tick(self) -> Optional[TickEvent]:
        """
        Refresh the display and checkpoint the running session.

        Runs the drift check every ``drift_check_interval_ticks`` ticks.

        Returns:
            The event sent to subscribers, or None when the timer is not running
        """
        if self.status != TimerStatus.RUNNING:
            return None

        self._tick_count += 1
        with self._log_context():
            if self._tick_count % self.config.drift_check_interval_ticks == 0:
                self.check_accuracy()
            self._checkpoint()

        elapsed = self.get_elapsed()
        event = TickEvent(
            session_id=self._session.session_id,
            status=self.status,
            elapsed_seconds=elapsed,
            formatted=format_elapsed(elapsed),
            tick_count=self._tick_count,
            timestamp=self.clock.now(),
        )
        self._notify(self._tick_subscribers, event)
        return event

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick at ``tick_interval_seconds`` until the timer leaves Running.

        Deadlines come from the monotonic clock, so slow ticks do not push
        later ticks back. Missed deadlines are skipped, not replayed.

        Args:
            max_ticks: Stop after this many ticks (None runs until stopped)

        Returns:
            Number of ticks performed
        """
        interval = self.config.tick_interval_seconds
        deadline = self.clock.monotonic() + interval
        ticks = 0

        while self.status == TimerStatus.RUNNING and (
            max_ticks is None or ticks < max_ticks
        ):
            self.clock.sleep(max(0.0, deadline - self.clock.monotonic()))
            if self.tick() is None:
                break
            ticks += 1

            deadline += interval
            behind = self.clock.monotonic() - deadline
            if behind > 0:
                deadline += (int(behind // interval) + 1) * interval

        return ticks

    def check_accuracy(self) -> AccuracyMetrics:
        """
        Compare wall-clock progress with the monotonic clock.

        Returns:
            The measured drift and what was done about it

        Raises:
            InvalidTimerState: If the timer is not running
        """
        self._require("check accuracy of", TimerStatus.RUNNING)
        now = self.clock.now()
        expected = self.clock.monotonic() - self._reference_monotonic
        actual = self._session.elapsed_seconds(now) - self._reference_elapsed
        drift = actual - expected

        tolerance = self.config.drift_tolerance_seconds
        ceiling = self.config.drift_compensation_ceiling_seconds
        is_accurate = abs(drift) <= tolerance
        compensated = False

        if is_accurate:
            self._session = self._session.evolve(last_accuracy_check=now)
        elif abs(drift) <= ceiling:
            logger.info(f"Compensating {drift:+.2f}s of clock drift")
            self._session = self._session.evolve(
                drift_correction_seconds=self._session.drift_correction_seconds + drift,
                last_accuracy_check=now,
            )
            compensated = True
            self._reset_reference()
        else:
            self._session = self._session.evolve(last_accuracy_check=now)
            self._reset_reference()
            warning = AccuracyDriftExceeded(
                drift_seconds=drift, ceiling_seconds=ceiling
            )
            logger.warning(warning.message)
            self._emit_warning(warning)

        return AccuracyMetrics(
            expected_elapsed=expected,
            actual_elapsed=actual,
            drift=drift,
            is_accurate=is_accurate,
            compensated=compensated,
            checked_at=now,
        )

    # Subscriptions

    def on_tick(self, callback: Callable[[TickEvent], None]) -> Callable[[], None]:
        """
        Subscribe to tick events.

        Returns:
            Function that removes the subscription
        """
        return self._subscribe(self._tick_subscribers, callback)

    def on_warning(
        self, callback: Callable[[TimeflowError], None]
    ) -> Callable[[], None]:
        """
        Subscribe to PersistenceDegraded and AccuracyDriftExceeded warnings.

        Returns:
            Function that removes the subscription
        """
        return self._subscribe(self._warning_subscribers, callback)

    @staticmethod
    def _subscribe(subscribers: list, callback: Callable) -> Callable[[], None]:
        subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in subscribers:
                subscribers.remove(callback)

        return unsubscribe

    def _notify(self, subscribers: list, payload) -> None:
        for callback in list(subscribers):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Timer subscriber {callback!r} failed")

    def _emit_warning(self, warning: TimeflowError) -> None:
        self._last_warning = warning
        self._notify(self._warning_subscribers, warning)

    # Internals

    def _reset_reference(self) -> None:
        self._reference_monotonic = self.clock.monotonic()
        self._reference_elapsed = self._session.elapsed_seconds(self.clock.now())

    def _checkpoint(self) -> None:
        was_degraded = self.session_store.is_degraded
        self._session = self._session.evolve(last_checkpoint_elapsed=self.get_elapsed())
        warning = self.session_store.checkpoint(self._session)
        if warning is not None and not was_degraded:
            self._emit_warning(warning)

    def _clear_store(self) -> None:
        try:
            self.session_store.clear()
        except StorageError as e:
            # A leftover record is dropped on recovery once its entry exists
            self._emit_warning(PersistenceDegraded(attempts=1, last_error=e))

    def _end_from_monotonic(self, session: TimerSession, now: dt.datetime):
        """Elapsed seconds and end time when the wall clock fell behind the start.

        The monotonic clock keeps counting, so elapsed time is taken from it
        and the entry ends that long after the start.
        """
        elapsed = max(
            self._reference_elapsed
            + (self.clock.monotonic() - self._reference_monotonic),
            session.last_checkpoint_elapsed,
        )
        end_time = session.start_time + dt.timedelta(
            seconds=elapsed
            + session.accumulated_pause_seconds
            + session.drift_correction_seconds
        )
        end_time = max(end_time, session.start_time)

        warning = AccuracyDriftExceeded(
            drift_seconds=(now - end_time).total_seconds(),
            ceiling_seconds=self.config.drift_compensation_ceiling_seconds,
        )
        logger.warning(f"Wall clock is behind the session start; {warning.message}")
        self._emit_warning(warning)
        return elapsed, end_time

    def _build_entry(
        self,
        session: TimerSession,
        elapsed: float,
        end_time: dt.datetime,
        now: dt.datetime,
    ) -> TimeEntry:
        duration = seconds_to_decimal_hours(elapsed)
        billable = True
        if session.task_id is not None and self.tasks is not None:
            task = self.tasks.get(session.task_id)
            billable = task is None or task.is_billable

        return TimeEntry(
            project_id=session.project_id,
            task_id=session.task_id,
            date=session.start_time.astimezone().date(),
            start_time=session.start_time,
            end_time=end_time,
            duration=duration,
            billable_hours=duration if billable else 0,
            description=session.description,
            from_timer=True,
            session_id=session.session_id,
            created_at=now,
            updated_at=now,
        )
