"""
Crash-safe persistence of the active timer session.

The session lives under a single ``timerSession`` key and is overwritten on
every checkpoint, so high-frequency writes never grow storage. On restart the
record is validated before it is resumed: a record that cannot be trusted is
discarded and reported, never silently resumed.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from timeflow.config.settings import TimeflowConfig, get_config
from timeflow.errors import PersistenceDegraded, SessionCorrupted, StorageError
from timeflow.models.timer import TimerSession
from timeflow.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
    RetryHandler,
)
from timeflow.services.storage import KeyValueStore
from timeflow.timer.clock import ClockSource, SystemClock

logger = logging.getLogger(__name__)

SESSION_KEY = "timerSession"


class SessionStore:
    """
    Persists and recovers the single active TimerSession.

    Writes go through a RetryHandler. When retries are exhausted the session
    is kept in memory (``pending_session``) and the store reports itself as
    degraded until a later write succeeds.

    Example:
        >>> store = SessionStore(InMemoryStore())
        >>> store.checkpoint(session)
        >>> store.load_active_session().session_id == session.session_id
        True
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[ClockSource] = None,
        config: Optional[TimeflowConfig] = None,
        project_repository=None,
        task_repository=None,
        entry_repository=None,
        retry_handler: Optional[RetryHandler] = None,
    ):
        """
        Initialize the session store.

        Args:
            store: Key-value backend
            clock: Clock used for recovery validation (defaults to SystemClock)
            config: Settings (defaults to the global configuration)
            project_repository: Used to check the session's project still exists
            task_repository: Used to check the session's task still exists
            entry_repository: Used to detect sessions already turned into entries
            retry_handler: Retry policy for writes (built from config if omitted)
        """
        self.store = store
        self.clock = clock or SystemClock()
        self.config = config or get_config()
        self.projects = project_repository
        self.tasks = task_repository
        self.entries = entry_repository
        self.retry_handler = retry_handler or RetryHandler(
            max_retries=self.config.persistence_max_retries,
            base_delay=self.config.persistence_retry_delay,
            sleep=self.clock.sleep,
            monotonic=self.clock.monotonic,
        )
        self._pending: Optional[TimerSession] = None
        self._degraded = False

    @property
    def pending_session(self) -> Optional[TimerSession]:
        """Latest session that could not be written, if any."""
        return self._pending

    @property
    def is_degraded(self) -> bool:
        return self._degraded

    def checkpoint(self, session: TimerSession) -> Optional[PersistenceDegraded]:
        """
        Overwrite the persisted session record.

        Args:
            session: Session snapshot to persist

        Returns:
            None on success, or a PersistenceDegraded warning when the write
            failed after all retries (the session is then held in memory)
        """
        try:
            self.retry_handler.execute_with_retry(
                self.store.set, SESSION_KEY, session.to_record()
            )
        except (RetryExhaustedException, CircuitBreakerError) as e:
            self._pending = session
            attempts = getattr(e, "attempts", 0)
            last_error = getattr(e, "last_error", e)
            if not self._degraded:
                logger.warning(
                    f"Session checkpoint failed, holding session in memory: {e}",
                    extra={"session_id": session.session_id},
                )
            self._degraded = True
            return PersistenceDegraded(attempts=attempts, last_error=last_error)

        if self._degraded:
            logger.info(
                "Session checkpoint succeeded, persistence recovered",
                extra={"session_id": session.session_id},
            )
        self._pending = None
        self._degraded = False
        return None

    def load_active_session(self) -> Optional[TimerSession]:
        """
        Load and validate the persisted session.

        A session held in memory after failed writes takes precedence over
        the (older) persisted record.

        Returns:
            The session ready to resume, or None when there is none or it was
            already converted into a time entry

        Raises:
            SessionCorrupted: If the record is unreadable, starts in the
                future, is older than max_session_age_hours, or references a
                missing project or task (the record is removed first)
        """
        session = self._pending
        if session is None:
            session = self._read_record()
            if session is None:
                return None

        now = self.clock.now()
        if session.start_time > now:
            raise self._corrupted(
                f"start time {session.start_time.isoformat()} is in the future",
                session.session_id,
            )

        age = (now - session.start_time).total_seconds()
        if age > self.config.max_session_age_seconds:
            raise self._corrupted(
                f"session is {age / 3600:.1f}h old (limit "
                f"{self.config.max_session_age_hours}h)",
                session.session_id,
            )

        self._check_references(session)

        recorded = self.entries is not None and self.entries.find_by_session(
            session.session_id
        )
        if recorded:
            logger.info(
                "Persisted session was already recorded as a time entry; clearing it",
                extra={"session_id": session.session_id},
            )
            self.clear()
            return None

        return self._restore_lost_time(session, now)

    def clear(self) -> None:
        """
        Remove the persisted session and any in-memory pending session.

        Raises:
            StorageError: If the record cannot be removed after retries
        """
        self._pending = None
        self._degraded = False
        try:
            self.retry_handler.execute_with_retry(self.store.remove, SESSION_KEY)
        except (RetryExhaustedException, CircuitBreakerError) as e:
            logger.error(f"Failed to clear persisted session: {e}")
            raise StorageError(f"Failed to clear persisted session: {e}")

    def has_active_session(self) -> bool:
        if self._pending is not None:
            return True
        try:
            return self.store.get(SESSION_KEY) is not None
        except StorageError:
            # An unreadable record still occupies the slot
            return True

    def _read_record(self) -> Optional[TimerSession]:
        try:
            raw = self.store.get(SESSION_KEY)
        except StorageError as e:
            raise self._corrupted(f"record unreadable: {e}")
        if raw is None:
            return None

        try:
            return TimerSession.from_record(raw)
        except ValidationError as e:
            session_id = raw.get("sessionId") if isinstance(raw, dict) else None
            raise self._corrupted(
                f"record invalid ({e.error_count()} error(s))", session_id
            )

    def _check_references(self, session: TimerSession) -> None:
        if self.projects is not None and not self.projects.exists(session.project_id):
            raise self._corrupted(
                f"project '{session.project_id}' no longer exists", session.session_id
            )

        if session.task_id is None or self.tasks is None:
            return
        task = self.tasks.get(session.task_id)
        if task is None:
            raise self._corrupted(
                f"task '{session.task_id}' no longer exists", session.session_id
            )
        if task.project_id != session.project_id:
            raise self._corrupted(
                f"task '{session.task_id}' belongs to project '{task.project_id}', "
                f"not '{session.project_id}'",
                session.session_id,
            )

    def _restore_lost_time(self, session: TimerSession, now) -> TimerSession:
        """Keep checkpointed time when the wall clock moved backwards."""
        end = session.paused_at or now
        elapsed = (
            (end - session.start_time).total_seconds()
            - session.accumulated_pause_seconds
            - session.drift_correction_seconds
        )
        if elapsed >= session.last_checkpoint_elapsed:
            return session

        deficit = session.last_checkpoint_elapsed - elapsed
        logger.warning(
            f"Wall clock is {deficit:.1f}s behind the last checkpoint; "
            "keeping checkpointed time",
            extra={"session_id": session.session_id},
        )
        return session.evolve(
            drift_correction_seconds=session.drift_correction_seconds - deficit
        )

    def _corrupted(
        self, reason: str, session_id: Optional[str] = None
    ) -> SessionCorrupted:
        """Remove the persisted record and build the error reporting it."""
        logger.error(
            f"Discarding persisted timer session: {reason}",
            extra={"session_id": session_id},
        )
        self._pending = None
        self._degraded = False
        try:
            self.store.remove(SESSION_KEY)
        except StorageError as e:
            logger.error(f"Failed to remove corrupted session record: {e}")
        return SessionCorrupted(reason, session_id=session_id)
