"""Time entry persistence.

Entries are the authoritative record of tracked work; every calculator reads
them. Edits keep an audit trail: the first edit records the duration the
entry had before it was changed and every edit flags the entry as edited.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from timeflow.models.base import to_decimal
from timeflow.models.time_entry import BillingStatus, TimeEntry
from timeflow.repositories.base import KeyedRepository

logger = logging.getLogger(__name__)

# Changing any of these re-derives the tracked duration
_TIMING_FIELDS = {"start_time", "end_time"}


class TimeEntryRepository(KeyedRepository[TimeEntry]):
    """Stores time entries under the ``timeEntries`` key."""

    storage_key = "timeEntries"
    model = TimeEntry
    entity_name = "TimeEntry"

    def append(self, entry: TimeEntry) -> TimeEntry:
        """
        Append a completed entry.

        Raises:
            ValueError: If an entry with the same id already exists
        """
        stored = self._insert(entry)
        logger.info(
            f"Recorded {entry.duration}h on project {entry.project_id}",
            extra={"entry_id": entry.id, "from_timer": entry.from_timer},
        )
        return stored

    def update(self, entry_id: str, **changes) -> TimeEntry:
        """
        Edit an entry.

        The entry is flagged ``is_edited`` and its pre-edit duration is kept in
        ``original_duration`` (only the first edit sets it). Changing the start
        or end time without an explicit duration re-derives the duration. The
        billable-hours override rule is validated again on the result.

        Args:
            entry_id: Entry to change
            **changes: Field values by attribute name

        Returns:
            The updated entry

        Raises:
            KeyError: If the entry does not exist
            pydantic.ValidationError: If the edited entry is invalid
        """
        entry = self.require(entry_id)

        if _TIMING_FIELDS & changes.keys() and "duration" not in changes:
            changes["duration"] = None
        changes["is_edited"] = True
        if entry.original_duration is None:
            changes.setdefault("original_duration", entry.duration)

        updated = self._updated(entry, **changes)
        logger.debug(f"Edited time entry {entry_id}: {sorted(changes)}")
        return self._replace(updated)

    def delete(self, entry_id: str) -> TimeEntry:
        return self._remove(entry_id)

    def list(
        self,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        billing_status: Optional[BillingStatus] = None,
    ) -> List[TimeEntry]:
        """
        List entries matching every given filter.

        Args:
            project_id: Only entries of this project
            task_id: Only entries of this task
            start_date: Only entries dated on or after this day
            end_date: Only entries dated on or before this day
            billing_status: Only entries in this billing status
        """
        entries = self.all()
        if project_id is not None:
            entries = [e for e in entries if e.project_id == project_id]
        if task_id is not None:
            entries = [e for e in entries if e.task_id == task_id]
        if start_date is not None:
            entries = [e for e in entries if e.date >= start_date]
        if end_date is not None:
            entries = [e for e in entries if e.date <= end_date]
        if billing_status is not None:
            status = BillingStatus(billing_status)
            entries = [e for e in entries if e.billing_status == status]
        return entries

    def find_by_session(self, session_id: str) -> Optional[TimeEntry]:
        """Entry produced by the given timer session, if any."""
        for entry in self.all():
            if entry.session_id == session_id:
                return entry
        return None

    def mark_billed(
        self, entry_ids: Iterable[str], rate: Optional[Decimal] = None
    ) -> List[TimeEntry]:
        """
        Move entries from ready to billed.

        Entries without their own ``billing_rate`` get ``rate`` snapshotted, so
        later changes to the project's default rate leave billed amounts alone.

        Raises:
            KeyError: If an entry does not exist
            ValueError: If an entry is not ready for billing
        """
        snapshot = to_decimal(rate) if rate is not None else None

        def rate_snapshot(entry: TimeEntry) -> dict:
            if entry.billing_rate is None and snapshot is not None:
                return {"billing_rate": snapshot}
            return {}

        return self._transition(
            entry_ids, BillingStatus.READY, BillingStatus.BILLED, rate_snapshot
        )

    def mark_paid(self, entry_ids: Iterable[str]) -> List[TimeEntry]:
        """
        Move billed entries to paid.

        Raises:
            KeyError: If an entry does not exist
            ValueError: If an entry has not been billed
        """
        return self._transition(
            entry_ids, BillingStatus.BILLED, BillingStatus.PAID, lambda e: {}
        )

    def _transition(self, entry_ids, source, target, extra_changes) -> List[TimeEntry]:
        items = self._load()
        updated = []
        for entry_id in entry_ids:
            if entry_id not in items:
                raise KeyError(f"{self.entity_name} not found: {entry_id}")
            entry = items[entry_id]
            if entry.billing_status != source:
                raise ValueError(
                    f"Time entry {entry_id} is {entry.billing_status.value}, "
                    f"expected {source.value}"
                )
            items[entry_id] = self._updated(
                entry, billing_status=target, **extra_changes(entry)
            )
            updated.append(items[entry_id])

        # All entries are checked before anything is written
        self._save(items)
        logger.info(f"Marked {len(updated)} time entry(ies) as {target.value}")
        return updated
