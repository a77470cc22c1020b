"""Billing calculations over time entries.

This module implements:
- Tracked and billable hour totals
- Billable amounts with per-entry rate resolution
  (entry rate -> task custom rate -> project default rate)
- Budget consumption and per-status breakdowns

Billable hours are trusted as stored: the billable-above-tracked override is
enforced when an entry is created or edited, not re-checked here. Amounts are
exact Decimals so that they stay linear in billable hours; round to cents
only for presentation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from timeflow.models.base import MONEY_QUANTUM, quantize, to_decimal
from timeflow.models.project import Project
from timeflow.models.task import Task
from timeflow.models.time_entry import BillingStatus, TimeEntry

ZERO = Decimal("0")


@dataclass
class BillingBreakdown:
    """Totals for the entries in one billing status.

    Attributes:
        status: Billing status the totals cover
        entry_count: Number of entries
        billable_hours: Sum of billable hours
        amount: Billable amount rounded to cents

    Example:
        >>> breakdown = BillingBreakdown(
        ...     BillingStatus.READY, 2, Decimal("3"), Decimal("300.00")
        ... )
        >>> breakdown.amount
        Decimal('300.00')
    """

    status: BillingStatus
    entry_count: int
    billable_hours: Decimal
    amount: Decimal


class BillingCalculator:
    """Derives hours and amounts from time entries.

    Example:
        >>> calc = BillingCalculator()
        >>> amount = calc.billable_amount(entries, fallback_rate=Decimal("100"))
        >>> quantize(amount, MONEY_QUANTUM)
        Decimal('300.00')
    """

    def total_hours(self, entries: Iterable[TimeEntry]) -> Decimal:
        """Sum of tracked duration in hours."""
        return sum((entry.duration for entry in entries), ZERO)

    def billable_hours(self, entries: Iterable[TimeEntry]) -> Decimal:
        """Sum of billable hours (independent of tracked duration)."""
        return sum((entry.billable_hours for entry in entries), ZERO)

    def billable_amount(self, entries: Iterable[TimeEntry], fallback_rate) -> Decimal:
        """Calculate the billable amount of a set of entries.

        Each entry is charged at its own ``billing_rate`` when set, otherwise
        at ``fallback_rate``.

        Args:
            entries: Time entries to bill
            fallback_rate: Rate for entries without their own rate

        Returns:
            Exact (unrounded) amount
        """
        fallback = to_decimal(fallback_rate)
        return sum(
            (
                entry.billable_hours * self._entry_rate(entry, fallback)
                for entry in entries
            ),
            ZERO,
        )

    def resolve_fallback_rate(
        self, project: Optional[Project], task: Optional[Task] = None
    ) -> Decimal:
        """Rate for entries without their own.

        Resolution order is the task's custom rate, then the project's
        default rate, then 0.
        """
        if task is not None and task.custom_billing_rate is not None:
            return task.custom_billing_rate
        if project is not None:
            return project.default_billing_rate
        return ZERO

    def billable_amount_for_project(
        self, project: Project, tasks: Iterable[Task], entries: Iterable[TimeEntry]
    ) -> Decimal:
        """Billable amount of a project's entries.

        Each entry without its own rate falls back through its task.

        Args:
            project: Project to bill
            tasks: Tasks (used to look up custom rates)
            entries: Time entries (any project; filtered by project id)

        Returns:
            Exact (unrounded) amount
        """
        tasks_by_id = {task.id: task for task in tasks}
        total = ZERO
        for entry in entries:
            if entry.project_id != project.id:
                continue
            task = tasks_by_id.get(entry.task_id) if entry.task_id else None
            fallback = self.resolve_fallback_rate(project, task)
            total += entry.billable_hours * self._entry_rate(entry, fallback)
        return total

    def budget_remaining(
        self, project: Project, tasks: Iterable[Task], entries: Iterable[TimeEntry]
    ) -> Optional[Decimal]:
        """Budget left after billable work, rounded to cents, negative when over.

        Returns:
            Remaining budget, or None when the project has no budget
        """
        if project.budget is None:
            return None
        spent = self.billable_amount_for_project(project, tasks, entries)
        return quantize(project.budget - spent, MONEY_QUANTUM)

    def billing_breakdown(
        self, entries: Iterable[TimeEntry], fallback_rate=ZERO
    ) -> Dict[BillingStatus, BillingBreakdown]:
        """Group entries by billing status.

        Every status appears in the result, with zero totals when empty.
        """
        grouped: Dict[BillingStatus, List[TimeEntry]] = {
            status: [] for status in BillingStatus
        }
        for entry in entries:
            grouped[entry.billing_status].append(entry)

        return {
            status: BillingBreakdown(
                status=status,
                entry_count=len(group),
                billable_hours=self.billable_hours(group),
                amount=quantize(
                    self.billable_amount(group, fallback_rate), MONEY_QUANTUM
                ),
            )
            for status, group in grouped.items()
        }

    @staticmethod
    def _entry_rate(entry: TimeEntry, fallback: Decimal) -> Decimal:
        return entry.billing_rate if entry.billing_rate is not None else fallback
