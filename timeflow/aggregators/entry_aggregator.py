"""Tabular reports over time entries.

This module turns time entries into pandas DataFrames for daily breakdowns
and project-by-week matrices, and produces an overall TimeEntrySummary.
DataFrames hold float hours for display; totals in TimeEntrySummary are
computed with Decimal through BillingCalculator.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import pandas as pd

from timeflow.calculators.billing_calculator import BillingCalculator
from timeflow.models.base import HOURS_QUANTUM, MONEY_QUANTUM, quantize, to_decimal
from timeflow.models.time_entry import BillingStatus, TimeEntry

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = [
    "id",
    "project_id",
    "task_id",
    "date",
    "week",
    "tracked_hours",
    "billable_hours",
    "rate",
    "amount",
    "billing_status",
    "from_timer",
]

DAILY_COLUMNS = ["tracked_hours", "billable_hours", "amount", "entry_count"]


@dataclass
class TimeEntrySummary:
    """Overall totals for a set of time entries.

    Attributes:
        total_entries: Number of entries
        total_tracked_hours: Sum of tracked duration
        total_billable_hours: Sum of billable hours
        total_billable_amount: Billable amount rounded to cents
        average_hours_per_day: Tracked hours per day with at least one entry
        most_productive_day: Day with the most tracked hours, or None
        entries_by_status: Entry count per billing status value

    Example:
        >>> summary = EntryAggregator().summarize([], Decimal("100"))
        >>> summary.total_entries
        0
    """

    total_entries: int
    total_tracked_hours: Decimal
    total_billable_hours: Decimal
    total_billable_amount: Decimal
    average_hours_per_day: Decimal
    most_productive_day: Optional[dt.date]
    entries_by_status: Dict[str, int] = field(default_factory=dict)


def _week_label(day: dt.date) -> str:
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


class EntryAggregator:
    """Builds DataFrame reports from time entries.

    Example:
        >>> aggregator = EntryAggregator()
        >>> daily = aggregator.daily_breakdown(entries, Decimal("100"))
        >>> daily.loc[dt.date(2024, 3, 4), "tracked_hours"]
        4.0
    """

    def __init__(self, billing: Optional[BillingCalculator] = None):
        self.billing = billing or BillingCalculator()

    def to_dataframe(
        self, entries: Iterable[TimeEntry], fallback_rate=0
    ) -> pd.DataFrame:
        """One row per entry with hours, effective rate and amount.

        Args:
            entries: Time entries
            fallback_rate: Rate for entries without their own

        Returns:
            DataFrame with ENTRY_COLUMNS (empty when there are no entries)
        """
        fallback = to_decimal(fallback_rate)
        rows: List[dict] = []
        for entry in entries:
            rate = entry.billing_rate if entry.billing_rate is not None else fallback
            rows.append(
                {
                    "id": entry.id,
                    "project_id": entry.project_id,
                    "task_id": entry.task_id,
                    "date": entry.date,
                    "week": _week_label(entry.date),
                    "tracked_hours": float(entry.duration),
                    "billable_hours": float(entry.billable_hours),
                    "rate": float(rate),
                    "amount": float(
                        quantize(entry.billable_hours * rate, MONEY_QUANTUM)
                    ),
                    "billing_status": entry.billing_status.value,
                    "from_timer": entry.from_timer,
                }
            )

        return pd.DataFrame(rows, columns=ENTRY_COLUMNS)

    def daily_breakdown(
        self, entries: Iterable[TimeEntry], fallback_rate=0
    ) -> pd.DataFrame:
        """Hours, amount and entry count per calendar day.

        Args:
            entries: Time entries
            fallback_rate: Rate for entries without their own

        Returns:
            DataFrame indexed by date (ascending) with DAILY_COLUMNS
        """
        df = self.to_dataframe(entries, fallback_rate)
        if df.empty:
            logger.info("No entries to break down, returning empty DataFrame")
            return pd.DataFrame(
                columns=DAILY_COLUMNS, index=pd.Index([], name="date")
            )

        daily = df.groupby("date").agg(
            tracked_hours=("tracked_hours", "sum"),
            billable_hours=("billable_hours", "sum"),
            amount=("amount", "sum"),
            entry_count=("id", "count"),
        )
        daily = daily.sort_index().round(
            {"tracked_hours": 6, "billable_hours": 6, "amount": 2}
        )
        logger.info(f"Built daily breakdown covering {len(daily)} days")
        return daily

    def weekly_matrix(self, entries: Iterable[TimeEntry]) -> pd.DataFrame:
        """Tracked hours per project (rows) and ISO week (columns, "2024-W10").

        Returns:
            DataFrame (empty when there are no entries); missing cells are 0
        """
        df = self.to_dataframe(entries)
        if df.empty:
            logger.info("No entries, returning empty weekly matrix")
            return pd.DataFrame()

        matrix = df.pivot_table(
            index="project_id",
            columns="week",
            values="tracked_hours",
            aggfunc="sum",
            fill_value=0.0,
        )
        matrix = matrix.reindex(sorted(matrix.columns), axis=1)
        logger.info(
            f"Generated matrix with {len(matrix)} projects "
            f"and {len(matrix.columns)} weeks"
        )
        return matrix

    def summarize(
        self, entries: Iterable[TimeEntry], fallback_rate=0
    ) -> TimeEntrySummary:
        """Overall totals, daily average and busiest day.

        Args:
            entries: Time entries
            fallback_rate: Rate for entries without their own

        Returns:
            TimeEntrySummary
        """
        entries = list(entries)
        status_counts = {status.value: 0 for status in BillingStatus}
        for entry in entries:
            status_counts[entry.billing_status.value] += 1

        tracked = self.billing.total_hours(entries)
        amount = self.billing.billable_amount(entries, fallback_rate)

        hours_by_day: Dict[dt.date, Decimal] = {}
        for entry in entries:
            previous = hours_by_day.get(entry.date, Decimal("0"))
            hours_by_day[entry.date] = previous + entry.duration

        if hours_by_day:
            average = quantize(tracked / Decimal(len(hours_by_day)), HOURS_QUANTUM)
            # Earliest day wins a tie
            busiest = max(sorted(hours_by_day), key=lambda day: hours_by_day[day])
        else:
            average = Decimal("0")
            busiest = None

        return TimeEntrySummary(
            total_entries=len(entries),
            total_tracked_hours=tracked,
            total_billable_hours=self.billing.billable_hours(entries),
            total_billable_amount=quantize(amount, MONEY_QUANTUM),
            average_hours_per_day=average,
            most_productive_day=busiest,
            entries_by_status=status_counts,
        )
