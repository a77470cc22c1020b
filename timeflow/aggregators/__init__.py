"""Aggregators producing tabular reports from time entries."""

from timeflow.aggregators.entry_aggregator import EntryAggregator, TimeEntrySummary

__all__ = [
    "EntryAggregator",
    "TimeEntrySummary",
]
