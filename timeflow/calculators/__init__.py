"""Calculator modules for progress, billing and summaries."""

from timeflow.calculators.billing_calculator import BillingBreakdown, BillingCalculator
from timeflow.calculators.progress_calculator import ProgressCalculator
from timeflow.calculators.summary_generator import (
    ProjectSummary,
    SummaryGenerator,
    TaskSummary,
)
from timeflow.calculators.time_utils import (
    ELAPSED_FORMATS,
    calculate_duration_hours,
    decimal_hours_to_seconds,
    format_compact,
    format_duration_human,
    format_elapsed,
    parse_time_string,
    seconds_to_decimal_hours,
)

__all__ = [
    # billing_calculator
    "BillingBreakdown",
    "BillingCalculator",
    # progress_calculator
    "ProgressCalculator",
    # summary_generator
    "ProjectSummary",
    "SummaryGenerator",
    "TaskSummary",
    # time_utils
    "ELAPSED_FORMATS",
    "calculate_duration_hours",
    "decimal_hours_to_seconds",
    "format_compact",
    "format_duration_human",
    "format_elapsed",
    "parse_time_string",
    "seconds_to_decimal_hours",
]
