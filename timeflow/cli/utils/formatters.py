"""Output formatting utilities for CLI."""

from decimal import Decimal
from typing import List, Optional

import click

from timeflow.models.base import MONEY_QUANTUM, PERCENT_QUANTUM, quantize


def format_success(message: str) -> str:
    """Format a success message with green color.

    Args:
        message: The success message to format

    Returns:
        Formatted success message with color
    """
    return click.style(f"✓ {message}", fg="green", bold=True)


def format_error(message: str) -> str:
    """Format an error message with red color.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with color
    """
    return click.style(f"✗ {message}", fg="red", bold=True)


def format_warning(message: str) -> str:
    """Format a warning message with yellow color."""
    return click.style(f"⚠ {message}", fg="yellow", bold=True)


def format_info(message: str) -> str:
    """Format an info message with blue color."""
    return click.style(f"ℹ {message}", fg="blue")


def format_money(amount: Decimal, currency: str = "USD") -> str:
    """Format an amount rounded to cents, e.g. "1,250.50 USD"."""
    return f"{quantize(Decimal(amount), MONEY_QUANTUM):,.2f} {currency}"


def format_hours(hours: Decimal) -> str:
    """Format decimal hours with two places, e.g. "7.50h"."""
    return f"{Decimal(hours):.2f}h"


def format_percent(value: Decimal) -> str:
    return f"{quantize(Decimal(value), PERCENT_QUANTUM)}%"


def format_optional(value: Optional[object], empty: str = "-") -> str:
    """Render None as a placeholder."""
    return empty if value is None else str(value)


def format_table(headers: List[str], rows: List[List[str]], max_width: int = 80) -> str:
    """Format data as a table.

    Args:
        headers: List of column headers
        rows: List of data rows (each row is a list of cell values)
        max_width: Maximum width for each column (default: 80)

    Returns:
        Formatted table as a string
    """
    if not headers:
        return ""

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(col_widths):
                col_widths[i] = max(col_widths[i], len(str(cell)))

    col_widths = [min(w, max_width) for w in col_widths]

    separator = "+" + "+".join("-" * (w + 2) for w in col_widths) + "+"

    header_row = (
        "|"
        + "|".join(f" {h:<{col_widths[i]}} " for i, h in enumerate(headers))
        + "|"
    )

    data_rows = []
    for row in rows:
        formatted_cells = []
        for i, cell in enumerate(row[: len(col_widths)]):
            cell_str = str(cell)[: col_widths[i]]  # Truncate if needed
            formatted_cells.append(f" {cell_str:<{col_widths[i]}} ")
        data_rows.append("|" + "|".join(formatted_cells) + "|")

    table_lines = [separator, header_row, separator]
    if rows:
        table_lines.extend(data_rows)
        table_lines.append(separator)

    return "\n".join(table_lines)
