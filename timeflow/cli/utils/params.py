"""Click parameter types."""

import click

from timeflow.calculators.time_utils import parse_time_string
from timeflow.models.base import to_decimal


class DecimalParamType(click.ParamType):
    """Exact decimal numbers (hours, rates, amounts)."""

    name = "decimal"

    def convert(self, value, param, ctx):
        try:
            return to_decimal(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid number", param, ctx)


class TimeOfDayParamType(click.ParamType):
    """Time of day as HH:MM or HH:MM:SS, converted to seconds after midnight."""

    name = "time"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            seconds = parse_time_string(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)
        if seconds >= 24 * 3600:
            self.fail(f"{value!r} is not a time of day", param, ctx)
        return seconds


DECIMAL = DecimalParamType()
TIME_OF_DAY = TimeOfDayParamType()
