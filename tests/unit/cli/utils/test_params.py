"""Unit tests for custom Click parameter types."""

from decimal import Decimal

import click
import pytest

from timeflow.cli.utils.params import DECIMAL, TIME_OF_DAY


class TestDecimalParam:
    """Test exact decimal conversion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("100", Decimal("100")),
            ("0.1", Decimal("0.1")),
            ("1.333333", Decimal("1.333333")),
        ],
    )
    def test_converts_strings(self, value, expected):
        assert DECIMAL.convert(value, None, None) == expected

    def test_decimal_passes_through(self):
        value = Decimal("2.5")
        assert DECIMAL.convert(value, None, None) is value

    def test_rejects_text(self):
        with pytest.raises(click.BadParameter, match="not a valid number"):
            DECIMAL.convert("ten", None, None)


class TestTimeOfDayParam:
    """Test HH:MM parsing into seconds after midnight."""

    def test_hours_and_minutes(self):
        assert TIME_OF_DAY.convert("09:30", None, None) == 34200

    def test_with_seconds(self):
        assert TIME_OF_DAY.convert("23:59:59", None, None) == 86399

    def test_int_passes_through(self):
        assert TIME_OF_DAY.convert(3600, None, None) == 3600

    def test_rejects_bad_format(self):
        with pytest.raises(click.BadParameter, match="Invalid time format"):
            TIME_OF_DAY.convert("9am", None, None)

    def test_rejects_past_midnight(self):
        with pytest.raises(click.BadParameter, match="not a time of day"):
            TIME_OF_DAY.convert("24:00", None, None)
