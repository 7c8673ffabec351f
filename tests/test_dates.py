"""Tests for calendar and money helpers."""

import pytest
from datetime import date
from decimal import Decimal

from src.schedule.dates import add_months, duration_in_months, month_offset_on_day
from src.schedule.rounding import safe_decimal, to_money


class TestAddMonths:
    """Test whole-month date arithmetic."""

    def test_plain_month(self):
        assert add_months(date(2024, 1, 15), 1) == date(2024, 2, 15)

    def test_clamps_to_leap_february(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_clamps_to_common_february(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_crosses_year(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_negative_offset(self):
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)


class TestMonthOffsetOnDay:
    """Test anchoring to a renewal day."""

    def test_keeps_reference_day_without_anchor(self):
        assert month_offset_on_day(date(2024, 5, 15), 2) == date(2024, 7, 15)

    def test_anchor_day_is_clamped(self):
        assert month_offset_on_day(date(2024, 5, 15), -3, 31) == date(2024, 2, 29)

    def test_anchor_day_in_same_month(self):
        assert month_offset_on_day(date(2024, 5, 15), 0, 3) == date(2024, 5, 3)


class TestDurationInMonths:
    """Test month counting between contract dates."""

    def test_ignores_day_of_month(self):
        assert duration_in_months(date(2024, 1, 15), date(2024, 12, 1)) == 11

    def test_reversed_dates_are_zero(self):
        assert duration_in_months(date(2024, 12, 1), date(2024, 1, 15)) == 0

    def test_across_years(self):
        assert duration_in_months(date(2023, 10, 1), date(2025, 10, 1)) == 24


class TestRounding:
    """Test money helpers."""

    def test_to_money_rounds_half_up(self):
        assert to_money(Decimal("2.345")) == Decimal("2.35")
        assert to_money("10") == Decimal("10.00")

    def test_safe_decimal_accepts_thousands_separator(self):
        assert safe_decimal("12,500.50") == Decimal("12500.50")

    @pytest.mark.parametrize("value", [None, "", "abc", True, "NaN", "Infinity"])
    def test_safe_decimal_rejects_garbage(self, value):
        assert safe_decimal(value) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
