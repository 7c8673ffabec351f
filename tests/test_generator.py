"""
Tests for loan schedule generation and contract overrides.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.models.loan import AmortizationPolicy
from src.schedule.dates import add_months
from src.schedule.generator import apply_payment_overrides, generate_schedule


def total(schedule, field="payment_amount"):
    return sum((getattr(line, field) for line in schedule), Decimal("0"))


class TestFixedProfitSchedule:
    """Test the even split with a known total profit."""

    @pytest.fixture
    def schedule(self):
        return generate_schedule(
            principal=Decimal("9600"),
            annual_rate_percent=Decimal("0"),
            months=12,
            start_date=date(2024, 1, 1),
            fixed_profit_amount=Decimal("400"),
        )

    def test_line_count_and_dates(self, schedule):
        assert len(schedule) == 12
        assert schedule[0].due_date == date(2024, 1, 1)
        assert schedule[-1].due_date == date(2024, 12, 1)

    def test_regular_lines(self, schedule):
        for line in schedule[:-1]:
            assert line.payment_amount == Decimal("833.33")
            assert line.principal_component == Decimal("800.00")
            assert line.profit_component == Decimal("33.33")

    def test_last_line_absorbs_rounding(self, schedule):
        last = schedule[-1]
        assert last.payment_amount == Decimal("833.37")
        assert last.profit_component == Decimal("33.37")
        assert last.remaining_balance == Decimal("0")

    def test_totals_reconcile(self, schedule):
        assert total(schedule) == Decimal("10000.00")
        assert total(schedule, "principal_component") == Decimal("9600.00")
        assert total(schedule, "profit_component") == Decimal("400.00")

    def test_regular_payment_is_constant(self):
        schedule = generate_schedule(
            principal=Decimal("1000"),
            annual_rate_percent=Decimal("0"),
            months=3,
            start_date=date(2024, 1, 1),
            fixed_profit_amount=Decimal("1"),
        )
        assert [line.payment_amount for line in schedule] == [
            Decimal("333.67"),
            Decimal("333.67"),
            Decimal("333.66"),
        ]
        assert schedule[0].profit_component == Decimal("0.33")
        assert schedule[0].principal_component == Decimal("333.34")
        assert total(schedule) == Decimal("1001.00")

    def test_cent_shares_do_not_inflate_payment(self):
        schedule = generate_schedule(
            principal=Decimal("1.01"),
            annual_rate_percent=Decimal("0"),
            months=2,
            start_date=date(2024, 1, 1),
            fixed_profit_amount=Decimal("1.01"),
        )
        assert schedule[0].payment_amount == Decimal("1.01")
        assert total(schedule) == Decimal("2.02")
        assert schedule[-1].remaining_balance == Decimal("0")

    def test_components_add_up_on_every_line(self, schedule):
        for line in schedule:
            assert line.principal_component + line.profit_component == line.payment_amount
            assert line.is_paid is False

    def test_fixed_profit_wins_over_policy(self):
        schedule = generate_schedule(
            principal=Decimal("9600"),
            annual_rate_percent=Decimal("25"),
            months=12,
            start_date=date(2024, 1, 1),
            policy=AmortizationPolicy.DECREASING,
            fixed_profit_amount=Decimal("400"),
        )
        assert total(schedule, "profit_component") == Decimal("400.00")


class TestRateSchedules:
    """Test flat and decreasing-balance modes."""

    def test_zero_rate_is_even_principal(self):
        schedule = generate_schedule(
            Decimal("12000"), Decimal("0"), 12, date(2024, 1, 1)
        )
        assert [line.payment_amount for line in schedule] == [Decimal("1000.00")] * 12
        assert [line.remaining_balance for line in schedule][:3] == [
            Decimal("11000.00"),
            Decimal("10000.00"),
            Decimal("9000.00"),
        ]
        assert schedule[-1].remaining_balance == Decimal("0")

    def test_flat_rate(self):
        schedule = generate_schedule(
            Decimal("12000"),
            Decimal("10"),
            12,
            date(2024, 1, 1),
            policy=AmortizationPolicy.FLAT,
        )
        assert all(line.payment_amount == Decimal("1100.00") for line in schedule)
        assert total(schedule, "profit_component") == Decimal("1200.00")

    def test_decreasing_first_line(self):
        schedule = generate_schedule(
            Decimal("10000"), Decimal("12"), 12, date(2024, 1, 1)
        )
        first = schedule[0]
        assert first.payment_amount == Decimal("888.49")
        assert first.profit_component == Decimal("100.00")
        assert first.principal_component == Decimal("788.49")
        assert first.remaining_balance == Decimal("9211.51")

    def test_decreasing_repays_principal_exactly(self):
        schedule = generate_schedule(
            Decimal("10000"), Decimal("12"), 12, date(2024, 1, 1)
        )
        assert total(schedule, "principal_component") == Decimal("10000.00")
        assert schedule[-1].remaining_balance == Decimal("0")
        assert abs(schedule[-1].payment_amount - Decimal("888.49")) <= Decimal("0.05")

    def test_decreasing_profit_shrinks(self):
        schedule = generate_schedule(
            Decimal("10000"), Decimal("12"), 12, date(2024, 1, 1)
        )
        profits = [line.profit_component for line in schedule]
        assert profits == sorted(profits, reverse=True)

    def test_month_end_start_date_clamps(self):
        schedule = generate_schedule(
            Decimal("300"), Decimal("0"), 3, date(2024, 1, 31)
        )
        assert [line.due_date for line in schedule] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
        ]


class TestInvalidInputs:
    """Test that bad inputs give an empty schedule."""

    @pytest.mark.parametrize("months", [0, -3])
    def test_non_positive_months(self, months):
        assert generate_schedule(Decimal("1000"), Decimal("5"), months, date(2024, 1, 1)) == []

    def test_negative_principal(self):
        assert generate_schedule(Decimal("-1"), Decimal("5"), 12, date(2024, 1, 1)) == []

    def test_unreadable_principal(self):
        assert generate_schedule("lots", Decimal("5"), 12, date(2024, 1, 1)) == []

    @pytest.mark.parametrize("policy", [AmortizationPolicy.FLAT, AmortizationPolicy.DECREASING])
    def test_negative_rate(self, policy):
        assert generate_schedule(
            Decimal("12000"), Decimal("-5"), 12, date(2024, 1, 1), policy=policy
        ) == []

    def test_negative_fixed_profit(self):
        assert generate_schedule(
            Decimal("12000"),
            Decimal("0"),
            12,
            date(2024, 1, 1),
            fixed_profit_amount=Decimal("-400"),
        ) == []


class TestScheduleProperties:
    """Test properties every generated schedule shares."""

    @pytest.mark.parametrize("principal,rate,policy,fixed_profit,total_profit", [
        (Decimal("9600"), Decimal("0"), AmortizationPolicy.DECREASING, Decimal("400"), Decimal("400")),
        (Decimal("12000"), Decimal("10"), AmortizationPolicy.FLAT, Decimal("0"), Decimal("1200")),
        (Decimal("10000"), Decimal("12"), AmortizationPolicy.DECREASING, Decimal("0"), None),
    ])
    def test_schedule_properties(self, principal, rate, policy, fixed_profit, total_profit):
        start = date(2024, 1, 31)
        schedule = generate_schedule(
            principal, rate, 12, start, policy=policy, fixed_profit_amount=fixed_profit
        )

        assert [line.due_date for line in schedule] == [add_months(start, i) for i in range(12)]
        balances = [line.remaining_balance for line in schedule]
        assert balances == sorted(balances, reverse=True)
        assert balances[-1] == Decimal("0")
        assert total(schedule, "principal_component") == principal
        if total_profit is not None:
            assert total(schedule) == principal + total_profit


class TestPaymentOverrides:
    """Test applying the contract's stated payment amounts."""

    @pytest.fixture
    def base(self):
        return generate_schedule(
            Decimal("9600"), Decimal("0"), 12, date(2024, 1, 1),
            fixed_profit_amount=Decimal("400"),
        )

    def test_monthly_override(self, base):
        result = apply_payment_overrides(base, monthly_payment=Decimal("850"))
        assert all(line.payment_amount == Decimal("850.00") for line in result)
        assert result[-1].remaining_balance == Decimal("0")
        assert result[0].profit_component == Decimal("33.33")
        assert result[0].principal_component == Decimal("816.67")

    def test_last_payment_override_only(self, base):
        result = apply_payment_overrides(base, last_payment_amount=Decimal("500"))
        assert result[0] == base[0]
        last = result[-1]
        assert last.payment_amount == Decimal("500.00")
        assert last.profit_component == Decimal("33.37")
        assert last.principal_component == Decimal("466.63")
        assert last.remaining_balance == Decimal("333.37")

    def test_both_overrides(self, base):
        result = apply_payment_overrides(
            base, monthly_payment=Decimal("850"), last_payment_amount=Decimal("100")
        )
        assert result[0].payment_amount == Decimal("850.00")
        assert result[-1].payment_amount == Decimal("100.00")

    def test_no_override_returns_equal_copy(self, base):
        result = apply_payment_overrides(base)
        assert result == base
        assert result[0] is not base[0]

    def test_non_positive_override_is_ignored(self, base):
        assert apply_payment_overrides(base, monthly_payment=Decimal("0")) == base


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
