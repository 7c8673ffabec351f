"""Tests for reconciling amounts paid before a loan was entered."""

import pytest
from datetime import date
from decimal import Decimal

from src.models.loan import InstallmentLine
from src.schedule.dates import add_months
from src.schedule.prepayment import reconcile_prepayment


@pytest.fixture
def schedule():
    return [
        InstallmentLine(
            due_date=add_months(date(2024, 1, 1), i),
            payment_amount=Decimal("1000"),
            principal_component=Decimal("1000"),
            remaining_balance=Decimal(9000 - i * 1000),
        )
        for i in range(10)
    ]


def paid_count(lines):
    return sum(1 for line in lines if line.is_paid)


class TestReconcilePrepayment:
    """Test prefix marking from a cumulative paid amount."""

    def test_partial_line_is_not_paid(self, schedule):
        result = reconcile_prepayment(schedule, Decimal("2500"))
        assert paid_count(result) == 2
        assert [line.is_paid for line in result[:3]] == [True, True, False]

    def test_tolerance_covers_rounding_drift(self, schedule):
        result = reconcile_prepayment(schedule, Decimal("2999.5"))
        assert paid_count(result) == 3

    def test_covered_lines_have_zero_balance(self, schedule):
        result = reconcile_prepayment(schedule, Decimal("2000"))
        assert result[0].remaining_balance == Decimal("0")
        assert result[2].remaining_balance == schedule[2].remaining_balance

    def test_zero_paid_marks_nothing(self, schedule):
        assert paid_count(reconcile_prepayment(schedule, Decimal("0"))) == 0

    def test_zero_paid_covers_lines_within_tolerance(self):
        lines = [
            InstallmentLine(
                due_date=add_months(date(2024, 1, 1), i),
                payment_amount=Decimal("0.50"),
                principal_component=Decimal("0.50"),
                remaining_balance=Decimal("0.50") * (1 - i),
            )
            for i in range(2)
        ]
        result = reconcile_prepayment(lines, Decimal("0"))
        assert [line.is_paid for line in result] == [True, True]

    def test_overpayment_marks_everything(self, schedule):
        assert paid_count(reconcile_prepayment(schedule, Decimal("50000"))) == 10

    def test_already_paid_lines_do_not_consume(self, schedule):
        schedule[0] = schedule[0].model_copy(update={"is_paid": True})
        result = reconcile_prepayment(schedule, Decimal("1000"))
        assert [line.is_paid for line in result[:3]] == [True, True, False]

    def test_only_a_prefix_is_marked(self, schedule):
        result = reconcile_prepayment(schedule, Decimal("4200"))
        flags = [line.is_paid for line in result]
        assert flags == sorted(flags, reverse=True)

    def test_custom_tolerance(self, schedule):
        result = reconcile_prepayment(schedule, Decimal("1990"), tolerance=Decimal("10"))
        assert paid_count(result) == 2

    def test_input_is_not_modified(self, schedule):
        reconcile_prepayment(schedule, Decimal("5000"))
        assert paid_count(schedule) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
