"""
Tests for bill schedule projection and bill summaries.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.models.bill import Bill, BillCategory, BillScheduleItem, ProjectedLineKind
from src.schedule.projector import (
    next_due_date,
    project_bill_schedule,
    summarize_bill,
)


TODAY = date(2024, 5, 15)


def make_bill(**kwargs) -> Bill:
    fields = {
        "user_id": "user-1",
        "name": "Bill",
        "provider": "Provider",
        "amount": Decimal("100"),
    }
    fields.update(kwargs)
    return Bill(**fields)


@pytest.fixture
def phone_contract():
    return make_bill(
        name="iPhone 15",
        category=BillCategory.DEVICE_INSTALLMENT,
        amount=Decimal("500"),
        start_date=date(2024, 1, 1),
        duration_months=3,
        down_payment=Decimal("200"),
        last_payment_amount=Decimal("450"),
    )


class TestFiniteContractProjection:
    """Test contract projection."""

    def test_down_payment_then_installments(self, phone_contract):
        lines = project_bill_schedule(phone_contract, TODAY)
        assert [(line.due_date, line.amount, line.kind) for line in lines] == [
            (date(2024, 1, 1), Decimal("200.00"), ProjectedLineKind.DOWN_PAYMENT),
            (date(2024, 2, 1), Decimal("500.00"), ProjectedLineKind.INSTALLMENT),
            (date(2024, 3, 1), Decimal("500.00"), ProjectedLineKind.INSTALLMENT),
            (date(2024, 4, 1), Decimal("450.00"), ProjectedLineKind.INSTALLMENT),
        ]

    def test_contract_lines_are_paid_only_by_paid_dates(self, phone_contract):
        bill = phone_contract.model_copy(update={"paid_dates": {date(2024, 2, 1)}})
        lines = project_bill_schedule(bill, TODAY)
        assert [line.is_paid for line in lines] == [False, True, False, False]

    def test_no_down_payment_line_when_zero(self):
        bill = make_bill(
            start_date=date(2024, 1, 1),
            duration_months=2,
            down_payment=Decimal("0"),
        )
        lines = project_bill_schedule(bill, TODAY)
        assert len(lines) == 2
        assert all(line.kind == ProjectedLineKind.INSTALLMENT for line in lines)

    def test_custom_schedule_replaces_generated_lines(self):
        bill = make_bill(
            start_date=date(2024, 1, 1),
            duration_months=2,
            down_payment=Decimal("50"),
            custom_schedule=[
                BillScheduleItem(due_date=date(2024, 2, 10), amount=Decimal("120")),
                BillScheduleItem(due_date=date(2024, 3, 10), amount=Decimal("80")),
            ],
        )
        lines = project_bill_schedule(bill, TODAY)
        assert [(line.due_date, line.amount) for line in lines] == [
            (date(2024, 1, 1), Decimal("50.00")),
            (date(2024, 2, 10), Decimal("120.00")),
            (date(2024, 3, 10), Decimal("80.00")),
        ]

    def test_projection_is_deterministic(self, phone_contract):
        assert project_bill_schedule(phone_contract, TODAY) == project_bill_schedule(
            phone_contract, TODAY
        )


class TestOpenEndedProjection:
    """Test subscription and simple monthly windows."""

    def test_subscription_window_pinned_to_renewal_day(self):
        bill = make_bill(is_subscription=True, renewal_date=date(2023, 12, 31))
        lines = project_bill_schedule(bill, TODAY)

        assert len(lines) == 13
        assert [line.due_date for line in lines[:4]] == [
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
            date(2024, 5, 31),
        ]
        assert lines[-1].due_date == date(2025, 2, 28)
        assert all(line.kind == ProjectedLineKind.SUBSCRIPTION for line in lines)

    def test_past_subscription_lines_count_as_paid(self):
        bill = make_bill(is_subscription=True, renewal_date=date(2023, 12, 31))
        lines = project_bill_schedule(bill, TODAY)
        assert [line.is_paid for line in lines[:4]] == [True, True, True, False]

    def test_subscription_without_renewal_uses_today(self):
        bill = make_bill(is_subscription=True)
        lines = project_bill_schedule(bill, TODAY)
        assert lines[3].due_date == TODAY

    def test_simple_monthly_window(self):
        bill = make_bill(category=BillCategory.ELECTRICITY)
        lines = project_bill_schedule(bill, TODAY)
        assert [line.due_date for line in lines] == [
            date(2024, 4, 15),
            date(2024, 5, 15),
            date(2024, 6, 15),
            date(2024, 7, 15),
            date(2024, 8, 15),
        ]
        assert [line.is_paid for line in lines] == [True, False, False, False, False]

    def test_custom_window(self):
        bill = make_bill()
        lines = project_bill_schedule(bill, TODAY, monthly_window=(0, 1))
        assert [line.due_date for line in lines] == [date(2024, 5, 15), date(2024, 6, 15)]

    def test_paid_date_marks_future_line(self):
        bill = make_bill(paid_dates={date(2024, 6, 15)})
        lines = project_bill_schedule(bill, TODAY)
        assert lines[2].is_paid is True


class TestNextDueDate:
    """Test next due date selection."""

    def test_subscription_next_due(self):
        bill = make_bill(is_subscription=True, renewal_date=date(2023, 12, 31))
        assert next_due_date(bill, TODAY) == date(2024, 5, 31)

    def test_monthly_due_today(self):
        assert next_due_date(make_bill(), TODAY) == TODAY

    def test_overdue_contract_line(self, phone_contract):
        bill = phone_contract.model_copy(update={
            "paid_dates": {date(2024, 1, 1), date(2024, 2, 1)},
        })
        assert next_due_date(bill, TODAY) == date(2024, 3, 1)

    def test_fully_paid_contract(self, phone_contract):
        bill = phone_contract.model_copy(update={
            "paid_dates": {
                date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1),
            },
        })
        assert next_due_date(bill, TODAY) is None


class TestSummarizeBill:
    """Test bill totals and progress."""

    def test_contract_summary(self, phone_contract):
        bill = phone_contract.model_copy(update={
            "paid_dates": {date(2024, 1, 1), date(2024, 2, 1)},
        })
        summary = summarize_bill(bill, date(2024, 2, 15))

        assert summary.total_amount == Decimal("1650.00")
        assert summary.paid_amount == Decimal("700.00")
        assert summary.remaining_amount == Decimal("950.00")
        assert summary.installments_left == 2
        assert summary.progress_percent == Decimal("42.42")
        assert summary.next_due_date == date(2024, 3, 1)
        assert summary.is_overdue is False
        assert summary.is_complete is False

    def test_contract_overdue(self, phone_contract):
        summary = summarize_bill(phone_contract, TODAY)
        assert summary.is_overdue is True

    def test_completed_contract(self, phone_contract):
        bill = phone_contract.model_copy(update={
            "paid_dates": {
                date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1),
            },
        })
        summary = summarize_bill(bill, TODAY)
        assert summary.is_complete is True
        assert summary.progress_percent == Decimal("100.00")
        assert summary.remaining_amount == Decimal("0")

    def test_open_ended_summary(self):
        summary = summarize_bill(make_bill(amount=Decimal("45")), TODAY)
        assert summary.total_amount == Decimal("540.00")
        assert summary.paid_amount == Decimal("0")
        assert summary.remaining_amount == Decimal("45.00")
        assert summary.installments_left is None
        assert summary.next_due_date == TODAY


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
