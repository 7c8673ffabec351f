"""Tests for early settlement quotes and debt prioritization."""

import pytest
from datetime import date
from decimal import Decimal

from src.models.loan import InstallmentLine, Loan, LoanStatus
from src.schedule.dates import add_months
from src.schedule.prioritizer import DebtStrategy, prioritize_debts
from src.schedule.settlement import early_settlement_amount, quote_early_settlement


def line(i: int, paid: bool = False, principal="1000", profit="50", balance="0"):
    return InstallmentLine(
        due_date=add_months(date(2024, 1, 1), i),
        payment_amount=Decimal(principal) + Decimal(profit),
        principal_component=Decimal(principal),
        profit_component=Decimal(profit),
        remaining_balance=Decimal(balance),
        is_paid=paid,
    )


def make_loan(name, schedule, rate="0"):
    return Loan(
        user_id="user-1",
        name=name,
        total_principal=Decimal("1000"),
        annual_rate_percent=Decimal(rate),
        duration_months=len(schedule),
        start_date=date(2024, 1, 1),
        schedule=schedule,
    )


class TestEarlySettlement:
    """Test payoff quotes."""

    @pytest.fixture
    def schedule(self):
        return [line(i, paid=i < 6) for i in range(12)]

    def test_penalty_is_capped_at_three_months_of_profit(self, schedule):
        quote = quote_early_settlement(schedule)
        assert quote.unpaid_installments == 6
        assert quote.remaining_principal == Decimal("6000.00")
        assert quote.future_profit == Decimal("300.00")
        assert quote.penalty == Decimal("150.00")
        assert quote.waived_profit == Decimal("150.00")
        assert quote.payoff_amount == Decimal("6150.00")

    def test_penalty_months_are_configurable(self, schedule):
        assert quote_early_settlement(schedule, penalty_months=0).payoff_amount == Decimal("6000.00")

    def test_penalty_never_exceeds_future_profit(self):
        schedule = [line(0), line(1)]
        quote = quote_early_settlement(schedule)
        assert quote.penalty == Decimal("100.00")
        assert quote.waived_profit == Decimal("0.00")

    def test_nothing_unpaid(self):
        schedule = [line(i, paid=True) for i in range(3)]
        assert quote_early_settlement(schedule).payoff_amount == Decimal("0")

    def test_amount_for_loan(self, schedule):
        loan = make_loan("Car", schedule)
        assert early_settlement_amount(loan) == Decimal("6150.00")


class TestPrioritizeDebts:
    """Test snowball and avalanche ordering."""

    @pytest.fixture
    def loans(self):
        return [
            make_loan("A", [line(0, balance="5000")], rate="5"),
            make_loan("B", [line(0, balance="1200")], rate="12"),
            make_loan("C", [line(0, balance="8000")], rate="8"),
        ]

    def test_snowball_smallest_balance_first(self, loans):
        ordered = prioritize_debts(loans, DebtStrategy.SNOWBALL)
        assert [loan.name for loan in ordered] == ["B", "A", "C"]

    def test_avalanche_highest_rate_first(self, loans):
        ordered = prioritize_debts(loans, "avalanche")
        assert [loan.name for loan in ordered] == ["B", "C", "A"]

    def test_completed_loans_are_excluded(self, loans):
        done = make_loan("D", [line(0, paid=True)])
        assert done.status == LoanStatus.COMPLETED
        ordered = prioritize_debts(loans + [done], DebtStrategy.SNOWBALL)
        assert "D" not in [loan.name for loan in ordered]

    def test_ties_keep_input_order(self):
        loans = [
            make_loan("First", [line(0, balance="100")], rate="5"),
            make_loan("Second", [line(0, balance="100")], rate="5"),
        ]
        assert [loan.name for loan in prioritize_debts(loans, "snowball")] == ["First", "Second"]
        assert [loan.name for loan in prioritize_debts(loans, "avalanche")] == ["First", "Second"]

    def test_unknown_strategy(self, loans):
        with pytest.raises(ValueError):
            prioritize_debts(loans, "random")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
