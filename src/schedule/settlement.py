"""
Early Settlement Calculator

Payoff amount for an active loan:

    unpaid principal + min(unpaid profit, penalty_months * average unpaid profit)

The penalty cap (three installments of average future profit by default) is
a policy constant approximating a regulatory maximum, not a verified legal
formula. It is configurable through ScheduleSettings.
"""

from decimal import Decimal

from pydantic import BaseModel

from src.models.loan import InstallmentLine, Loan
from src.schedule.rounding import ZERO, to_money


DEFAULT_PENALTY_MONTHS = 3


class SettlementQuote(BaseModel):
    """Breakdown of an early settlement."""

    unpaid_installments: int
    remaining_principal: Decimal
    future_profit: Decimal
    penalty: Decimal
    waived_profit: Decimal
    payoff_amount: Decimal


def quote_early_settlement(
    schedule: list[InstallmentLine],
    penalty_months: int = DEFAULT_PENALTY_MONTHS,
) -> SettlementQuote:
    unpaid = [line for line in schedule if not line.is_paid]

    if not unpaid:
        return SettlementQuote(
            unpaid_installments=0,
            remaining_principal=ZERO,
            future_profit=ZERO,
            penalty=ZERO,
            waived_profit=ZERO,
            payoff_amount=ZERO,
        )

    remaining_principal = sum((line.principal_component for line in unpaid), ZERO)
    future_profit = sum((line.profit_component for line in unpaid), ZERO)
    average_profit = future_profit / len(unpaid)
    penalty = to_money(min(future_profit, average_profit * penalty_months))

    return SettlementQuote(
        unpaid_installments=len(unpaid),
        remaining_principal=to_money(remaining_principal),
        future_profit=to_money(future_profit),
        penalty=penalty,
        waived_profit=to_money(future_profit - penalty),
        payoff_amount=to_money(remaining_principal + penalty),
    )


def early_settlement_amount(
    loan: Loan,
    penalty_months: int = DEFAULT_PENALTY_MONTHS,
) -> Decimal:
    """Amount needed to close `loan` today. Zero when nothing is unpaid."""
    return quote_early_settlement(loan.schedule, penalty_months).payoff_amount
