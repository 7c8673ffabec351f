"""
Debt Prioritizer

Advisory ordering of active loans for a payoff suggestion:
- snowball: smallest unpaid remaining balance first
- avalanche: highest nominal annual rate first

Ties keep the input order. Nothing here is persisted or enforced.
"""

from enum import Enum
from typing import Iterable, Union

from src.models.loan import Loan, LoanStatus


class DebtStrategy(str, Enum):
    SNOWBALL = "snowball"
    AVALANCHE = "avalanche"


def prioritize_debts(
    loans: Iterable[Loan],
    strategy: Union[DebtStrategy, str],
) -> list[Loan]:
    """
    Order active loans by the chosen strategy.

    Raises:
        ValueError: If the strategy name is unknown
    """
    strategy = DebtStrategy(strategy)
    active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]

    if strategy == DebtStrategy.SNOWBALL:
        return sorted(active, key=lambda loan: loan.unpaid_balance)
    return sorted(active, key=lambda loan: loan.annual_rate_percent, reverse=True)
