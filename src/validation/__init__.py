"""Input validation package."""

from src.validation.validator import (
    LoanInputValidator,
    bill_display_name,
    contract_total,
)

__all__ = [
    "LoanInputValidator",
    "bill_display_name",
    "contract_total",
]
