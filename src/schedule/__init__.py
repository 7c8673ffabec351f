"""
Installment Schedule Engine

Pure, synchronous schedule math for loans and bills. Nothing in this
package performs I/O; callers own fetching and persisting records.
"""

from src.schedule.dates import add_months, duration_in_months, month_offset_on_day
from src.schedule.generator import apply_payment_overrides, generate_schedule
from src.schedule.manual import (
    LoanEditSession,
    ManualScheduleDraft,
    build_manual_schedule,
)
from src.schedule.payments import (
    InstallmentNotFoundError,
    ScheduleError,
    confirm_loan_payment,
    confirm_loan_payments,
    mark_bill_paid,
    selected_total,
    undo_loan_payment,
    unmark_bill_paid,
)
from src.schedule.prepayment import DEFAULT_PREPAYMENT_TOLERANCE, reconcile_prepayment
from src.schedule.prioritizer import DebtStrategy, prioritize_debts
from src.schedule.projector import next_due_date, project_bill_schedule, summarize_bill
from src.schedule.settlement import (
    DEFAULT_PENALTY_MONTHS,
    SettlementQuote,
    early_settlement_amount,
    quote_early_settlement,
)

__all__ = [
    # Dates
    "add_months",
    "duration_in_months",
    "month_offset_on_day",
    # Generation
    "apply_payment_overrides",
    "generate_schedule",
    # Manual editing
    "LoanEditSession",
    "ManualScheduleDraft",
    "build_manual_schedule",
    # Prepayment
    "DEFAULT_PREPAYMENT_TOLERANCE",
    "reconcile_prepayment",
    # Bills
    "next_due_date",
    "project_bill_schedule",
    "summarize_bill",
    # Settlement
    "DEFAULT_PENALTY_MONTHS",
    "SettlementQuote",
    "early_settlement_amount",
    "quote_early_settlement",
    # Prioritization
    "DebtStrategy",
    "prioritize_debts",
    # Payments
    "InstallmentNotFoundError",
    "ScheduleError",
    "confirm_loan_payment",
    "confirm_loan_payments",
    "mark_bill_paid",
    "selected_total",
    "undo_loan_payment",
    "unmark_bill_paid",
]
