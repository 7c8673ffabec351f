"""
Payment Confirmation

The boundary where a confirmed (or undone) payment changes a record:
- Loans: the line with the exact due date flips is_paid, and the loan's
  status is recomputed from its schedule.
- Bills: the due date is added to or removed from paid_dates.

Every function returns a new record; inputs are never modified.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from src.models.bill import Bill
from src.models.loan import Loan
from src.schedule.rounding import ZERO


class ScheduleError(Exception):
    """Base exception for schedule operations."""
    pass


class InstallmentNotFoundError(ScheduleError):
    """No installment with the requested due date."""

    def __init__(self, loan_id, due_date: date):
        self.loan_id = loan_id
        self.due_date = due_date
        super().__init__(f"Loan {loan_id} has no installment due on {due_date.isoformat()}")


def _set_paid(loan: Loan, due_dates: set[date], is_paid: bool) -> Loan:
    # Lines going back to unpaid get their amortized balance back; prepayment
    # reconciliation zeroes it on the lines it marks.
    schedule = []
    balance = loan.total_principal
    for line in loan.schedule:
        balance -= line.principal_component
        if line.due_date not in due_dates:
            schedule.append(line.model_copy())
        elif is_paid:
            schedule.append(line.model_copy(update={"is_paid": True}))
        else:
            schedule.append(line.model_copy(update={
                "is_paid": False,
                "remaining_balance": max(ZERO, balance),
            }))
    return loan.with_schedule(schedule)


def _require_line(loan: Loan, due_date: date) -> None:
    if not any(line.due_date == due_date for line in loan.schedule):
        raise InstallmentNotFoundError(loan.id, due_date)


def confirm_loan_payment(loan: Loan, due_date: date) -> Loan:
    """
    Mark the installment due on `due_date` as paid.

    Raises:
        InstallmentNotFoundError: If no line has exactly that due date
    """
    _require_line(loan, due_date)
    return _set_paid(loan, {due_date}, True)


def confirm_loan_payments(loan: Loan, due_dates: Iterable[date]) -> Loan:
    """Bulk confirmation. Dates not in the schedule are ignored."""
    return _set_paid(loan, set(due_dates), True)


def undo_loan_payment(loan: Loan, due_date: date) -> Loan:
    """
    Flip a paid installment back to unpaid (e.g. its transaction was deleted).

    A completed loan returns to active.

    Raises:
        InstallmentNotFoundError: If no line has exactly that due date
    """
    _require_line(loan, due_date)
    return _set_paid(loan, {due_date}, False)


def selected_total(loan: Loan, due_dates: Iterable[date]) -> Decimal:
    """Cash needed to pay the selected installments that are still unpaid."""
    selected = set(due_dates)
    return sum(
        (line.payment_amount for line in loan.schedule
         if line.due_date in selected and not line.is_paid),
        ZERO,
    )


def mark_bill_paid(bill: Bill, due_dates: Iterable[date]) -> Bill:
    """Record one or more projected due dates as paid."""
    paid = set(bill.paid_dates) | set(due_dates)
    return bill.model_copy(update={
        "paid_dates": paid,
        "updated_at": datetime.utcnow(),
    })


def unmark_bill_paid(bill: Bill, due_date: date) -> Bill:
    paid = set(bill.paid_dates)
    paid.discard(due_date)
    return bill.model_copy(update={
        "paid_dates": paid,
        "updated_at": datetime.utcnow(),
    })
