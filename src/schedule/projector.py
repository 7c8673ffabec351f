"""
Bill Schedule Projector

Bills do not store a schedule. Every call derives a bounded, read-only
preview from the bill's current fields, its paid dates and "today":

- Finite contract: optional down payment at the start date, then one
  installment per month starting one month after the start date; the last
  installment may use a different amount. A stored custom schedule replaces
  the generated installments.
- Subscription: 13 lines, 3 months back through 9 months ahead, pinned to
  the renewal day when one is set.
- Simple monthly: 5 lines, 1 month back through 3 months ahead.

For the two open-ended shapes, lines dated before today count as paid.

The projector is pure: the same bill and the same `today` always produce
the same lines.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from src.models.bill import (
    Bill,
    BillSummary,
    FiniteContract,
    ProjectedLine,
    ProjectedLineKind,
    Subscription,
)
from src.schedule.dates import add_months, month_offset_on_day
from src.schedule.rounding import ZERO, to_money


SUBSCRIPTION_WINDOW = (3, 9)
MONTHLY_WINDOW = (1, 3)


def project_bill_schedule(
    bill: Bill,
    today: date,
    subscription_window: tuple[int, int] = SUBSCRIPTION_WINDOW,
    monthly_window: tuple[int, int] = MONTHLY_WINDOW,
) -> list[ProjectedLine]:
    """
    Project a bill's due dates and amounts.

    Args:
        bill: The stored bill
        today: Reference date for the open-ended windows
        subscription_window: (months back, months ahead) for subscriptions
        monthly_window: (months back, months ahead) for simple monthly bills
    """
    shape = bill.shape()
    paid_dates = set(bill.paid_dates)

    if isinstance(shape, FiniteContract):
        return _project_contract(shape, paid_dates)

    if isinstance(shape, Subscription):
        anchor_day = shape.renewal_date.day if shape.renewal_date else None
        months_back, months_ahead = subscription_window
        return _project_window(
            amount=shape.amount,
            today=today,
            months_back=months_back,
            months_ahead=months_ahead,
            anchor_day=anchor_day,
            kind=ProjectedLineKind.SUBSCRIPTION,
            paid_dates=paid_dates,
        )

    months_back, months_ahead = monthly_window
    return _project_window(
        amount=shape.amount,
        today=today,
        months_back=months_back,
        months_ahead=months_ahead,
        anchor_day=None,
        kind=ProjectedLineKind.MONTHLY,
        paid_dates=paid_dates,
    )


def _project_contract(
    contract: FiniteContract,
    paid_dates: set[date],
) -> list[ProjectedLine]:
    lines = []

    if contract.down_payment is not None and contract.down_payment > 0:
        lines.append(ProjectedLine(
            due_date=contract.start_date,
            amount=to_money(contract.down_payment),
            is_paid=contract.start_date in paid_dates,
            kind=ProjectedLineKind.DOWN_PAYMENT,
        ))

    if contract.custom_schedule:
        for item in contract.custom_schedule:
            lines.append(ProjectedLine(
                due_date=item.due_date,
                amount=to_money(item.amount),
                is_paid=item.due_date in paid_dates,
                kind=ProjectedLineKind.INSTALLMENT,
            ))
        return lines

    final_index = contract.duration_months - 1
    for i in range(contract.duration_months):
        due = add_months(contract.start_date, i + 1)
        amount = contract.amount
        if i == final_index and contract.last_payment_amount is not None:
            amount = contract.last_payment_amount
        lines.append(ProjectedLine(
            due_date=due,
            amount=to_money(amount),
            is_paid=due in paid_dates,
            kind=ProjectedLineKind.INSTALLMENT,
        ))

    return lines


def _project_window(
    amount: Decimal,
    today: date,
    months_back: int,
    months_ahead: int,
    anchor_day: Optional[int],
    kind: ProjectedLineKind,
    paid_dates: set[date],
) -> list[ProjectedLine]:
    lines = []
    for offset in range(-months_back, months_ahead + 1):
        due = month_offset_on_day(today, offset, anchor_day)
        lines.append(ProjectedLine(
            due_date=due,
            amount=to_money(amount),
            is_paid=due in paid_dates or due < today,
            kind=kind,
        ))
    return lines


def next_due_date(
    bill: Bill,
    today: date,
    subscription_window: tuple[int, int] = SUBSCRIPTION_WINDOW,
    monthly_window: tuple[int, int] = MONTHLY_WINDOW,
) -> Optional[date]:
    """
    First unpaid projected date due today or later; failing that, the
    earliest unpaid (overdue) date; None when everything is paid.
    """
    lines = project_bill_schedule(bill, today, subscription_window, monthly_window)
    return _first_unpaid(lines, today)


def _first_unpaid(lines: list[ProjectedLine], today: date) -> Optional[date]:
    unpaid = [line for line in lines if not line.is_paid]
    for line in unpaid:
        if line.due_date >= today:
            return line.due_date
    if unpaid:
        return unpaid[0].due_date
    return None


def summarize_bill(
    bill: Bill,
    today: date,
    subscription_window: tuple[int, int] = SUBSCRIPTION_WINDOW,
    monthly_window: tuple[int, int] = MONTHLY_WINDOW,
) -> BillSummary:
    """
    Totals and progress for a bill.

    Finite contracts are summed over their full projection. Open-ended bills
    have no total; they report an annual projection and one period due.
    """
    lines = project_bill_schedule(bill, today, subscription_window, monthly_window)
    upcoming = _first_unpaid(lines, today)
    is_overdue = any(not line.is_paid and line.due_date < today for line in lines)

    if not isinstance(bill.shape(), FiniteContract):
        amount = to_money(bill.amount)
        return BillSummary(
            total_amount=amount * 12,
            paid_amount=ZERO,
            remaining_amount=amount,
            next_due_date=upcoming,
            is_overdue=is_overdue,
        )

    total = sum((line.amount for line in lines), ZERO)
    paid = sum((line.amount for line in lines if line.is_paid), ZERO)
    installments_left = sum(
        1 for line in lines
        if line.kind == ProjectedLineKind.INSTALLMENT and not line.is_paid
    )
    progress = ZERO
    if total > 0:
        progress = to_money(paid / total * 100)

    return BillSummary(
        total_amount=total,
        paid_amount=paid,
        remaining_amount=max(ZERO, total - paid),
        installments_left=installments_left,
        progress_percent=progress,
        next_due_date=upcoming,
        is_overdue=is_overdue,
        is_complete=installments_left == 0,
    )
