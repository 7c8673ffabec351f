"""
Prepayment Reconciler

Models the "I already paid N installments before entering this loan"
import: a cumulative amount already received is consumed line by line, in
date order, marking a prefix of the schedule as paid.

A line is wholly paid or wholly unpaid. Consumption stops at the first line
the remaining amount cannot cover, so a later line is never paid while an
earlier one is still open. A line within the tolerance of the remaining
amount counts as covered, so a zero amount still covers lines of up to
the tolerance.
"""

from decimal import Decimal

import structlog

from src.models.loan import InstallmentLine
from src.schedule.rounding import ZERO, safe_decimal


logger = structlog.get_logger(__name__)

# Historical data drifts by rounding; a line counts as covered when the
# remaining amount is within this much of its payment.
DEFAULT_PREPAYMENT_TOLERANCE = Decimal("1.0")


def reconcile_prepayment(
    schedule: list[InstallmentLine],
    paid_balance,
    tolerance=DEFAULT_PREPAYMENT_TOLERANCE,
) -> list[InstallmentLine]:
    """
    Mark the prefix of `schedule` covered by `paid_balance` as paid.

    Covered lines get is_paid=True and remaining_balance=0. Lines that are
    already paid are kept as they are and do not consume the balance.
    """
    remaining = safe_decimal(paid_balance) or ZERO
    tolerance = safe_decimal(tolerance)
    if tolerance is None:
        tolerance = DEFAULT_PREPAYMENT_TOLERANCE

    consuming = True
    marked = 0
    result = []

    for line in sorted(schedule, key=lambda item: item.due_date):
        if line.is_paid:
            result.append(line.model_copy())
            continue

        if consuming and remaining >= line.payment_amount - tolerance:
            result.append(line.model_copy(update={
                "is_paid": True,
                "remaining_balance": ZERO,
            }))
            remaining -= line.payment_amount
            marked += 1
        else:
            consuming = False
            result.append(line.model_copy())

    logger.debug(
        "prepayment_reconciled",
        lines_marked=marked,
        leftover=str(remaining),
    )
    return result
