"""
Calendar helpers for installment schedules.

Schedules advance by whole calendar months, never by fixed 30-day steps.
When the anchor day does not exist in the target month (31 Jan + 1 month)
the date is clamped to the last day of that month.
"""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta


def add_months(start: date, months: int) -> date:
    """Advance (or rewind, for negative values) a date by whole calendar months."""
    return start + relativedelta(months=months)


def month_offset_on_day(
    reference: date,
    months: int,
    day: Optional[int] = None,
) -> date:
    """
    Date `months` calendar months away from `reference`, pinned to `day`.

    If `day` is None the reference's own day-of-month is kept.
    Days past the end of the target month are clamped.
    """
    if day is None:
        return add_months(reference, months)
    return reference + relativedelta(months=months, day=day)


def duration_in_months(start: date, end: date) -> int:
    """
    Whole calendar months between two dates, ignoring the day-of-month.

    Returns 0 when `end` is not after `start` in month terms.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    return months if months > 0 else 0
