"""
Manual Schedule Editor

Lets the user replace the generator's even split with arbitrary
per-installment amounts (typically copied from a statement), while keeping
the known total profit allocated coherently across the lines.

The editor does NOT validate that the number of manual entries matches the
loan duration - it assumes 1:1 alignment. Keeping drafts aligned is the job
of LoanEditSession, which throws the draft away whenever the duration changes.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.models.loan import InstallmentLine, ManualEntry
from src.schedule.dates import add_months
from src.schedule.rounding import ZERO, safe_decimal, to_money


def build_manual_schedule(
    entries: list[ManualEntry],
    principal,
    fixed_profit_amount=ZERO,
) -> list[InstallmentLine]:
    """
    Build installment lines from manual (date, amount) entries.

    Profit share per line is fixed_profit / months (the last line takes the
    rounding remainder); principal is whatever the manual amount leaves.
    The running balance is decremented in order and never goes below zero.
    """
    months = len(entries)
    if months == 0:
        return []

    balance = to_money(safe_decimal(principal) or ZERO)
    total_profit = to_money(safe_decimal(fixed_profit_amount) or ZERO)
    profit_share = to_money(total_profit / months)
    allocated_profit = ZERO

    schedule = []
    for idx, entry in enumerate(entries):
        payment = to_money(entry.amount)
        if idx == months - 1:
            profit_part = max(ZERO, total_profit - allocated_profit)
        else:
            profit_part = profit_share
        # A manual amount smaller than the profit share pays profit only
        profit_part = min(profit_part, payment)
        principal_part = payment - profit_part

        allocated_profit += profit_part
        balance = max(ZERO, balance - principal_part)

        schedule.append(InstallmentLine(
            due_date=entry.due_date,
            payment_amount=payment,
            principal_component=principal_part,
            profit_component=profit_part,
            remaining_balance=balance,
        ))

    return schedule


class ManualScheduleDraft(BaseModel):
    """
    In-progress list of manual installment amounts.

    Methods return new drafts; a draft is never edited in place.
    """

    entries: list[ManualEntry] = Field(default_factory=list)

    @classmethod
    def for_loan(
        cls,
        total_payable,
        months: int,
        start_date: date,
    ) -> 'ManualScheduleDraft':
        """Even split of the total payable, first entry due on the start date."""
        return cls._even(total_payable, months, start_date, first_offset=0)

    @classmethod
    def for_bill(
        cls,
        amount,
        months: int,
        start_date: date,
    ) -> 'ManualScheduleDraft':
        """Bill installments start one month after the contract start."""
        if months <= 0:
            return cls()
        value = to_money(safe_decimal(amount) or ZERO)
        return cls(entries=[
            ManualEntry(due_date=add_months(start_date, i + 1), amount=value)
            for i in range(months)
        ])

    @classmethod
    def from_schedule(cls, schedule: list[InstallmentLine]) -> 'ManualScheduleDraft':
        """Seed a draft from an existing loan schedule, keeping paid flags."""
        return cls(entries=[
            ManualEntry(
                due_date=line.due_date,
                amount=line.payment_amount,
                is_paid=line.is_paid,
            )
            for line in schedule
        ])

    @classmethod
    def _even(
        cls,
        total,
        months: int,
        start_date: date,
        first_offset: int,
    ) -> 'ManualScheduleDraft':
        if months <= 0:
            return cls()
        total = to_money(safe_decimal(total) or ZERO)
        share = to_money(total / months)
        entries = []
        for i in range(months):
            amount = share if i < months - 1 else total - share * (months - 1)
            entries.append(ManualEntry(
                due_date=add_months(start_date, i + first_offset),
                amount=max(ZERO, amount),
            ))
        return cls(entries=entries)

    def matches(self, months: int) -> bool:
        return len(self.entries) == months

    def update_installment(self, index: int, amount) -> 'ManualScheduleDraft':
        """Set one entry's amount. Raises IndexError for a bad index."""
        if index < 0 or index >= len(self.entries):
            raise IndexError(f"No installment at position {index}")
        value = to_money(safe_decimal(amount) or ZERO)
        entries = [entry.model_copy() for entry in self.entries]
        entries[index] = entries[index].model_copy(update={"amount": value})
        return ManualScheduleDraft(entries=entries)

    def apply_to_remaining(self, amount) -> 'ManualScheduleDraft':
        """Set the same amount on every unpaid entry. Paid entries are untouched."""
        value = to_money(safe_decimal(amount) or ZERO)
        return ManualScheduleDraft(entries=[
            entry.model_copy() if entry.is_paid
            else entry.model_copy(update={"amount": value})
            for entry in self.entries
        ])

    def total(self) -> Decimal:
        return sum((entry.amount for entry in self.entries), ZERO)


class LoanEditSession:
    """
    Form-side state for creating or editing a loan.

    Holds the current duration and at most one manual draft. Changing the
    duration discards the draft so a stale schedule of the wrong length can
    never be submitted.
    """

    def __init__(
        self,
        duration_months: int,
        draft: Optional[ManualScheduleDraft] = None,
    ):
        self._duration = duration_months
        self._draft = draft

    @classmethod
    def for_existing(
        cls,
        schedule: list[InstallmentLine],
        duration_months: int,
    ) -> 'LoanEditSession':
        """Start an edit session pre-filled with a loan's current amounts."""
        return cls(duration_months, ManualScheduleDraft.from_schedule(schedule))

    @property
    def duration_months(self) -> int:
        return self._duration

    @property
    def draft(self) -> Optional[ManualScheduleDraft]:
        return self._draft

    def set_duration(self, months: int) -> None:
        if months != self._duration:
            self._draft = None
        self._duration = months

    def open_draft(self, total_payable, start_date: date) -> ManualScheduleDraft:
        """Return the current draft, or a fresh even split if none fits."""
        if self._draft is None or not self._draft.matches(self._duration):
            self._draft = ManualScheduleDraft.for_loan(
                total_payable, self._duration, start_date
            )
        return self._draft

    def save_draft(self, draft: ManualScheduleDraft) -> None:
        self._draft = draft

    def discard_draft(self) -> None:
        self._draft = None

    def manual_entries(self) -> list[ManualEntry]:
        """Entries to submit, or [] when there is no draft of the right length."""
        if self._draft is None or not self._draft.matches(self._duration):
            return []
        return [entry.model_copy() for entry in self._draft.entries]
