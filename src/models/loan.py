"""
Loan Models

A Loan owns its installment schedule. The schedule is generated once at
creation, replaced wholesale on edit, and afterwards only individual lines
flip their paid flag.

DESIGN DECISION: `status` is a projection of the schedule. The model
validator recomputes it on every construction, and `with_schedule()` is the
only way to swap a schedule, so the two can never drift apart.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class AmortizationPolicy(str, Enum):
    """How profit is spread across the life of a loan."""
    FLAT = "flat"              # Profit computed once on the original principal
    DECREASING = "decreasing"  # Profit computed on the outstanding balance


class LoanStatus(str, Enum):
    """
    Loan lifecycle status.

    Derived: COMPLETED iff every installment is paid.
    """
    ACTIVE = "active"
    COMPLETED = "completed"


# =============================================================================
# SCHEDULE
# =============================================================================

class InstallmentLine(BaseModel):
    """
    One scheduled loan payment.

    principal_component + profit_component == payment_amount (to the cent).
    """

    due_date: date = Field(
        ...,
        description="Calendar date the installment falls due"
    )
    payment_amount: Decimal = Field(
        ...,
        ge=0,
        description="Total cash due for this period"
    )
    principal_component: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Portion of the payment that repays principal"
    )
    profit_component: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Portion of the payment that is profit/interest"
    )
    remaining_balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Outstanding principal right after this installment"
    )
    is_paid: bool = Field(
        default=False,
        description="Set only by payment confirmation or prepayment reconciliation"
    )


def derive_status(schedule: list[InstallmentLine]) -> LoanStatus:
    """COMPLETED when every line is paid. An empty schedule stays ACTIVE."""
    if schedule and all(line.is_paid for line in schedule):
        return LoanStatus.COMPLETED
    return LoanStatus.ACTIVE


# =============================================================================
# LOAN
# =============================================================================

class Loan(BaseModel):
    """
    A loan with its persisted installment schedule.

    The engine only ever receives and returns whole copies of a Loan.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the record in storage"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name (usually the lender)"
    )
    description: Optional[str] = Field(default=None, max_length=1000)

    # Financial parameters
    total_principal: Decimal = Field(
        ...,
        ge=0,
        description="Amount borrowed, excluding profit"
    )
    annual_rate_percent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Nominal annual rate in percent"
    )
    fixed_profit_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Total profit when supplied directly instead of a rate"
    )
    duration_months: int = Field(..., ge=1)
    start_date: date
    amortization_policy: AmortizationPolicy = Field(
        default=AmortizationPolicy.DECREASING
    )

    # Schedule and derived status
    schedule: list[InstallmentLine] = Field(default_factory=list)
    status: LoanStatus = Field(default=LoanStatus.ACTIVE)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode='after')
    def sync_status(self) -> 'Loan':
        """Status always follows the schedule."""
        self.status = derive_status(self.schedule)
        return self

    def with_schedule(self, schedule: list[InstallmentLine]) -> 'Loan':
        """Return a copy carrying a new schedule and its derived status."""
        return self.model_copy(
            update={
                "schedule": schedule,
                "status": derive_status(schedule),
                "updated_at": datetime.utcnow(),
            },
            deep=True,
        )

    @property
    def unpaid_lines(self) -> list[InstallmentLine]:
        return [line for line in self.schedule if not line.is_paid]

    @property
    def unpaid_balance(self) -> Decimal:
        """Sum of remaining_balance over unpaid lines (used for snowball ordering)."""
        return sum(
            (line.remaining_balance for line in self.unpaid_lines),
            Decimal("0"),
        )

    @property
    def total_paid(self) -> Decimal:
        return sum(
            (line.payment_amount for line in self.schedule if line.is_paid),
            Decimal("0"),
        )

    @property
    def total_outstanding(self) -> Decimal:
        """Sum of payment_amount over unpaid lines."""
        return sum(
            (line.payment_amount for line in self.unpaid_lines),
            Decimal("0"),
        )

    @property
    def total_profit(self) -> Decimal:
        return sum(
            (line.profit_component for line in self.schedule),
            Decimal("0"),
        )

    @property
    def next_unpaid_line(self) -> Optional[InstallmentLine]:
        for line in self.schedule:
            if not line.is_paid:
                return line
        return None


class ManualEntry(BaseModel):
    """One (date, amount) pair in a manual schedule draft."""

    due_date: date
    amount: Decimal = Field(..., ge=0)
    is_paid: bool = False


class LoanRequest(BaseModel):
    """
    Everything needed to (re)build a loan schedule.

    This is what a form, an edit, or a validated extraction candidate
    turns into before it reaches the generator.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    principal: Decimal = Field(..., ge=0)
    annual_rate_percent: Decimal = Field(default=Decimal("0"), ge=0)
    fixed_profit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    duration_months: int
    start_date: date
    amortization_policy: AmortizationPolicy = AmortizationPolicy.DECREASING

    # Optional adjustments applied on top of the generated schedule
    monthly_payment: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Contract's stated monthly payment, if it differs from the even split"
    )
    last_payment_amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Contract's stated final payment, if different"
    )
    initial_paid_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Cash already paid before the loan was entered"
    )
    manual_entries: list[ManualEntry] = Field(
        default_factory=list,
        description="Per-installment amounts from the manual editor (1:1 with duration)"
    )
