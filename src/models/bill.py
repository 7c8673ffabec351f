"""
Bill Models

Bills never persist a generated schedule. They store only their own fields
plus the sparse set of due dates that were marked paid; the schedule is
projected on demand (see src.schedule.projector).

DESIGN DECISION: A bill takes one of three shapes depending on which
optional fields are set. `Bill.shape()` is the single place that decides
which shape applies and returns a tagged variant; nothing downstream
branches on field presence.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class BillCategory(str, Enum):
    """Supported bill categories."""
    ELECTRICITY = "electricity"
    WATER = "water"
    INTERNET = "internet"
    DEVICE_INSTALLMENT = "device_installment"
    SUBSCRIPTION = "subscription"
    OTHER = "other"


class BillStatus(str, Enum):
    """Archived bills stay in storage but drop out of the active views."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class ProjectedLineKind(str, Enum):
    DOWN_PAYMENT = "down_payment"
    INSTALLMENT = "installment"
    SUBSCRIPTION = "subscription"
    MONTHLY = "monthly"


# =============================================================================
# SCHEDULE PIECES
# =============================================================================

class BillScheduleItem(BaseModel):
    """A stored (date, amount) pair for contracts with variable installments."""

    due_date: date
    amount: Decimal = Field(..., ge=0)


class ProjectedLine(BaseModel):
    """
    One projected bill due date.

    Ephemeral: produced by the projector, never persisted.
    """
    model_config = ConfigDict(frozen=True)

    due_date: date
    amount: Decimal
    is_paid: bool
    kind: ProjectedLineKind


# =============================================================================
# BILL SHAPES (tagged union)
# =============================================================================

class FiniteContract(BaseModel):
    """Fixed-duration installment contract, e.g. a phone paid over 24 months."""

    kind: Literal["finite_contract"] = "finite_contract"
    amount: Decimal
    start_date: date
    duration_months: int = Field(..., ge=1)
    down_payment: Optional[Decimal] = None
    last_payment_amount: Optional[Decimal] = None
    custom_schedule: list[BillScheduleItem] = Field(default_factory=list)


class Subscription(BaseModel):
    """Open-ended subscription renewing on a fixed day of the month."""

    kind: Literal["subscription"] = "subscription"
    amount: Decimal
    renewal_date: Optional[date] = None


class SimpleMonthly(BaseModel):
    """Ongoing monthly bill with no contract end (utilities)."""

    kind: Literal["simple_monthly"] = "simple_monthly"
    amount: Decimal


BillShape = Annotated[
    Union[FiniteContract, Subscription, SimpleMonthly],
    Field(discriminator="kind"),
]


# =============================================================================
# BILL
# =============================================================================

class Bill(BaseModel):
    """
    A recurring obligation as stored.

    Shape fields:
    - start_date + duration_months [+ down_payment, last_payment_amount,
      custom_schedule] -> finite installment contract
    - is_subscription [+ renewal_date] -> open-ended subscription
    - neither -> simple monthly bill
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    provider: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Company that issues the bill"
    )
    category: BillCategory = Field(default=BillCategory.OTHER)

    amount: Decimal = Field(
        ...,
        ge=0,
        description="Periodic due amount"
    )

    # Finite contract fields
    start_date: Optional[date] = None
    duration_months: Optional[int] = Field(default=None, ge=0)
    down_payment: Optional[Decimal] = Field(default=None, ge=0)
    last_payment_amount: Optional[Decimal] = Field(default=None, ge=0)
    custom_schedule: list[BillScheduleItem] = Field(default_factory=list)
    total_debt: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Total contract value including any down payment"
    )
    device_details: Optional[str] = Field(default=None, max_length=200)

    # Subscription fields
    is_subscription: bool = False
    renewal_date: Optional[date] = None

    # Payment tracking
    paid_dates: set[date] = Field(default_factory=set)
    status: BillStatus = Field(default=BillStatus.ACTIVE)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('custom_schedule')
    @classmethod
    def sort_custom_schedule(
        cls,
        v: list[BillScheduleItem],
    ) -> list[BillScheduleItem]:
        """Custom schedules are kept in date order."""
        return sorted(v, key=lambda item: item.due_date)

    def shape(self) -> BillShape:
        """Resolve which of the three bill shapes this record is."""
        if self.start_date is not None and self.duration_months:
            return FiniteContract(
                amount=self.amount,
                start_date=self.start_date,
                duration_months=self.duration_months,
                down_payment=self.down_payment,
                last_payment_amount=self.last_payment_amount,
                custom_schedule=list(self.custom_schedule),
            )
        if self.is_subscription:
            return Subscription(
                amount=self.amount,
                renewal_date=self.renewal_date,
            )
        return SimpleMonthly(amount=self.amount)

    @property
    def is_archived(self) -> bool:
        return self.status == BillStatus.ARCHIVED


class BillSummary(BaseModel):
    """Derived figures for a bill card: totals, progress and next due date."""

    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    installments_left: Optional[int] = Field(
        default=None,
        description="Only meaningful for finite contracts"
    )
    progress_percent: Decimal = Field(default=Decimal("0"))
    next_due_date: Optional[date] = None
    is_overdue: bool = False
    is_complete: bool = False
