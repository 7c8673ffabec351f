"""
Extraction and Validation Models

CRITICAL: Parsed* models hold PROPOSED values from the AI extraction
service. They are untrusted: every field is optional and nothing here is
fed to the schedule engine until it has been validated.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.models.bill import BillCategory


# =============================================================================
# EXTRACTION CANDIDATES
# =============================================================================

class ParsedLoan(BaseModel):
    """
    Loan details guessed from free text, a contract PDF or a screenshot.

    All fields are optional - the extractor may return any subset.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    extraction_id: UUID = Field(default_factory=uuid4)
    extracted_at: datetime = Field(default_factory=datetime.utcnow)

    principal: Optional[Decimal] = Field(
        default=None,
        description="Amount borrowed"
    )
    total_amount: Optional[Decimal] = Field(
        default=None,
        description="Principal plus total profit"
    )
    interest_rate: Optional[Decimal] = Field(
        default=None,
        description="Annual rate in percent"
    )
    duration_months: Optional[int] = None
    start_date: Optional[date] = None
    monthly_payment: Optional[Decimal] = None
    paid_installments: Optional[int] = Field(
        default=None,
        description="How many installments were already paid"
    )
    last_payment_amount: Optional[Decimal] = None
    lender_name: Optional[str] = Field(default=None, max_length=200)


class ParsedBill(BaseModel):
    """Bill or device-installment contract details guessed from a document."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    extraction_id: UUID = Field(default_factory=uuid4)
    extracted_at: datetime = Field(default_factory=datetime.utcnow)

    provider: Optional[str] = Field(default=None, max_length=200)
    category: Optional[BillCategory] = None
    amount: Optional[Decimal] = None
    has_end_date: Optional[bool] = None
    end_date: Optional[date] = None
    start_date: Optional[date] = None
    duration_months: Optional[int] = None
    last_payment_amount: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    device_details: Optional[str] = Field(default=None, max_length=200)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating loan or bill inputs before they reach the engine."""

    subject_id: Optional[UUID] = Field(
        default=None,
        description="Extraction or record the result refers to"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    is_valid: bool = Field(
        ...,
        description="True when no error-level issue was found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
