"""
Loan and Bill Input Validation

DESIGN DECISION: The schedule engine never raises on bad input. It returns
an empty schedule and leaves explanations to the caller. This module is
that caller-side check: it runs BEFORE the generator and turns problems into
a ValidationResult a person can act on.

Validation happens in two places:

1. CANDIDATE MAPPING (extraction -> request):
   - ParsedLoan / ParsedBill are untrusted and every field is optional
   - Mapping fills only what the candidate actually provides
   - Missing required values become "missing" issues, never guesses

2. REQUEST CHECKS (request -> generator):
   - Structural: positive principal, duration within bounds
   - Semantic: suspicious amounts, stale manual drafts, prepayment larger
     than the whole loan

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from src.config import ScheduleSettings, get_settings
from src.models.bill import Bill, BillCategory
from src.models.extraction import (
    ParsedBill,
    ParsedLoan,
    ValidationIssue,
    ValidationResult,
)
from src.models.loan import LoanRequest
from src.schedule.dates import duration_in_months
from src.schedule.rounding import ZERO, to_money


def _result(
    issues: list[ValidationIssue],
    subject_id=None,
) -> ValidationResult:
    return ValidationResult(
        subject_id=subject_id,
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
        warnings=[issue.message for issue in issues if issue.severity == "warning"],
    )


class LoanInputValidator:
    """
    Validates loan requests, bills and extraction candidates.

    Limits (max duration, max loan amount) come from ScheduleSettings.
    """

    def __init__(self, settings: Optional[ScheduleSettings] = None):
        self._settings = settings or get_settings().schedule

    # =========================================================================
    # LOANS
    # =========================================================================

    def validate_loan_request(self, request: LoanRequest) -> ValidationResult:
        """
        Check a loan request before schedule generation.

        Errors block saving; warnings are shown for review.
        """
        issues = []

        if request.principal <= 0 and request.fixed_profit_amount <= 0:
            issues.append(ValidationIssue(
                field="principal",
                issue_type="invalid_value",
                message="Loan amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount borrowed",
            ))
        elif request.principal > self._settings.max_loan_amount:
            issues.append(ValidationIssue(
                field="principal",
                issue_type="suspicious_value",
                message=f"Loan amount ({request.principal:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if request.duration_months < 1:
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="invalid_value",
                message="Duration must be at least one month",
                severity="error",
            ))
        elif request.duration_months > self._settings.max_duration_months:
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="invalid_value",
                message=(
                    f"Duration of {request.duration_months} months exceeds the "
                    f"limit of {self._settings.max_duration_months}"
                ),
                severity="error",
            ))

        if request.annual_rate_percent > 100:
            issues.append(ValidationIssue(
                field="annual_rate_percent",
                issue_type="suspicious_value",
                message=f"Annual rate of {request.annual_rate_percent}% seems unusually high",
                severity="warning",
                suggested_fix="Enter the rate in percent (e.g. 5 for 5%)",
            ))

        if request.manual_entries and len(request.manual_entries) != request.duration_months:
            issues.append(ValidationIssue(
                field="manual_entries",
                issue_type="inconsistent",
                message=(
                    f"Manual schedule has {len(request.manual_entries)} installments "
                    f"but the loan runs {request.duration_months} months; "
                    "the generated schedule will be used"
                ),
                severity="warning",
                suggested_fix="Reopen the manual editor for the new duration",
            ))

        total_payable = request.principal + request.fixed_profit_amount
        if total_payable > 0 and request.initial_paid_amount > total_payable:
            issues.append(ValidationIssue(
                field="initial_paid_amount",
                issue_type="inconsistent",
                message="Amount already paid is larger than the whole loan",
                severity="warning",
                suggested_fix="Every installment will be marked paid",
            ))

        return _result(issues)

    def loan_request_from_candidate(
        self,
        candidate: ParsedLoan,
        name: Optional[str] = None,
        default_start_date: Optional[date] = None,
    ) -> tuple[Optional[LoanRequest], ValidationResult]:
        """
        Map an extraction candidate onto a LoanRequest.

        - total payable = total_amount, else principal
        - fixed profit = total_amount - principal when both are present
        - amount already paid = paid_installments x monthly_payment
        - monthly / last payment become payment overrides

        Returns:
            (request or None, validation result). The request is None when a
            required value is missing.
        """
        issues = []

        total = candidate.total_amount
        principal = candidate.principal
        if total is None and principal is None:
            issues.append(ValidationIssue(
                field="principal",
                issue_type="missing",
                message="Neither the loan amount nor the total payable was found",
                severity="error",
                suggested_fix="Enter the amount borrowed manually",
            ))

        fixed_profit = ZERO
        if total is not None and principal is not None:
            if total < principal:
                issues.append(ValidationIssue(
                    field="total_amount",
                    issue_type="inconsistent",
                    message="Total payable is smaller than the loan amount",
                    severity="warning",
                    suggested_fix="Profit was set to zero; please verify both amounts",
                ))
            else:
                fixed_profit = to_money(total - principal)
        elif principal is None:
            principal = total

        months = candidate.duration_months
        if months is None or months < 1:
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="missing",
                message="Number of installments was not found",
                severity="error",
                suggested_fix="Enter the loan duration in months",
            ))

        start = candidate.start_date or default_start_date
        if start is None:
            issues.append(ValidationIssue(
                field="start_date",
                issue_type="missing",
                message="First installment date was not found",
                severity="error",
                suggested_fix="Enter the first payment date",
            ))

        rate = candidate.interest_rate
        if rate is not None and rate < 0:
            issues.append(ValidationIssue(
                field="interest_rate",
                issue_type="invalid_value",
                message="Interest rate cannot be negative; it was ignored",
                severity="warning",
            ))
            rate = None

        initial_paid = ZERO
        paid_count = candidate.paid_installments
        monthly = candidate.monthly_payment
        if paid_count is not None and monthly is not None and paid_count > 0 and monthly > 0:
            initial_paid = to_money(paid_count * monthly)
        elif (paid_count is not None and paid_count < 0) or (
            paid_count and monthly is not None and monthly <= 0
        ):
            issues.append(ValidationIssue(
                field="paid_installments",
                issue_type="invalid_value",
                message="Installments already paid could not be valued; treated as none paid",
                severity="warning",
                suggested_fix="Enter the amount already paid manually",
            ))

        if any(issue.severity == "error" for issue in issues):
            return None, _result(issues, candidate.extraction_id)

        request = LoanRequest(
            name=name or candidate.lender_name or "Imported loan",
            principal=to_money(max(principal, ZERO)),
            annual_rate_percent=rate or ZERO,
            fixed_profit_amount=fixed_profit,
            duration_months=months,
            start_date=start,
            monthly_payment=_positive(candidate.monthly_payment),
            last_payment_amount=_positive(candidate.last_payment_amount),
            initial_paid_amount=initial_paid,
        )

        checked = self.validate_loan_request(request)
        return request, _result(issues + checked.issues, candidate.extraction_id)

    # =========================================================================
    # BILLS
    # =========================================================================

    def validate_bill(self, bill: Bill) -> ValidationResult:
        """Check a bill's shape fields are coherent before saving."""
        issues = []

        if bill.amount <= 0 and not bill.custom_schedule:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Bill amount must be greater than zero",
                severity="error",
            ))

        if bill.duration_months and bill.duration_months > self._settings.max_duration_months:
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="invalid_value",
                message=(
                    f"Duration of {bill.duration_months} months exceeds the "
                    f"limit of {self._settings.max_duration_months}"
                ),
                severity="error",
            ))

        if bill.duration_months and bill.start_date is None:
            issues.append(ValidationIssue(
                field="start_date",
                issue_type="missing",
                message="Contract has a duration but no start date; it will be treated as a monthly bill",
                severity="warning",
                suggested_fix="Enter the contract start date",
            ))

        if (
            bill.custom_schedule
            and bill.duration_months
            and len(bill.custom_schedule) != bill.duration_months
        ):
            issues.append(ValidationIssue(
                field="custom_schedule",
                issue_type="inconsistent",
                message=(
                    f"Custom schedule has {len(bill.custom_schedule)} installments "
                    f"but the contract runs {bill.duration_months} months"
                ),
                severity="warning",
            ))

        if bill.renewal_date and not bill.is_subscription:
            issues.append(ValidationIssue(
                field="renewal_date",
                issue_type="inconsistent",
                message="Renewal date is only used for subscriptions",
                severity="info",
            ))

        return _result(issues, bill.id)

    def bill_from_candidate(
        self,
        candidate: ParsedBill,
        user_id: str,
    ) -> tuple[Optional[Bill], ValidationResult]:
        """
        Map an extraction candidate onto a new Bill.

        A contract end date is converted to a duration in months when no
        duration was stated.
        """
        issues = []

        if not candidate.provider:
            issues.append(ValidationIssue(
                field="provider",
                issue_type="missing",
                message="Bill provider was not found",
                severity="error",
                suggested_fix="Enter the company name",
            ))
        if candidate.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Bill amount was not found",
                severity="error",
                suggested_fix="Enter the monthly amount",
            ))

        if any(issue.severity == "error" for issue in issues):
            return None, _result(issues, candidate.extraction_id)

        category = candidate.category or BillCategory.OTHER
        months = candidate.duration_months
        if not months and candidate.start_date and candidate.end_date:
            months = duration_in_months(candidate.start_date, candidate.end_date) or None

        is_contract = bool(candidate.has_end_date) or category == BillCategory.DEVICE_INSTALLMENT
        if not is_contract:
            months = None

        bill = Bill(
            user_id=user_id,
            name=bill_display_name(candidate.provider, category, candidate.device_details),
            provider=candidate.provider,
            category=category,
            amount=to_money(max(candidate.amount, ZERO)),
            start_date=candidate.start_date if is_contract else None,
            duration_months=months if months and months > 0 else None,
            down_payment=_positive(candidate.down_payment),
            last_payment_amount=_positive(candidate.last_payment_amount),
            device_details=candidate.device_details,
            is_subscription=category == BillCategory.SUBSCRIPTION,
        )
        if bill.duration_months and bill.total_debt is None:
            bill = bill.model_copy(update={"total_debt": contract_total(bill)})

        checked = self.validate_bill(bill)
        return bill, _result(issues + checked.issues, candidate.extraction_id)

    # =========================================================================
    # PRESENTATION
    # =========================================================================

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed! Please review the details below."

        lines = []

        if result.has_errors:
            lines.append("❌ Some required information is missing or invalid:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.is_valid:
            lines.append("You can still proceed, but please review carefully.")
        else:
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)


def _positive(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None or value <= 0:
        return None
    return to_money(value)


def bill_display_name(
    provider: str,
    category: BillCategory,
    device_details: Optional[str] = None,
) -> str:
    """Default name for a bill: provider plus what it is for."""
    if category == BillCategory.DEVICE_INSTALLMENT and device_details:
        return f"{provider} - {device_details}"
    label = category.value.replace("_", " ").title()
    return f"{provider} - {label}"


def contract_total(bill: Bill) -> Decimal:
    """amount x months + down payment, for contracts without a stated total."""
    months = bill.duration_months or 0
    total = bill.amount * months + (bill.down_payment or ZERO)
    if bill.last_payment_amount is not None and months > 0:
        total += bill.last_payment_amount - bill.amount
    return to_money(total)
