"""
Main Orchestrator for the Installment Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Loans (request -> validate -> schedule -> prepayment -> save)
2. Payments (fetch -> confirm/undo one line -> save)
3. Bills (save, mark paid dates, archive, project on demand)
4. Extraction (document/text -> candidate -> validated request)

DESIGN DECISION: The orchestrator owns every side effect:
- The schedule engine is pure; flows fetch, call it, and persist
- Every mutation is audited
- Policy values (tolerance, penalty, windows) are read from settings here
  and passed to the engine explicitly

Fetch -> mutate -> persist is last-write-wins; there is no locking.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog

from src.agents import ExtractionAgent
from src.audit import AuditLogger, create_correlation_id
from src.config import ScheduleSettings, get_settings
from src.models.audit import AuditEventType
from src.models.bill import Bill, BillStatus, BillSummary, ProjectedLine
from src.models.extraction import (
    ParsedBill,
    ParsedLoan,
    ValidationIssue,
    ValidationResult,
)
from src.models.loan import InstallmentLine, Loan, LoanRequest, LoanStatus, ManualEntry
from src.schedule import (
    DebtStrategy,
    ScheduleError,
    SettlementQuote,
    apply_payment_overrides,
    build_manual_schedule,
    confirm_loan_payment,
    confirm_loan_payments,
    generate_schedule,
    mark_bill_paid,
    prioritize_debts,
    project_bill_schedule,
    quote_early_settlement,
    reconcile_prepayment,
    selected_total,
    summarize_bill,
    undo_loan_payment,
    unmark_bill_paid,
)
from src.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsLoanStorage,
    InMemoryBillStorage,
    InMemoryLoanStorage,
    LoanStorageInterface,
    NotFoundError,
)
from src.validation import LoanInputValidator, contract_total


logger = structlog.get_logger(__name__)


class InvalidLoanParametersError(ScheduleError):
    """The request would produce no schedule; `result` says why."""

    def __init__(self, result: ValidationResult):
        self.result = result
        message = "; ".join(result.error_messages) or "Loan parameters produce no schedule"
        super().__init__(message)


# =============================================================================
# SCHEDULE ASSEMBLY
# =============================================================================

def build_loan_schedule(
    request: LoanRequest,
    tolerance: Decimal,
) -> tuple[list[InstallmentLine], str]:
    """
    Assemble a loan's schedule from a request.

    A manual draft is used only when it has exactly one entry per month.
    Its profit is the fixed profit when one is set, otherwise whatever the
    manual amounts add up to beyond the principal. Without a matching draft the
    generator runs and the stated monthly / last payments are applied on top. Any
    amount already paid is then reconciled.

    Returns:
        (schedule, source) where source is "manual" or "generated"
    """
    if request.manual_entries and len(request.manual_entries) == request.duration_months:
        profit = request.fixed_profit_amount
        if profit <= 0:
            entered = sum((entry.amount for entry in request.manual_entries), Decimal("0"))
            profit = max(Decimal("0"), entered - request.principal)
        schedule = build_manual_schedule(
            request.manual_entries,
            request.principal,
            profit,
        )
        source = "manual"
    else:
        schedule = generate_schedule(
            principal=request.principal,
            annual_rate_percent=request.annual_rate_percent,
            months=request.duration_months,
            start_date=request.start_date,
            policy=request.amortization_policy,
            fixed_profit_amount=request.fixed_profit_amount,
        )
        schedule = apply_payment_overrides(
            schedule,
            monthly_payment=request.monthly_payment,
            last_payment_amount=request.last_payment_amount,
        )
        source = "generated"

    if request.initial_paid_amount > 0:
        schedule = reconcile_prepayment(schedule, request.initial_paid_amount, tolerance)

    return schedule, source


def request_from_loan(loan: Loan) -> LoanRequest:
    """
    Pre-fill an edit form from a stored loan.

    The current amounts become a manual draft and the paid total becomes
    the amount already paid. Changing the duration drops the draft (see
    LoanEditSession) and the schedule is regenerated from rate or profit.
    """
    return LoanRequest(
        name=loan.name,
        description=loan.description,
        principal=loan.total_principal,
        annual_rate_percent=loan.annual_rate_percent,
        fixed_profit_amount=loan.fixed_profit_amount,
        duration_months=loan.duration_months,
        start_date=loan.start_date,
        amortization_policy=loan.amortization_policy,
        initial_paid_amount=loan.total_paid,
        manual_entries=[
            ManualEntry(due_date=line.due_date, amount=line.payment_amount, is_paid=line.is_paid)
            for line in loan.schedule
        ],
    )


# =============================================================================
# LOANS
# =============================================================================

class LoanFlow:
    """
    Orchestrates loan creation, editing, payments and advice.

    Flow (create/edit):
    1. Validate the request (errors stop here)
    2. Build the schedule (manual or generated, then prepayment)
    3. Save the whole loan
    4. Audit every step under one correlation id
    """

    def __init__(
        self,
        loan_storage: LoanStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LoanInputValidator] = None,
        settings: Optional[ScheduleSettings] = None,
    ):
        self._storage = loan_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().schedule
        self._validator = validator or LoanInputValidator(self._settings)

    async def _require(self, loan_id: UUID) -> Loan:
        loan = await self._storage.get_loan_by_id(loan_id)
        if loan is None:
            raise NotFoundError(f"Loan not found: {loan_id}")
        return loan

    async def _check(self, request: LoanRequest, correlation_id: UUID) -> None:
        result = self._validator.validate_loan_request(request)
        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                subject_id=None,
                entity_type="loan",
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
            raise InvalidLoanParametersError(result)

    def _schedule_for(self, request: LoanRequest) -> tuple[list[InstallmentLine], str]:
        schedule, source = build_loan_schedule(request, self._settings.prepayment_tolerance)
        if not schedule:
            raise InvalidLoanParametersError(ValidationResult(
                is_valid=False,
                issues=[ValidationIssue(
                    field="duration_months",
                    issue_type="invalid_value",
                    message="These loan parameters produce no installments",
                    severity="error",
                )],
            ))
        return schedule, source

    async def _audit_schedule(
        self,
        loan: Loan,
        request: LoanRequest,
        source: str,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_schedule_generated(
            loan_id=loan.id,
            source=source,
            installments=len(loan.schedule),
            correlation_id=correlation_id,
        )
        if request.initial_paid_amount > 0:
            await self._audit_logger.log_prepayment_reconciled(
                loan_id=loan.id,
                paid_balance=str(request.initial_paid_amount),
                lines_marked=sum(1 for line in loan.schedule if line.is_paid),
                correlation_id=correlation_id,
            )

    async def create_loan(
        self,
        user_id: str,
        request: LoanRequest,
        correlation_id: Optional[UUID] = None,
    ) -> Loan:
        """
        Create and save a loan from a request.

        Raises:
            InvalidLoanParametersError: Request fails validation or yields
                an empty schedule
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._check(request, correlation_id)
        schedule, source = self._schedule_for(request)

        loan = Loan(
            user_id=user_id,
            name=request.name,
            description=request.description,
            total_principal=request.principal,
            annual_rate_percent=request.annual_rate_percent,
            fixed_profit_amount=request.fixed_profit_amount,
            duration_months=request.duration_months,
            start_date=request.start_date,
            amortization_policy=request.amortization_policy,
            schedule=schedule,
        )
        await self._storage.save_loan(loan)

        await self._audit_schedule(loan, request, source, correlation_id)
        await self._audit_logger.log_loan_created(
            loan_id=loan.id,
            name=loan.name,
            installments=len(loan.schedule),
            total_payable=str(loan.total_paid + loan.total_outstanding),
            correlation_id=correlation_id,
        )
        return loan

    async def edit_loan(
        self,
        loan_id: UUID,
        request: LoanRequest,
        correlation_id: Optional[UUID] = None,
    ) -> Loan:
        """
        Rebuild an existing loan's schedule from an edited request.

        Paid state is carried by `request.initial_paid_amount`
        (request_from_loan pre-fills it with the current paid total).
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._require(loan_id)
        await self._check(request, correlation_id)
        schedule, source = self._schedule_for(request)

        updated = existing.model_copy(update={
            "name": request.name,
            "description": request.description,
            "total_principal": request.principal,
            "annual_rate_percent": request.annual_rate_percent,
            "fixed_profit_amount": request.fixed_profit_amount,
            "duration_months": request.duration_months,
            "start_date": request.start_date,
            "amortization_policy": request.amortization_policy,
        }).with_schedule(schedule)
        await self._storage.update_loan(updated)

        changed = [
            field for field in (
                "name", "description", "total_principal", "annual_rate_percent",
                "fixed_profit_amount", "duration_months", "start_date",
                "amortization_policy",
            )
            if getattr(existing, field) != getattr(updated, field)
        ]
        await self._audit_schedule(updated, request, source, correlation_id)
        await self._audit_logger.log_loan_updated(
            loan_id=updated.id,
            changed_fields=changed,
            schedule_regenerated=True,
            correlation_id=correlation_id,
        )
        return updated

    async def confirm_payment(
        self,
        loan_id: UUID,
        due_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> Loan:
        """
        Mark one installment paid (a linked transaction was recorded).

        Raises:
            NotFoundError: Unknown loan
            InstallmentNotFoundError: No line has that exact due date
        """
        correlation_id = correlation_id or create_correlation_id()
        loan = confirm_loan_payment(await self._require(loan_id), due_date)
        await self._storage.update_loan(loan)
        await self._audit_logger.log_payment_confirmed(
            loan_id=loan.id,
            due_dates=[due_date.isoformat()],
            correlation_id=correlation_id,
        )
        return loan

    async def confirm_payments(
        self,
        loan_id: UUID,
        due_dates: Iterable[date],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Loan, Decimal]:
        """
        Pay several selected installments at once.

        Returns:
            (updated loan, cash total of the lines that were unpaid)
        """
        correlation_id = correlation_id or create_correlation_id()
        due_dates = sorted(set(due_dates))
        existing = await self._require(loan_id)
        amount = selected_total(existing, due_dates)

        loan = confirm_loan_payments(existing, due_dates)
        await self._storage.update_loan(loan)
        await self._audit_logger.log_payment_confirmed(
            loan_id=loan.id,
            due_dates=[d.isoformat() for d in due_dates],
            correlation_id=correlation_id,
        )
        return loan, amount

    async def undo_payment(
        self,
        loan_id: UUID,
        due_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> Loan:
        """Flip an installment back to unpaid (its transaction was deleted)."""
        correlation_id = correlation_id or create_correlation_id()
        loan = undo_loan_payment(await self._require(loan_id), due_date)
        await self._storage.update_loan(loan)
        await self._audit_logger.log_payment_undone(
            loan_id=loan.id,
            due_date=due_date.isoformat(),
            correlation_id=correlation_id,
        )
        return loan

    async def delete_loan(
        self,
        loan_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        deleted = await self._storage.delete_loan(loan_id)
        if deleted:
            await self._audit_logger.log_loan_deleted(loan_id, correlation_id)
        return deleted

    async def list_loans(
        self,
        user_id: str,
        status: Optional[LoanStatus] = None,
    ) -> list[Loan]:
        return await self._storage.list_loans(user_id, status)

    async def settlement_quote(self, loan_id: UUID) -> SettlementQuote:
        """Early settlement breakdown using the configured penalty months."""
        loan = await self._require(loan_id)
        return quote_early_settlement(loan.schedule, self._settings.settlement_penalty_months)

    async def prioritize(
        self,
        user_id: str,
        strategy: Union[DebtStrategy, str],
    ) -> list[Loan]:
        """
        Payoff order for a user's active loans.

        Raises:
            ValueError: Unknown strategy name
        """
        strategy = DebtStrategy(strategy)
        loans = await self._storage.list_loans(user_id, LoanStatus.ACTIVE)
        return prioritize_debts(loans, strategy)


# =============================================================================
# BILLS
# =============================================================================

class BillFlow:
    """
    Orchestrates bills.

    Bills store only their shape and paid dates. Schedules and summaries are
    projected on every read and never persisted.
    """

    def __init__(
        self,
        bill_storage: BillStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LoanInputValidator] = None,
        settings: Optional[ScheduleSettings] = None,
    ):
        self._storage = bill_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().schedule
        self._validator = validator or LoanInputValidator(self._settings)

    async def _require(self, bill_id: UUID) -> Bill:
        bill = await self._storage.get_bill_by_id(bill_id)
        if bill is None:
            raise NotFoundError(f"Bill not found: {bill_id}")
        return bill

    async def save_bill(
        self,
        bill: Bill,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Bill, ValidationResult]:
        """
        Create a new bill or replace an existing one.

        On replace, the stored paid dates are kept. A device contract with no
        stated total gets one computed from amount, duration and down payment.

        Returns:
            (saved bill, validation result). Nothing is saved when the result
            has errors.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._validator.validate_bill(bill)
        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                subject_id=bill.id,
                entity_type="bill",
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
            return bill, result

        if bill.total_debt is None and bill.duration_months and not bill.custom_schedule:
            bill = bill.model_copy(update={"total_debt": contract_total(bill)})

        existing = await self._storage.get_bill_by_id(bill.id)
        if existing is None:
            await self._storage.save_bill(bill)
            await self._audit_logger.log_bill_saved(
                bill_id=bill.id,
                provider=bill.provider,
                amount=str(bill.amount),
                correlation_id=correlation_id,
            )
            return bill, result

        bill = bill.model_copy(update={
            "paid_dates": set(existing.paid_dates),
            "created_at": existing.created_at,
            "updated_at": datetime.utcnow(),
        })
        await self._storage.update_bill(bill)
        await self._audit_logger.log_bill_changed(
            bill_id=bill.id,
            event_type=AuditEventType.BILL_UPDATED,
            description=f"Bill updated: {bill.name}",
            correlation_id=correlation_id,
        )
        return bill, result

    async def mark_paid(
        self,
        bill_id: UUID,
        due_dates: Iterable[date],
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        correlation_id = correlation_id or create_correlation_id()
        due_dates = sorted(set(due_dates))
        bill = mark_bill_paid(await self._require(bill_id), due_dates)
        await self._storage.update_bill(bill)
        await self._audit_logger.log_bill_changed(
            bill_id=bill.id,
            event_type=AuditEventType.BILL_PAYMENT_MARKED,
            description=f"Bill payment marked for {len(due_dates)} dates",
            details={"due_dates": [d.isoformat() for d in due_dates]},
            correlation_id=correlation_id,
        )
        return bill

    async def unmark_paid(
        self,
        bill_id: UUID,
        due_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        correlation_id = correlation_id or create_correlation_id()
        bill = unmark_bill_paid(await self._require(bill_id), due_date)
        await self._storage.update_bill(bill)
        await self._audit_logger.log_bill_changed(
            bill_id=bill.id,
            event_type=AuditEventType.BILL_PAYMENT_UNMARKED,
            description=f"Bill payment unmarked for {due_date.isoformat()}",
            details={"due_date": due_date.isoformat()},
            correlation_id=correlation_id,
        )
        return bill

    async def toggle_archive(
        self,
        bill_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        """Archive an active bill, or restore an archived one."""
        correlation_id = correlation_id or create_correlation_id()
        bill = await self._require(bill_id)
        status = BillStatus.ACTIVE if bill.is_archived else BillStatus.ARCHIVED
        bill = bill.model_copy(update={"status": status, "updated_at": datetime.utcnow()})
        await self._storage.update_bill(bill)
        await self._audit_logger.log_bill_changed(
            bill_id=bill.id,
            event_type=AuditEventType.BILL_ARCHIVED,
            description=f"Bill {'archived' if bill.is_archived else 'restored'}: {bill.name}",
            details={"status": status.value},
            correlation_id=correlation_id,
        )
        return bill

    async def delete_bill(self, bill_id: UUID) -> bool:
        return await self._storage.delete_bill(bill_id)

    async def list_bills(
        self,
        user_id: str,
        include_archived: bool = False,
    ) -> list[Bill]:
        return await self._storage.list_bills(user_id, include_archived=include_archived)

    def project(self, bill: Bill, today: date) -> list[ProjectedLine]:
        return project_bill_schedule(
            bill,
            today,
            subscription_window=self._settings.subscription_window,
            monthly_window=self._settings.monthly_window,
        )

    def summarize(self, bill: Bill, today: date) -> BillSummary:
        return summarize_bill(
            bill,
            today,
            subscription_window=self._settings.subscription_window,
            monthly_window=self._settings.monthly_window,
        )


# =============================================================================
# EXTRACTION
# =============================================================================

class ExtractionFlow:
    """
    Turns documents into validated candidates for review.

    Nothing is saved here: the caller shows the request or bill to the user
    and passes it to LoanFlow / BillFlow once confirmed.
    """

    def __init__(
        self,
        agent: ExtractionAgent,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LoanInputValidator] = None,
    ):
        self._agent = agent
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or LoanInputValidator()

    async def _record(
        self,
        candidate: Optional[Union[ParsedLoan, ParsedBill]],
        source: str,
        correlation_id: UUID,
    ) -> None:
        if candidate is None:
            await self._audit_logger.log_extraction_failed(
                source=source,
                error_message="No candidate returned",
                correlation_id=correlation_id,
            )
            return
        found = [
            name for name, value in candidate.model_dump(
                exclude={"extraction_id", "extracted_at"}
            ).items()
            if value is not None
        ]
        await self._audit_logger.log_extraction_completed(
            extraction_id=candidate.extraction_id,
            source=source,
            fields_found=found,
            correlation_id=correlation_id,
        )

    async def import_loan(
        self,
        text: Optional[str] = None,
        document: Optional[bytes] = None,
        mime_type: str = "application/pdf",
        default_start_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[LoanRequest], Optional[ValidationResult]]:
        """
        Parse a loan from a document (preferred) or text.

        Returns:
            (request, result); both None when extraction produced nothing
        """
        correlation_id = correlation_id or create_correlation_id()
        if document:
            source = "loan_document"
            candidate = await self._agent.parse_loan_document(document, mime_type)
        else:
            source = "loan_text"
            candidate = await self._agent.parse_loan_text(text or "")

        await self._record(candidate, source, correlation_id)
        if candidate is None:
            return None, None
        return self._validator.loan_request_from_candidate(
            candidate, default_start_date=default_start_date
        )

    async def import_bill(
        self,
        user_id: str,
        document: bytes,
        mime_type: str = "application/pdf",
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Bill], Optional[ValidationResult]]:
        correlation_id = correlation_id or create_correlation_id()
        candidate = await self._agent.parse_bill_document(document, mime_type)
        await self._record(candidate, "bill_document", correlation_id)
        if candidate is None:
            return None, None
        return self._validator.bill_from_candidate(candidate, user_id)


def create_app_components(
    use_storage: bool = True,
) -> tuple[LoanFlow, BillFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    When False (or when Sheets is not configured) the flows
                    run on in-memory storage.

    Returns:
        (loan_flow, bill_flow, sheets_client)
    """
    sheets_client = None
    loan_storage: LoanStorageInterface = InMemoryLoanStorage()
    bill_storage: BillStorageInterface = InMemoryBillStorage()
    audit_storage: Optional[AuditStorageInterface] = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            loan_storage = GoogleSheetsLoanStorage(sheets_client)
            bill_storage = GoogleSheetsBillStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    audit_logger = AuditLogger(audit_storage)
    settings = get_settings().schedule
    logger.info(
        "app_components_created",
        environment=get_settings().app.app_environment,
        sheets_storage=sheets_client is not None,
    )

    loan_flow = LoanFlow(
        loan_storage=loan_storage,
        audit_logger=audit_logger,
        settings=settings,
    )
    bill_flow = BillFlow(
        bill_storage=bill_storage,
        audit_logger=audit_logger,
        settings=settings,
    )
    return loan_flow, bill_flow, sheets_client
