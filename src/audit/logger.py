"""
Audit Logger

DESIGN DECISION: Every change to a loan or bill is logged.
This provides:
1. Complete traceability of schedule changes
2. Debugging capability
3. History for a record whose row is overwritten on every save

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # =========================================================================
    # LOANS
    # =========================================================================

    async def log_loan_created(
        self,
        loan_id: UUID,
        name: str,
        installments: int,
        total_payable: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.loan_created(
            loan_id=loan_id,
            name=name,
            installments=installments,
            total_payable=total_payable,
            correlation_id=correlation_id,
        ))

    async def log_loan_updated(
        self,
        loan_id: UUID,
        changed_fields: list[str],
        schedule_regenerated: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.loan_updated(
            loan_id=loan_id,
            changed_fields=changed_fields,
            schedule_regenerated=schedule_regenerated,
            correlation_id=correlation_id,
        ))

    async def log_loan_deleted(self, loan_id: UUID, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.loan_deleted(loan_id, correlation_id))

    async def log_schedule_generated(
        self,
        loan_id: UUID,
        source: str,
        installments: int,
        correlation_id: UUID,
    ) -> None:
        """Log where a loan's schedule came from ('generated' or 'manual')."""
        await self.log(AuditEventBuilder.schedule_generated(
            loan_id=loan_id,
            source=source,
            installments=installments,
            correlation_id=correlation_id,
        ))

    async def log_prepayment_reconciled(
        self,
        loan_id: UUID,
        paid_balance: str,
        lines_marked: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.prepayment_reconciled(
            loan_id=loan_id,
            paid_balance=paid_balance,
            lines_marked=lines_marked,
            correlation_id=correlation_id,
        ))

    async def log_payment_confirmed(
        self,
        loan_id: UUID,
        due_dates: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.payment_confirmed(
            loan_id=loan_id,
            due_dates=due_dates,
            correlation_id=correlation_id,
        ))

    async def log_payment_undone(
        self,
        loan_id: UUID,
        due_date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.payment_undone(
            loan_id=loan_id,
            due_date=due_date,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # BILLS
    # =========================================================================

    async def log_bill_saved(
        self,
        bill_id: UUID,
        provider: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bill_saved(
            bill_id=bill_id,
            provider=provider,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_bill_changed(
        self,
        bill_id: UUID,
        event_type: AuditEventType,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log a bill update, archive toggle or paid-date change."""
        await self.log(AuditEventBuilder.bill_updated(
            bill_id=bill_id,
            event_type=event_type,
            description=description,
            details=details or {},
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # EXTRACTION / VALIDATION
    # =========================================================================

    async def log_extraction_completed(
        self,
        extraction_id: UUID,
        source: str,
        fields_found: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            extraction_id=extraction_id,
            source=source,
            fields_found=fields_found,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        source: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(
            source=source,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        subject_id: Optional[UUID],
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            subject_id=subject_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    # =========================================================================
    # ERRORS
    # =========================================================================

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., creating a loan).
    Pass it through all subsequent operations.
    """
    return uuid4()
