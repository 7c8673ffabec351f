"""
Audit Models for the Installment Tracker

Every change to a loan or bill is recorded as an audit event, so the
history of a schedule (created, regenerated, prepaid, paid, undone) can be
reconstructed even though records themselves are overwritten on save.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Loans
    LOAN_CREATED = "loan_created"
    LOAN_UPDATED = "loan_updated"
    LOAN_DELETED = "loan_deleted"
    SCHEDULE_GENERATED = "schedule_generated"
    PREPAYMENT_RECONCILED = "prepayment_reconciled"

    # Payment confirmation
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_UNDONE = "payment_undone"

    # Bills
    BILL_SAVED = "bill_saved"
    BILL_UPDATED = "bill_updated"
    BILL_ARCHIVED = "bill_archived"
    BILL_PAYMENT_MARKED = "bill_payment_marked"
    BILL_PAYMENT_UNMARKED = "bill_payment_unmarked"

    # Extraction
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('loan', 'bill', 'extraction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the audit worksheet.

        Columns: [event_id, timestamp, event_type, severity, entity_type,
        entity_id, correlation_id, description, details_json, error_message,
        is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.loan_created(loan_id, name, installments, total, cid)
        event = AuditEventBuilder.payment_confirmed(loan_id, [due_date], cid)
    """

    @staticmethod
    def loan_created(
        loan_id: UUID,
        name: str,
        installments: int,
        total_payable: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_CREATED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Loan created: {name} ({installments} installments)",
            details={
                "name": name,
                "installments": installments,
                "total_payable": total_payable,
            },
            is_user_action=True,
        )

    @staticmethod
    def loan_updated(
        loan_id: UUID,
        changed_fields: list[str],
        schedule_regenerated: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_UPDATED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Loan updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "schedule_regenerated": schedule_regenerated,
            },
            is_user_action=True,
        )

    @staticmethod
    def loan_deleted(loan_id: UUID, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_DELETED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description="Loan deleted",
            is_user_action=True,
        )

    @staticmethod
    def schedule_generated(
        loan_id: UUID,
        source: str,
        installments: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULE_GENERATED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Schedule generated from {source}: {installments} lines",
            details={
                "source": source,
                "installments": installments,
            },
        )

    @staticmethod
    def prepayment_reconciled(
        loan_id: UUID,
        paid_balance: str,
        lines_marked: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREPAYMENT_RECONCILED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Prepayment of {paid_balance} marked {lines_marked} installments paid",
            details={
                "paid_balance": paid_balance,
                "lines_marked": lines_marked,
            },
        )

    @staticmethod
    def payment_confirmed(
        loan_id: UUID,
        due_dates: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_CONFIRMED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Payment confirmed for {len(due_dates)} installments",
            details={"due_dates": due_dates},
            is_user_action=True,
        )

    @staticmethod
    def payment_undone(
        loan_id: UUID,
        due_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_UNDONE,
            severity=AuditSeverity.WARNING,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Payment undone for installment due {due_date}",
            details={"due_date": due_date},
            is_user_action=True,
        )

    @staticmethod
    def bill_saved(
        bill_id: UUID,
        provider: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_SAVED,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill saved: {provider} - {amount}",
            details={
                "provider": provider,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def bill_updated(
        bill_id: UUID,
        event_type: AuditEventType,
        description: str,
        details: dict,
        correlation_id: UUID,
    ) -> AuditEvent:
        """Shared shape for updated / archived / payment (un)marked bill events."""
        return AuditEvent(
            event_type=event_type,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=description,
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        extraction_id: UUID,
        source: str,
        fields_found: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            entity_id=extraction_id,
            correlation_id=correlation_id,
            description=f"Extraction from {source} found {len(fields_found)} fields",
            details={
                "source": source,
                "fields_found": fields_found,
            },
        )

    @staticmethod
    def extraction_failed(
        source: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction from {source} returned nothing usable",
            error_message=error_message,
            details={"source": source},
        )

    @staticmethod
    def validation_failed(
        subject_id: Optional[UUID],
        entity_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=subject_id,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
