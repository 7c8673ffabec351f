"""
Data Models Package

This package contains all Pydantic models used by the Installment Tracker.
All data flowing through the system must conform to these schemas.
"""

from src.models.loan import (
    AmortizationPolicy,
    InstallmentLine,
    Loan,
    LoanRequest,
    LoanStatus,
    ManualEntry,
    derive_status,
)
from src.models.bill import (
    Bill,
    BillCategory,
    BillScheduleItem,
    BillShape,
    BillStatus,
    BillSummary,
    FiniteContract,
    ProjectedLine,
    ProjectedLineKind,
    SimpleMonthly,
    Subscription,
)
from src.models.extraction import (
    ParsedBill,
    ParsedLoan,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Loan models
    "AmortizationPolicy",
    "InstallmentLine",
    "Loan",
    "LoanRequest",
    "LoanStatus",
    "ManualEntry",
    "derive_status",
    # Bill models
    "Bill",
    "BillCategory",
    "BillScheduleItem",
    "BillShape",
    "BillStatus",
    "BillSummary",
    "FiniteContract",
    "ProjectedLine",
    "ProjectedLineKind",
    "SimpleMonthly",
    "Subscription",
    # Extraction / validation
    "ParsedBill",
    "ParsedLoan",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
