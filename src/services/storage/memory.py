"""
In-Memory Storage

Dict-backed implementations of the storage interfaces for tests and local
use. Records are deep-copied on the way in and on the way out, so callers
never share instances with the store (same as a real round trip).
"""

from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.bill import Bill, BillCategory
from src.models.loan import Loan, LoanStatus
from src.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    DuplicateError,
    LoanStorageInterface,
    NotFoundError,
)


class InMemoryLoanStorage(LoanStorageInterface):

    def __init__(self):
        self._loans: dict[UUID, Loan] = {}

    async def save_loan(self, loan: Loan) -> bool:
        if loan.id in self._loans:
            raise DuplicateError(f"Loan already exists: {loan.id}")
        self._loans[loan.id] = loan.model_copy(deep=True)
        return True

    async def get_loan_by_id(self, loan_id: UUID) -> Optional[Loan]:
        loan = self._loans.get(loan_id)
        return loan.model_copy(deep=True) if loan else None

    async def update_loan(self, loan: Loan) -> bool:
        if loan.id not in self._loans:
            raise NotFoundError(f"Loan not found: {loan.id}")
        self._loans[loan.id] = loan.model_copy(deep=True)
        return True

    async def delete_loan(self, loan_id: UUID) -> bool:
        return self._loans.pop(loan_id, None) is not None

    async def list_loans(
        self,
        user_id: str,
        status: Optional[LoanStatus] = None,
    ) -> list[Loan]:
        loans = [
            loan.model_copy(deep=True)
            for loan in self._loans.values()
            if loan.user_id == user_id and (status is None or loan.status == status)
        ]
        loans.sort(key=lambda loan: loan.created_at)
        return loans


class InMemoryBillStorage(BillStorageInterface):

    def __init__(self):
        self._bills: dict[UUID, Bill] = {}

    async def save_bill(self, bill: Bill) -> bool:
        if bill.id in self._bills:
            raise DuplicateError(f"Bill already exists: {bill.id}")
        self._bills[bill.id] = bill.model_copy(deep=True)
        return True

    async def get_bill_by_id(self, bill_id: UUID) -> Optional[Bill]:
        bill = self._bills.get(bill_id)
        return bill.model_copy(deep=True) if bill else None

    async def update_bill(self, bill: Bill) -> bool:
        if bill.id not in self._bills:
            raise NotFoundError(f"Bill not found: {bill.id}")
        self._bills[bill.id] = bill.model_copy(deep=True)
        return True

    async def delete_bill(self, bill_id: UUID) -> bool:
        return self._bills.pop(bill_id, None) is not None

    async def list_bills(
        self,
        user_id: str,
        category: Optional[BillCategory] = None,
        include_archived: bool = False,
    ) -> list[Bill]:
        bills = [
            bill.model_copy(deep=True)
            for bill in self._bills.values()
            if bill.user_id == user_id
            and (include_archived or not bill.is_archived)
            and (category is None or bill.category == category)
        ]
        bills.sort(key=lambda bill: bill.created_at)
        return bills


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
