"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Use Google Sheets as the hosted record store
2. Use in-memory storage for testing
3. Keep the schedule engine decoupled from storage implementation

Records are keyed by user id. Loans are stored WITH their schedule;
bills are stored with their paid dates only (schedules are projected on
demand). Writes are whole-record and last-write-wins.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.bill import Bill, BillCategory
from src.models.loan import Loan, LoanStatus


class LoanStorageInterface(ABC):
    """
    Abstract interface for loan storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def save_loan(self, loan: Loan) -> bool:
        """
        Save a new loan (including its schedule).

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a loan with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_loan_by_id(self, loan_id: UUID) -> Optional[Loan]:
        """
        Retrieve a loan by its ID.

        Returns:
            The loan if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_loan(self, loan: Loan) -> bool:
        """
        Replace an existing loan.

        Raises:
            NotFoundError: If loan doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_loan(self, loan_id: UUID) -> bool:
        """
        Delete a loan by ID.

        Returns:
            True if a loan was deleted
        """
        pass

    @abstractmethod
    async def list_loans(
        self,
        user_id: str,
        status: Optional[LoanStatus] = None,
    ) -> list[Loan]:
        """
        List a user's loans, oldest first.

        Args:
            user_id: Owner of the loans
            status: Filter by derived status
        """
        pass


class BillStorageInterface(ABC):
    """Abstract interface for bill storage operations."""

    @abstractmethod
    async def save_bill(self, bill: Bill) -> bool:
        """
        Save a new bill.

        Raises:
            DuplicateError: If a bill with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_bill_by_id(self, bill_id: UUID) -> Optional[Bill]:
        """Retrieve a bill by its ID, or None."""
        pass

    @abstractmethod
    async def update_bill(self, bill: Bill) -> bool:
        """
        Replace an existing bill.

        Raises:
            NotFoundError: If bill doesn't exist
        """
        pass

    @abstractmethod
    async def delete_bill(self, bill_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_bills(
        self,
        user_id: str,
        category: Optional[BillCategory] = None,
        include_archived: bool = False,
    ) -> list[Bill]:
        """
        List a user's bills, oldest first.

        Args:
            user_id: Owner of the bills
            category: Filter by category
            include_archived: Also return archived bills
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one user action in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'loan', 'bill')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
