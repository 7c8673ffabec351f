"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsLoanStorage,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryLoanStorage,
    LoanStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "BillStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLoanStorage",
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "InMemoryLoanStorage",
    "LoanStorageInterface",
    "NotFoundError",
    "StorageError",
]
