"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted record store because:
1. Users can look at their loans and bills directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: fetch -> mutate -> persist is last-write-wins
- Limited query capabilities (we filter in Python)

Each loan or bill is one row. A handful of summary columns are written for
people reading the sheet; the full record (including a loan's schedule and a
bill's paid dates) lives in the trailing JSON column and is the only column
read back.
"""

import json
from datetime import datetime
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.bill import Bill, BillCategory
from src.models.loan import Loan, LoanStatus
from src.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    DuplicateError,
    LoanStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Duplicate and missing records are not retried
_write_retry = retry(
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


LOAN_COLUMNS = [
    "id",
    "user_id",
    "name",
    "status",
    "total_principal",
    "annual_rate_percent",
    "duration_months",
    "start_date",
    "unpaid_balance",
    "updated_at",
    "record_json",
]

BILL_COLUMNS = [
    "id",
    "user_id",
    "name",
    "provider",
    "category",
    "amount",
    "status",
    "updated_at",
    "record_json",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_loans_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.loans_sheet_name, LOAN_COLUMNS, 500)

    def get_bills_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.bills_sheet_name, BILL_COLUMNS, 500)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


class _RecordSheet:
    """
    Row-per-record access shared by the loan and bill stores.

    Column 0 is the record id; the last column is the record's JSON.
    """

    def __init__(
        self,
        get_sheet: Callable[[], gspread.Worksheet],
        to_row: Callable[[RecordT], list],
        model: type[RecordT],
        label: str,
    ):
        self._get_sheet = get_sheet
        self._to_row = to_row
        self._model = model
        self._label = label

    def _parse(self, row: list) -> Optional[RecordT]:
        try:
            return self._model.model_validate_json(row[-1])
        except Exception as e:
            logger.warning(
                "sheet_row_skipped",
                record_type=self._label,
                row_id=row[0] if row else None,
                error=str(e),
            )
            return None

    def _find_row(self, rows: list[list], record_id: UUID) -> Optional[int]:
        """1-based sheet row index of the record, or None."""
        for idx, row in enumerate(rows[1:], start=2):  # row 1 is header
            if row and row[0] == str(record_id):
                return idx
        return None

    def append(self, record: RecordT) -> bool:
        sheet = self._get_sheet()
        if self._find_row(sheet.get_all_values(), record.id) is not None:
            raise DuplicateError(f"{self._label.capitalize()} already exists: {record.id}")
        sheet.append_row(self._to_row(record), value_input_option="RAW")
        return True

    def get(self, record_id: UUID) -> Optional[RecordT]:
        rows = self._get_sheet().get_all_values()
        idx = self._find_row(rows, record_id)
        if idx is None:
            return None
        return self._parse(rows[idx - 1])

    def replace(self, record: RecordT) -> bool:
        sheet = self._get_sheet()
        idx = self._find_row(sheet.get_all_values(), record.id)
        if idx is None:
            raise NotFoundError(f"{self._label.capitalize()} not found: {record.id}")
        sheet.update(range_name=f"A{idx}", values=[self._to_row(record)])
        return True

    def delete(self, record_id: UUID) -> bool:
        sheet = self._get_sheet()
        idx = self._find_row(sheet.get_all_values(), record_id)
        if idx is None:
            return False
        sheet.delete_rows(idx)
        return True

    def all_for_user(self, user_id: str) -> list[RecordT]:
        records = []
        for row in self._get_sheet().get_all_values()[1:]:
            # Skip empty rows and other users' rows before parsing
            if not row or not row[0] or len(row) < 2 or row[1] != user_id:
                continue
            record = self._parse(row)
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.created_at)
        return records


class GoogleSheetsLoanStorage(LoanStorageInterface):
    """
    Google Sheets implementation of loan storage.

    The schedule is persisted inside the record JSON, so every paid flag
    survives a round trip.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._rows = _RecordSheet(
            self._client.get_loans_sheet, self._loan_to_row, Loan, "loan"
        )

    def _loan_to_row(self, loan: Loan) -> list:
        """Convert a Loan to a spreadsheet row."""
        return [
            str(loan.id),
            loan.user_id,
            loan.name,
            loan.status.value,
            str(loan.total_principal),
            str(loan.annual_rate_percent),
            loan.duration_months,
            loan.start_date.isoformat(),
            str(loan.unpaid_balance),
            loan.updated_at.isoformat(),
            loan.model_dump_json(),
        ]

    @_write_retry
    async def save_loan(self, loan: Loan) -> bool:
        """Save a loan to Google Sheets."""
        try:
            return self._rows.append(loan)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save loan: {e}")

    async def get_loan_by_id(self, loan_id: UUID) -> Optional[Loan]:
        try:
            return self._rows.get(loan_id)
        except Exception as e:
            raise StorageError(f"Failed to get loan: {e}")

    @_write_retry
    async def update_loan(self, loan: Loan) -> bool:
        """Overwrite the loan's row."""
        try:
            return self._rows.replace(loan)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update loan: {e}")

    async def delete_loan(self, loan_id: UUID) -> bool:
        try:
            return self._rows.delete(loan_id)
        except Exception as e:
            raise StorageError(f"Failed to delete loan: {e}")

    async def list_loans(
        self,
        user_id: str,
        status: Optional[LoanStatus] = None,
    ) -> list[Loan]:
        try:
            loans = self._rows.all_for_user(user_id)
        except Exception as e:
            raise StorageError(f"Failed to list loans: {e}")
        if status is not None:
            loans = [loan for loan in loans if loan.status == status]
        return loans


class GoogleSheetsBillStorage(BillStorageInterface):
    """
    Google Sheets implementation of bill storage.

    Bills are stored as rows in a worksheet with one bill per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._rows = _RecordSheet(
            self._client.get_bills_sheet, self._bill_to_row, Bill, "bill"
        )

    def _bill_to_row(self, bill: Bill) -> list:
        """Convert a Bill to a spreadsheet row."""
        return [
            str(bill.id),
            bill.user_id,
            bill.name,
            bill.provider or "",
            bill.category.value,
            str(bill.amount),
            bill.status.value,
            bill.updated_at.isoformat(),
            bill.model_dump_json(),
        ]

    @_write_retry
    async def save_bill(self, bill: Bill) -> bool:
        """Save a bill to Google Sheets."""
        try:
            return self._rows.append(bill)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save bill: {e}")

    async def get_bill_by_id(self, bill_id: UUID) -> Optional[Bill]:
        try:
            return self._rows.get(bill_id)
        except Exception as e:
            raise StorageError(f"Failed to get bill: {e}")

    @_write_retry
    async def update_bill(self, bill: Bill) -> bool:
        try:
            return self._rows.replace(bill)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bill: {e}")

    async def delete_bill(self, bill_id: UUID) -> bool:
        try:
            return self._rows.delete(bill_id)
        except Exception as e:
            raise StorageError(f"Failed to delete bill: {e}")

    async def list_bills(
        self,
        user_id: str,
        category: Optional[BillCategory] = None,
        include_archived: bool = False,
    ) -> list[Bill]:
        try:
            bills = self._rows.all_for_user(user_id)
        except Exception as e:
            raise StorageError(f"Failed to list bills: {e}")
        return [
            bill for bill in bills
            if (include_archived or not bill.is_archived)
            and (category is None or bill.category == category)
        ]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.get_audit_sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
