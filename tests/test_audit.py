"""Tests for the audit logger."""

import asyncio
import pytest
from uuid import uuid4
from unittest.mock import AsyncMock, MagicMock

from src.audit import AuditLogger, create_correlation_id
from src.models.audit import AuditEventType, AuditSeverity
from src.services.storage import InMemoryAuditStorage, StorageError


class TestAuditLogger:
    """Test event logging and persistence."""

    def test_events_are_persisted(self):
        storage = InMemoryAuditStorage()
        audit_logger = AuditLogger(storage)
        loan_id = uuid4()
        correlation_id = create_correlation_id()

        asyncio.run(audit_logger.log_payment_confirmed(
            loan_id=loan_id,
            due_dates=["2024-01-01", "2024-02-01"],
            correlation_id=correlation_id,
        ))
        asyncio.run(audit_logger.log_payment_undone(
            loan_id=loan_id,
            due_date="2024-02-01",
            correlation_id=correlation_id,
        ))

        events = asyncio.run(storage.get_events_by_entity("loan", loan_id))
        assert [e.event_type for e in events] == [
            AuditEventType.PAYMENT_CONFIRMED,
            AuditEventType.PAYMENT_UNDONE,
        ]
        assert events[1].severity == AuditSeverity.WARNING

    def test_bill_change_keeps_event_type(self):
        storage = InMemoryAuditStorage()
        asyncio.run(AuditLogger(storage).log_bill_changed(
            bill_id=uuid4(),
            event_type=AuditEventType.BILL_ARCHIVED,
            description="Bill archived: Internet",
            correlation_id=uuid4(),
        ))
        assert storage.events[0].event_type == AuditEventType.BILL_ARCHIVED
        assert storage.events[0].entity_type == "bill"

    def test_without_storage_logs_locally(self):
        assert asyncio.run(AuditLogger().log_loan_deleted(uuid4(), uuid4())) is None

    def test_storage_failure_does_not_raise(self):
        storage = MagicMock()
        storage.append_event = AsyncMock(side_effect=StorageError("sheet unavailable"))
        audit_logger = AuditLogger(storage)

        asyncio.run(audit_logger.log_error(
            error_type="StorageError",
            error_message="boom",
            details={"step": "save"},
        ))

        storage.append_event.assert_awaited_once()

    def test_log_returns_storage_result(self):
        storage = MagicMock()
        storage.append_event = AsyncMock(return_value=False)
        event_logged = asyncio.run(AuditLogger(storage).log(
            MagicMock(
                severity=AuditSeverity.INFO,
                to_log_dict=MagicMock(return_value={"event_type": "loan_created"}),
            )
        ))
        assert event_logged is False

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
