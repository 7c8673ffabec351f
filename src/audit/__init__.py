"""Audit trail: structured local logs plus persisted loan and bill events."""

from src.audit.logger import AuditLogger, create_correlation_id

__all__ = ["AuditLogger", "create_correlation_id"]
