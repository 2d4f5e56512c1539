"""Audit logging package."""

from recurring_expenses.audit.logger import AuditLogger, AuditSink, configure_logging

__all__ = ["AuditLogger", "AuditSink", "configure_logging"]
