"""
Data Models Package

This package contains all Pydantic models used by the recurring-expense
scheduler. All data flowing through the system must conform to these schemas.
"""

from recurring_expenses.models.obligation import (
    Cadence,
    RecurringObligation,
    to_naive_utc,
)
from recurring_expenses.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Obligation models
    "Cadence",
    "RecurringObligation",
    "to_naive_utc",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
