"""
Audit Models for Recurring Expenses

Every mutation of the recurring-expense collection is logged for audit
purposes. This provides:
1. Traceability of who added, changed or removed an obligation
2. A record of which obligations were emitted as due, and when
3. Debugging information when persistence fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


AUDIT_SOURCE = "RecurringExpenseScheduler"


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Values double as the `action` strings passed to an audit sink.
    """
    # Collection changes
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    UNDO_DELETE = "undo_delete"

    # Generation
    GENERATE_DUE = "generate_due"
    GENERATE_ALL_DUE = "generate_all_due"

    # Persistence
    LOAD = "load"
    LOAD_FAILED = "load_failed"
    SAVE = "save"
    SAVE_FAILED = "save_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_FAILURE_EVENTS = {AuditEventType.LOAD_FAILED, AuditEventType.SAVE_FAILED}


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Which obligation is this about? None for collection-wide events.
    subject_id: Optional[UUID] = Field(
        default=None,
        description="ID of the obligation this event relates to"
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

    @property
    def summary(self) -> str:
        """One-line summary, e.g. for an admin screen."""
        action = self.event_type.value.replace("_", " ").title().replace(" ", "")
        subject = f" ({self.subject_id})" if self.subject_id else ""
        when = self.timestamp.strftime("%Y-%m-%d %H:%M")
        return f"[{AUDIT_SOURCE}] {action}: {self.description}{subject} at {when}"

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "subject_id": str(self.subject_id) if self.subject_id else None,
            "description": self.description,
            "details": self.details,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, subject_id,
         description, details_json]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.subject_id) if self.subject_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.from_action("add", obligation.id, "Added Rent")
        event = AuditEventBuilder.from_action("generate_all_due", None, "Generated 2 due expenses")
    """

    @staticmethod
    def from_action(
        action: str,
        subject_id: Optional[UUID] = None,
        detail: str = "",
    ) -> AuditEvent:
        """
        Build an event from the generic sink arguments.

        Raises ValueError for an action outside AuditEventType.
        """
        event_type = AuditEventType(action)
        severity = (
            AuditSeverity.WARNING if event_type in _FAILURE_EVENTS else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=event_type,
            severity=severity,
            subject_id=subject_id,
            description=detail[:500],
        )
