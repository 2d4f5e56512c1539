"""
Audit Logger

DESIGN DECISION: Every mutation of the recurring-expense collection is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. An admin view of recent activity

The audit logger:
- Is a fire-and-forget sink: it never raises into the scheduler
- Keeps a bounded in-memory history for admin screens and exports
- Optionally persists events to audit storage
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional
from uuid import UUID

import structlog

from recurring_expenses.models.audit import AuditEvent, AuditEventBuilder
from recurring_expenses.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the standard library at `level`.

    Call once at startup; structlog's level filter reads the stdlib level.
    """
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


DEFAULT_HISTORY_SIZE = 80


class AuditSink(ABC):
    """
    Where the scheduler reports what it did.

    Implementations must not raise: a failing sink must never affect
    scheduler state or control flow.
    """

    @abstractmethod
    def record(
        self,
        action: str,
        subject_id: Optional[UUID] = None,
        detail: str = "",
    ) -> None:
        pass


class AuditLogger(AuditSink):
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (for debugging)
    2. A bounded in-memory history (for admin screens)
    3. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            history_size: Number of events kept in memory; oldest are dropped.
        """
        self._storage = storage
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def record(
        self,
        action: str,
        subject_id: Optional[UUID] = None,
        detail: str = "",
    ) -> None:
        """Build an event for `action` and log it. Never raises."""
        try:
            event = AuditEventBuilder.from_action(action, subject_id, detail)
        except Exception as e:
            self._logger.error(
                "audit_record_failed",
                action=str(action),
                error=str(e),
            )
            return
        self.log(event)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        with self._lock:
            self._history.append(event)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 10) -> list[AuditEvent]:
        """The last `limit` events, oldest first."""
        with self._lock:
            events = list(self._history)
        return events[-limit:] if limit > 0 else []

    def recent_summaries(self, limit: int = 10) -> list[str]:
        return [event.summary for event in self.recent_events(limit)]

    def last_summary(self) -> str:
        events = self.recent_events(1)
        return events[0].summary if events else "No events yet."

    def last_json(self) -> Optional[str]:
        """Pretty-printed JSON of the most recent event, for export."""
        events = self.recent_events(1)
        return events[0].model_dump_json(indent=2) if events else None
