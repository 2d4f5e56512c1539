"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the scheduler decoupled from storage implementation

The interface is intentionally small. The scheduler owns the collection in
memory and hands the whole list over on every save; storage only has to
load and save it.

Calls are synchronous: the scheduler never suspends mid-operation.
"""

from abc import ABC, abstractmethod

from recurring_expenses.models.audit import AuditEvent
from recurring_expenses.models.obligation import RecurringObligation


class ObligationStorageInterface(ABC):
    """
    Abstract interface for recurring-expense persistence.

    Any storage implementation (in-memory, Google Sheets, SQL, ...)
    must implement these methods.
    """

    @abstractmethod
    def load(self) -> list[RecurringObligation]:
        """
        Load all recurring obligations, in collection order.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, obligations: list[RecurringObligation]) -> None:
        """
        Replace the stored collection with `obligations`.

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
