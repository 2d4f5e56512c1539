"""Services package."""

from recurring_expenses.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsObligationStorage,
    InMemoryObligationStorage,
    ObligationStorageInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsObligationStorage",
    "InMemoryObligationStorage",
    "ObligationStorageInterface",
    "StorageError",
]
