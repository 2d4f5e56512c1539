"""
Storage Services Package

Provides abstract interfaces and concrete implementations for persisting
recurring expenses and audit events. Google Sheets is the shared backend;
the in-memory backend is for tests and local runs.
"""

from recurring_expenses.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ObligationStorageInterface,
    StorageError,
)
from recurring_expenses.services.storage.memory import InMemoryObligationStorage
from recurring_expenses.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsObligationStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ObligationStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemoryObligationStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsObligationStorage",
]
