"""
Component wiring for Recurring Expenses

Builds a scheduler with its collaborators from settings. This is the only
place that knows which storage backend is in use.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from recurring_expenses.audit import AuditLogger, configure_logging
from recurring_expenses.config import get_settings
from recurring_expenses.models.obligation import Cadence, RecurringObligation
from recurring_expenses.scheduling import RecurringExpenseScheduler
from recurring_expenses.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsObligationStorage,
    InMemoryObligationStorage,
    ObligationStorageInterface,
)


logger = structlog.get_logger(__name__)


def create_scheduler(
    use_storage: bool = True,
) -> tuple[RecurringExpenseScheduler, AuditLogger]:
    """
    Factory function to create a scheduler and its audit logger.

    Args:
        use_storage: Whether to initialize the configured storage backend.
                    Set to False for testing without storage; the scheduler
                    then keeps its collection in memory.

    Returns:
        (scheduler, audit_logger)
    """
    settings = get_settings()
    app_settings = settings.app
    scheduler_settings = settings.scheduler
    configure_logging(app_settings.effective_log_level)

    storage: Optional[ObligationStorageInterface] = None
    audit_logger = None

    if use_storage and scheduler_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            storage = GoogleSheetsObligationStorage(sheets_client)
            audit_logger = AuditLogger(
                GoogleSheetsAuditStorage(sheets_client),
                history_size=scheduler_settings.audit_history_size,
            )
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            storage = None
            audit_logger = None

    if use_storage and storage is None:
        storage = InMemoryObligationStorage()

    if audit_logger is None:
        audit_logger = AuditLogger(history_size=scheduler_settings.audit_history_size)  # Local-only logging

    scheduler = RecurringExpenseScheduler(
        storage=storage,
        audit=audit_logger,
        anchor_to_due_date=scheduler_settings.anchor_to_due_date,
    )
    scheduler.load()
    return scheduler, audit_logger


def create_example_scheduler(now: Optional[datetime] = None) -> RecurringExpenseScheduler:
    """
    A scheduler preloaded with a shop's typical recurring expenses.

    Used for demos and manual testing; nothing is persisted.
    """
    now = now or datetime.now()
    scheduler = RecurringExpenseScheduler(audit=AuditLogger())
    scheduler.add(
        RecurringObligation(
            name="Shop Rent",
            amount=Decimal("1200"),
            start_date=now - timedelta(days=30),
            cadence=Cadence.MONTHLY,
            notes="Main location",
        )
    )
    scheduler.add(
        RecurringObligation(
            name="Software Subscription",
            amount=Decimal("30"),
            start_date=now - timedelta(days=14),
            cadence=Cadence.MONTHLY,
            notes="Grooming app tools",
        )
    )
    return scheduler
