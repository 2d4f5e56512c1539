"""
Recurring Expenses - Source Package

Scheduling engine for recurring business expenses (rent, subscriptions,
supplies) of a pet-grooming shop.

DESIGN PRINCIPLES:
1. One explicitly constructed scheduler owns the obligations
2. Date arithmetic is delegated to a calendar primitive
3. Emission of due obligations is idempotent per day
4. Every mutation is auditable
5. Storage layer is swappable
"""

from recurring_expenses.scheduling import (
    CalendarArithmeticError,
    DuplicateObligationError,
    ObligationNotFoundError,
    RecurringExpenseScheduler,
    SchedulerError,
)

__version__ = "1.0.0"
__author__ = "Recurring Expenses Team"

__all__ = [
    "CalendarArithmeticError",
    "DuplicateObligationError",
    "ObligationNotFoundError",
    "RecurringExpenseScheduler",
    "SchedulerError",
]
