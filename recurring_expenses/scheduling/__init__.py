"""Recurring-expense scheduling package."""

from recurring_expenses.scheduling.calendar_math import (
    CalendarArithmeticError,
    SchedulerError,
    advance,
)
from recurring_expenses.scheduling.scheduler import (
    DuplicateObligationError,
    ObligationNotFoundError,
    RecurringExpenseScheduler,
)

__all__ = [
    "CalendarArithmeticError",
    "DuplicateObligationError",
    "ObligationNotFoundError",
    "RecurringExpenseScheduler",
    "SchedulerError",
    "advance",
]
