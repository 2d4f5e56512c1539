"""
Calendar arithmetic for cadences.

Uses `dateutil.relativedelta` for month/year steps, so the day of month is
preserved where the target month has it and clamped to month end otherwise
(Jan 31 + 1 month = Feb 29 in 2024; Feb 29 + 1 year = Feb 28).
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta

from recurring_expenses.models.obligation import Cadence


class SchedulerError(Exception):
    """Base exception for scheduler operations."""
    pass


class CalendarArithmeticError(SchedulerError):
    """A date could not be advanced by a cadence step."""
    pass


CADENCE_STEPS: dict[Cadence, relativedelta] = {
    Cadence.DAILY: relativedelta(days=1),
    Cadence.WEEKLY: relativedelta(weeks=1),
    Cadence.BIWEEKLY: relativedelta(weeks=2),
    Cadence.MONTHLY: relativedelta(months=1),
    Cadence.QUARTERLY: relativedelta(months=3),
    Cadence.YEARLY: relativedelta(years=1),
}


def advance(moment: datetime, cadence: Cadence) -> datetime:
    """
    Return `moment` advanced by exactly one `cadence` step.

    Wall-clock arithmetic: time of day and tzinfo are carried over unchanged.

    Raises:
        CalendarArithmeticError: If the result is out of range
    """
    try:
        step = CADENCE_STEPS[Cadence(cadence)]
    except (KeyError, ValueError):
        raise CalendarArithmeticError(f"Unknown cadence: {cadence!r}")

    try:
        return moment + step
    except (OverflowError, ValueError) as e:
        raise CalendarArithmeticError(
            f"Cannot advance {moment.isoformat()} by one {Cadence(cadence).value} step: {e}"
        ) from e
