"""
In-Memory Storage Implementation

Used for tests and local runs without a configured spreadsheet.
Stores deep copies so callers cannot mutate stored state behind our back.
"""

from typing import Optional

from recurring_expenses.models.obligation import RecurringObligation
from recurring_expenses.services.storage.interface import ObligationStorageInterface


class InMemoryObligationStorage(ObligationStorageInterface):
    """Keeps the saved collection in process memory."""

    def __init__(self, obligations: Optional[list[RecurringObligation]] = None):
        self._obligations = [o.model_copy(deep=True) for o in obligations or []]
        self.save_count = 0

    def load(self) -> list[RecurringObligation]:
        return [o.model_copy(deep=True) for o in self._obligations]

    def save(self, obligations: list[RecurringObligation]) -> None:
        self._obligations = [o.model_copy(deep=True) for o in obligations]
        self.save_count += 1
