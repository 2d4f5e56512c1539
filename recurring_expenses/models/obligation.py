"""
Core Data Models for Recurring Expenses

These models define the schema of a recurring obligation and the closed
set of cadences it can recur on. They are designed to:
1. Enforce non-negative amounts at runtime
2. Be serializable for storage and audit logging
3. Keep identity stable across updates

DESIGN DECISION: Cadence is a closed enum rather than free text.
Each member maps to exactly one calendar step, so the scheduler never has to
interpret user input when computing due dates.

DESIGN DECISION: Dates are stored as naive UTC, the same convention as
`datetime.utcnow()`. Aware values are converted on the way in, so naive and
aware datetimes never meet in a comparison.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Cadence(str, Enum):
    """
    Recurrence units.

    Month-based cadences step by calendar months, not by a fixed number of
    days. Clamping to month end is the calendar primitive's job.
    """
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def description(self) -> str:
        """Human-readable label for pickers and summaries."""
        return _CADENCE_LABELS[self]


_CADENCE_LABELS = {
    Cadence.DAILY: "Daily",
    Cadence.WEEKLY: "Weekly",
    Cadence.BIWEEKLY: "Every 2 Weeks",
    Cadence.MONTHLY: "Monthly",
    Cadence.QUARTERLY: "Quarterly",
    Cadence.YEARLY: "Yearly",
}


def to_naive_utc(moment: datetime) -> datetime:
    """Convert an aware datetime to naive UTC. Naive values are returned as is."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================================================
# CORE OBLIGATION MODEL
# =============================================================================

class RecurringObligation(BaseModel):
    """
    One recurring expense (shop rent, software subscription, ...).

    `last_generated_at` is owned by the scheduler: it starts absent and is
    only ever set when the obligation is emitted as due.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Stable unique obligation ID"
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount due per occurrence"
    )
    start_date: datetime = Field(
        ...,
        description="Anchor from which the first cadence interval is measured"
    )
    cadence: Cadence = Field(
        ...,
        description="Recurrence unit"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free-text notes"
    )

    # Generation state
    last_generated_at: Optional[datetime] = Field(
        default=None,
        description="When this obligation was last emitted as due"
    )

    @field_validator("start_date", "last_generated_at")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store every date as naive UTC."""
        return to_naive_utc(v) if v is not None else v

    @property
    def anchor_date(self) -> datetime:
        """Date the next cadence interval is measured from."""
        return self.last_generated_at or self.start_date

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "id": str(self.id),
            "name": self.name,
            "amount": str(self.amount),
            "cadence": self.cadence.value,
            "start_date": self.start_date.isoformat(),
            "last_generated_at": (
                self.last_generated_at.isoformat() if self.last_generated_at else None
            ),
        }
