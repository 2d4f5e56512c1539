"""
Recurring Expense Scheduler

Owns the collection of recurring obligations, computes when each is next
due, and emits the obligations due as of a date.

DESIGN DECISION: Generation is idempotent per day. Emitting an obligation
stamps its `last_generated_at`, so the next due date moves one cadence step
past the stamp and a second call for the same day emits nothing. Callers
get the obligations as they were before stamping, so `last_generated_at`
on a returned obligation still names the previous occurrence.

DRIFT: by default the stamp is the generation date (`as_of`), not the date
the obligation was actually due. If generation runs late (the shop did not
open the app on the due day), the schedule shifts forward by the lag, and
the shift compounds across missed runs:

    start 2024-01-01, monthly
    generate_due(2024-02-15)  -> due (2024-02-01 < 2024-02-15)
    next_due_date             -> 2024-03-15, not 2024-03-01

Pass `anchor_to_due_date=True` to stamp the scheduled due date instead. In
that mode a long-missed obligation is emitted once per call until it has
caught up with the calendar.

TIMEZONES: dates are compared as naive UTC. The model converts stored dates
and `generate_due` converts `as_of`, so a mix of naive and aware inputs is
safe. "Same calendar day" is therefore judged in UTC for aware inputs.

CONCURRENCY: all state is guarded by one re-entrant lock, so a background
generation timer may run alongside add/update/remove from the UI. Saving
happens after the lock is released: a mutation takes a numbered snapshot
under the lock and hands it to storage outside it. Saves are serialized by
a second lock and a snapshot older than one already saved is dropped, so
storage never goes backwards. A slow or retrying backend (the Google Sheets
storage retries for several seconds) therefore delays only the thread that
made the change, not readers or other writers. `load()` still reads storage
under the state lock, since the collection is replaced as a whole.
"""

import threading
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from recurring_expenses.audit import AuditSink
from recurring_expenses.models.audit import AuditEventType
from recurring_expenses.models.obligation import RecurringObligation, to_naive_utc
from recurring_expenses.scheduling.calendar_math import SchedulerError, advance
from recurring_expenses.services.storage import ObligationStorageInterface


logger = structlog.get_logger(__name__)


class ObligationNotFoundError(SchedulerError):
    """No obligation with the given id is in the collection."""
    pass


class DuplicateObligationError(SchedulerError):
    """An obligation with the given id is already in the collection."""
    pass


class RecurringExpenseScheduler:
    """
    Explicitly owned scheduler state.

    Holds:
    - the ordered collection of obligations
    - a single undo slot for the most recently removed obligation

    Collaborators are optional. Storage is saved after every mutation and
    audit events are recorded for each one; failures of either are logged
    and never undo the in-memory change. Mutations return once their save
    has been attempted.
    """

    def __init__(
        self,
        storage: Optional[ObligationStorageInterface] = None,
        audit: Optional[AuditSink] = None,
        anchor_to_due_date: bool = False,
        obligations: Optional[list[RecurringObligation]] = None,
    ):
        """
        Initialize scheduler.

        Args:
            storage: Persistence backend. If None, nothing is saved.
            audit: Audit sink. If None, nothing is recorded.
            anchor_to_due_date: Stamp emitted obligations with their due
                    date rather than the generation date.
            obligations: Initial collection (not persisted until the next
                    mutation). Ids must be unique.
        """
        self._storage = storage
        self._audit = audit
        self._anchor_to_due_date = anchor_to_due_date
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()
        self._snapshot_seq = 0
        self._saved_seq = 0
        self._obligations: list[RecurringObligation] = []
        self._last_deleted: Optional[tuple[RecurringObligation, int]] = None

        for obligation in obligations or []:
            if self._index_of(obligation.id) is not None:
                raise DuplicateObligationError(f"Duplicate obligation id: {obligation.id}")
            self._obligations.append(obligation.model_copy(deep=True))

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def anchor_to_due_date(self) -> bool:
        return self._anchor_to_due_date

    @property
    def obligations(self) -> list[RecurringObligation]:
        """Snapshot of the collection, in order."""
        with self._lock:
            return [o.model_copy(deep=True) for o in self._obligations]

    @property
    def can_undo(self) -> bool:
        with self._lock:
            return self._last_deleted is not None

    def get(self, obligation_id: UUID) -> RecurringObligation:
        with self._lock:
            index = self._require_index(obligation_id)
            return self._obligations[index].model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, obligation: RecurringObligation) -> None:
        """
        Append `obligation` to the collection.

        Raises:
            DuplicateObligationError: If its id is already present
        """
        with self._lock:
            if self._index_of(obligation.id) is not None:
                raise DuplicateObligationError(f"Duplicate obligation id: {obligation.id}")
            self._obligations.append(obligation.model_copy(deep=True))
            self._record(AuditEventType.ADD, obligation.id, f"Added {obligation.name}")
            snapshot = self._snapshot()
        self._persist(snapshot)

    def update(self, obligation: RecurringObligation) -> None:
        """
        Replace the stored obligation with the same id, in place.

        Raises:
            ObligationNotFoundError: If the id is unknown
        """
        with self._lock:
            index = self._require_index(obligation.id)
            self._obligations[index] = obligation.model_copy(deep=True)
            self._record(AuditEventType.UPDATE, obligation.id, f"Updated {obligation.name}")
            snapshot = self._snapshot()
        self._persist(snapshot)

    def remove(self, obligation: RecurringObligation) -> None:
        """
        Remove the obligation with `obligation.id`, keeping it for undo.

        A previous pending undo is discarded.

        Raises:
            ObligationNotFoundError: If the id is unknown
        """
        with self._lock:
            index = self._require_index(obligation.id)
            removed = self._obligations.pop(index)
            self._last_deleted = (removed, index)
            self._record(AuditEventType.DELETE, removed.id, f"Deleted {removed.name}")
            snapshot = self._snapshot()
        self._persist(snapshot)

    def undo(self) -> Optional[RecurringObligation]:
        """
        Restore the most recently removed obligation.

        Returns the restored obligation, or None if there was nothing to undo.
        """
        with self._lock:
            if self._last_deleted is None:
                return None
            obligation, index = self._last_deleted
            self._last_deleted = None

            if index <= len(self._obligations):
                self._obligations.insert(index, obligation)
            else:
                # Collection shrank since the removal; clamping the index
                # would silently reorder unrelated obligations.
                self._obligations.append(obligation)

            self._record(AuditEventType.UNDO_DELETE, obligation.id, f"Restored {obligation.name}")
            restored = obligation.model_copy(deep=True)
            snapshot = self._snapshot()
        self._persist(snapshot)
        return restored

    def load(self) -> None:
        """
        Replace the collection with what storage holds.

        On failure the in-memory collection is left as it was.
        """
        if self._storage is None:
            return
        with self._lock:
            try:
                loaded = self._storage.load()
            except Exception as e:
                logger.error("obligations_load_failed", error=str(e))
                self._record(AuditEventType.LOAD_FAILED, None, f"Failed to load recurring expenses: {e}")
                return

            seen: set[UUID] = set()
            for obligation in loaded:
                if obligation.id in seen:
                    logger.error("obligations_load_failed", error=f"duplicate id {obligation.id}")
                    self._record(
                        AuditEventType.LOAD_FAILED,
                        obligation.id,
                        "Failed to load recurring expenses: duplicate id",
                    )
                    return
                seen.add(obligation.id)

            self._obligations = list(loaded)
            self._last_deleted = None
            self._record(AuditEventType.LOAD, None, f"Loaded recurring expenses ({len(loaded)} items)")

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def next_due_date(self, obligation: RecurringObligation) -> datetime:
        """
        Anchor date advanced by one cadence step.

        The anchor is `last_generated_at` if set, otherwise `start_date`.

        Raises:
            CalendarArithmeticError: If the date cannot be advanced
        """
        return advance(obligation.anchor_date, obligation.cadence)

    def generate_due(self, as_of: datetime) -> list[RecurringObligation]:
        """
        Emit every obligation due on or before `as_of`.

        An obligation is due when its next due date falls on the same
        calendar day as `as_of`, or strictly before it. Each emitted
        obligation is stamped (see module docstring) before returning.

        Returns the emitted obligations in collection order, as they were
        before stamping.

        Raises:
            CalendarArithmeticError: If any due date cannot be computed.
                    Nothing is stamped in that case.
        """
        as_of = to_naive_utc(as_of)
        with self._lock:
            stamps: list[tuple[int, datetime]] = []
            for index, obligation in enumerate(self._obligations):
                due = self.next_due_date(obligation)
                if due.date() == as_of.date() or due < as_of:
                    stamps.append((index, due if self._anchor_to_due_date else as_of))

            emitted = []
            for index, stamp in stamps:
                current = self._obligations[index]
                emitted.append(current.model_copy(deep=True))
                self._obligations[index] = current.model_copy(
                    update={"last_generated_at": stamp}
                )
                self._record(
                    AuditEventType.GENERATE_DUE,
                    current.id,
                    f"Generated due expense: {current.name}",
                )

            self._record(
                AuditEventType.GENERATE_ALL_DUE,
                None,
                f"Generated {len(emitted)} due expenses for {as_of.isoformat()}",
            )
            logger.info(
                "due_expenses_generated",
                as_of=as_of.isoformat(),
                count=len(emitted),
                anchor_to_due_date=self._anchor_to_due_date,
            )
            snapshot = self._snapshot()
        self._persist(snapshot)
        return emitted

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _index_of(self, obligation_id: UUID) -> Optional[int]:
        for index, obligation in enumerate(self._obligations):
            if obligation.id == obligation_id:
                return index
        return None

    def _require_index(self, obligation_id: UUID) -> int:
        index = self._index_of(obligation_id)
        if index is None:
            raise ObligationNotFoundError(f"Recurring expense not found: {obligation_id}")
        return index

    def _snapshot(self) -> Optional[tuple[int, list[RecurringObligation]]]:
        """Numbered copy of the collection to save. Call with the state lock held."""
        if self._storage is None:
            return None
        self._snapshot_seq += 1
        return self._snapshot_seq, [o.model_copy(deep=True) for o in self._obligations]

    def _persist(self, snapshot: Optional[tuple[int, list[RecurringObligation]]]) -> None:
        """
        Save a snapshot. Call without the state lock held.

        Failures are logged and recorded, never raised.
        """
        if snapshot is None:
            return
        seq, obligations = snapshot
        count = len(obligations)
        with self._save_lock:
            if seq <= self._saved_seq:
                # A newer snapshot reached storage first
                logger.debug("obligations_save_superseded", seq=seq, saved_seq=self._saved_seq)
                return
            try:
                self._storage.save(obligations)
            except Exception as e:
                logger.warning("obligations_save_failed", error=str(e), item_count=count)
                self._record(
                    AuditEventType.SAVE_FAILED,
                    None,
                    f"Failed to save recurring expenses ({count} items): {e}",
                )
                return
            self._saved_seq = seq
        self._record(AuditEventType.SAVE, None, f"Saved recurring expenses ({count} items)")

    def _record(self, action: AuditEventType, subject_id: Optional[UUID], detail: str) -> None:
        if self._audit is None:
            return
        try:
            self._audit.record(action.value, subject_id, detail)
        except Exception as e:
            logger.warning("audit_sink_failed", action=action.value, error=str(e))
