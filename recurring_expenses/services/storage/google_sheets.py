"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared storage backend because:
1. The shop owner can see and print the list of recurring expenses directly
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a shop has tens of recurring expenses)
- No transactions, so save overwrites the sheet in place and then clears
  leftover rows
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to SQLite later without changing the scheduler.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, stop_after_attempt, wait_exponential

from recurring_expenses.config import GoogleSheetsSettings, get_settings
from recurring_expenses.models.audit import AuditEvent, AuditEventType, AuditSeverity
from recurring_expenses.models.obligation import Cadence, RecurringObligation
from recurring_expenses.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ObligationStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for RecurringExpenses sheet
OBLIGATION_COLUMNS = [
    "id",
    "name",
    "amount",
    "start_date",
    "cadence",
    "notes",
    "last_generated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "subject_id",
    "description",
    "details_json",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_obligations_sheet(self) -> gspread.Worksheet:
        """Get or create the RecurringExpenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.obligations_sheet_name,
            OBLIGATION_COLUMNS,
            rows=500,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsObligationStorage(ObligationStorageInterface):
    """
    Google Sheets implementation of recurring-expense storage.

    One obligation per row, in collection order. Row order is the
    collection order, so load() restores positions exactly.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _obligation_to_row(self, obligation: RecurringObligation) -> list:
        """Convert a RecurringObligation to a spreadsheet row."""
        return [
            str(obligation.id),
            obligation.name,
            str(obligation.amount),
            obligation.start_date.isoformat(),
            obligation.cadence.value,
            obligation.notes or "",
            obligation.last_generated_at.isoformat() if obligation.last_generated_at else "",
        ]

    def _row_to_obligation(self, row: list) -> RecurringObligation:
        """Convert a spreadsheet row to a RecurringObligation."""
        last_generated = _safe_get(row, 6)
        return RecurringObligation(
            id=UUID(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            amount=Decimal(_safe_get(row, 2)),
            start_date=datetime.fromisoformat(_safe_get(row, 3)),
            cadence=Cadence(_safe_get(row, 4)),
            notes=_safe_get(row, 5) or None,
            last_generated_at=datetime.fromisoformat(last_generated) if last_generated else None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_rows(self) -> list[list]:
        try:
            sheet = self._client.get_obligations_sheet()
            return sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to load recurring expenses: {e}")

    def load(self) -> list[RecurringObligation]:
        """Load all recurring expenses from Google Sheets."""
        all_rows = self._fetch_rows()

        obligations = []
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                obligations.append(self._row_to_obligation(row))
            except Exception as e:
                # A skipped row would be dropped by the next save
                raise StorageError(f"Malformed recurring expense in row {row_number}: {e}")

        logger.debug("obligations_loaded", count=len(obligations))
        return obligations

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save(self, obligations: list[RecurringObligation]) -> None:
        """
        Rewrite the RecurringExpenses sheet with `obligations`.

        The new rows are written over the old ones first and only the
        leftover rows below are cleared afterwards, so a failed write
        leaves the previous contents in place.
        """
        rows = [OBLIGATION_COLUMNS] + [self._obligation_to_row(o) for o in obligations]
        try:
            sheet = self._client.get_obligations_sheet()
            if sheet.row_count < len(rows):
                sheet.add_rows(len(rows) - sheet.row_count)
            sheet.update(range_name="A1", values=rows, value_input_option="RAW")
            if sheet.row_count > len(rows):
                first = rowcol_to_a1(len(rows) + 1, 1)
                last = rowcol_to_a1(sheet.row_count, len(OBLIGATION_COLUMNS))
                sheet.batch_clear([f"{first}:{last}"])
        except Exception as e:
            raise StorageError(f"Failed to save recurring expenses: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        subject_id = _safe_get(row, 4)
        details = _safe_get(row, 6)
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            subject_id=UUID(subject_id) if subject_id else None,
            description=_safe_get(row, 5),
            details=json.loads(details) if details else {},
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning(
                "audit_sheet_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
