"""
Tests for storage backends.

Google Sheets is replaced by in-memory fake worksheets; no network calls.
"""

import warnings

import gspread
import pytest
from gspread.utils import a1_to_rowcol
from tenacity import wait_none
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from recurring_expenses.config import GoogleSheetsSettings
from recurring_expenses.models.audit import AuditEvent, AuditEventType
from recurring_expenses.models.obligation import Cadence, RecurringObligation
from recurring_expenses.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsObligationStorage,
    InMemoryObligationStorage,
    StorageError,
)
from recurring_expenses.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    OBLIGATION_COLUMNS,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storages."""

    def __init__(self, rows=None, row_count=100):
        self.rows = [list(r) for r in rows or []]
        self.row_count = row_count

    def get_all_values(self):
        return [list(r) for r in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def add_rows(self, rows):
        self.row_count += rows

    def update(self, range_name=None, values=None, value_input_option=None):
        assert range_name == "A1"
        if len(values) > self.row_count:
            raise gspread.exceptions.GSpreadException("exceeds grid limits")
        written = [[str(v) for v in row] for row in values]
        self.rows = written + self.rows[len(written):]

    def batch_clear(self, ranges):
        (cell_range,) = ranges
        first_row, _ = a1_to_rowcol(cell_range.split(":")[0])
        self.rows = self.rows[:first_row - 1]


class UnwritableWorksheet(FakeWorksheet):
    """Worksheet whose writes fail, like a quota or network error."""

    def update(self, range_name=None, values=None, value_input_option=None):
        raise gspread.exceptions.GSpreadException("quota exceeded")

    def batch_clear(self, ranges):
        raise AssertionError("leftover rows cleared after a failed write")


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        try:
            return self.sheets[title]
        except KeyError:
            raise gspread.WorksheetNotFound(title)

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = FakeWorksheet(row_count=rows)
        return self.sheets[title]


class FakeSheetsClient:
    def __init__(self):
        self.obligations_sheet = FakeWorksheet([OBLIGATION_COLUMNS])
        self.audit_sheet = FakeWorksheet([AUDIT_COLUMNS])

    def get_obligations_sheet(self):
        return self.obligations_sheet

    def get_audit_sheet(self):
        return self.audit_sheet


def sample_obligations():
    return [
        RecurringObligation(
            name="Shop Rent",
            amount=Decimal("1200.00"),
            start_date=datetime(2024, 1, 1, 9, 0),
            cadence=Cadence.MONTHLY,
            notes="Main location",
            last_generated_at=datetime(2024, 2, 15, 8, 30),
        ),
        RecurringObligation(
            name="Shampoo Restock",
            amount=Decimal("85.5"),
            start_date=datetime(2024, 3, 4, 9, 0, tzinfo=timezone(timedelta(hours=2))),
            cadence=Cadence.BIWEEKLY,
        ),
    ]


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    def test_load_returns_saved(self):
        storage = InMemoryObligationStorage()
        obligations = sample_obligations()
        storage.save(obligations)
        assert storage.load() == obligations
        assert storage.save_count == 1

    def test_copies_on_save_and_load(self):
        """Test stored state cannot be mutated from outside."""
        obligations = sample_obligations()
        storage = InMemoryObligationStorage(obligations)
        obligations[0].name = "Mutated"
        loaded = storage.load()
        loaded[1].name = "Also mutated"
        assert [o.name for o in storage.load()] == ["Shop Rent", "Shampoo Restock"]


class TestGoogleSheetsObligationStorage:
    """Tests for the Google Sheets recurring-expense backend."""

    def test_save_then_load_preserves_order_and_fields(self):
        """Test a saved collection loads back unchanged, in order."""
        client = FakeSheetsClient()
        storage = GoogleSheetsObligationStorage(client)
        obligations = sample_obligations()

        storage.save(obligations)

        assert client.obligations_sheet.rows[0] == OBLIGATION_COLUMNS
        assert len(client.obligations_sheet.rows) == 3
        assert storage.load() == obligations

    def test_save_rewrites_sheet(self):
        """Test save replaces rows rather than appending."""
        client = FakeSheetsClient()
        storage = GoogleSheetsObligationStorage(client)
        storage.save(sample_obligations())
        storage.save(sample_obligations()[:1])
        assert len(client.obligations_sheet.rows) == 2

    def test_failed_write_keeps_previous_rows(self):
        """Test a save that cannot write leaves the stored collection intact."""
        client = FakeSheetsClient()
        storage = GoogleSheetsObligationStorage(client)
        obligations = sample_obligations()
        storage.save(obligations)

        client.obligations_sheet = UnwritableWorksheet(client.obligations_sheet.rows)
        save_without_waiting = GoogleSheetsObligationStorage.save.retry_with(wait=wait_none())
        with pytest.raises(StorageError):
            save_without_waiting(storage, obligations[:1])

        assert len(client.obligations_sheet.rows) == 3
        assert storage.load() == obligations

    def test_save_grows_short_sheet(self):
        """Test save adds grid rows when the sheet is too short."""
        client = FakeSheetsClient()
        client.obligations_sheet = FakeWorksheet([OBLIGATION_COLUMNS], row_count=1)
        storage = GoogleSheetsObligationStorage(client)
        obligations = sample_obligations()

        storage.save(obligations)

        assert client.obligations_sheet.row_count == 3
        assert storage.load() == obligations

    def test_row_format(self):
        """Test the stored row layout."""
        client = FakeSheetsClient()
        storage = GoogleSheetsObligationStorage(client)
        storage.save(sample_obligations())

        row = client.obligations_sheet.rows[2]
        assert row[2] == "85.5"
        assert row[3] == "2024-03-04T07:00:00"  # stored as naive UTC
        assert row[4] == "biweekly"
        assert row[5] == ""  # no notes
        assert row[6] == ""  # never generated

    def test_skips_blank_rows(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsObligationStorage(client)
        storage.save(sample_obligations())
        client.obligations_sheet.rows.insert(1, ["", "", ""])
        assert len(storage.load()) == 2

    def test_malformed_row_raises(self):
        """Test a malformed row fails the load instead of being dropped."""
        client = FakeSheetsClient()
        client.obligations_sheet.rows.append(
            ["not-a-uuid", "Rent", "12", "2024-01-01T00:00:00", "monthly", "", ""]
        )
        storage = GoogleSheetsObligationStorage(client)
        with pytest.raises(StorageError):
            storage.load()


class TestGoogleSheetsAuditStorage:
    """Tests for the Google Sheets audit backend."""

    def test_append_and_read_back_newest_first(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        older = AuditEvent(
            event_type=AuditEventType.ADD,
            description="Added Rent",
            timestamp=datetime(2024, 1, 1, 9, 0),
        )
        newer = AuditEvent(
            event_type=AuditEventType.SAVE,
            description="Saved",
            timestamp=datetime(2024, 1, 1, 9, 1),
            details={"item_count": 1},
        )
        assert storage.append_event(older) is True
        assert storage.append_event(newer) is True

        events = storage.get_recent_events(limit=10)
        assert [e.event_id for e in events] == [newer.event_id, older.event_id]
        assert events[0].details == {"item_count": 1}
        assert storage.get_recent_events(limit=1)[0].event_id == newer.event_id


class TestGoogleSheetsClient:
    """Tests for worksheet creation."""

    def make_client(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            settings = GoogleSheetsSettings(
                credentials_path="/nonexistent/credentials.json",
                spreadsheet_id="sheet-123",
            )
        client = GoogleSheetsClient(settings)
        client._spreadsheet = FakeSpreadsheet()
        return client

    def test_creates_sheets_with_headers(self):
        """Test missing worksheets are created with a header row."""
        client = self.make_client()
        obligations_sheet = client.get_obligations_sheet()
        audit_sheet = client.get_audit_sheet()
        assert obligations_sheet.rows == [OBLIGATION_COLUMNS]
        assert audit_sheet.rows == [AUDIT_COLUMNS]

    def test_reuses_existing_sheet(self):
        client = self.make_client()
        first = client.get_obligations_sheet()
        assert client.get_obligations_sheet() is first


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
