"""Tests for configuration and component wiring."""

import pytest
from datetime import datetime

from recurring_expenses.audit import AuditLogger
from recurring_expenses.config import (
    AppSettings,
    SchedulerSettings,
    get_settings,
    validate_all_settings,
)
from recurring_expenses.factory import create_example_scheduler, create_scheduler


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SCHEDULER_ANCHOR_TO_DUE_DATE",
        "SCHEDULER_AUDIT_HISTORY_SIZE",
        "SCHEDULER_STORAGE_BACKEND",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "LOG_LEVEL",
        "DEBUG_MODE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for pydantic-settings configuration."""

    def test_scheduler_defaults(self):
        """Test source-compatible defaults."""
        settings = SchedulerSettings()
        assert settings.anchor_to_due_date is False
        assert settings.audit_history_size == 80
        assert settings.storage_backend == "memory"

    def test_scheduler_from_env(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_ANCHOR_TO_DUE_DATE", "true")
        monkeypatch.setenv("SCHEDULER_AUDIT_HISTORY_SIZE", "200")
        settings = SchedulerSettings()
        assert settings.anchor_to_due_date is True
        assert settings.audit_history_size == 200

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            SchedulerSettings()

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        assert AppSettings().log_level == "WARNING"

    def test_debug_mode_forces_debug_level(self, monkeypatch):
        monkeypatch.setenv("DEBUG_MODE", "true")
        assert AppSettings().effective_log_level == "DEBUG"

    def test_validate_all_settings_reports_missing_sheets(self):
        """Test startup check flags unconfigured Google Sheets."""
        results = validate_all_settings()
        assert results["scheduler"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


class TestFactory:
    """Tests for create_scheduler and the example scheduler."""

    def test_create_scheduler_in_memory(self, monkeypatch):
        monkeypatch.setenv("SCHEDULER_ANCHOR_TO_DUE_DATE", "true")
        scheduler, audit_logger = create_scheduler()
        assert isinstance(audit_logger, AuditLogger)
        assert scheduler.obligations == []
        assert scheduler.anchor_to_due_date is True
        assert "Load: Loaded recurring expenses (0 items)" in audit_logger.last_summary()

    def test_create_scheduler_without_storage(self):
        scheduler, audit_logger = create_scheduler(use_storage=False)
        assert scheduler.obligations == []
        assert audit_logger.last_summary() == "No events yet."

    def test_unconfigured_sheets_fall_back_to_memory(self, monkeypatch):
        """Test missing Google Sheets config does not prevent startup."""
        monkeypatch.setenv("SCHEDULER_STORAGE_BACKEND", "google_sheets")
        scheduler, audit_logger = create_scheduler()
        assert scheduler.obligations == []
        assert "Load" in audit_logger.last_summary()

    def test_example_scheduler(self):
        """Test the demo data: rent is due a month after its start."""
        now = datetime(2024, 6, 30, 12, 0)
        scheduler = create_example_scheduler(now)
        assert [o.name for o in scheduler.obligations] == ["Shop Rent", "Software Subscription"]

        due = scheduler.generate_due(now)
        assert [o.name for o in due] == ["Shop Rent"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
