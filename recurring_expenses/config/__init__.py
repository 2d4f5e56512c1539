"""Configuration package."""

from recurring_expenses.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    SchedulerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "SchedulerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
