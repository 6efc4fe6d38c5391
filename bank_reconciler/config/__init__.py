"""Configuration package."""

from bank_reconciler.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    MatchingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "MatchingSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
