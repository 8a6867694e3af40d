"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    CloudinarySettings,
    ConfigurationError,
    EmailSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "ConfigurationError",
    "EmailSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
