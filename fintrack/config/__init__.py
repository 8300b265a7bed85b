"""Configuration package."""

from fintrack.config.settings import (
    AppSettings,
    ExchangeSettings,
    GoogleDriveSettings,
    Settings,
    StoreSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ExchangeSettings",
    "GoogleDriveSettings",
    "Settings",
    "StoreSettings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
