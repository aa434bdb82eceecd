"""Configuration package."""

from savings_engine.config.settings import (
    AppSettings,
    EngineSettings,
    FrequencyRule,
    GoogleSheetsSettings,
    Settings,
    StorageBackend,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EngineSettings",
    "FrequencyRule",
    "GoogleSheetsSettings",
    "Settings",
    "StorageBackend",
    "get_settings",
    "validate_all_settings",
]
