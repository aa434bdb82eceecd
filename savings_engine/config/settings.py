"""
Configuration Management for the Savings Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Engine tunables (uplift range, breakdown size, frequency rule) live next to
the storage credentials so a deployment can be inspected in one place.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FrequencyRule(str, Enum):
    """
    How Annual-frequency entries are brought to a monthly figure.

    AS_ENTERED keeps the amount as typed (entries are treated as already
    monthly, whatever their frequency field says). DIVIDE_BY_12 spreads
    annual amounts over the year.
    """
    AS_ENTERED = "as_entered"
    DIVIDE_BY_12 = "divide_by_12"


class StorageBackend(str, Enum):
    """Which entry/profile store implementation to wire up."""
    MEMORY = "memory"
    GOOGLE_SHEETS = "google_sheets"


class EngineSettings(BaseSettings):
    """Tunables for classification, savings and breakdown."""

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    category_limit: int = Field(
        default=3,
        ge=1,
        le=20,
        description="How many spending categories the dashboard shows before 'view all'"
    )
    uplift_min: float = Field(
        default=1.0,
        ge=0.0,
        description="Lower bound of the random potential-savings uplift (percentage points)"
    )
    uplift_max: float = Field(
        default=10.0,
        ge=0.0,
        description="Upper bound of the random potential-savings uplift (percentage points)"
    )
    annual_frequency_rule: FrequencyRule = Field(
        default=FrequencyRule.AS_ENTERED,
        description="Normalisation applied to Annual entries before aggregation"
    )
    max_entry_amount: float = Field(
        default=10000000.0,
        gt=0,
        description="Amounts above this are flagged as suspicious (not rejected)"
    )

    @model_validator(mode="after")
    def validate_uplift_range(self) -> "EngineSettings":
        """Uplift bounds must form a range."""
        if self.uplift_max < self.uplift_min:
            raise ValueError("uplift_max cannot be smaller than uplift_min")
        return self


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    entries_sheet_name: str = Field(
        default="Entries",
        description="Name of the sheet for financial entries"
    )
    profiles_sheet_name: str = Field(
        default="Profiles",
        description="Name of the sheet for per-user persisted values"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Entry/profile store implementation"
    )
    persist_audit_events: bool = Field(
        default=False,
        description="Append audit events to storage as well as the local log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a memory-only deployment
    # does not need Google credentials.

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" key holding the message for each failure.
    """
    results = {}

    settings = get_settings()

    checks = {
        "engine": lambda: settings.engine,
        "app": lambda: settings.app,
    }
    try:
        backend = settings.app.storage_backend
    except Exception:
        backend = StorageBackend.MEMORY
    if backend is StorageBackend.GOOGLE_SHEETS:
        checks["google_sheets"] = lambda: settings.google_sheets

    for name, load in checks.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
