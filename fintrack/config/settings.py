"""
Configuration Management for fintrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external concern (local store, rate providers, remote mirror, sync loop)
has its own settings class with its own environment prefix, so a missing
Google Drive credential never stops the local-only parts from loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Local tabular store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_STORE_",
        extra="ignore"
    )

    database_path: str = Field(
        default="fintrack.db",
        description="Path to the SQLite file holding per-user tables"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Format/version marker written into new table metadata"
    )
    user_agent: str = Field(
        default="fintrack",
        description="Client label recorded in table metadata"
    )


class ExchangeSettings(BaseSettings):
    """Rate-quote provider and cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_EXCHANGE_",
        extra="ignore"
    )

    fiat_api_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest",
        description="Fiat rate table endpoint; the base currency is appended"
    )
    crypto_api_url: str = Field(
        default="https://api.coingecko.com/api/v3/simple/price",
        description="Crypto spot price endpoint"
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="How long a fetched rate table is served from cache"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for a single provider request"
    )


class SyncSettings(BaseSettings):
    """Remote mirror sync loop configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_SYNC_",
        extra="ignore"
    )

    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How often local data is hashed to detect changes"
    )
    debounce_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Quiet period after a change before a push fires"
    )
    file_name_template: str = Field(
        default="finance_data_{identity}.csv",
        description="Remote file name; {identity} is the sanitized user identity"
    )

    def file_name_for(self, identity: str) -> str:
        """Remote file name for a user identity."""
        return self.file_name_template.format(identity=identity.replace("@", "_"))


class GoogleDriveSettings(BaseSettings):
    """Google Drive remote mirror configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_DRIVE_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    api_base: str = Field(
        default="https://www.googleapis.com/drive/v3",
        description="Drive metadata API base URL"
    )
    upload_base: str = Field(
        default="https://www.googleapis.com/upload/drive/v3",
        description="Drive upload API base URL"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single Drive request"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Remote sync will fail until it exists."
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Money
    default_currency: str = Field(
        default="USD",
        description="Currency used when a user has not chosen one"
    )

    # Alert thresholds
    expense_warning_ratio: float = Field(
        default=80.0,
        ge=0.0,
        description="Expense/income percentage above which a warning is raised"
    )
    ratio_growth_warning_points: float = Field(
        default=10.0,
        ge=0.0,
        description="Month-over-month ratio growth (percentage points) that raises a warning"
    )

    # Upcoming payments
    planned_window_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Default look-ahead window for planned transactions"
    )

    # Audit
    audit_max_events: int = Field(
        default=10_000,
        ge=1,
        description="Events kept by the in-memory audit log before the oldest is evicted"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def exchange(self) -> ExchangeSettings:
        return ExchangeSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def google_drive(self) -> GoogleDriveSettings:
        return GoogleDriveSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries holding the failure message.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("store", "exchange", "sync", "google_drive", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
