"""
Configuration Management for the Installment Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

The schedule engine itself takes every policy value (tolerance, penalty,
projection windows) as an explicit argument; ScheduleSettings is where the
flows read those values from.
"""

import warnings
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
    loans_sheet_name: str = Field(
        default="Loans",
        description="Name of the sheet for loans"
    )
    bills_sheet_name: str = Field(
        default="Bills",
        description="Name of the sheet for bills"
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
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for document and SMS extraction."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class ScheduleSettings(BaseSettings):
    """Policy values for the schedule engine."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULE_",
        extra="ignore"
    )

    prepayment_tolerance: Decimal = Field(
        default=Decimal("1.0"),
        ge=0,
        description="Shortfall still treated as a fully paid installment"
    )
    settlement_penalty_months: int = Field(
        default=3,
        ge=0,
        description="Months of average profit charged on early settlement"
    )
    subscription_months_back: int = Field(default=3, ge=0)
    subscription_months_ahead: int = Field(default=9, ge=0)
    monthly_months_back: int = Field(default=1, ge=0)
    monthly_months_ahead: int = Field(default=3, ge=0)
    max_duration_months: int = Field(
        default=600,
        ge=1,
        description="Longest loan the validator accepts"
    )
    max_loan_amount: Decimal = Field(
        default=Decimal("100000000"),
        gt=0,
        description="Largest principal the validator accepts (sanity check)"
    )

    @property
    def subscription_window(self) -> tuple[int, int]:
        return (self.subscription_months_back, self.subscription_months_ahead)

    @property
    def monthly_window(self) -> tuple[int, int]:
        return (self.monthly_months_back, self.monthly_months_ahead)


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

    # Loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def schedule(self) -> ScheduleSettings:
        return ScheduleSettings()

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

    Returns a dict of {setting_name: is_valid}, plus `<name>_error` entries
    for groups that failed to load. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "gemini", "schedule", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
