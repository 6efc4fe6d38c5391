"""
Configuration Management for Bank Reconciler

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets record store configuration."""

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
    statement_lines_sheet_name: str = Field(
        default="StatementLines",
        description="Name of the sheet for imported bank statement lines"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for ledger transactions"
    )
    members_sheet_name: str = Field(
        default="Members",
        description="Name of the sheet mapping users to organizations"
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


class MatchingSettings(BaseSettings):
    """
    Scoring constants for the match proposal engine.

    The defaults are the production heuristic. They are exposed here so
    a deployment can tune them without touching the engine.
    """

    model_config = SettingsConfigDict(
        env_prefix="MATCHING_",
        extra="ignore"
    )

    # Amount component
    exact_amount_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Absolute difference below which amounts are considered equal"
    )
    exact_amount_points: int = Field(default=50, ge=0)
    close_amount_ratio: Decimal = Field(
        default=Decimal("0.05"),
        gt=0,
        lt=1,
        description="Relative difference (of the statement amount) for a close match"
    )
    close_amount_points: int = Field(default=25, ge=0)

    # Date component
    same_day_points: int = Field(default=30, ge=0)
    near_date_days: int = Field(default=3, ge=1)
    near_date_points: int = Field(default=15, ge=0)
    week_date_days: int = Field(default=7, ge=1)
    week_date_points: int = Field(default=5, ge=0)

    # Description component
    containment_points: int = Field(default=20, ge=0)
    word_points: int = Field(default=5, ge=0)
    word_points_cap: int = Field(default=15, ge=0)
    min_word_length: int = Field(
        default=3,
        ge=1,
        description="Shorter words (articles, prepositions) never count as shared fragments"
    )

    # Acceptance
    min_match_score: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Minimum total score for a candidate to be proposed"
    )

    # Selection balance check
    balance_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Maximum difference for a selection to count as balanced"
    )


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
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum statement file size in MB"
    )
    supported_statement_formats: str = Field(
        default="ofx",
        description="Comma-separated list of supported statement file extensions"
    )
    statement_fallback_encoding: str = Field(
        default="cp1252",
        description="Encoding used when a statement file is not valid UTF-8"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [
            fmt.strip().lower().lstrip(".")
            for fmt in self.supported_statement_formats.split(",")
            if fmt.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def matching(self) -> MatchingSettings:
        return MatchingSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.matching
        results["matching"] = True
    except Exception as e:
        results["matching"] = False
        results["matching_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
