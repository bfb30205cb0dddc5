"""
Configuration Management for STARK

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every external dependency (model provider, spreadsheet storage) gets its
own settings class with its own env prefix, so a missing key for one
service never blocks the others from loading.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnthropicSettings(BaseSettings):
    """Anthropic model provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ANTHROPIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Anthropic API key"
    )
    fast_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Model used for plain questions"
    )
    analysis_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used when tools are enabled or a file is imported"
    )
    max_tokens: int = Field(
        default=8192,
        ge=256,
        le=64000,
        description="Maximum tokens per model response"
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Deadline for a single model round-trip"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (alternate provider)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    fast_model: str = Field(
        default="gemini-1.5-flash",
        description="Model used for plain questions"
    )
    analysis_model: str = Field(
        default="gemini-1.5-pro",
        description="Model used when tools are enabled or a file is imported"
    )
    max_tokens: int = Field(
        default=8192,
        ge=256,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets ledger storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    ledger_sheet_name: str = Field(
        default="Lancamentos",
        description="Sheet holding durable ledger items"
    )
    status_overrides_sheet_name: str = Field(
        default="StatusOverrides",
        description="Sheet holding status overrides"
    )
    edit_overrides_sheet_name: str = Field(
        default="EditOverrides",
        description="Sheet holding edit overrides"
    )
    deletion_markers_sheet_name: str = Field(
        default="DeletionMarkers",
        description="Sheet holding deletion markers"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    service_name: str = Field(
        default="STARK CFO Virtual API",
        description="Service name reported by the info endpoint"
    )

    # Backends
    llm_provider: str = Field(
        default="anthropic",
        pattern="^(anthropic|gemini)$",
        description="Model provider to use"
    )
    storage_backend: str = Field(
        default="sheets",
        pattern="^(sheets|memory)$",
        description="Ledger storage backend"
    )
    baseline_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file with read-only baseline items per period"
    )

    # Agent behaviour
    tools_enabled: bool = Field(
        default=True,
        description="Let the model call ledger tools"
    )
    max_tool_iterations: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Tool-use rounds allowed before the loop is cut off"
    )
    history_window: int = Field(
        default=6,
        ge=0,
        le=50,
        description="How many trailing conversation turns are forwarded"
    )
    request_deadline_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Overall deadline for one /agent request (None = no deadline)"
    )

    # HTTP
    allowed_origins: str = Field(
        default="*",
        description="Comma-separated list of CORS origins"
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


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
    def anthropic(self) -> AnthropicSettings:
        return AnthropicSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    for name in ("anthropic", "gemini", "google_sheets", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
