"""Configuration package."""

from stark.config.settings import (
    AnthropicSettings,
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AnthropicSettings",
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
