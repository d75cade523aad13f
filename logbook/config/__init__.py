"""Configuration package."""

from logbook.config.settings import (
    AppSettings,
    PortabilitySettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "PortabilitySettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
