"""
Configuration Management for Logbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every setting is read with the LOGBOOK_ prefix, e.g. LOGBOOK_DATABASE_PATH.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local object store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="LOGBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    database_path: str = Field(
        default="logbook.sqlite3",
        description="Path to the SQLite database file (':memory:' for a throwaway store)"
    )
    persist_audit_events: bool = Field(
        default=True,
        description="Write audit events to the store as well as the local log"
    )
    
    @field_validator('database_path')
    @classmethod
    def validate_database_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("database_path must not be empty")
        return v.strip()


class PortabilitySettings(BaseSettings):
    """Export/import settings."""
    
    model_config = SettingsConfigDict(
        env_prefix="LOGBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    export_filename_stem: str = Field(
        default="logbook_export",
        min_length=1,
        max_length=100,
        description="File name (without extension) suggested for exports"
    )
    export_directory: Optional[str] = Field(
        default=None,
        description="Directory exports are written to when saved to disk"
    )
    max_import_size_mb: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Largest import file accepted, in MB"
    )
    
    @property
    def max_import_size_bytes(self) -> int:
        """Get max import size in bytes."""
        return self.max_import_size_mb * 1024 * 1024


class AppSettings(BaseSettings):
    """
    Main application settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="LOGBOOK_",
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
    
    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()
    
    @property
    def portability(self) -> PortabilitySettings:
        return PortabilitySettings()
    
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
    
    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries for the ones that failed.
    """
    results = {}
    settings = get_settings()
    
    for name in ("storage", "portability", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
