"""
Configuration Management for PFOS Core

Every value comes from PFOS_* environment variables (or a .env file) through
pydantic-settings.

DESIGN DECISION: Configuration lives in one module.
Every instance (window, tab, worker) sharing a device reads the same
environment, so they agree on where the database and change marker live.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PFOS_STORAGE_",
        extra="ignore"
    )

    database_path: str = Field(
        default="pfos.db",
        description="Path to the SQLite database file shared by all instances"
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        description="How long SQLite waits on a locked database before failing"
    )

    @field_validator('database_path')
    @classmethod
    def validate_database_path(cls, v: str) -> str:
        """Reject an empty path; directory existence is checked at open time."""
        if not v.strip():
            raise ValueError("database_path must not be empty")
        return v


class SyncSettings(BaseSettings):
    """Change bus configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PFOS_SYNC_",
        extra="ignore"
    )

    channel_name: str = Field(
        default="pfos-sync",
        description="Name of the in-process broadcast channel"
    )
    marker_path: Optional[str] = Field(
        default=None,
        description="Rotating change marker file; defaults to a file next to the database"
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="How often subscribers poll the change marker"
    )
    broadcast_enabled: bool = Field(
        default=True,
        description="Use the broadcast channel in addition to the marker"
    )

    def resolve_marker_path(self, database_path: str) -> str:
        """Marker path, derived from the database path when not configured."""
        if self.marker_path:
            return self.marker_path
        db = Path(database_path)
        return str(db.with_name(db.name + ".changed.json"))


class AppSettings(BaseSettings):
    """
    Instance-wide application settings.

    Read from PFOS_* variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PFOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_profile: str = Field(
        default="default",
        min_length=1,
        description="Profile used when the caller does not name one"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False renders for the console)"
    )


class Settings(BaseSettings):
    """
    Entry point for all settings groups.

    Each group is read fresh from the environment on access.
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
    def sync(self) -> SyncSettings:
        return SyncSettings()

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

    Returns a dict of {setting_name: is_valid}, plus "<name>_error"
    entries for the ones that failed. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "sync", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
