# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for learnsync.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from learnsync.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.local_store.url)
    'sqlite+aiosqlite:///learnsync.db'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocalStoreSettings(BaseSettings):
    """Local embedded store configuration.

    The local store is a single SQLite file holding the curriculum mirror,
    downloaded lesson media and small pieces of local state.

    Attributes:
        path: Filesystem path of the SQLite database, or ":memory:".
        echo: Whether SQLAlchemy should log emitted SQL.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        extra="ignore",
    )

    path: str = "learnsync.db"
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async SQLite URL from the path."""
        return f"sqlite+aiosqlite:///{self.path}"

    @property
    def is_memory(self) -> bool:
        """Check if the store lives only in memory."""
        return self.path == ":memory:"


class RemoteSourceSettings(BaseSettings):
    """Remote curriculum source configuration.

    The remote source is a PostgREST-style HTTP API exposing the
    subjects, topics, lessons, assessments and grades collections.

    Attributes:
        base_url: Base URL of the REST endpoint.
        api_key: Anonymous API key sent with every request.
        timeout: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_",
        extra="ignore",
    )

    base_url: str = "http://localhost:54321/rest/v1"
    api_key: SecretStr = SecretStr("")
    timeout: float = 30.0

    @property
    def auth_headers(self) -> dict[str, str]:
        """Build authentication headers for API requests."""
        key = self.api_key.get_secret_value()
        if not key:
            return {}
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }


class MediaSettings(BaseSettings):
    """Lesson media download configuration.

    Attributes:
        timeout: Download timeout in seconds.
        max_bytes: Largest payload accepted for offline storage.
        follow_redirects: Whether storage redirects are followed.
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        extra="ignore",
    )

    timeout: float = 300.0
    max_bytes: int = 500 * 1024 * 1024
    follow_redirects: bool = True


class SyncSettings(BaseSettings):
    """Reconciliation and query tuning.

    Attributes:
        recent_subjects_limit: Maximum length of the recency list.
        search_result_limit: Maximum combined search results.
        search_min_length: Minimum query length before searching.
        search_debounce_ms: Debounce interval for interactive search.
    """

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        extra="ignore",
    )

    recent_subjects_limit: int = Field(default=6, ge=1)
    search_result_limit: int = Field(default=10, ge=1)
    search_min_length: int = Field(default=2, ge=1)
    search_debounce_ms: int = Field(default=300, ge=0)


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        local_store: Local store settings.
        remote: Remote curriculum source settings.
        media: Media download settings.
        sync: Reconciliation and query settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    local_store: LocalStoreSettings = Field(default_factory=LocalStoreSettings)
    remote: RemoteSourceSettings = Field(default_factory=RemoteSourceSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production against a volatile store.
        """
        if self.environment == "production" and self.local_store.is_memory:
            raise ValueError(
                "An in-memory local store cannot be used in production. "
                "Set LOCAL_STORE_PATH to a file path."
            )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
