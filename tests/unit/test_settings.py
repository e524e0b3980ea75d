# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import os
from unittest.mock import patch

import pytest

from learnsync.core.config.settings import (
    LocalStoreSettings,
    MediaSettings,
    RemoteSourceSettings,
    Settings,
    SyncSettings,
    clear_settings_cache,
    get_settings,
)

pytestmark = pytest.mark.unit


class TestLocalStoreSettings:
    """Tests for LocalStoreSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        settings = LocalStoreSettings()

        assert settings.path == "learnsync.db"
        assert settings.echo is False
        assert settings.is_memory is False

    def test_url_property(self) -> None:
        """Test URL property builds the aiosqlite connection string."""
        settings = LocalStoreSettings(path="/var/lib/learnsync/store.db")

        assert settings.url == "sqlite+aiosqlite:////var/lib/learnsync/store.db"

    def test_memory_store(self) -> None:
        settings = LocalStoreSettings(path=":memory:")

        assert settings.is_memory is True
        assert settings.url == "sqlite+aiosqlite:///:memory:"

    def test_loads_from_environment(self) -> None:
        """Test that settings load from environment variables."""
        env = {"LOCAL_STORE_PATH": "/tmp/env.db", "LOCAL_STORE_ECHO": "true"}

        with patch.dict(os.environ, env, clear=False):
            settings = LocalStoreSettings()

        assert settings.path == "/tmp/env.db"
        assert settings.echo is True


class TestRemoteSourceSettings:
    """Tests for RemoteSourceSettings."""

    def test_no_key_means_no_auth_headers(self) -> None:
        settings = RemoteSourceSettings()

        assert settings.auth_headers == {}

    def test_auth_headers(self) -> None:
        """Test the API key is sent as apikey and bearer token."""
        settings = RemoteSourceSettings(api_key="anon-key")  # type: ignore[arg-type]

        assert settings.auth_headers == {
            "apikey": "anon-key",
            "Authorization": "Bearer anon-key",
        }

    def test_key_is_secret(self) -> None:
        settings = RemoteSourceSettings(api_key="anon-key")  # type: ignore[arg-type]

        assert "anon-key" not in repr(settings)

    def test_loads_from_environment(self) -> None:
        env = {"REMOTE_BASE_URL": "https://api.example.com/rest/v1", "REMOTE_TIMEOUT": "5"}

        with patch.dict(os.environ, env, clear=False):
            settings = RemoteSourceSettings()

        assert settings.base_url == "https://api.example.com/rest/v1"
        assert settings.timeout == 5.0


class TestMediaAndSyncSettings:
    """Tests for MediaSettings and SyncSettings."""

    def test_media_defaults(self) -> None:
        settings = MediaSettings()

        assert settings.max_bytes == 500 * 1024 * 1024
        assert settings.follow_redirects is True

    def test_sync_defaults(self) -> None:
        """Test default query and recency limits."""
        settings = SyncSettings()

        assert settings.recent_subjects_limit == 6
        assert settings.search_result_limit == 10
        assert settings.search_min_length == 2
        assert settings.search_debounce_ms == 300

    def test_sync_limits_validated(self) -> None:
        with pytest.raises(ValueError):
            SyncSettings(recent_subjects_limit=0)


class TestSettings:
    """Tests for main Settings class."""

    def test_default_environment(self) -> None:
        settings = Settings()

        assert settings.environment == "development"
        assert settings.is_development is True
        assert settings.is_production is False

    def test_production_rejects_memory_store(self) -> None:
        """Test that production cannot run on a volatile store."""
        with pytest.raises(ValueError, match="in-memory local store"):
            Settings(
                environment="production",
                local_store=LocalStoreSettings(path=":memory:"),
            )

    def test_production_with_file_store(self) -> None:
        settings = Settings(
            environment="production",
            local_store=LocalStoreSettings(path="/data/learnsync.db"),
        )

        assert settings.is_production is True


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_returns_cached_instance(self) -> None:
        clear_settings_cache()

        assert get_settings() is get_settings()

    def test_clear_cache_reloads(self) -> None:
        clear_settings_cache()
        first = get_settings()

        clear_settings_cache()

        assert get_settings() is not first
