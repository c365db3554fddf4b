"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from esi.config import Settings, clear_settings_cache, get_settings


class TestSettingsValidation:
    """Tests for Settings validation."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads from environment variables."""
        settings = get_settings()

        assert settings.ESI_USER_AGENT == "Test Agent test@example.com"
        assert settings.ESI_ACCESS_TOKEN == "test-access-token-1234567890"
        assert settings.HTTP_TIMEOUT == 5.0
        assert settings.HTTP_MAX_RETRIES == 2
        assert settings.MAX_PAGES == 50
        assert settings.LOG_LEVEL == "DEBUG"

    def test_base_url_trailing_slash_stripped(self, mock_env_vars: dict[str, str]) -> None:
        """Test that ESI_BASE_URL loses its trailing slash."""
        settings = get_settings()

        assert settings.ESI_BASE_URL == "https://esi.example.test"
        assert settings.api_root == "https://esi.example.test/latest"

    def test_base_url_requires_http_scheme(self) -> None:
        """Test that ESI_BASE_URL must be an http(s) URL."""
        with patch.dict(os.environ, {"ESI_BASE_URL": "ftp://esi.example.test"}):
            clear_settings_cache()

            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "ESI_BASE_URL" in str(exc_info.value)

    def test_blank_user_agent_rejected(self) -> None:
        """Test that ESI_USER_AGENT cannot be blank."""
        with patch.dict(os.environ, {"ESI_USER_AGENT": "   "}):
            clear_settings_cache()

            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    @pytest.mark.parametrize(
        "name,value",
        [
            ("HTTP_TIMEOUT", "0"),
            ("HTTP_MAX_RETRIES", "0"),
            ("HTTP_MAX_RETRIES", "11"),
            ("MAX_PAGES", "0"),
            ("LOG_LEVEL", "VERBOSE"),
        ],
    )
    def test_out_of_range_values_rejected(self, name: str, value: str) -> None:
        """Test numeric bounds and the log level choices."""
        with patch.dict(os.environ, {name: value}):
            clear_settings_cache()

            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self) -> None:
        """Test default values with an empty environment."""
        with patch.dict(os.environ, {}, clear=True):
            clear_settings_cache()

            settings = Settings(_env_file=None)

            assert settings.ESI_BASE_URL == "https://esi.evetech.net"
            assert settings.api_root == "https://esi.evetech.net/latest"
            assert settings.ESI_DATASOURCE == "tranquility"
            assert settings.ESI_ACCESS_TOKEN is None
            assert settings.HTTP_TIMEOUT == 30.0
            assert settings.HTTP_MAX_RETRIES == 3
            assert settings.MAX_PAGES == 100
            assert settings.LOG_FILE is None

    def test_default_directories(self) -> None:
        """Test default cache paths."""
        with patch.dict(os.environ, {}, clear=True):
            clear_settings_cache()

            settings = Settings(_env_file=None)

            assert settings.CACHE_DIR == Path(".cache/esi")
            assert settings.cache_db_path == Path(".cache/esi/esi_cache.db")

    def test_empty_version_segment(self) -> None:
        """Test that an empty version leaves the base URL as the root."""
        with patch.dict(os.environ, {"ESI_VERSION": ""}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.api_root == "https://esi.evetech.net"


class TestSettingsMethods:
    """Tests for Settings methods."""

    def test_ensure_directories_creates_dirs(self, mock_settings: Settings) -> None:
        """Test that ensure_directories creates the cache dir."""
        mock_settings.ensure_directories()

        assert mock_settings.CACHE_DIR.exists()

    def test_redacted_display_hides_token(self, mock_settings: Settings) -> None:
        """Test that the access token is redacted."""
        display = mock_settings.redacted_display()

        assert display["ESI_ACCESS_TOKEN"] == "test-acc...7890"
        assert "test-access-token-1234567890" not in str(display)
        assert display["MAX_PAGES"] == 50

    def test_redacted_display_short_and_missing_token(self) -> None:
        """Test redaction of short tokens and absent tokens."""
        with patch.dict(os.environ, {"ESI_ACCESS_TOKEN": "short"}, clear=True):
            assert Settings(_env_file=None).redacted_display()["ESI_ACCESS_TOKEN"] == "***"

        with patch.dict(os.environ, {}, clear=True):
            assert Settings(_env_file=None).redacted_display()["ESI_ACCESS_TOKEN"] is None


class TestSettingsCaching:
    """Tests for the settings singleton."""

    def test_get_settings_is_cached(self, mock_env_vars: dict[str, str]) -> None:
        """Test that get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, mock_env_vars: dict[str, str]) -> None:
        """Test that clearing the cache picks up new environment values."""
        first = get_settings()

        with patch.dict(os.environ, {"MAX_PAGES": "7"}):
            clear_settings_cache()
            second = get_settings()

        assert first is not second
        assert second.MAX_PAGES == 7
