"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from dnd_solo.core.config import (
    LLMSettings,
    ReferenceAPISettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dnd_solo.core.exceptions import ConfigurationError


class TestLLMSettings:
    """Tests for LLMSettings configuration."""

    def test_default_models(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Each LLM role has its own default model."""
        monkeypatch.chdir(tmp_path)
        settings = LLMSettings()

        assert settings.narration_model
        assert settings.tool_selection_model
        assert settings.extraction_model
        assert settings.creative_model
        assert settings.tool_temperature < settings.narration_temperature

    def test_api_key_from_plain_env_var(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """OPENAI_API_KEY is accepted as a fallback name."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DND_SOLO_OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-plain")

        settings = LLMSettings()

        assert settings.openai_api_key is not None
        assert settings.openai_api_key.get_secret_value() == "sk-plain"

    def test_api_key_is_secret(self) -> None:
        """The key never appears in the repr."""
        settings = LLMSettings(openai_api_key="sk-hidden")
        assert "sk-hidden" not in repr(settings)

    def test_max_retries_bounds(self) -> None:
        """max_retries must be at least one attempt."""
        with pytest.raises(ValueError):
            LLMSettings(max_retries=0)


class TestReferenceAPISettings:
    """Tests for ReferenceAPISettings configuration."""

    def test_default_values(self) -> None:
        """Defaults point at the public 2014 ruleset."""
        settings = ReferenceAPISettings()

        assert settings.base_url == "https://www.dnd5eapi.co"
        assert settings.api_prefix == "/api/2014"
        assert settings.cache_ttl_seconds == 3600.0

    def test_trailing_slash_stripped(self) -> None:
        """A trailing slash on the base URL is removed."""
        settings = ReferenceAPISettings(base_url="http://localhost:3000/")
        assert settings.base_url == "http://localhost:3000"

    def test_zero_ttl_with_entries_rejected(self) -> None:
        """A cache whose entries are never fresh is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            ReferenceAPISettings(cache_ttl_seconds=0, cache_max_entries=10)

        assert "cache_ttl_seconds" in str(exc_info.value)

    def test_zero_ttl_without_entries_allowed(self) -> None:
        """Caching can be disabled entirely."""
        settings = ReferenceAPISettings(cache_ttl_seconds=0, cache_max_entries=0)
        assert settings.cache_max_entries == 0


class TestStorageSettings:
    """Tests for StorageSettings configuration."""

    def test_database_path_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """DND_SOLO_DATABASE_PATH overrides the default path."""
        target = tmp_path / "custom.db"
        monkeypatch.setenv("DND_SOLO_DATABASE_PATH", str(target))

        settings = StorageSettings()

        assert settings.database_path == target


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DND_SOLO_LOG_LEVEL", raising=False)
        monkeypatch.delenv("DND_SOLO_DEBUG", raising=False)

        settings = Settings()

        assert settings.app_name == "D&D Solo Adventure"
        assert settings.log_level == "INFO"
        assert settings.is_production
        assert settings.server.port == 8000

    def test_env_overrides(self, mock_env_vars: dict[str, str]) -> None:
        """Environment variables flow into the nested settings."""
        settings = get_settings()

        assert settings.debug is True
        assert not settings.is_production
        assert settings.log_level == "DEBUG"
        assert settings.llm.openai_api_key is not None
        assert settings.storage.database_path == Path(mock_env_vars["DND_SOLO_DATABASE_PATH"])

    def test_invalid_log_level_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid settings surface as ConfigurationError."""
        monkeypatch.setenv("DND_SOLO_LOG_LEVEL", "CHATTY")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "Failed to load application settings" in exc_info.value.message


class TestSettingsCache:
    """Tests for the settings singleton."""

    def test_get_settings_is_cached(self) -> None:
        """Repeated calls return the same instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Clearing the cache picks up new environment values."""
        first = get_settings()
        monkeypatch.setenv("DND_SOLO_APP_NAME", "Renamed")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.app_name == "Renamed"
