"""Configuration management for the D&D solo adventure engine.

Centralized configuration using pydantic-settings, supporting environment
variables, .env files, and runtime overrides. API keys are held as
SecretStr.

Example:
    >>> from dnd_solo.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.reference.base_url
    'https://www.dnd5eapi.co'

Environment Variables:
    DND_SOLO_OPENAI_API_KEY (or OPENAI_API_KEY): LLM provider API key
    DND_SOLO_LLM_BASE_URL: Optional OpenAI-compatible endpoint
    DND_SOLO_REFERENCE_BASE_URL: D&D reference API base URL override
    DND_SOLO_REFERENCE_CACHE_TTL_SECONDS: Reference result cache lifetime
    DND_SOLO_DATABASE_PATH: Path to the SQLite game store
    DND_SOLO_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_solo.core.exceptions import ConfigurationError


class LLMSettings(BaseSettings):
    """Configuration for LLM provider connections.

    Attributes:
        openai_api_key: API key for the OpenAI-compatible provider.
        base_url: Optional base URL (e.g. OpenRouter) for the provider.
        narration_model: Model that narrates as Dungeon Master.
        tool_selection_model: Model that picks reference tools from narrative.
        extraction_model: Model that extracts state changes from dialogue.
        creative_model: Model used for character and campaign generation.
        narration_temperature: Sampling temperature for narration.
        tool_temperature: Sampling temperature for tool selection and extraction.
        max_retries: Maximum number of API attempts on transient failures.
        timeout_seconds: API request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SOLO_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("DND_SOLO_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="OpenAI-compatible API key",
    )
    base_url: str | None = Field(
        default=None,
        description="OpenAI-compatible base URL",
    )
    narration_model: str = Field(default="gpt-4.1-mini")
    tool_selection_model: str = Field(default="gpt-4o-mini")
    extraction_model: str = Field(default="gpt-4.1-mini")
    creative_model: str = Field(default="gpt-4.1-nano")
    narration_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    tool_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum API attempts",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="API request timeout",
    )


class ReferenceAPISettings(BaseSettings):
    """Configuration for the public D&D 5e reference API.

    Attributes:
        base_url: Scheme and host of the reference API.
        api_prefix: Path prefix for index endpoints (ruleset version).
        cache_ttl_seconds: How long a fetched entity stays fresh.
        cache_max_entries: Upper bound on cached entities per category.
        timeout_seconds: HTTP timeout for reference requests.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SOLO_REFERENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        default="https://www.dnd5eapi.co",
        description="Reference API base URL",
    )
    api_prefix: str = Field(
        default="/api/2014",
        description="Index endpoint path prefix",
    )
    cache_ttl_seconds: float = Field(
        default=3600.0,
        ge=0,
        description="Reference result cache lifetime",
    )
    cache_max_entries: int = Field(
        default=256,
        ge=0,
        description="Maximum cached entities per category",
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Reference API request timeout",
    )

    @model_validator(mode="after")
    def validate_cache_bounds(self) -> "ReferenceAPISettings":
        """Reject a cache that would hold entries which are never fresh.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If the TTL is zero while entries are kept.
        """
        if self.cache_ttl_seconds == 0 and self.cache_max_entries > 0:
            raise ConfigurationError(
                "cache_ttl_seconds must be positive when cache_max_entries is non-zero",
                config_key="cache_ttl_seconds",
            )
        self.base_url = self.base_url.rstrip("/")
        return self


class StorageSettings(BaseSettings):
    """Configuration for the persisted game store.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SOLO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dnd_solo.db"),
        description="Path to SQLite game store",
    )


class ServerSettings(BaseSettings):
    """Configuration for the HTTP server."""

    model_config = SettingsConfigDict(
        env_prefix="DND_SOLO_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        llm: LLM provider settings.
        reference: Reference API settings.
        storage: Game store settings.
        server: HTTP server settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_SOLO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Solo Adventure",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    llm: LLMSettings = Field(default_factory=LLMSettings)
    reference: ReferenceAPISettings = Field(default_factory=ReferenceAPISettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Primarily useful for testing or when environment variables have
    changed at runtime.
    """
    get_settings.cache_clear()


__all__ = [
    "LLMSettings",
    "ReferenceAPISettings",
    "StorageSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
