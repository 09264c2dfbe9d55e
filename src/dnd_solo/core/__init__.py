"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DndSoloError: Base exception for all application errors.
        ToolError, ToolNotFoundError, ToolRegistrationError: Tool registry errors.
        ReferenceAPIError: Reference API transport errors.
        AIControlError and subclasses: LLM provider errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
"""

from __future__ import annotations

from dnd_solo.core.config import (
    LLMSettings,
    ReferenceAPISettings,
    ServerSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dnd_solo.core.exceptions import (
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
    CommandDecodeError,
    ConfigurationError,
    DndSoloError,
    ReferenceAPIError,
    StorageError,
    ToolError,
    ToolNotFoundError,
    ToolRegistrationError,
)
from dnd_solo.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    turn_context,
)


__all__ = [
    # Base exception
    "DndSoloError",
    # Tool exceptions
    "ToolError",
    "ToolNotFoundError",
    "ToolRegistrationError",
    "CommandDecodeError",
    "ReferenceAPIError",
    # AI control exceptions
    "AIControlError",
    "AIConnectionError",
    "AIResponseError",
    "AIRateLimitError",
    # Configuration, storage
    "ConfigurationError",
    "StorageError",
    # Configuration
    "Settings",
    "LLMSettings",
    "ReferenceAPISettings",
    "StorageSettings",
    "ServerSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "turn_context",
]
