"""Custom exception hierarchy for the D&D solo adventure engine.

All exceptions inherit from DndSoloError, enabling unified error handling
at the application boundary while preserving domain-specific context in
the ``details`` dictionary.

Example:
    >>> from dnd_solo.core.exceptions import ToolNotFoundError
    >>> raise ToolNotFoundError("Tool getDragon not found", tool_name="getDragon")
"""

from __future__ import annotations

from typing import Any


class DndSoloError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Tool Domain Exceptions
# =============================================================================


class ToolError(DndSoloError):
    """Base exception for tool registry and tool execution errors."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize tool error with tool context.

        Args:
            message: Human-readable error description.
            tool_name: Name of the tool involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if tool_name:
            combined_details["tool_name"] = tool_name
        super().__init__(message, details=combined_details)


class ToolNotFoundError(ToolError):
    """Raised when a tool is executed by a name that is not registered."""


class ToolRegistrationError(ToolError):
    """Raised when a tool is registered under a name that is already taken."""


class CommandDecodeError(ToolError):
    """Raised when an LLM-produced tool call cannot be decoded into a command.

    The message is safe to surface to the caller as a structured error.
    """


class ReferenceAPIError(DndSoloError):
    """Raised when the D&D reference API cannot be reached or answers non-2xx.

    Reference tools convert this into a structured result; it never escapes
    the tool boundary.
    """

    def __init__(
        self,
        message: str,
        *,
        category: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize reference API error with request context.

        Args:
            message: Human-readable error description.
            category: Reference category (endpoint) being queried.
            url: URL that failed.
            status_code: HTTP status code, when a response was received.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if category:
            combined_details["category"] = category
        if url:
            combined_details["url"] = url
        if status_code is not None:
            combined_details["status_code"] = status_code
        super().__init__(message, details=combined_details)


# =============================================================================
# AI Control Domain Exceptions
# =============================================================================


class AIControlError(DndSoloError):
    """Base exception for all AI-related errors.

    Raised when there are issues with AI model interactions, including
    API calls, response parsing, or content generation.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AI control error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            provider: Name of the AI provider (e.g., 'openai', 'openrouter').
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class AIConnectionError(AIControlError):
    """Raised when connection to an AI service fails.

    This typically occurs due to network issues, invalid API keys,
    or service unavailability.
    """


class AIResponseError(AIControlError):
    """Raised when an AI response cannot be processed.

    This includes empty completions and bodies that are not the
    JSON object the caller asked for.
    """


class AIRateLimitError(AIControlError):
    """Raised when AI API rate limits are exceeded."""

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize rate limit error with retry context.

        Args:
            message: Human-readable error description.
            retry_after_seconds: Seconds to wait before retrying.
            model: Name of the AI model involved.
            provider: Name of the AI provider.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, model=model, provider=provider, details=combined_details)


# =============================================================================
# Configuration & Storage Exceptions
# =============================================================================


class ConfigurationError(DndSoloError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class StorageError(DndSoloError):
    """Raised when the persisted game store cannot be read or written."""


__all__ = [
    "DndSoloError",
    "ToolError",
    "ToolNotFoundError",
    "ToolRegistrationError",
    "CommandDecodeError",
    "ReferenceAPIError",
    "AIControlError",
    "AIConnectionError",
    "AIResponseError",
    "AIRateLimitError",
    "ConfigurationError",
    "StorageError",
]
