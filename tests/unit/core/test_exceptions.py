"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

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


class TestDndSoloError:
    """Tests for the base DndSoloError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = DndSoloError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = DndSoloError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(DndSoloError("Test", details={"x": 1}))
        assert "DndSoloError" in repr_str
        assert "Test" in repr_str


class TestToolExceptions:
    """Tests for tool registry exceptions."""

    def test_tool_name_in_details(self) -> None:
        exc = ToolNotFoundError("Tool getDragon not found", tool_name="getDragon")
        assert exc.details["tool_name"] == "getDragon"
        assert exc.message == "Tool getDragon not found"

    def test_inheritance(self) -> None:
        """All tool errors share ToolError."""
        for cls in (ToolNotFoundError, ToolRegistrationError, CommandDecodeError):
            exc = cls("Error")
            assert isinstance(exc, ToolError)
            assert isinstance(exc, DndSoloError)


class TestReferenceAPIError:
    """Tests for reference API transport errors."""

    def test_request_context(self) -> None:
        exc = ReferenceAPIError(
            "Reference API returned 503",
            category="spells",
            url="https://example.test/api/2014/spells",
            status_code=503,
        )
        assert exc.details == {
            "category": "spells",
            "url": "https://example.test/api/2014/spells",
            "status_code": 503,
        }


class TestAIControlExceptions:
    """Tests for AI control exceptions."""

    def test_ai_control_error_with_provider(self) -> None:
        """Test AIControlError with model and provider."""
        exc = AIControlError("API failed", model="gpt-4o-mini", provider="openai")
        assert exc.details["model"] == "gpt-4o-mini"
        assert exc.details["provider"] == "openai"

    def test_rate_limit_error(self) -> None:
        """Test AIRateLimitError with retry timing."""
        exc = AIRateLimitError("Rate limited", retry_after_seconds=30.5, provider="openrouter")
        assert exc.details["retry_after_seconds"] == 30.5
        assert exc.details["provider"] == "openrouter"

    def test_subclasses(self) -> None:
        for cls in (AIConnectionError, AIResponseError, AIRateLimitError):
            assert issubclass(cls, AIControlError)


class TestConfigurationAndStorage:
    """Tests for configuration and storage exceptions."""

    def test_configuration_error(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Missing API key", config_key="openai_api_key")
        assert exc.details["config_key"] == "openai_api_key"

    def test_storage_error_is_domain_error(self) -> None:
        assert isinstance(StorageError("disk full"), DndSoloError)


class TestExceptionChaining:
    """Tests for exception chaining behavior."""

    def test_raise_from(self) -> None:
        """Test that exceptions can be properly chained."""
        original = ValueError("Original error")

        with pytest.raises(StorageError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise StorageError("Wrapped error") from e

        assert exc_info.value.__cause__ is original
