"""OpenAI-compatible chat client with retry and error mapping.

All LLM traffic (narration, tool selection, state extraction, creative
generation) goes through LLMClient so that provider errors surface as the
application's AIControlError family.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from openai import APIConnectionError, APIError, APIStatusError, OpenAI, RateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from dnd_solo.core.config import LLMSettings, get_settings
from dnd_solo.core.exceptions import (
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
    ConfigurationError,
)
from dnd_solo.core.logging import get_logger


logger = get_logger(__name__)

ChatMessage = dict[str, Any]


# =============================================================================
# Stream Types
# =============================================================================


@dataclass
class ToolCallRequest:
    """A function call the model requested during a streamed response."""

    id: str
    name: str
    arguments: str = ""

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode the argument JSON; malformed arguments become {}."""
        try:
            value = json.loads(self.arguments or "{}")
        except json.JSONDecodeError:
            logger.warning("Malformed tool call arguments", tool=self.name)
            return {}
        return value if isinstance(value, dict) else {}

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments or "{}"},
        }


@dataclass
class StreamChunk:
    """Either a text delta or the tool calls accumulated over a stream."""

    text: str = ""
    tool_calls: list[ToolCallRequest] = field(default_factory=list)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse a model answer that must be a JSON object.

    Fenced code blocks (```json ... ```) are unwrapped first.

    Raises:
        AIResponseError: If the text is not a JSON object.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIResponseError(
            f"Model returned invalid JSON: {exc.msg}",
            details={"preview": text[:200]},
        ) from exc
    if not isinstance(value, dict):
        raise AIResponseError("Model returned JSON that is not an object", details={"preview": text[:200]})
    return value


# =============================================================================
# Client
# =============================================================================


class LLMClient:
    """Thin wrapper over the OpenAI SDK.

    The SDK client is created lazily so that constructing an LLMClient
    never requires an API key.

    Args:
        settings: LLM settings; defaults to the application settings.
        client: Pre-built SDK client (tests inject a mock here).
        retry_wait: tenacity wait strategy between attempts.
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        *,
        client: Any = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self.settings = settings or get_settings().llm
        self._client = client
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    @property
    def provider(self) -> str:
        return "openrouter" if self.settings.base_url and "openrouter" in self.settings.base_url else "openai"

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            key = self.settings.openai_api_key
            if not key:
                raise ConfigurationError(
                    "LLM API key not configured",
                    config_key="openai_api_key",
                    details={"env_var": "OPENAI_API_KEY"},
                )
            self._client = OpenAI(
                api_key=key.get_secret_value(),
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def _create(self, model: str, **kwargs: Any) -> Any:
        client = self._get_client()

        @retry(
            stop=stop_after_attempt(self.settings.max_retries),
            wait=self._retry_wait,
            retry=retry_if_exception_type((RateLimitError, APIConnectionError)),
            reraise=True,
        )
        def _call() -> Any:
            try:
                return client.chat.completions.create(model=model, **kwargs)
            except RateLimitError:
                logger.warning("Rate limited, retrying...", model=model)
                raise

        try:
            return _call()
        except RateLimitError as exc:
            raise AIRateLimitError(
                f"Rate limit exceeded after {self.settings.max_retries} attempts",
                model=model,
                provider=self.provider,
            ) from exc
        except APIConnectionError as exc:
            raise AIConnectionError(
                f"Failed to connect to AI provider: {exc}",
                model=model,
                provider=self.provider,
            ) from exc
        except APIStatusError as exc:
            raise AIControlError(
                f"AI API error: {exc}",
                model=model,
                provider=self.provider,
                details={"status_code": exc.status_code},
            ) from exc
        except APIError as exc:
            raise AIControlError(f"AI API error: {exc}", model=model, provider=self.provider) from exc

    def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> str:
        """Send a chat completion request and return the text.

        Args:
            messages: Chat messages.
            model: Model identifier.
            temperature: Sampling temperature.
            max_tokens: Optional response token cap.
            json_mode: Ask the provider for a JSON object response.

        Returns:
            Model response text.

        Raises:
            AIControlError: On provider failures (see subclasses).
            AIResponseError: If the completion has no content.
        """
        kwargs: dict[str, Any] = {"messages": list(messages), "temperature": temperature}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._create(model, **kwargs)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AIResponseError("Model returned an empty completion", model=model, provider=self.provider)
        logger.debug("Completion received", model=model, chars=len(content))
        return content

    def complete_json(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float = 0.1,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Complete in JSON mode and parse the answer as an object."""
        text = self.complete(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        return parse_json_object(text)

    def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        model: str,
        temperature: float = 0.8,
        tools: list[dict[str, Any]] | None = None,
    ) -> Iterator[StreamChunk]:
        """Stream a chat completion.

        Yields one chunk per text delta. If the model requested function
        calls, a final chunk carries them with their arguments fully
        accumulated.
        """
        kwargs: dict[str, Any] = {"messages": list(messages), "temperature": temperature, "stream": True}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        stream = self._create(model, **kwargs)
        pending: dict[int, ToolCallRequest] = {}

        try:
            for event in stream:
                if not event.choices:
                    continue
                delta = event.choices[0].delta
                if delta.content:
                    yield StreamChunk(text=delta.content)
                for call in delta.tool_calls or []:
                    request = pending.setdefault(call.index, ToolCallRequest(id="", name=""))
                    if call.id:
                        request.id = call.id
                    if call.function is not None:
                        if call.function.name:
                            request.name += call.function.name
                        if call.function.arguments:
                            request.arguments += call.function.arguments
        except APIConnectionError as exc:
            raise AIConnectionError(
                f"Stream interrupted: {exc}",
                model=model,
                provider=self.provider,
            ) from exc
        except APIStatusError as exc:
            raise AIControlError(
                f"Stream failed: {exc}",
                model=model,
                provider=self.provider,
                details={"status_code": exc.status_code},
            ) from exc
        except APIError as exc:
            # error events sent mid-stream carry no HTTP status
            raise AIControlError(f"Stream failed: {exc}", model=model, provider=self.provider) from exc

        if pending:
            yield StreamChunk(tool_calls=[pending[i] for i in sorted(pending)])


__all__ = [
    "ChatMessage",
    "ToolCallRequest",
    "StreamChunk",
    "LLMClient",
    "parse_json_object",
]
