"""LLM access: OpenAI-compatible client and prompt builders."""

from __future__ import annotations

from dnd_solo.llm.client import (
    ChatMessage,
    LLMClient,
    StreamChunk,
    ToolCallRequest,
    parse_json_object,
)


__all__ = [
    "ChatMessage",
    "LLMClient",
    "StreamChunk",
    "ToolCallRequest",
    "parse_json_object",
]
