"""Tool Executor - lets the LLM pick reference tools for a finished reply.

The executor is advisory. A malformed answer or a hallucinated tool name
degrades to "no information retrieved"; nothing here raises to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dnd_solo.core.exceptions import AIControlError, ConfigurationError
from dnd_solo.core.logging import get_logger
from dnd_solo.llm.client import LLMClient, parse_json_object
from dnd_solo.llm.prompts import build_tool_selection_messages
from dnd_solo.tools.registry import ToolRegistry


logger = get_logger(__name__)

TOOL_SELECTION_MAX_TOKENS = 300


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ToolCallOutcome:
    """One selected tool and what running it produced."""

    tool_name: str
    result: Any = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"toolName": self.tool_name, "error": self.error}
        return {"toolName": self.tool_name, "result": self.result}


@dataclass
class ToolExecutionResult:
    """Envelope returned by execute_tools_from_response.

    Attributes:
        tool_used: True when at least one selected tool succeeded.
        tool_name: Name of the first successful tool.
        result: Result of the first successful tool.
        all_results: Every selected tool in selection order.
        error: Why nothing useful came back, when that is the case.
    """

    tool_used: bool = False
    tool_name: str | None = None
    result: Any = None
    all_results: list[ToolCallOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def successes(self) -> list[tuple[str, Any]]:
        return [(o.tool_name, o.result) for o in self.all_results if o.succeeded]

    def to_dict(self) -> dict[str, Any]:
        return {
            "toolUsed": self.tool_used,
            "toolName": self.tool_name,
            "result": self.result,
            "allResults": [o.to_dict() for o in self.all_results],
            "error": self.error,
        }


# =============================================================================
# Selection Parsing
# =============================================================================


def parse_tool_selection(answer: dict[str, Any]) -> list[tuple[str, dict[str, Any]]]:
    """Normalize ``{tool, args}`` and ``{tools: [...]}`` answers.

    Entries without a string tool name are dropped; ``{"tool": null}``
    yields an empty list.
    """
    if isinstance(answer.get("tools"), list):
        entries = answer["tools"]
    elif "tool" in answer:
        entries = [answer]
    else:
        entries = []

    selections: list[tuple[str, dict[str, Any]]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("tool")
        if not isinstance(name, str) or not name:
            continue
        args = entry.get("args")
        selections.append((name, args if isinstance(args, dict) else {}))
    return selections


def run_selected_tools(
    selections: list[tuple[str, dict[str, Any]]],
    registry: ToolRegistry,
) -> ToolExecutionResult:
    """Execute selections in order and fold them into one envelope."""
    if not selections:
        return ToolExecutionResult(tool_used=False)

    outcomes: list[ToolCallOutcome] = []
    for name, args in selections:
        if not registry.has(name):
            logger.warning("LLM selected unknown tool", tool=name)
            outcomes.append(ToolCallOutcome(tool_name=name, error=f'Tool "{name}" is not registered'))
            continue
        try:
            result = registry.execute(name, args)
        except Exception as exc:
            logger.exception("Tool execution failed", tool=name)
            outcomes.append(ToolCallOutcome(tool_name=name, error=f'Failed to execute tool "{name}": {exc}'))
            continue
        if isinstance(result, dict) and result.get("error"):
            message = result.get("message") or str(result["error"])
            outcomes.append(ToolCallOutcome(tool_name=name, result=result, error=message))
            continue
        outcomes.append(ToolCallOutcome(tool_name=name, result=result))

    first = next((o for o in outcomes if o.succeeded), None)
    if first is None:
        errors = ", ".join(o.error or "" for o in outcomes)
        return ToolExecutionResult(
            tool_used=False,
            all_results=outcomes,
            error=f"All tools failed: {errors}",
        )
    return ToolExecutionResult(
        tool_used=True,
        tool_name=first.tool_name,
        result=first.result,
        all_results=outcomes,
    )


# =============================================================================
# Executor
# =============================================================================


def execute_tools_from_response(
    ai_response: str,
    user_input: str,
    registry: ToolRegistry,
    llm: LLMClient,
    *,
    tool_names: list[str] | None = None,
) -> ToolExecutionResult:
    """Ask the tool-selection model which tools fit this exchange and run them.

    Args:
        ai_response: The DM's narration.
        user_input: The player's input.
        registry: Tools that may be selected and executed.
        llm: LLM client for the selection call.
        tool_names: Only offer (and only run) these tools; default is every tool.

    Returns:
        The execution envelope; failures are encoded in ``error``.
    """
    if tool_names is not None:
        wanted = set(tool_names)
        registry = ToolRegistry(t for t in registry.all_tools() if t.name in wanted)

    messages = build_tool_selection_messages(
        registry.generate_tool_schema_prompt(),
        user_input,
        ai_response,
    )
    try:
        text = llm.complete(
            messages,
            model=llm.settings.tool_selection_model,
            temperature=llm.settings.tool_temperature,
            max_tokens=TOOL_SELECTION_MAX_TOKENS,
            json_mode=True,
        )
    except (AIControlError, ConfigurationError) as exc:
        logger.warning("Tool selection call failed", error=str(exc))
        return ToolExecutionResult(tool_used=False, error=f"LLM tool selection failed: {exc.message}")

    logger.debug("Raw tool selection response", response=text[:300])
    try:
        answer = parse_json_object(text)
    except AIControlError:
        logger.warning("Tool selection was not valid JSON", preview=text[:200])
        return ToolExecutionResult(tool_used=False, error="Failed to parse LLM tool selection response.")

    return run_selected_tools(parse_tool_selection(answer), registry)


__all__ = [
    "ToolCallOutcome",
    "ToolExecutionResult",
    "parse_tool_selection",
    "run_selected_tools",
    "execute_tools_from_response",
]
