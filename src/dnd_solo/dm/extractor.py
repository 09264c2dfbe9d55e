"""State-Change Extractor - infers character deltas from the latest exchange.

A second, independent LLM call reads the last few messages and returns
the tool calls implied by the newest Player/DM pair. It is a pure
decision step: nothing is executed here and no state is kept between
turns. Every failure path returns an empty list.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from dnd_solo.core.exceptions import AIControlError, ConfigurationError
from dnd_solo.core.logging import get_logger
from dnd_solo.llm.client import LLMClient, parse_json_object
from dnd_solo.llm.prompts import build_state_extraction_messages
from dnd_solo.models.character import Character
from dnd_solo.models.commands import StateToolCall
from dnd_solo.models.messages import Message


logger = get_logger(__name__)

CONTEXT_WINDOW = 6
"""Messages (three exchanges) shown to the extraction model."""

MIN_MESSAGES = 2


def _is_zero_amount(params: dict[str, Any]) -> bool:
    amount = params.get("amount")
    if amount is None:
        return False
    try:
        return float(amount) == 0
    except (TypeError, ValueError):
        return False


def _coerce_calls(raw: Any) -> list[StateToolCall]:
    if not isinstance(raw, list):
        return []
    calls: list[StateToolCall] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        tool = entry.get("tool")
        params = entry.get("params")
        if not isinstance(tool, str) or not isinstance(params, dict):
            logger.debug("Dropping malformed extracted call", entry=entry)
            continue
        if _is_zero_amount(params):
            continue
        calls.append(StateToolCall(tool=tool, params=params))
    return calls


def extract_state_changes(
    messages: Sequence[Message],
    character: Character,
    llm: LLMClient,
) -> list[StateToolCall]:
    """Return the tool calls implied by the latest exchange.

    Args:
        messages: Full conversation log (oldest first).
        character: Current character, shown to the model as context.
        llm: LLM client for the extraction call.

    Returns:
        Calls in the order the model listed them; ``[]`` when there is
        too little context or anything goes wrong.
    """
    recent = list(messages[-CONTEXT_WINDOW:])
    if len(recent) < MIN_MESSAGES:
        return []

    try:
        text = llm.complete(
            build_state_extraction_messages(recent, character),
            model=llm.settings.extraction_model,
            temperature=llm.settings.tool_temperature,
            json_mode=True,
        )
        answer = parse_json_object(text)
    except (AIControlError, ConfigurationError) as exc:
        logger.warning("State extraction failed", error=str(exc))
        return []

    calls = _coerce_calls(answer.get("tool_calls"))
    logger.info("State changes extracted", count=len(calls))
    return calls


# =============================================================================
# Deterministic De-duplication
# =============================================================================


def _same_amount(a: dict[str, Any], b: dict[str, Any]) -> bool:
    try:
        return float(a.get("amount")) == float(b.get("amount"))
    except (TypeError, ValueError):
        return a.get("amount") == b.get("amount")


def _same_item(a: dict[str, Any], b: dict[str, Any]) -> bool:
    return str(a.get("item_name", "")).strip().lower() == str(b.get("item_name", "")).strip().lower()


def is_duplicate(call: StateToolCall, applied: StateToolCall) -> bool:
    """Whether an extracted call repeats one already applied this turn."""
    if call.tool != applied.tool:
        return False
    if call.tool == "update_currency":
        same_type = str(call.params.get("currency_type", "")).lower() == str(
            applied.params.get("currency_type", "")
        ).lower()
        return same_type and _same_amount(call.params, applied.params)
    if call.tool in ("update_hit_points", "update_experience"):
        return _same_amount(call.params, applied.params)
    if call.tool in ("add_inventory_item", "remove_inventory_item"):
        return _same_item(call.params, applied.params)
    return False


def filter_already_applied(
    calls: Iterable[StateToolCall],
    applied: Sequence[StateToolCall],
) -> list[StateToolCall]:
    """Drop extracted calls that duplicate calls applied during narration.

    Each applied call cancels at most one matching extracted call.
    """
    unmatched = list(applied)
    kept: list[StateToolCall] = []
    for call in calls:
        match = next((done for done in unmatched if is_duplicate(call, done)), None)
        if match is None:
            kept.append(call)
        else:
            unmatched.remove(match)
    return kept


__all__ = [
    "CONTEXT_WINDOW",
    "extract_state_changes",
    "filter_already_applied",
    "is_duplicate",
]
