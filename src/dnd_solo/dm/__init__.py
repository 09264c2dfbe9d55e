"""Dungeon Master layer: tool executor, state extraction, turn orchestration.

Exports:
    execute_tools_from_response: LLM-selected reference lookups.
    extract_state_changes: Infer state deltas from the latest exchange.
    filter_already_applied: Deterministic de-duplication of extracted calls.
    ChatOrchestrator: Runs full turns against the game store.
"""

from __future__ import annotations

from dnd_solo.dm.creation import generate_campaign_outline, generate_character_details
from dnd_solo.dm.executor import (
    ToolCallOutcome,
    ToolExecutionResult,
    execute_tools_from_response,
    run_selected_tools,
)
from dnd_solo.dm.extractor import extract_state_changes, filter_already_applied
from dnd_solo.dm.orchestrator import ChatOrchestrator, FailedCall, TurnSummary


__all__ = [
    "ToolCallOutcome",
    "ToolExecutionResult",
    "execute_tools_from_response",
    "run_selected_tools",
    "extract_state_changes",
    "filter_already_applied",
    "ChatOrchestrator",
    "FailedCall",
    "TurnSummary",
    "generate_character_details",
    "generate_campaign_outline",
]
