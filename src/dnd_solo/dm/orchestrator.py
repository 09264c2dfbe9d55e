"""Chat Orchestrator - one player turn from input to synced character sheet.

A turn runs in strict order:
1. INPUT: the player's message is appended to the log
2. NARRATION: the DM streams its reply; the character-state tools are
   offered as in-stream function calls (agentic loop, bounded rounds)
3. REFERENCE: the tool executor may attach canonical rules data
4. RECONCILIATION: the extractor re-reads the latest exchange, calls
   already applied in-stream are filtered out, the rest are applied
   one by one

The orchestrator is the only writer of the character: every delta is a
load, a pure state-tool application, and a save.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from dnd_solo.core.exceptions import AIControlError, ConfigurationError, DndSoloError
from dnd_solo.core.logging import get_logger
from dnd_solo.dm.executor import execute_tools_from_response
from dnd_solo.dm.extractor import extract_state_changes, filter_already_applied
from dnd_solo.llm.client import ChatMessage, LLMClient, ToolCallRequest
from dnd_solo.llm.prompts import build_dm_system_prompt
from dnd_solo.models.character import Character
from dnd_solo.models.commands import STATE_TOOL_NAMES, StateToolCall
from dnd_solo.models.messages import Message, Notification
from dnd_solo.storage.database import GameStore
from dnd_solo.tools.character import StateChangeResult, character_tool_schemas, run_state_tool
from dnd_solo.tools.formatting import format_tool_results
from dnd_solo.tools.reference import REFERENCE_TOOL_NAMES
from dnd_solo.tools.registry import ToolRegistry


logger = get_logger(__name__)

MAX_TOOL_ROUNDS = 5
NARRATION_ERROR = "Sorry, I encountered an error. Please try again."


# =============================================================================
# Turn Results
# =============================================================================


@dataclass
class FailedCall:
    """A state tool call that could not be applied."""

    call: StateToolCall
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.call.tool, "params": self.call.params, "error": self.error}


@dataclass
class TurnSummary:
    """Everything a turn changed, yielded after the narration.

    Attributes:
        narration: Final DM message as stored (including reference data).
        applied: Calls the DM made in-stream and that succeeded.
        reconciled: Calls recovered by the extractor and applied afterwards.
        failed: Calls that were rejected or raised.
        notifications: Toasts for every applied change, in order.
        reference_tools: Reference tools whose data was appended.
        skipped_reconciliation: True when the bookmark prevented re-extraction.
        error: Narration failure message, if the turn could not complete.
    """

    narration: str = ""
    applied: list[StateToolCall] = field(default_factory=list)
    reconciled: list[StateToolCall] = field(default_factory=list)
    failed: list[FailedCall] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    reference_tools: list[str] = field(default_factory=list)
    skipped_reconciliation: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "narration": self.narration,
            "applied": [c.model_dump() for c in self.applied],
            "reconciled": [c.model_dump() for c in self.reconciled],
            "failed": [f.to_dict() for f in self.failed],
            "notifications": [n.model_dump() for n in self.notifications],
            "referenceTools": self.reference_tools,
            "skippedReconciliation": self.skipped_reconciliation,
            "error": self.error,
        }


# =============================================================================
# Orchestrator
# =============================================================================


class ChatOrchestrator:
    """Runs player turns against a game store.

    Args:
        store: Game store (character, log, bookmark).
        llm: LLM client for narration, tool selection and extraction.
        registry: Reference tools offered to the tool executor.
        notify: Optional callback receiving each toast as it happens.
        lookup_references: Run the tool executor after narration.
        max_tool_rounds: Upper bound on in-stream function-call rounds.
    """

    def __init__(
        self,
        store: GameStore,
        llm: LLMClient,
        registry: ToolRegistry,
        *,
        notify: Callable[[Notification], None] | None = None,
        lookup_references: bool = True,
        max_tool_rounds: int = MAX_TOOL_ROUNDS,
    ) -> None:
        self.store = store
        self.llm = llm
        self.registry = registry
        self.notify = notify
        self.lookup_references = lookup_references
        self.max_tool_rounds = max_tool_rounds

    # -------------------------------------------------------------------------
    # Prompt assembly
    # -------------------------------------------------------------------------

    @staticmethod
    def _chat_messages(
        history: Sequence[Message],
        character: Character,
        campaign_outline: str | None,
    ) -> list[ChatMessage]:
        chat: list[ChatMessage] = [
            {"role": "system", "content": build_dm_system_prompt(character, campaign_outline)}
        ]
        for message in history:
            role = "user" if message.sender == "user" else "assistant"
            chat.append({"role": role, "content": message.content})
        return chat

    # -------------------------------------------------------------------------
    # Stateless narration (POST /api/chat)
    # -------------------------------------------------------------------------

    def stream_narration(
        self,
        messages: Sequence[Message],
        character: Character,
        campaign_outline: str | None = None,
    ) -> Iterator[str]:
        """Stream DM narration for a client-held conversation. No tools."""
        chat = self._chat_messages(messages, character, campaign_outline)
        for chunk in self.llm.stream(
            chat,
            model=self.llm.settings.narration_model,
            temperature=self.llm.settings.narration_temperature,
        ):
            if chunk.text:
                yield chunk.text

    # -------------------------------------------------------------------------
    # State application
    # -------------------------------------------------------------------------

    def _apply(self, call: StateToolCall, summary: TurnSummary) -> StateChangeResult | None:
        """Load, apply, save. Failures are recorded, never raised."""
        try:
            result = run_state_tool(self.store.load_character(), call.tool, call.params)
            if result.success:
                self.store.save_character(result.character)
        except DndSoloError as exc:
            logger.error("State tool crashed", tool=call.tool, error=str(exc))
            summary.failed.append(FailedCall(call=call, error=exc.message))
            return None

        if not result.success:
            logger.info("State tool rejected", tool=call.tool, error=result.error)
            summary.failed.append(FailedCall(call=call, error=result.error or "unknown error"))
            return result

        if result.notification is not None:
            summary.notifications.append(result.notification)
            if self.notify:
                self.notify(result.notification)
        return result

    def _handle_function_call(self, request: ToolCallRequest, summary: TurnSummary) -> dict[str, Any]:
        if request.name not in STATE_TOOL_NAMES:
            logger.warning("Model called an unknown function", tool=request.name)
            return {"success": False, "error": f'Tool "{request.name}" is not available'}

        call = StateToolCall(tool=request.name, params=request.parsed_arguments())
        result = self._apply(call, summary)
        if result is None:
            return {"success": False, "error": summary.failed[-1].error}
        if result.success:
            summary.applied.append(call)
        return result.to_payload()

    # -------------------------------------------------------------------------
    # Full turn
    # -------------------------------------------------------------------------

    def _narrate_with_tools(self, chat: list[ChatMessage], summary: TurnSummary) -> Iterator[str]:
        """Agentic loop: stream, run requested functions, continue."""
        tools = character_tool_schemas()
        for round_number in range(1, self.max_tool_rounds + 1):
            text_parts: list[str] = []
            requests: list[ToolCallRequest] = []
            for chunk in self.llm.stream(
                chat,
                model=self.llm.settings.narration_model,
                temperature=self.llm.settings.narration_temperature,
                tools=tools,
            ):
                if chunk.text:
                    text_parts.append(chunk.text)
                    yield chunk.text
                requests.extend(chunk.tool_calls)

            if not requests:
                return

            logger.info("In-stream tool calls", round=round_number, tools=[r.name for r in requests])
            chat.append({
                "role": "assistant",
                "content": "".join(text_parts) or None,
                "tool_calls": [r.to_message() for r in requests],
            })
            for request in requests:
                payload = self._handle_function_call(request, summary)
                chat.append({
                    "role": "tool",
                    "tool_call_id": request.id,
                    "content": json.dumps(payload),
                })

        logger.warning("Tool round limit reached", rounds=self.max_tool_rounds)

    def play_turn(self, user_input: str) -> Iterator[str | TurnSummary]:
        """Run one stateful turn.

        Yields narration text chunks as they stream, then possibly a block
        of formatted reference data, and finally a TurnSummary.
        """
        history = self.store.messages()
        self.store.add_message(user_input, "user")
        character = self.store.load_character()
        chat = self._chat_messages(history, character, self.store.get_campaign_outline())
        chat.append({"role": "user", "content": user_input})

        summary = TurnSummary()
        parts: list[str] = []
        try:
            for text in self._narrate_with_tools(chat, summary):
                parts.append(text)
                yield text
        except (AIControlError, ConfigurationError) as exc:
            logger.error("Narration failed", error=str(exc))
            summary.error = exc.message
            summary.narration = NARRATION_ERROR
            self.store.add_message(NARRATION_ERROR, "ai")
            yield NARRATION_ERROR
            yield summary
            return

        narration = "".join(parts)
        if self.lookup_references and narration:
            lookup = execute_tools_from_response(
                narration,
                user_input,
                self.registry,
                self.llm,
                tool_names=list(REFERENCE_TOOL_NAMES),
            )
            if lookup.tool_used:
                extra = format_tool_results(lookup.successes)
                summary.reference_tools = [name for name, _ in lookup.successes]
                narration += extra
                yield extra

        summary.narration = narration
        self.store.add_message(narration, "ai")

        reconciliation = self.reconcile(applied=summary.applied)
        summary.reconciled = reconciliation.reconciled
        summary.failed.extend(reconciliation.failed)
        summary.notifications.extend(reconciliation.notifications)
        summary.skipped_reconciliation = reconciliation.skipped_reconciliation
        yield summary

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------

    def reconcile(
        self,
        messages: Sequence[Message] | None = None,
        *,
        applied: Sequence[StateToolCall] = (),
    ) -> TurnSummary:
        """Extract and apply state changes from the latest exchange.

        Each exchange is extracted at most once: the store's bookmark
        records how many messages have been reconciled, and a log that
        has not grown past it is skipped.

        Args:
            messages: Conversation log; defaults to the stored log.
            applied: Calls already applied this turn, filtered out of the result.

        Returns:
            Summary holding the reconciled and failed calls.
        """
        log = list(messages) if messages is not None else self.store.messages()
        summary = TurnSummary()

        bookmark = self.store.reconciled_through()
        if len(log) <= bookmark:
            logger.info("Exchange already reconciled", messages=len(log), bookmark=bookmark)
            summary.skipped_reconciliation = True
            return summary

        calls = extract_state_changes(log, self.store.load_character(), self.llm)
        calls = filter_already_applied(calls, applied)
        for call in calls:
            result = self._apply(call, summary)
            if result is not None and result.success:
                summary.reconciled.append(call)

        self.store.set_reconciled_through(len(log))
        logger.info(
            "Reconciliation complete",
            applied=len(summary.reconciled),
            failed=len(summary.failed),
        )
        return summary


__all__ = [
    "MAX_TOOL_ROUNDS",
    "FailedCall",
    "TurnSummary",
    "ChatOrchestrator",
]
