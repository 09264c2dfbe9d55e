"""Tests for the state-change extractor and de-duplication."""

from __future__ import annotations

from unittest.mock import MagicMock

from conftest import extraction_answer
from dnd_solo.core.exceptions import AIRateLimitError, ConfigurationError
from dnd_solo.dm.extractor import CONTEXT_WINDOW, extract_state_changes, filter_already_applied, is_duplicate
from dnd_solo.models.character import Character
from dnd_solo.models.commands import StateToolCall
from dnd_solo.models.messages import Message


def call(tool: str, **params: object) -> StateToolCall:
    return StateToolCall(tool=tool, params=dict(params))


class TestExtractStateChanges:
    """Tests for extract_state_changes."""

    def test_too_few_messages(self, mock_llm: MagicMock, sample_character: Character) -> None:
        """A single message is not an exchange; the model is not called."""
        messages = [Message(content="Hello", sender="user")]

        assert extract_state_changes(messages, sample_character, mock_llm) == []
        mock_llm.complete.assert_not_called()

    def test_returns_calls_in_order(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.return_value = extraction_answer(
            {"tool": "update_currency", "params": {"currency_type": "gold", "amount": -1, "reason": "ale"}},
            {"tool": "add_inventory_item", "params": {"item_name": "Ale", "category": "items"}},
        )

        calls = extract_state_changes(sample_messages, sample_character, mock_llm)

        assert [c.tool for c in calls] == ["update_currency", "add_inventory_item"]
        assert calls[0].params["amount"] == -1
        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["model"] == mock_llm.settings.extraction_model
        assert kwargs["temperature"] == mock_llm.settings.tool_temperature
        assert kwargs["json_mode"] is True

    def test_zero_amounts_dropped(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.return_value = extraction_answer(
            {"tool": "update_hit_points", "params": {"amount": 0, "reason": "nothing"}},
            {"tool": "update_experience", "params": {"amount": "0"}},
            {"tool": "update_experience", "params": {"amount": 25}},
        )

        calls = extract_state_changes(sample_messages, sample_character, mock_llm)

        assert calls == [call("update_experience", amount=25)]

    def test_malformed_entries_dropped(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.return_value = (
            '{"tool_calls": ["update_hit_points", {"tool": "update_hit_points"}, '
            '{"tool": "update_hit_points", "params": {"amount": -2}}]}'
        )

        calls = extract_state_changes(sample_messages, sample_character, mock_llm)

        assert calls == [call("update_hit_points", amount=-2)]

    def test_context_window(self, mock_llm: MagicMock, sample_character: Character) -> None:
        """Only the most recent messages are shown to the model."""
        messages = [Message(content=f"message {i}", sender="user" if i % 2 == 0 else "ai") for i in range(10)]
        mock_llm.complete.return_value = extraction_answer()

        extract_state_changes(messages, sample_character, mock_llm)

        system = mock_llm.complete.call_args.args[0][0]["content"]
        assert "message 3" not in system
        assert "message 4" in system
        assert ">>> DM: message 9" in system
        assert CONTEXT_WINDOW == 6

    def test_invalid_json(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.return_value = "The player spent a coin."
        assert extract_state_changes(sample_messages, sample_character, mock_llm) == []

    def test_missing_tool_calls_key(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.return_value = '{"changes": []}'
        assert extract_state_changes(sample_messages, sample_character, mock_llm) == []

    def test_llm_failure(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.side_effect = AIRateLimitError("busy")
        assert extract_state_changes(sample_messages, sample_character, mock_llm) == []

    def test_missing_api_key(
        self, mock_llm: MagicMock, sample_messages: list[Message], sample_character: Character
    ) -> None:
        mock_llm.complete.side_effect = ConfigurationError("LLM API key not configured")
        assert extract_state_changes(sample_messages, sample_character, mock_llm) == []


class TestDeduplication:
    """Tests for is_duplicate and filter_already_applied."""

    def test_currency_needs_same_type_and_amount(self) -> None:
        applied = call("update_currency", currency_type="gold", amount=-1)

        assert is_duplicate(call("update_currency", currency_type="GOLD", amount="-1"), applied)
        assert not is_duplicate(call("update_currency", currency_type="silver", amount=-1), applied)
        assert not is_duplicate(call("update_currency", currency_type="gold", amount=-2), applied)

    def test_hit_points_and_experience_by_amount(self) -> None:
        assert is_duplicate(call("update_hit_points", amount=-5), call("update_hit_points", amount=-5))
        assert not is_duplicate(call("update_hit_points", amount=-5), call("update_hit_points", amount=-4))
        assert is_duplicate(call("update_experience", amount=50), call("update_experience", amount=50.0))

    def test_items_by_name(self) -> None:
        applied = call("add_inventory_item", item_name="Potion of Healing", category="items")

        assert is_duplicate(call("add_inventory_item", item_name="potion of healing ", category="items"), applied)
        assert not is_duplicate(call("remove_inventory_item", item_name="Potion of Healing"), applied)

    def test_filter_already_applied(self) -> None:
        applied = [
            call("update_currency", currency_type="gold", amount=-1),
            call("add_inventory_item", item_name="Ale", category="items"),
        ]
        extracted = [
            call("update_currency", currency_type="gold", amount=-1),
            call("update_hit_points", amount=-2),
            call("add_inventory_item", item_name="ale", category="items"),
        ]

        assert filter_already_applied(extracted, applied) == [call("update_hit_points", amount=-2)]

    def test_nothing_applied(self) -> None:
        extracted = [call("update_hit_points", amount=-2)]
        assert filter_already_applied(extracted, []) == extracted

    def test_repeated_hit_applied_once(self) -> None:
        applied = [call("update_hit_points", amount=-3)]
        extracted = [call("update_hit_points", amount=-3), call("update_hit_points", amount=-3)]

        assert filter_already_applied(extracted, applied) == [call("update_hit_points", amount=-3)]

    def test_second_item_of_same_name_kept(self) -> None:
        applied = [call("add_inventory_item", item_name="Potion", category="items")]
        extracted = [
            call("add_inventory_item", item_name="Potion", category="items"),
            call("add_inventory_item", item_name="potion", category="items"),
        ]

        assert filter_already_applied(extracted, applied) == [
            call("add_inventory_item", item_name="potion", category="items")
        ]
