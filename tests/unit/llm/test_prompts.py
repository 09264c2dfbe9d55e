"""Tests for prompt assembly."""

from __future__ import annotations

import json
from typing import Any

import pytest

from dnd_solo.llm.prompts import (
    NO_CAMPAIGN,
    build_campaign_outline_messages,
    build_creative_fields_messages,
    build_dm_system_prompt,
    build_state_extraction_messages,
    build_test_tool_selection_messages,
    build_tool_selection_messages,
    proficiency_bonus,
    render_conversation,
)
from dnd_solo.models.character import Character
from dnd_solo.models.messages import Message
from dnd_solo.tools.registry import Tool, ToolParameter, ToolRegistry


@pytest.fixture
def tiny_registry() -> ToolRegistry:
    return ToolRegistry([
        Tool(
            name="getSpellDetails",
            description="Look up a spell.",
            parameters=(ToolParameter(name="spellName", type="string", description="Spell name"),),
        )
    ])


class TestDMSystemPrompt:
    """Tests for the narration instructions."""

    @pytest.mark.parametrize(("level", "bonus"), [(1, 2), (4, 2), (5, 3), (9, 4), (13, 5), (17, 6), (20, 6)])
    def test_proficiency_bonus(self, level: int, bonus: int) -> None:
        assert proficiency_bonus(level) == bonus

    def test_character_sheet_rendered(self, sample_character: Character) -> None:
        prompt = build_dm_system_prompt(sample_character, "# The Sunken Crypt")

        assert "Name: Thorin" in prompt
        assert "Fighter (Champion)" in prompt
        assert "- STR: 16 (+3)" in prompt
        assert "- CHA: 8 (-1)" in prompt
        assert "Longsword, Dagger, Chain Mail, Rope (50 feet)" in prompt
        assert "Gold: 10 gp" in prompt
        assert "# The Sunken Crypt" in prompt
        assert "update_currency" in prompt

    def test_no_campaign(self) -> None:
        assert NO_CAMPAIGN in build_dm_system_prompt(Character())


class TestToolSelectionPrompts:
    """Tests for the tool-selection messages."""

    def test_schema_and_exchange_embedded(self, tiny_registry: ToolRegistry) -> None:
        messages = build_tool_selection_messages(
            tiny_registry.generate_tool_schema_prompt(),
            "I cast fireball",
            "Flames engulf the room.",
        )

        assert messages[0]["role"] == "system"
        assert "- getSpellDetails: Look up a spell." in messages[0]["content"]
        assert '{ "tool": null }' in messages[0]["content"]
        assert messages[1]["content"] == 'User input: "I cast fireball"\nAI response: "Flames engulf the room."'

    def test_example_sets(self, tiny_registry: ToolRegistry) -> None:
        simple = build_test_tool_selection_messages(tiny_registry, "What's a goblin?")[1]["content"]
        complex_ = build_test_tool_selection_messages(tiny_registry, "Compare orcs", complex_examples=True)[1][
            "content"
        ]

        assert 'The user has asked: "What\'s a goblin?"' in simple
        assert "spellName (string) - required" in simple
        assert "Complex examples:" not in simple
        assert "Complex examples:" in complex_


class TestStateExtractionPrompt:
    """Tests for the extraction prompt."""

    def test_latest_exchange_marked(self, sample_messages: list[Message]) -> None:
        text = render_conversation(sample_messages)
        lines = text.split("\n\n")

        assert lines[0] == "Player: I enter the tavern."
        assert lines[1] == "DM: The barkeep nods at you."
        assert lines[2] == ">>> Player: I toss him a gold coin for a drink."
        assert lines[3] == ">>> DM: He bites the coin and pours you an ale."

    def test_character_state_and_rules(self, sample_messages: list[Message], sample_character: Character) -> None:
        system = build_state_extraction_messages(sample_messages, sample_character)[0]["content"]

        assert "- HP: 20/20" in system
        assert "Gold: 10, Silver: 5, Copper: 0" in system
        assert "- XP: 900" in system
        assert "# Anti-Duplication Rules" in system
        assert "Do NOT return tool calls with amount 0." in system
        assert "err on the side of not reporting it" in system
        assert '{ "tool_calls": [] }' in system


class TestCreationPrompts:
    """Tests for the character and campaign generation prompts."""

    def test_creative_fields(self, sample_character: Character) -> None:
        user = build_creative_fields_messages(sample_character, has_race_data=True, has_class_data=False)[1][
            "content"
        ]

        assert json.dumps(sample_character.to_wire(), indent=2) in user
        assert "- Class: None specified" in user
        assert "- Race: Available" in user
        assert '"strength": { "value": 14 }' in user

    def test_campaign_outline(self, sample_character: Character, tiny_registry: ToolRegistry) -> None:
        messages: list[dict[str, Any]] = build_campaign_outline_messages(sample_character, tiny_registry)
        user = messages[1]["content"]

        assert "AVAILABLE D&D TOOLS (1 tools):" in user
        assert "- getSpellDetails: Look up a spell." in user
        assert "Starting level: 3" in user
        assert "10. Campaign Conclusion & Epilogue" in user
