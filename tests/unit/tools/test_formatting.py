"""Tests for markdown rendering of tool results."""

from __future__ import annotations

from conftest import FIREBALL
from dnd_solo.tools.formatting import FORMATTERS, format_tool_result, format_tool_results
from dnd_solo.tools.reference import REFERENCE_TOOL_NAMES


GOBLIN = {
    "name": "Goblin",
    "size": "Small",
    "type": "humanoid",
    "armor_class": [{"type": "armor", "value": 15, "armor": [{"name": "Leather Armor"}, {"name": "Shield"}]}],
    "hit_points": 7,
    "hit_dice": "2d6",
    "speed": {"walk": "30 ft."},
    "strength": 8,
    "dexterity": 14,
    "challenge_rating": 0.25,
    "actions": [
        {
            "name": "Scimitar",
            "desc": "Melee Weapon Attack.",
            "attack_bonus": 4,
            "damage": [{"damage_dice": "1d6+2", "damage_type": {"name": "Slashing"}}],
        }
    ],
}


class TestFormatToolResult:
    """Tests for format_tool_result."""

    def test_every_reference_tool_has_a_formatter(self) -> None:
        assert set(FORMATTERS) == set(REFERENCE_TOOL_NAMES)

    def test_spell(self) -> None:
        text = format_tool_result("getSpellDetails", FIREBALL)

        assert text.startswith("\n\n**Spell Information**:")
        assert "**Level**: Level 3" in text
        assert "**School**: Evocation" in text
        assert "**Components**: V, S, M (A tiny ball of bat guano and sulfur.)" in text
        assert "**Classes**: Sorcerer, Wizard" in text

    def test_cantrip(self) -> None:
        text = format_tool_result("getSpellDetails", {"name": "Light", "level": 0})
        assert "**Level**: Cantrip" in text

    def test_monster(self) -> None:
        text = format_tool_result("getMonsterStats", GOBLIN)

        assert "**Monster Information**:" in text
        assert "**Armor Class**: 15 (armor) (Leather Armor, Shield)" in text
        assert "**Speed**: walk: 30 ft." in text
        assert "**STR**: 8 **DEX**: 14" in text
        assert "  **Scimitar**: Melee Weapon Attack." in text
        assert "    Attack Bonus: +4" in text
        assert "    Damage: 1d6+2 Slashing" in text

    def test_missing_fields_skipped(self) -> None:
        """Absent fields never render as empty labels."""
        text = format_tool_result("getEquipmentDetails", {"name": "Rope"})

        assert "**Name**: Rope" in text
        assert "**Cost**" not in text
        assert "**Weight**" not in text

    def test_class_hit_die(self) -> None:
        text = format_tool_result(
            "getClassDetails",
            {"name": "Wizard", "hit_die": 6, "subclasses": [{"name": "Evocation"}]},
        )
        assert "**Hit Die**: d6" in text
        assert "**Subclasses**: Evocation" in text

    def test_description_only_categories(self) -> None:
        text = format_tool_result("getConditionDetails", {"name": "Blinded", "desc": ["Can't see.", "Fails checks."]})

        assert text.startswith("\n\n**Condition Information**:")
        assert "**Description**:\nCan't see.\nFails checks." in text

    def test_error_result(self) -> None:
        text = format_tool_result("getSpellDetails", {"error": True, "message": 'Spell "X" not found.'})
        assert text == '\n\n**Tool Error**: Spell "X" not found.'

    def test_unknown_tool_dumps_json(self) -> None:
        text = format_tool_result("update_hit_points", {"success": True, "newHP": 3})

        assert text.startswith("\n\n**Tool Result**: {")
        assert '"newHP": 3' in text

    def test_non_object_payload(self) -> None:
        assert format_tool_result("getSpellDetails", ["Fireball"]) == "\n\n**Spell Data**: Unable to format result"

    def test_several_results(self) -> None:
        text = format_tool_results(
            [("getSpellDetails", FIREBALL), ("getConditionDetails", {"name": "Prone"})]
        )

        assert text.index("Spell Information") < text.index("Condition Information")
