"""Markdown rendering of reference-tool results.

The rendered block is appended to DM narration, so it opens with a blank
line and a bold heading. Detail payloads are consumed opaquely: absent
fields are skipped, never reported as missing.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any


def _names(items: Any, key: str = "name") -> str:
    if not isinstance(items, list):
        return ""
    return ", ".join(str(item.get(key, "")) for item in items if isinstance(item, dict) and item.get(key))


def _text(desc: Any) -> str:
    if isinstance(desc, list):
        return "\n".join(str(d) for d in desc)
    return str(desc) if desc else ""


def _nested_name(value: Any) -> str:
    return str(value.get("name", "")) if isinstance(value, dict) else ""


class _Card:
    """Accumulates ``**Label**: value`` lines under a heading."""

    def __init__(self, heading: str) -> None:
        self.lines = [f"\n\n**{heading}**:"]

    def add(self, label: str, value: Any, suffix: str = "") -> None:
        if value not in (None, "", [], {}):
            self.lines.append(f"**{label}**: {value}{suffix}")

    def block(self, label: str, text: str) -> None:
        if text:
            self.lines.append(f"**{label}**:\n{text}")

    def raw(self, line: str) -> None:
        self.lines.append(line)

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


# =============================================================================
# Category Formatters
# =============================================================================


def format_monster(monster: dict[str, Any]) -> str:
    card = _Card("Monster Information")
    card.add("Name", monster.get("name"))
    card.add("Size", monster.get("size"))
    card.add("Type", monster.get("type"))
    card.add("Alignment", monster.get("alignment"))

    armor_class = monster.get("armor_class")
    if isinstance(armor_class, list):
        parts = []
        for ac in armor_class:
            if not isinstance(ac, dict):
                continue
            part = f"{ac.get('value')} ({ac.get('type', 'natural')})"
            if ac.get("armor"):
                part += f" ({_names(ac['armor'])})"
            parts.append(part)
        card.add("Armor Class", ", ".join(parts))
    else:
        card.add("Armor Class", armor_class)

    card.add("Hit Points", monster.get("hit_points"))
    if monster.get("hit_dice"):
        card.add("Hit Dice", monster["hit_dice"])

    speed = monster.get("speed")
    if isinstance(speed, dict):
        card.add("Speed", ", ".join(f"{kind}: {value}" for kind, value in speed.items()))
    else:
        card.add("Speed", speed)

    abilities = [
        f"**{abbr}**: {monster[key]}"
        for abbr, key in (
            ("STR", "strength"),
            ("DEX", "dexterity"),
            ("CON", "constitution"),
            ("INT", "intelligence"),
            ("WIS", "wisdom"),
            ("CHA", "charisma"),
        )
        if monster.get(key)
    ]
    if abilities:
        card.raw(" ".join(abilities))

    proficiencies = monster.get("proficiencies")
    if isinstance(proficiencies, list) and proficiencies:
        card.add(
            "Proficiencies",
            ", ".join(
                f"{_nested_name(p.get('proficiency'))} +{p.get('value')}".strip()
                for p in proficiencies
                if isinstance(p, dict)
            ),
        )

    senses = monster.get("senses")
    if isinstance(senses, dict):
        card.add("Senses", ", ".join(f"{k.replace('_', ' ')}: {v}" for k, v in senses.items()))
    card.add("Languages", monster.get("languages"))
    card.add("Challenge Rating", monster.get("challenge_rating"))

    for heading, key in (("Special Abilities", "special_abilities"), ("Actions", "actions")):
        entries = monster.get(key)
        if not isinstance(entries, list) or not entries:
            continue
        card.raw(f"**{heading}**:")
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            card.raw(f"  **{entry.get('name', '')}**: {entry.get('desc', '')}")
            if entry.get("attack_bonus"):
                card.raw(f"    Attack Bonus: +{entry['attack_bonus']}")
            damage = entry.get("damage")
            if isinstance(damage, list) and damage:
                rolls = [
                    f"{d.get('damage_dice', '')} {_nested_name(d.get('damage_type'))}".strip()
                    for d in damage
                    if isinstance(d, dict)
                ]
                card.raw(f"    Damage: {', '.join(r for r in rolls if r)}")
    return card.render()


def format_spell(spell: dict[str, Any]) -> str:
    card = _Card("Spell Information")
    card.add("Name", spell.get("name"))
    level = spell.get("level")
    if level is not None:
        card.add("Level", "Cantrip" if level == 0 else f"Level {level}")
    card.add("School", _nested_name(spell.get("school")))
    card.add("Casting Time", spell.get("casting_time"))
    card.add("Range", spell.get("range"))
    components = spell.get("components")
    if isinstance(components, list):
        rendered = ", ".join(components)
        if spell.get("material"):
            rendered += f" ({spell['material']})"
        card.add("Components", rendered)
    duration = spell.get("duration")
    if duration and spell.get("concentration"):
        duration = f"Concentration, {duration}"
    card.add("Duration", duration)
    if spell.get("ritual"):
        card.add("Ritual", "Yes")
    card.block("Description", _text(spell.get("desc")))
    card.block("At Higher Levels", _text(spell.get("higher_level")))
    card.add("Classes", _names(spell.get("classes")))
    return card.render()


def format_equipment(equipment: dict[str, Any]) -> str:
    card = _Card("Equipment Information")
    card.add("Name", equipment.get("name"))
    card.add("Category", _nested_name(equipment.get("equipment_category")))
    cost = equipment.get("cost")
    if isinstance(cost, dict) and cost.get("quantity") is not None:
        card.add("Cost", f"{cost['quantity']} {cost.get('unit', '')}".strip())
    card.add("Weight", equipment.get("weight"), " lb")

    card.add("Weapon Category", equipment.get("weapon_category"))
    card.add("Weapon Range", equipment.get("weapon_range"))
    damage = equipment.get("damage")
    if isinstance(damage, dict) and damage.get("damage_dice"):
        card.add("Damage", f"{damage['damage_dice']} {_nested_name(damage.get('damage_type'))}".strip())
    weapon_range = equipment.get("range")
    if isinstance(weapon_range, dict) and weapon_range.get("normal"):
        rendered = f"{weapon_range['normal']} ft"
        if weapon_range.get("long"):
            rendered += f" / {weapon_range['long']} ft"
        card.add("Range", rendered)
    card.add("Properties", _names(equipment.get("properties")))

    card.add("Armor Category", equipment.get("armor_category"))
    armor_class = equipment.get("armor_class")
    if isinstance(armor_class, dict) and armor_class.get("base"):
        rendered = str(armor_class["base"])
        if armor_class.get("dex_bonus"):
            rendered += " + DEX modifier"
            if armor_class.get("max_bonus"):
                rendered += f" (max +{armor_class['max_bonus']})"
        card.add("Armor Class", rendered)
    card.add("Strength Requirement", equipment.get("str_minimum"))
    if equipment.get("stealth_disadvantage"):
        card.add("Stealth Disadvantage", "Yes")

    card.add("Rarity", _nested_name(equipment.get("rarity")))
    card.block("Description", _text(equipment.get("desc")))
    return card.render()


def format_class(class_data: dict[str, Any]) -> str:
    card = _Card("Class Information")
    card.add("Name", class_data.get("name"))
    if class_data.get("hit_die"):
        card.add("Hit Die", f"d{class_data['hit_die']}")

    choices = class_data.get("proficiency_choices")
    if isinstance(choices, list) and choices:
        card.raw("**Proficiency Choices**:")
        for number, choice in enumerate(choices, start=1):
            if isinstance(choice, dict) and choice.get("desc"):
                card.raw(f"  {number}. {choice['desc']}")
            elif isinstance(choice, dict):
                card.raw(f"  {number}. Choose {choice.get('choose', 1)}")

    card.add("Proficiencies", _names(class_data.get("proficiencies")))
    card.add("Saving Throw Proficiencies", _names(class_data.get("saving_throws")))

    starting = class_data.get("starting_equipment")
    if isinstance(starting, list) and starting:
        card.raw("**Starting Equipment**:")
        for item in starting:
            if isinstance(item, dict):
                card.raw(f"  - {item.get('quantity', 1)}x {_nested_name(item.get('equipment'))}")

    spellcasting = class_data.get("spellcasting")
    if isinstance(spellcasting, dict):
        card.add("Spellcasting Ability", _nested_name(spellcasting.get("spellcasting_ability")))
    card.add("Subclasses", _names(class_data.get("subclasses")))
    return card.render()


def format_race(race: dict[str, Any]) -> str:
    card = _Card("Race Information")
    card.add("Name", race.get("name"))
    card.add("Speed", race.get("speed"), " feet")
    bonuses = race.get("ability_bonuses")
    if isinstance(bonuses, list) and bonuses:
        card.add(
            "Ability Score Bonuses",
            ", ".join(
                f"{_nested_name(b.get('ability_score'))} +{b.get('bonus')}"
                for b in bonuses
                if isinstance(b, dict)
            ),
        )
    card.add("Age", race.get("age"))
    card.add("Alignment", race.get("alignment"))
    card.add("Size", race.get("size"))
    card.add("Size Description", race.get("size_description"))
    card.add("Starting Proficiencies", _names(race.get("starting_proficiencies")))
    card.add("Languages", _names(race.get("languages")))
    card.add("Language Description", race.get("language_desc"))
    card.add("Traits", _names(race.get("traits")))
    card.add("Subraces", _names(race.get("subraces")))
    return card.render()


def format_feat(feat: dict[str, Any]) -> str:
    card = _Card("Feat Information")
    card.add("Name", feat.get("name"))
    prerequisites = feat.get("prerequisites")
    if isinstance(prerequisites, list) and prerequisites:
        rendered = []
        for prereq in prerequisites:
            if not isinstance(prereq, dict):
                continue
            if prereq.get("ability_score"):
                rendered.append(f"{_nested_name(prereq['ability_score'])} {prereq.get('minimum_score', 0)}+")
            elif prereq.get("level"):
                rendered.append(f"Level {prereq['level']}")
            else:
                rendered.append("Unknown prerequisite")
        card.add("Prerequisites", ", ".join(rendered))
    card.block("Description", _text(feat.get("desc")))
    return card.render()


def format_background(background: dict[str, Any]) -> str:
    card = _Card("Background Information")
    card.add("Name", background.get("name"))
    card.add("Starting Proficiencies", _names(background.get("starting_proficiencies")))

    starting = background.get("starting_equipment")
    if isinstance(starting, list) and starting:
        card.raw("**Starting Equipment**:")
        for item in starting:
            if isinstance(item, dict):
                card.raw(f"  - {item.get('quantity', 1)}x {_nested_name(item.get('equipment'))}")
            else:
                card.raw(f"  - {item}")

    feature = background.get("feature")
    if isinstance(feature, dict) and feature.get("name"):
        card.add("Feature", feature["name"])
        card.block("Feature Description", _text(feature.get("desc")))

    for label, key in (
        ("Personality Traits", "personality_traits"),
        ("Ideals", "ideals"),
        ("Bonds", "bonds"),
        ("Flaws", "flaws"),
    ):
        option = background.get(key)
        if isinstance(option, dict) and option.get("choose"):
            options = option.get("from", {})
            count = len(options.get("options", [])) if isinstance(options, dict) else 0
            card.add(label, f"Choose {option['choose']} from {count} options")
    return card.render()


def format_subclass(subclass: dict[str, Any]) -> str:
    card = _Card("Subclass Information")
    card.add("Name", subclass.get("name"))
    card.add("Class", _nested_name(subclass.get("class")))
    card.add("Flavor", subclass.get("subclass_flavor"))
    card.block("Description", _text(subclass.get("desc")))
    return card.render()


def format_magic_item(item: dict[str, Any]) -> str:
    card = _Card("Magic Item Information")
    card.add("Name", item.get("name"))
    card.add("Category", _nested_name(item.get("equipment_category")))
    card.add("Rarity", _nested_name(item.get("rarity")))
    card.add("Variants", _names(item.get("variants")))
    card.block("Description", _text(item.get("desc")))
    return card.render()


def format_skill(skill: dict[str, Any]) -> str:
    card = _Card("Skill Information")
    card.add("Name", skill.get("name"))
    card.block("Description", _text(skill.get("desc")))
    card.add("Ability Score", _nested_name(skill.get("ability_score")))
    return card.render()


def format_language(language: dict[str, Any]) -> str:
    card = _Card("Language Information")
    card.add("Name", language.get("name"))
    card.add("Type", language.get("type"))
    card.add("Script", language.get("script"))
    speakers = language.get("typical_speakers")
    if isinstance(speakers, list):
        card.add("Typical Speakers", ", ".join(str(s) for s in speakers))
    card.block("Description", _text(language.get("desc")))
    return card.render()


def format_trait(trait: dict[str, Any]) -> str:
    card = _Card("Trait Information")
    card.add("Name", trait.get("name"))
    card.add("Races", _names(trait.get("races")))
    card.add("Subraces", _names(trait.get("subraces")))
    card.block("Description", _text(trait.get("desc")))
    return card.render()


def _describe(result: dict[str, Any], label: str) -> str:
    """Formatter for entities that are just a name and a description."""
    card = _Card(f"{label} Information")
    card.add("Name", result.get("name"))
    card.block("Description", _text(result.get("desc")))
    return card.render()


def format_condition(condition: dict[str, Any]) -> str:
    return _describe(condition, "Condition")


def format_rule(rule: dict[str, Any]) -> str:
    return _describe(rule, "Rule")


def format_damage_type(damage_type: dict[str, Any]) -> str:
    return _describe(damage_type, "Damage Type")


# Tool name -> (label used when the payload is not an object, formatter)
FORMATTERS: dict[str, tuple[str, Callable[[dict[str, Any]], str]]] = {
    "getMonsterStats": ("Monster", format_monster),
    "getSpellDetails": ("Spell", format_spell),
    "getEquipmentDetails": ("Equipment", format_equipment),
    "getClassDetails": ("Class", format_class),
    "getRaceDetails": ("Race", format_race),
    "getConditionDetails": ("Condition", format_condition),
    "getSkillDetails": ("Skill", format_skill),
    "getFeatDetails": ("Feat", format_feat),
    "getBackgroundDetails": ("Background", format_background),
    "getSubclassDetails": ("Subclass", format_subclass),
    "getMagicItemDetails": ("Magic Item", format_magic_item),
    "getRuleDetails": ("Rule", format_rule),
    "getTraitDetails": ("Trait", format_trait),
    "getLanguageDetails": ("Language", format_language),
    "getDamageTypeDetails": ("Damage Type", format_damage_type),
}


def format_tool_result(tool_name: str, result: Any) -> str:
    """Render a tool result as markdown for appending to narration.

    Args:
        tool_name: Tool that produced the result.
        result: Raw result payload.

    Returns:
        Markdown text starting with a blank line.
    """
    if isinstance(result, dict) and result.get("error"):
        message = result.get("message") or result.get("error")
        return f"\n\n**Tool Error**: {message}"

    entry = FORMATTERS.get(tool_name)
    if entry is None:
        return f"\n\n**Tool Result**: {json.dumps(result, indent=2, default=str)}"

    label, formatter = entry
    if not isinstance(result, dict):
        return f"\n\n**{label} Data**: Unable to format result"
    return formatter(result)


def format_tool_results(results: Iterable[tuple[str, Any]]) -> str:
    """Render several (tool_name, result) pairs back to back."""
    return "".join(format_tool_result(name, result) for name, result in results)


__all__ = [
    "FORMATTERS",
    "format_tool_result",
    "format_tool_results",
]
