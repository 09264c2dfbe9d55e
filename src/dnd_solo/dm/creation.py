"""Character and campaign generation.

Rules data (species, class, hit die, speed) comes from the reference
API; only the creative fields (name, story, personality, attribute
spread, starting gold) come from the LLM. Derived statistics are
computed here, never taken from model output.
"""

from __future__ import annotations

import random
from typing import Any

from dnd_solo.core.exceptions import AIControlError, ConfigurationError
from dnd_solo.core.logging import get_logger
from dnd_solo.llm.client import LLMClient
from dnd_solo.llm.prompts import build_campaign_outline_messages, build_creative_fields_messages
from dnd_solo.models.character import AbilityScore, Character, ability_modifier
from dnd_solo.tools.reference import ReferenceLibrary
from dnd_solo.tools.registry import ToolRegistry


logger = get_logger(__name__)

ALIGNMENTS: tuple[str, ...] = (
    "Lawful Good",
    "Neutral Good",
    "Chaotic Good",
    "Lawful Neutral",
    "True Neutral",
    "Chaotic Neutral",
    "Lawful Evil",
    "Neutral Evil",
    "Chaotic Evil",
)

ATTRIBUTE_RANGE = (8, 18)
STARTING_GOLD_RANGE = (10, 25)
DEFAULT_HIT_DIE = 8
DEFAULT_SPEED = 30


# =============================================================================
# Helpers
# =============================================================================


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


def _as_int(value: Any) -> int | None:
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _roll_ability(rng: random.Random) -> int:
    """4d6, drop the lowest, kept within the creation range."""
    dice = sorted(rng.randint(1, 6) for _ in range(4))
    return _clamp(sum(dice[1:]), ATTRIBUTE_RANGE)


def _canonical(reference: ReferenceLibrary, tool_name: str, name: str) -> dict[str, Any] | None:
    if not name:
        return None
    data = reference.lookup(tool_name, name)
    if data.get("error"):
        logger.info("No canonical data", tool=tool_name, name=name)
        return None
    return data


def _pick(rng: random.Random, options: list[str], fallback: str) -> str:
    return rng.choice(options) if options else fallback


def hit_points_for(level: int, hit_die: int, con_bonus: int) -> int:
    """Max HP: full hit die at level 1, then the fixed average per level."""
    first = hit_die + con_bonus
    later = (level - 1) * (hit_die // 2 + 1 + con_bonus)
    return max(1, first + later)


# =============================================================================
# Character Generation
# =============================================================================


def _creative_fields(
    character: Character,
    llm: LLMClient,
    *,
    has_race_data: bool,
    has_class_data: bool,
) -> dict[str, Any]:
    messages = build_creative_fields_messages(
        character,
        has_race_data=has_race_data,
        has_class_data=has_class_data,
    )
    try:
        return llm.complete_json(messages, model=llm.settings.creative_model, temperature=0.7)
    except (AIControlError, ConfigurationError) as exc:
        logger.warning("Creative field generation failed, using rolled defaults", error=str(exc))
        return {}


def generate_character_details(
    partial: Character,
    reference: ReferenceLibrary,
    llm: LLMClient,
    rng: random.Random | None = None,
) -> Character:
    """Complete a partially filled character sheet.

    Args:
        partial: Whatever the player chose; empty fields are filled.
        reference: Reference lookups for names and canonical data.
        llm: LLM client for the creative fields.
        rng: Random source (seed it for reproducible sheets).

    Returns:
        A complete level-appropriate character.
    """
    rng = rng or random.Random()

    species = partial.species or _pick(rng, reference.category_names("races"), "Human")
    background = partial.background or _pick(rng, reference.category_names("backgrounds"), "Acolyte")
    alignment = partial.alignment or rng.choice(ALIGNMENTS)
    classes = list(partial.classes) or [_pick(rng, reference.category_names("classes"), "Fighter")]

    race_data = _canonical(reference, "getRaceDetails", species)
    class_data = _canonical(reference, "getClassDetails", classes[0])

    sub_class = partial.sub_class
    if not sub_class and class_data:
        subclasses = [str(s["name"]) for s in class_data.get("subclasses") or [] if s.get("name")]
        sub_class = _pick(rng, subclasses, "")

    filled = partial.model_copy(update={
        "species": species,
        "background": background,
        "alignment": alignment,
        "classes": classes,
        "sub_class": sub_class,
    })

    creative = _creative_fields(
        filled,
        llm,
        has_race_data=race_data is not None,
        has_class_data=class_data is not None,
    )

    attributes = creative.get("attributes") if isinstance(creative.get("attributes"), dict) else {}
    scores: dict[str, int] = {}
    for ability in AbilityScore:
        value = _as_int(attributes.get(ability.value))
        scores[ability.value] = _clamp(value, ATTRIBUTE_RANGE) if value is not None else _roll_ability(rng)

    money = creative.get("money") if isinstance(creative.get("money"), dict) else {}
    gold = _as_int(money.get("gold"))
    gold = _clamp(gold, STARTING_GOLD_RANGE) if gold is not None else rng.randint(*STARTING_GOLD_RANGE)

    abilities = creative.get("specialAbilities")
    special_abilities = [str(a) for a in abilities] if isinstance(abilities, list) else []

    dex_bonus = ability_modifier(scores["dexterity"])
    con_bonus = ability_modifier(scores["constitution"])
    hit_die = _as_int((class_data or {}).get("hit_die")) or DEFAULT_HIT_DIE
    speed = _as_int((race_data or {}).get("speed")) or DEFAULT_SPEED
    max_hp = hit_points_for(filled.level, hit_die, con_bonus)

    character = filled.model_copy(update={
        **scores,
        "name": partial.name or str(creative.get("name") or "Unnamed Adventurer"),
        "back_story": partial.back_story or str(creative.get("backStory") or ""),
        "personality": partial.personality or str(creative.get("personality") or ""),
        "special_abilities": partial.special_abilities or special_abilities,
        "money": filled.money.model_copy(update={"gold": gold}),
        "initiative": dex_bonus,
        "armor_class": 10 + dex_bonus,
        "speed": speed,
        "hit_points": max_hp,
        "max_hit_points": max_hp,
    })
    logger.info(
        "Character generated",
        name=character.name,
        species=species,
        classes=classes,
        max_hp=max_hp,
    )
    return character


# =============================================================================
# Campaign Generation
# =============================================================================


def generate_campaign_outline(character: Character, registry: ToolRegistry, llm: LLMClient) -> str:
    """Write a markdown campaign guide for the character.

    Raises:
        AIControlError: If the LLM call fails.
    """
    outline = llm.complete(
        build_campaign_outline_messages(character, registry),
        model=llm.settings.creative_model,
        temperature=0.7,
    )
    logger.info("Campaign outline generated", chars=len(outline))
    return outline


__all__ = [
    "ALIGNMENTS",
    "hit_points_for",
    "generate_character_details",
    "generate_campaign_outline",
]
