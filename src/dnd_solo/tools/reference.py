"""Reference tools backed by the public D&D 5e API.

Fifteen tools share one pattern. Each resolves a human or LLM supplied
name against a category index (fetched once per process), fetches the
full entity, and caches it for a fixed window. Every failure is encoded
in the return value as ``{"error": True, "message": ...}``; these tools
never raise to their caller.

Example:
    >>> library = ReferenceLibrary()
    >>> library.lookup("getSpellDetails", "fireball")["level"]
    3
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests

from dnd_solo.core.config import ReferenceAPISettings, get_settings
from dnd_solo.core.exceptions import ReferenceAPIError
from dnd_solo.core.logging import get_logger
from dnd_solo.tools.cache import TTLCache
from dnd_solo.tools.registry import Tool, ToolParameter


logger = get_logger(__name__)


# =============================================================================
# Category Table
# =============================================================================


@dataclass(frozen=True)
class ReferenceCategory:
    """Static description of one reference tool.

    Attributes:
        tool_name: Registered tool name.
        endpoint: API collection path segment (e.g. "magic-items").
        param: Name of the single argument.
        label: Capitalized entity label used in messages.
        noun: Lowercase noun used in the "try a different ... name" hint.
        description: Tool description shown to the LLM.
        param_description: Argument description shown to the LLM.
    """

    tool_name: str
    endpoint: str
    param: str
    label: str
    noun: str
    description: str
    param_description: str

    def not_found(self, name: str) -> dict[str, Any]:
        return {
            "error": True,
            "message": (
                f'{self.label} "{name}" not found. Please check the spelling '
                f"or try a different {self.noun} name."
            ),
        }


REFERENCE_CATEGORIES: tuple[ReferenceCategory, ...] = (
    ReferenceCategory(
        tool_name="getMonsterStats",
        endpoint="monsters",
        param="monsterName",
        label="Monster",
        noun="monster",
        description=(
            "Get detailed stat block for a D&D monster including HP, AC, attacks, abilities, "
            "and lore. Use when player encounters a monster, asks about monster abilities, "
            "or needs combat stats."
        ),
        param_description="Exact name of the monster (e.g., 'Goblin', 'Adult Red Dragon', 'Orc')",
    ),
    ReferenceCategory(
        tool_name="getSpellDetails",
        endpoint="spells",
        param="spellName",
        label="Spell",
        noun="spell",
        description=(
            "Get detailed information for a D&D spell, including level, school, casting time, "
            "range, components, duration, and description."
        ),
        param_description="Exact name of the spell (e.g., 'Fireball', 'Mage Armor')",
    ),
    ReferenceCategory(
        tool_name="getEquipmentDetails",
        endpoint="equipment",
        param="itemName",
        label="Equipment",
        noun="item",
        description=(
            "Get detailed information for D&D equipment including weapons, armor, magic items, "
            "and gear. Use when players ask about items, want to buy equipment, or need item stats."
        ),
        param_description=(
            "Exact name of the equipment item (e.g., 'Longsword', 'Plate Armor', 'Potion of Healing')"
        ),
    ),
    ReferenceCategory(
        tool_name="getClassDetails",
        endpoint="classes",
        param="className",
        label="Class",
        noun="class",
        description=(
            "Get detailed information for D&D classes including features, spellcasting, hit dice, "
            "and proficiencies. Use when players ask about class abilities, features, or want to "
            "understand a class."
        ),
        param_description="Exact name of the class (e.g., 'Fighter', 'Wizard', 'Cleric', 'Rogue')",
    ),
    ReferenceCategory(
        tool_name="getRaceDetails",
        endpoint="races",
        param="raceName",
        label="Race",
        noun="race",
        description=(
            "Get detailed information for D&D races including traits, abilities, and racial "
            "features. Use when players ask about race abilities, want to create characters, "
            "or need racial information."
        ),
        param_description="Exact name of the race (e.g., 'Human', 'Elf', 'Dwarf', 'Halfling')",
    ),
    ReferenceCategory(
        tool_name="getConditionDetails",
        endpoint="conditions",
        param="conditionName",
        label="Condition",
        noun="condition",
        description=(
            "Get detailed information for D&D conditions including effects, immunities, and how "
            "to remove them. Use when players ask about status effects, conditions, or need to "
            "understand what a condition does."
        ),
        param_description=(
            "Exact name of the condition (e.g., 'Poisoned', 'Paralyzed', 'Invisible', 'Blinded')"
        ),
    ),
    ReferenceCategory(
        tool_name="getSkillDetails",
        endpoint="skills",
        param="skillName",
        label="Skill",
        noun="skill",
        description=(
            "Get detailed information for D&D skills including ability scores, typical uses, and "
            "examples. Use when players ask about skill checks, proficiencies, or need to "
            "understand how a skill works."
        ),
        param_description=(
            "Exact name of the skill (e.g., 'Acrobatics', 'Athletics', 'Stealth', 'Persuasion')"
        ),
    ),
    ReferenceCategory(
        tool_name="getFeatDetails",
        endpoint="feats",
        param="featName",
        label="Feat",
        noun="feat",
        description=(
            "Get detailed information for D&D feats including prerequisites, benefits, and "
            "special abilities. Use when players ask about character feats, want to choose feats, "
            "or need to understand feat mechanics."
        ),
        param_description="Exact name of the feat (e.g., 'Alert', 'Lucky', 'Sharpshooter', 'War Caster')",
    ),
    ReferenceCategory(
        tool_name="getBackgroundDetails",
        endpoint="backgrounds",
        param="backgroundName",
        label="Background",
        noun="background",
        description=(
            "Get detailed information for D&D backgrounds including traits, proficiencies, "
            "equipment, and feature descriptions. Use when players ask about character "
            "backgrounds, want to choose a background, or need background features."
        ),
        param_description=(
            "Exact name of the background (e.g., 'Acolyte', 'Criminal', 'Folk Hero', 'Sage')"
        ),
    ),
    ReferenceCategory(
        tool_name="getSubclassDetails",
        endpoint="subclasses",
        param="subclassName",
        label="Subclass",
        noun="subclass",
        description=(
            "Get detailed information for D&D subclasses including features, abilities, and "
            "specializations. Use when players ask about class specializations, want to choose a "
            "subclass, or need subclass feature details."
        ),
        param_description=(
            "Exact name of the subclass (e.g., 'Evocation', 'Thief', 'Life Domain', 'Champion')"
        ),
    ),
    ReferenceCategory(
        tool_name="getMagicItemDetails",
        endpoint="magic-items",
        param="itemName",
        label="Magic item",
        noun="item",
        description=(
            "Get detailed information for D&D magic items including rarity, attunement, "
            "properties, and special abilities. Use when players ask about magic items, find "
            "treasure, or need magic item mechanics."
        ),
        param_description=(
            "Exact name of the magic item (e.g., 'Sword of Sharpness', 'Ring of Protection', "
            "'Potion of Healing', 'Staff of Power')"
        ),
    ),
    ReferenceCategory(
        tool_name="getRuleDetails",
        endpoint="rules",
        param="ruleName",
        label="Rule",
        noun="rule",
        description=(
            "Get detailed information for D&D rules including game mechanics, combat rules, and "
            "system explanations. Use when players ask about game rules, mechanics, or need "
            "clarification on how something works."
        ),
        param_description=(
            "Exact name of the rule or mechanic (e.g., 'Combat', 'Ability Scores', "
            "'Saving Throws', 'Proficiency Bonus')"
        ),
    ),
    ReferenceCategory(
        tool_name="getTraitDetails",
        endpoint="traits",
        param="traitName",
        label="Trait",
        noun="trait",
        description=(
            "Get detailed information for D&D traits including racial traits, class features, "
            "and special abilities. Use when players ask about specific traits, abilities, or "
            "need to understand trait mechanics."
        ),
        param_description=(
            "Exact name of the trait (e.g., 'Darkvision', 'Fey Ancestry', 'Second Wind', 'Sneak Attack')"
        ),
    ),
    ReferenceCategory(
        tool_name="getLanguageDetails",
        endpoint="languages",
        param="languageName",
        label="Language",
        noun="language",
        description=(
            "Get detailed information for D&D languages including typical speakers, scripts, and "
            "language families. Use when players ask about languages, want to learn a language, "
            "or need language information for roleplay."
        ),
        param_description=(
            "Exact name of the language (e.g., 'Common', 'Elvish', 'Dwarvish', 'Draconic', 'Infernal')"
        ),
    ),
    ReferenceCategory(
        tool_name="getDamageTypeDetails",
        endpoint="damage-types",
        param="damageTypeName",
        label="Damage type",
        noun="damage type",
        description=(
            "Get detailed information for D&D damage types including descriptions, typical "
            "sources, and effects. Use when players ask about damage types, resistances, "
            "vulnerabilities, or need to understand damage mechanics."
        ),
        param_description=(
            "Exact name of the damage type (e.g., 'Slashing', 'Fire', 'Cold', 'Lightning', "
            "'Necrotic', 'Radiant')"
        ),
    ),
)

REFERENCE_TOOL_NAMES: tuple[str, ...] = tuple(c.tool_name for c in REFERENCE_CATEGORIES)


def unable_to_fetch(name: str) -> dict[str, Any]:
    return {
        "error": True,
        "message": (
            f'Unable to fetch information for "{name}". Please try again or ask me to '
            "describe it based on my knowledge."
        ),
    }


# =============================================================================
# HTTP Client
# =============================================================================


class ReferenceClient:
    """Thin HTTP client for the reference API.

    Index lists are memoized for the lifetime of the client and never
    refreshed. A failed index fetch is not memoized, so the next call
    retries it.

    Args:
        settings: Reference API settings; defaults to the application settings.
        session: Optional requests session (injectable for tests).
    """

    def __init__(
        self,
        settings: ReferenceAPISettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings or get_settings().reference
        self._session = session or requests.Session()
        self._indexes: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    @property
    def base_url(self) -> str:
        return self.settings.base_url.rstrip("/")

    def index_url(self, endpoint: str) -> str:
        return f"{self.base_url}{self.settings.api_prefix}/{endpoint}"

    def index(self, endpoint: str) -> list[dict[str, Any]]:
        """Return the ``{index, name, url}`` entries for a collection.

        Raises:
            ReferenceAPIError: If the index cannot be fetched or is malformed.
        """
        with self._lock:
            cached = self._indexes.get(endpoint)
        if cached is not None:
            return cached

        payload = self._get_json(self.index_url(endpoint), category=endpoint)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise ReferenceAPIError(
                "Index response has no results list",
                category=endpoint,
                url=self.index_url(endpoint),
            )

        with self._lock:
            self._indexes[endpoint] = results
        logger.info("Reference index loaded", category=endpoint, entries=len(results))
        return results

    def details(self, url: str, *, category: str | None = None) -> dict[str, Any]:
        """Fetch one entity by the relative URL from its index entry.

        Raises:
            ReferenceAPIError: On network failure or a non-2xx answer.
        """
        full_url = url if url.startswith(("http://", "https://")) else f"{self.base_url}{url}"
        payload = self._get_json(full_url, category=category)
        if not isinstance(payload, dict):
            raise ReferenceAPIError("Detail response is not an object", category=category, url=full_url)
        return payload

    def _get_json(self, url: str, *, category: str | None) -> Any:
        try:
            response = self._session.get(url, timeout=self.settings.timeout_seconds)
        except requests.RequestException as exc:
            raise ReferenceAPIError(
                f"Reference API request failed: {exc}",
                category=category,
                url=url,
            ) from exc

        if not response.ok:
            raise ReferenceAPIError(
                f"Reference API returned {response.status_code}",
                category=category,
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ReferenceAPIError(
                "Reference API returned invalid JSON",
                category=category,
                url=url,
            ) from exc


# =============================================================================
# Lookups
# =============================================================================


class ReferenceLookup:
    """One reference tool: name in, entity JSON or structured error out."""

    def __init__(
        self,
        category: ReferenceCategory,
        client: ReferenceClient,
        cache: TTLCache,
    ) -> None:
        self.category = category
        self.client = client
        self.cache = cache

    def __call__(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return self.lookup(params.get(self.category.param))

    def lookup(self, name: Any) -> dict[str, Any]:
        """Resolve a name and return the entity or a structured error."""
        name = str(name or "").strip()
        if not name:
            return {"error": True, "message": f"{self.category.param} is required."}

        key = name.lower()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Reference cache hit", category=self.category.endpoint, name=name)
            return cached

        try:
            entry = self._resolve(name)
            if entry is None:
                logger.info("Reference entity not found", category=self.category.endpoint, name=name)
                return self.category.not_found(name)
            data = self.client.details(entry["url"], category=self.category.endpoint)
        except ReferenceAPIError as exc:
            logger.warning(
                "Reference lookup failed",
                category=self.category.endpoint,
                name=name,
                error=str(exc),
            )
            return unable_to_fetch(name)

        self.cache.set(key, data)
        return data

    def _resolve(self, name: str) -> dict[str, Any] | None:
        key = name.lower()
        entries = self.client.index(self.category.endpoint)
        for entry in entries:
            if str(entry.get("name", "")).lower() == key and entry.get("url"):
                return entry
        # The slug ("adult-red-dragon") is also an exact identifier
        for entry in entries:
            if str(entry.get("index", "")).lower() == key and entry.get("url"):
                return entry
        return None

    def to_tool(self) -> Tool:
        return Tool(
            name=self.category.tool_name,
            description=self.category.description,
            parameters=(
                ToolParameter(
                    name=self.category.param,
                    type="string",
                    description=self.category.param_description,
                    required=True,
                ),
            ),
            handler=self,
        )


class ReferenceLibrary:
    """All reference lookups sharing one client, each with its own cache.

    Args:
        client: HTTP client; created from settings when omitted.
        settings: Reference API settings for client and cache bounds.
    """

    def __init__(
        self,
        client: ReferenceClient | None = None,
        settings: ReferenceAPISettings | None = None,
    ) -> None:
        self.settings = settings or (client.settings if client else get_settings().reference)
        self.client = client or ReferenceClient(self.settings)
        self.lookups: dict[str, ReferenceLookup] = {
            category.tool_name: ReferenceLookup(
                category,
                self.client,
                TTLCache(self.settings.cache_ttl_seconds, self.settings.cache_max_entries),
            )
            for category in REFERENCE_CATEGORIES
        }

    def tools(self) -> list[Tool]:
        return [lookup.to_tool() for lookup in self.lookups.values()]

    def lookup(self, tool_name: str, name: str) -> dict[str, Any]:
        """Run a reference lookup by tool name.

        Raises:
            KeyError: If tool_name is not a reference tool.
        """
        return self.lookups[tool_name].lookup(name)

    def category_names(self, endpoint: str) -> list[str]:
        """Return every entity name in a collection, or [] if unavailable."""
        try:
            return [str(e["name"]) for e in self.client.index(endpoint) if e.get("name")]
        except ReferenceAPIError as exc:
            logger.warning("Could not list reference names", category=endpoint, error=str(exc))
            return []


__all__ = [
    "ReferenceCategory",
    "REFERENCE_CATEGORIES",
    "REFERENCE_TOOL_NAMES",
    "ReferenceClient",
    "ReferenceLookup",
    "ReferenceLibrary",
    "unable_to_fetch",
]
