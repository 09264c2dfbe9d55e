"""Pydantic V2 schemas for the player character sheet.

The character is the single piece of mutable game state. It is persisted
in the game store and changed only through the character-state tools'
validated delta path (or wholesale by the character-creation flow).

Wire format is camelCase (``hitPoints``, ``magicItems``) so that sheets
round-trip unchanged through the HTTP API and the store.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class AbilityScore(StrEnum):
    """D&D 5E ability scores."""

    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"


class CurrencyType(StrEnum):
    """The five coin denominations, highest first."""

    PLATINUM = "platinum"
    GOLD = "gold"
    ELECTRUM = "electrum"
    SILVER = "silver"
    COPPER = "copper"


class EquipmentCategory(StrEnum):
    """Closed set of inventory categories."""

    WEAPONS = "weapons"
    ARMOR = "armor"
    TOOLS = "tools"
    MAGIC_ITEMS = "magicItems"
    ITEMS = "items"


CURRENCY_TYPES: tuple[str, ...] = tuple(c.value for c in CurrencyType)
EQUIPMENT_CATEGORIES: tuple[str, ...] = tuple(c.value for c in EquipmentCategory)

# Field name on Equipment for each category value
_CATEGORY_FIELDS: dict[EquipmentCategory, str] = {
    EquipmentCategory.WEAPONS: "weapons",
    EquipmentCategory.ARMOR: "armor",
    EquipmentCategory.TOOLS: "tools",
    EquipmentCategory.MAGIC_ITEMS: "magic_items",
    EquipmentCategory.ITEMS: "items",
}


def ability_modifier(score: int) -> int:
    """Return the 5E ability modifier, floor((score - 10) / 2)."""
    return (score - 10) // 2


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Money(_CamelModel):
    """Coin purse. Every denomination is a non-negative integer."""

    platinum: Annotated[int, Field(ge=0)] = 0
    gold: Annotated[int, Field(ge=0)] = 0
    electrum: Annotated[int, Field(ge=0)] = 0
    silver: Annotated[int, Field(ge=0)] = 0
    copper: Annotated[int, Field(ge=0)] = 0

    def amount(self, currency: CurrencyType) -> int:
        return getattr(self, currency.value)


class Equipment(_CamelModel):
    """Inventory partitioned into the five fixed categories.

    Each category is an ordered list of item names. Duplicates are allowed
    and case is preserved; removal matches case-insensitively.
    """

    weapons: list[str] = Field(default_factory=list)
    armor: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    magic_items: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)

    def items_in(self, category: EquipmentCategory) -> list[str]:
        """Return the item list for a category."""
        return getattr(self, _CATEGORY_FIELDS[category])

    def with_items(self, category: EquipmentCategory, items: list[str]) -> Equipment:
        """Return a copy with one category's list replaced."""
        return self.model_copy(update={_CATEGORY_FIELDS[category]: list(items)}, deep=True)

    def all_items(self) -> dict[str, list[str]]:
        """Return every category keyed by its wire name."""
        return {category.value: list(self.items_in(category)) for category in EquipmentCategory}


def _starting_equipment() -> Equipment:
    return Equipment(weapons=["Unarmed Strike"])


class Character(_CamelModel):
    """The player character sheet.

    Attributes:
        name: Character name.
        species: Species (race) name as listed by the reference API.
        subspecies: Optional subspecies.
        background: Background name.
        alignment: Alignment label.
        classes: Class names (the first is the primary class).
        sub_class: Subclass name.
        level: Character level (1-20).
        back_story: Free-text backstory.
        personality: Free-text personality summary.
        special_abilities: Notable abilities granted at creation.
        experience: Experience points. Not clamped.
        hit_points: Current HP, kept within [0, max_hit_points] by the tools.
        max_hit_points: Maximum HP.
        armor_class: Armor class.
        initiative: Initiative modifier.
        speed: Walking speed in feet.
        money: Coin purse.
        equipment: Inventory.
    """

    name: str = ""
    species: str = ""
    subspecies: str = ""
    background: str = ""
    alignment: str = ""
    classes: list[str] = Field(default_factory=list)
    sub_class: str = Field(default="", alias="subClass")
    level: Annotated[int, Field(ge=1, le=20)] = 1
    back_story: str = ""
    personality: str = ""
    special_abilities: list[str] = Field(default_factory=list)

    experience: int = 0
    hit_points: Annotated[int, Field(ge=0)] = 1
    max_hit_points: Annotated[int, Field(ge=0)] = 1
    armor_class: int = 10
    initiative: int = 0
    speed: int = 30

    strength: Annotated[int, Field(ge=1, le=30)] = 10
    dexterity: Annotated[int, Field(ge=1, le=30)] = 10
    constitution: Annotated[int, Field(ge=1, le=30)] = 10
    intelligence: Annotated[int, Field(ge=1, le=30)] = 10
    wisdom: Annotated[int, Field(ge=1, le=30)] = 10
    charisma: Annotated[int, Field(ge=1, le=30)] = 10

    money: Money = Field(default_factory=Money)
    equipment: Equipment = Field(default_factory=_starting_equipment)

    @computed_field(description="Ability modifiers keyed by ability name")  # type: ignore[prop-decorator]
    @property
    def modifiers(self) -> dict[str, int]:
        return {ability.value: self.modifier(ability) for ability in AbilityScore}

    def modifier(self, ability: AbilityScore) -> int:
        """Calculate the ability modifier for a given ability score.

        Args:
            ability: The ability score to get the modifier for.

        Returns:
            The ability modifier (score - 10) // 2.
        """
        return ability_modifier(getattr(self, ability.value))

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, excluding derived fields."""
        return self.model_dump(by_alias=True, exclude={"modifiers"})


__all__ = [
    "AbilityScore",
    "CurrencyType",
    "EquipmentCategory",
    "CURRENCY_TYPES",
    "EQUIPMENT_CATEGORIES",
    "Money",
    "Equipment",
    "Character",
    "ability_modifier",
]
