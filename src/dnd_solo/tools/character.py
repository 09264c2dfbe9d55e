"""Character-state tools: bounded deltas on HP, currency, inventory and XP.

Each operation takes a character snapshot and typed params and returns a
StateChangeResult holding the new snapshot, a toast notification, and
the previous/new values. Nothing here touches storage; the caller owns
the single read-modify-write against the store.

Invalid input never raises. It produces ``success=False`` with an error
message, and the returned character is the unchanged input.

Example:
    >>> hero = Character(hit_points=20, max_hit_points=20)
    >>> result = run_state_tool(hero, "update_hit_points", {"amount": -6, "reason": "goblin attack"})
    >>> result.details["newHP"], result.details["actualChange"]
    (14, -6)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from dnd_solo.core.exceptions import CommandDecodeError
from dnd_solo.core.logging import get_logger
from dnd_solo.models.character import Character, CurrencyType, EquipmentCategory
from dnd_solo.models.commands import (
    AmountParams,
    CurrencyParams,
    ItemParams,
    StateCommand,
    decode_command,
)
from dnd_solo.models.messages import Notification
from dnd_solo.tools.registry import Tool, ToolParameter


logger = get_logger(__name__)


CATEGORY_ICONS: dict[EquipmentCategory, str] = {
    EquipmentCategory.WEAPONS: "⚔️",
    EquipmentCategory.ARMOR: "🛡️",
    EquipmentCategory.TOOLS: "🔧",
    EquipmentCategory.MAGIC_ITEMS: "✨",
    EquipmentCategory.ITEMS: "📦",
}


# =============================================================================
# Result Type
# =============================================================================


@dataclass
class StateChangeResult:
    """Outcome of one character-state tool.

    Attributes:
        tool: Tool name.
        success: Whether the delta was applied.
        character: The new snapshot, or the unchanged input on failure.
        error: Failure message when success is False.
        notification: Toast describing the change, when one applies.
        details: Previous/new values, keyed as the tool reports them.
    """

    tool: str
    success: bool
    character: Character
    error: str | None = None
    notification: Notification | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON shape handed back to the LLM and API clients."""
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, **self.details}


def _failure(tool: str, character: Character, error: str) -> StateChangeResult:
    return StateChangeResult(tool=tool, success=False, character=character, error=error)


# =============================================================================
# Operations
# =============================================================================


def update_hit_points(character: Character, params: AmountParams) -> StateChangeResult:
    """Apply an HP delta, clamped to [0, max HP]."""
    previous = character.hit_points
    maximum = character.max_hit_points
    new_hp = max(0, min(maximum, previous + params.amount))
    actual = new_hp - previous
    updated = character.model_copy(update={"hit_points": new_hp}, deep=True)

    description = f"{params.reason} • HP: {new_hp}/{maximum}"
    if actual < 0:
        notification = Notification(title=f"💔 {abs(actual)} damage", description=description, tone="danger")
    elif actual > 0:
        notification = Notification(title=f"💚 Healed {actual} HP", description=description, tone="success")
    else:
        notification = Notification(title="HP unchanged", description=description)

    return StateChangeResult(
        tool="update_hit_points",
        success=True,
        character=updated,
        notification=notification,
        details={
            "previousHP": previous,
            "newHP": new_hp,
            "maxHP": maximum,
            "actualChange": actual,
            "reason": params.reason,
        },
    )


def update_currency(character: Character, params: CurrencyParams) -> StateChangeResult:
    """Apply a coin delta to one denomination, floored at zero."""
    currency = params.currency_type
    previous = character.money.amount(currency)
    new_amount = max(0, previous + params.amount)
    change = new_amount - previous

    money = character.money.model_copy(update={currency.value: new_amount})
    updated = character.model_copy(update={"money": money}, deep=True)

    label = currency.value.capitalize()
    icon = "💎" if currency is CurrencyType.PLATINUM else "🪙"
    if change < 0:
        notification = Notification(title=f"{icon} -{abs(change)} {label}", description=params.reason, tone="danger")
    elif change > 0:
        notification = Notification(title=f"{icon} +{change} {label}", description=params.reason, tone="success")
    else:
        notification = Notification(title=f"{label} unchanged", description=f"{params.reason} • {label}: {new_amount}")

    return StateChangeResult(
        tool="update_currency",
        success=True,
        character=updated,
        notification=notification,
        details={
            "currencyType": currency.value,
            "previousAmount": previous,
            "newAmount": new_amount,
            "change": change,
            "reason": params.reason,
        },
    )


def add_inventory_item(character: Character, params: ItemParams) -> StateChangeResult:
    """Append an item to one equipment category."""
    items = [*character.equipment.items_in(params.category), params.item_name]
    updated = character.model_copy(
        update={"equipment": character.equipment.with_items(params.category, items)},
        deep=True,
    )
    icon = CATEGORY_ICONS[params.category]
    return StateChangeResult(
        tool="add_inventory_item",
        success=True,
        character=updated,
        notification=Notification(title=f"{icon} {params.item_name}", description=params.reason, tone="info"),
        details={
            "itemName": params.item_name,
            "category": params.category.value,
            "reason": params.reason,
        },
    )


def remove_inventory_item(character: Character, params: ItemParams) -> StateChangeResult:
    """Remove the first case-insensitive match from one equipment category."""
    items = list(character.equipment.items_in(params.category))
    wanted = params.item_name.lower()
    position = next((i for i, item in enumerate(items) if item.lower() == wanted), None)

    if position is None:
        available = ", ".join(items) or "none"
        return _failure(
            "remove_inventory_item",
            character,
            f'Item "{params.item_name}" not found in {params.category.value}. Available items: {available}',
        )

    removed = items.pop(position)
    updated = character.model_copy(
        update={"equipment": character.equipment.with_items(params.category, items)},
        deep=True,
    )
    return StateChangeResult(
        tool="remove_inventory_item",
        success=True,
        character=updated,
        notification=Notification(title=f"📤 Lost: {removed}", description=params.reason, tone="info"),
        details={
            "itemName": removed,
            "category": params.category.value,
            "reason": params.reason,
        },
    )


def update_experience(character: Character, params: AmountParams) -> StateChangeResult:
    """Apply an XP delta. Not clamped."""
    previous = character.experience
    new_xp = previous + params.amount
    updated = character.model_copy(update={"experience": new_xp}, deep=True)
    sign = "+" if params.amount >= 0 else ""
    return StateChangeResult(
        tool="update_experience",
        success=True,
        character=updated,
        notification=Notification(
            title=f"⭐ {sign}{params.amount} XP",
            description=params.reason,
            tone="success" if params.amount >= 0 else "danger",
        ),
        details={
            "previousXP": previous,
            "newXP": new_xp,
            "change": params.amount,
            "reason": params.reason,
        },
    )


_OPERATIONS: dict[str, Callable[[Character, Any], StateChangeResult]] = {
    "update_hit_points": update_hit_points,
    "update_currency": update_currency,
    "add_inventory_item": add_inventory_item,
    "remove_inventory_item": remove_inventory_item,
    "update_experience": update_experience,
}


def apply_state_command(character: Character, command: StateCommand) -> StateChangeResult:
    """Dispatch a decoded command to its operation."""
    return _OPERATIONS[command.tool](character, command.params)


def run_state_tool(character: Character, tool: str, params: Mapping[str, Any] | None) -> StateChangeResult:
    """Decode raw tool arguments and apply them to a snapshot.

    Args:
        character: Current character.
        tool: State tool name.
        params: Raw arguments as produced by the LLM.

    Returns:
        The result; a decode failure is a structured failure, never raised.
    """
    try:
        command = decode_command(tool, dict(params) if isinstance(params, Mapping) else params)
    except CommandDecodeError as exc:
        logger.info("State tool rejected", tool=tool, error=exc.message)
        return _failure(tool, character, exc.message)
    return apply_state_command(character, command)


# =============================================================================
# Registry Tools
# =============================================================================


class CharacterStore(Protocol):
    """Storage the character tools read from and write to."""

    def load_character(self) -> Character: ...

    def save_character(self, character: Character) -> None: ...


_REASON_HINTS = {
    "update_hit_points": "Brief description of why HP changed (e.g., 'goblin attack', 'potion of healing', 'fire trap'). Used for logging.",
    "update_currency": "Brief description of the transaction (e.g., 'bought rations', 'quest reward', 'pickpocketed').",
    "add_inventory_item": "Brief description of how the item was acquired (e.g., 'looted from goblin', 'purchased from merchant', 'reward from quest').",
    "remove_inventory_item": "Brief description of why the item was removed (e.g., 'sold to merchant', 'consumed', 'given to NPC', 'destroyed').",
    "update_experience": "Brief description of why XP was awarded (e.g., 'defeated goblin warband', 'completed rescue quest', 'clever roleplaying').",
}


def _reason(tool: str) -> ToolParameter:
    return ToolParameter(name="reason", type="string", description=_REASON_HINTS[tool], required=True)


CHARACTER_TOOL_SPECS: tuple[tuple[str, str, tuple[ToolParameter, ...]], ...] = (
    (
        "update_hit_points",
        "Call whenever the player takes damage or receives healing. Use negative for damage, "
        "positive for healing. HP auto-caps at max and floors at 0.",
        (
            ToolParameter(
                name="amount",
                type="integer",
                description=(
                    "The amount to add to current HP. Use negative for damage (e.g., -5 for 5 damage), "
                    "positive for healing (e.g., +10 for 10 HP healed)."
                ),
            ),
            _reason("update_hit_points"),
        ),
    ),
    (
        "update_currency",
        "Call for ANY currency change, no matter how small, even a single coin tossed, given as a "
        "tip, or spent on a bribe. Every transaction must be tracked. Use negative for "
        "spending/losing, positive for gaining.",
        (
            ToolParameter(
                name="currency_type",
                type="string",
                description="The type of currency to modify. Must be one of: platinum, gold, electrum, silver, copper.",
            ),
            ToolParameter(
                name="amount",
                type="integer",
                description="The amount to add. Use negative for spending/losing (e.g., -10), positive for gaining (e.g., +50).",
            ),
            _reason("update_currency"),
        ),
    ),
    (
        "add_inventory_item",
        "Call whenever the player acquires an item: loot, purchases, gifts, or found objects. "
        "Choose the appropriate category: weapons, armor, tools, magicItems, or items.",
        (
            ToolParameter(
                name="item_name",
                type="string",
                description="The name of the item to add (e.g., 'Longsword', 'Potion of Healing', 'Rope (50 feet)').",
            ),
            ToolParameter(
                name="category",
                type="string",
                description=(
                    "The inventory category for this item. Must be one of: weapons (swords, bows, daggers), "
                    "armor (shields, plate, leather), tools (thieves' tools, musical instruments), "
                    "magicItems (enchanted items, wands, rings), items (general adventuring gear, potions, consumables)."
                ),
            ),
            _reason("add_inventory_item"),
        ),
    ),
    (
        "remove_inventory_item",
        "Call whenever the player loses, sells, drops, consumes, or gives away an item. "
        "Item matching is case-insensitive.",
        (
            ToolParameter(
                name="item_name",
                type="string",
                description="The name of the item to remove. Must match an item in the character's inventory (case-insensitive).",
            ),
            ToolParameter(
                name="category",
                type="string",
                description="The inventory category to remove from. Must be one of: weapons, armor, tools, magicItems, items.",
            ),
            _reason("remove_inventory_item"),
        ),
    ),
    (
        "update_experience",
        "Call to award XP for defeating enemies, completing quests, or story milestones. "
        "Use positive values; negative only for rare curse effects.",
        (
            ToolParameter(
                name="amount",
                type="integer",
                description="The amount of XP to add. Use positive for gaining XP, negative for losing XP (rare).",
            ),
            _reason("update_experience"),
        ),
    ),
)


def create_character_tools(
    store: CharacterStore,
    notify: Callable[[Notification], None] | None = None,
) -> list[Tool]:
    """Build registry tools that read-modify-write a character store.

    Args:
        store: Character storage.
        notify: Optional callback receiving each success notification.

    Returns:
        The five character-state tools, in a stable order.
    """

    def make_handler(tool_name: str) -> Callable[[Mapping[str, Any]], dict[str, Any]]:
        def handler(params: Mapping[str, Any]) -> dict[str, Any]:
            result = run_state_tool(store.load_character(), tool_name, params)
            if result.success:
                store.save_character(result.character)
                if notify and result.notification:
                    notify(result.notification)
            return result.to_payload()

        return handler

    return [
        Tool(name=name, description=description, parameters=parameters, handler=make_handler(name))
        for name, description, parameters in CHARACTER_TOOL_SPECS
    ]


def character_tool_schemas() -> list[dict[str, Any]]:
    """OpenAI function schemas for the five state tools (no handlers attached)."""
    return [
        Tool(name=name, description=description, parameters=parameters).to_openai_schema()
        for name, description, parameters in CHARACTER_TOOL_SPECS
    ]


__all__ = [
    "CATEGORY_ICONS",
    "StateChangeResult",
    "update_hit_points",
    "update_currency",
    "add_inventory_item",
    "remove_inventory_item",
    "update_experience",
    "apply_state_command",
    "run_state_tool",
    "CharacterStore",
    "CHARACTER_TOOL_SPECS",
    "create_character_tools",
    "character_tool_schemas",
]
