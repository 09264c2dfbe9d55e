"""Pydantic V2 schemas for the character sheet, chat log and state commands."""

from __future__ import annotations

from dnd_solo.models.character import (
    CURRENCY_TYPES,
    EQUIPMENT_CATEGORIES,
    AbilityScore,
    Character,
    CurrencyType,
    Equipment,
    EquipmentCategory,
    Money,
    ability_modifier,
)
from dnd_solo.models.commands import (
    STATE_TOOL_NAMES,
    AddInventoryItem,
    RemoveInventoryItem,
    StateCommand,
    StateToolCall,
    UpdateCurrency,
    UpdateExperience,
    UpdateHitPoints,
    decode_call,
    decode_command,
)
from dnd_solo.models.messages import Message, Notification, Sender


__all__ = [
    # Character
    "AbilityScore",
    "CurrencyType",
    "EquipmentCategory",
    "CURRENCY_TYPES",
    "EQUIPMENT_CATEGORIES",
    "Money",
    "Equipment",
    "Character",
    "ability_modifier",
    # Messages
    "Sender",
    "Message",
    "Notification",
    # Commands
    "StateToolCall",
    "StateCommand",
    "STATE_TOOL_NAMES",
    "UpdateHitPoints",
    "UpdateCurrency",
    "AddInventoryItem",
    "RemoveInventoryItem",
    "UpdateExperience",
    "decode_command",
    "decode_call",
]
