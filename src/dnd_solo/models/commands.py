"""Typed character-state commands decoded from LLM tool calls.

The LLM names a state tool by string and supplies loosely-typed JSON
arguments. Before anything touches the character, that pair is decoded
into a closed tagged union (one variant per tool) with exhaustive
validation. Unknown tags and malformed payloads are rejected with the
same messages the tools report, so callers can surface them verbatim.

Example:
    >>> command = decode_command("update_hit_points", {"amount": "-6", "reason": "goblin"})
    >>> command.params.amount
    -6
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from dnd_solo.core.exceptions import CommandDecodeError
from dnd_solo.models.character import (
    CURRENCY_TYPES,
    EQUIPMENT_CATEGORIES,
    CurrencyType,
    EquipmentCategory,
)


# =============================================================================
# Raw Tool Call
# =============================================================================


class StateToolCall(BaseModel):
    """A tool call as emitted by the state-change extractor.

    Not persisted; consumed immediately by the orchestrator.
    """

    model_config = ConfigDict(extra="ignore")

    tool: str
    params: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Command Payloads
# =============================================================================


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: str = ""

    @field_validator("reason", mode="before")
    @classmethod
    def _coerce_reason(cls, value: Any) -> str:
        return "" if value is None else str(value)


class AmountParams(_Params):
    amount: int

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Any:
        # "+5" and "5.0" arrive as strings from LLM output
        if isinstance(value, str):
            text = value.strip()
            try:
                number = float(text)
            except ValueError:
                return value
            return int(number) if number.is_integer() else number
        return value


class CurrencyParams(AmountParams):
    currency_type: CurrencyType


class ItemParams(_Params):
    item_name: Annotated[str, Field(min_length=1)]
    category: EquipmentCategory

    @field_validator("item_name", mode="before")
    @classmethod
    def _coerce_item_name(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class UpdateHitPoints(BaseModel):
    tool: Literal["update_hit_points"] = "update_hit_points"
    params: AmountParams


class UpdateCurrency(BaseModel):
    tool: Literal["update_currency"] = "update_currency"
    params: CurrencyParams


class AddInventoryItem(BaseModel):
    tool: Literal["add_inventory_item"] = "add_inventory_item"
    params: ItemParams


class RemoveInventoryItem(BaseModel):
    tool: Literal["remove_inventory_item"] = "remove_inventory_item"
    params: ItemParams


class UpdateExperience(BaseModel):
    tool: Literal["update_experience"] = "update_experience"
    params: AmountParams


StateCommand = Annotated[
    Union[UpdateHitPoints, UpdateCurrency, AddInventoryItem, RemoveInventoryItem, UpdateExperience],
    Field(discriminator="tool"),
]

STATE_TOOL_NAMES: tuple[str, ...] = (
    "update_hit_points",
    "update_currency",
    "add_inventory_item",
    "remove_inventory_item",
    "update_experience",
)

_command_adapter: TypeAdapter[Any] = TypeAdapter(StateCommand)

# Earlier entries win when a payload has several problems
_FIELD_PRIORITY = ("item_name", "amount", "currency_type", "category")


# =============================================================================
# Decoding
# =============================================================================


def _friendly_message(tool: str, params: Any, exc: PydanticValidationError) -> str:
    errors = exc.errors()
    by_field: dict[str, dict[str, Any]] = {}
    for error in errors:
        loc = error.get("loc", ())
        if loc:
            by_field.setdefault(str(loc[-1]), error)

    for field in _FIELD_PRIORITY:
        if field not in by_field:
            continue
        raw = params.get(field) if isinstance(params, dict) else None
        if field == "item_name":
            return "item_name is required."
        if field == "amount":
            return f'Invalid amount "{raw}". Must be a number.'
        if field == "currency_type":
            return f'Invalid currency type "{raw or ""}". Must be one of: {", ".join(CURRENCY_TYPES)}'
        return f'Invalid category "{raw or ""}". Must be one of: {", ".join(EQUIPMENT_CATEGORIES)}'

    return f'Invalid params for "{tool}": {errors[0].get("msg", "validation failed")}'


def decode_command(tool: str, params: Any) -> StateCommand:
    """Decode a tool name and raw arguments into a typed state command.

    Args:
        tool: Tool name as produced by the LLM.
        params: Raw argument object.

    Returns:
        One of the StateCommand variants.

    Raises:
        CommandDecodeError: If the tool is not a state tool or the
            arguments fail validation.
    """
    if tool not in STATE_TOOL_NAMES:
        raise CommandDecodeError(
            f'Unknown state tool "{tool}". Must be one of: {", ".join(STATE_TOOL_NAMES)}',
            tool_name=tool,
        )
    if params is None:
        params = {}

    try:
        return _command_adapter.validate_python({"tool": tool, "params": params})
    except PydanticValidationError as exc:
        raise CommandDecodeError(_friendly_message(tool, params, exc), tool_name=tool) from exc


def decode_call(call: StateToolCall) -> StateCommand:
    """Decode a StateToolCall. See decode_command."""
    return decode_command(call.tool, call.params)


__all__ = [
    "StateToolCall",
    "AmountParams",
    "CurrencyParams",
    "ItemParams",
    "UpdateHitPoints",
    "UpdateCurrency",
    "AddInventoryItem",
    "RemoveInventoryItem",
    "UpdateExperience",
    "StateCommand",
    "STATE_TOOL_NAMES",
    "decode_command",
    "decode_call",
]
