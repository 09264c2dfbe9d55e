"""DM tools: registry, reference lookups, character-state deltas.

Example:
    >>> from dnd_solo.tools import build_default_registry
    >>> registry = build_default_registry()
    >>> registry.has("getSpellDetails")
    True
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from dnd_solo.models.messages import Notification
from dnd_solo.tools.cache import TTLCache
from dnd_solo.tools.character import (
    CharacterStore,
    StateChangeResult,
    apply_state_command,
    character_tool_schemas,
    create_character_tools,
    run_state_tool,
)
from dnd_solo.tools.formatting import format_tool_result, format_tool_results
from dnd_solo.tools.reference import (
    REFERENCE_CATEGORIES,
    REFERENCE_TOOL_NAMES,
    ReferenceClient,
    ReferenceLibrary,
    ReferenceLookup,
)
from dnd_solo.tools.registry import Tool, ToolParameter, ToolRegistry


def build_default_registry(
    *,
    reference: ReferenceLibrary | None = None,
    store: CharacterStore | None = None,
    notify: Callable[[Notification], None] | None = None,
) -> ToolRegistry:
    """Create a registry holding the fixed tool set.

    Character-state tools are registered first, and only when a store is
    supplied; the fifteen reference tools follow.

    Args:
        reference: Reference library; one is created from settings if omitted.
        store: Character store backing the state tools.
        notify: Callback for state-change notifications.

    Returns:
        A populated ToolRegistry.
    """
    registry = ToolRegistry()
    if store is not None:
        for tool in create_character_tools(store, notify):
            registry.register(tool)
    for tool in (reference or ReferenceLibrary()).tools():
        registry.register(tool)
    return registry


@lru_cache(maxsize=1)
def get_reference_library() -> ReferenceLibrary:
    """Process-wide reference library (shared index lists and caches)."""
    return ReferenceLibrary()


@lru_cache(maxsize=1)
def get_registry() -> ToolRegistry:
    """Process-wide registry of the reference tools."""
    return build_default_registry(reference=get_reference_library())


__all__ = [
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "TTLCache",
    "ReferenceClient",
    "ReferenceLookup",
    "ReferenceLibrary",
    "REFERENCE_CATEGORIES",
    "REFERENCE_TOOL_NAMES",
    "CharacterStore",
    "StateChangeResult",
    "apply_state_command",
    "run_state_tool",
    "create_character_tools",
    "character_tool_schemas",
    "format_tool_result",
    "format_tool_results",
    "build_default_registry",
    "get_reference_library",
    "get_registry",
]
