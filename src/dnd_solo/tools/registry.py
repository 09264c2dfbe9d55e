"""Tool registry: named, schema-described functions the DM can request.

Tools are defined by Python and called by the LLM. The LLM supplies
arguments, Python executes. The registry renders every tool into a
deterministic prose block that is embedded in prompts, and into
OpenAI function schemas for in-stream function calling.

Example:
    >>> registry = ToolRegistry()
    >>> registry.register(Tool(
    ...     name="getSpellDetails",
    ...     description="Look up a spell.",
    ...     parameters=(ToolParameter(name="spellName", type="string",
    ...                               description="Spell name", required=True),),
    ...     handler=lambda params: {"name": params["spellName"]},
    ... ))
    >>> registry.execute("getSpellDetails", {"spellName": "Fireball"})
    {'name': 'Fireball'}
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from dnd_solo.core.exceptions import ToolNotFoundError, ToolRegistrationError
from dnd_solo.core.logging import get_logger


logger = get_logger(__name__)

ToolHandler = Callable[[Mapping[str, Any]], Any]
ParameterType = Literal["string", "number", "integer", "boolean"]


# =============================================================================
# Tool Definitions
# =============================================================================


@dataclass(frozen=True)
class ToolParameter:
    """One named argument of a tool.

    Attributes:
        name: Argument name as the LLM must spell it.
        type: Primitive type tag.
        description: Prose shown to the LLM.
        required: Whether the argument must be supplied.
    """

    name: str
    type: ParameterType
    description: str
    required: bool = True

    def to_prompt(self) -> str:
        flag = "required" if self.required else "optional"
        return f"{self.name}: {self.type} - {self.description} [{flag}]"


@dataclass(frozen=True)
class Tool:
    """A capability the DM can invoke. Immutable once registered.

    Attributes:
        name: Unique identifier.
        description: Human-readable description, fed verbatim into prompts.
        parameters: Ordered argument list.
        handler: Callable receiving the argument mapping.
    """

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)
    handler: ToolHandler = field(default=lambda params: None, compare=False, repr=False)

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        p.name: {"type": p.type, "description": p.description}
                        for p in self.parameters
                    },
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }

    def to_prompt(self) -> str:
        """Render the one-line schema used by tool-selection prompts."""
        params = ", ".join(p.to_prompt() for p in self.parameters)
        return f"- {self.name}: {self.description} Arguments: {{ {params} }}"


# =============================================================================
# Registry
# =============================================================================


class ToolRegistry:
    """Mapping from tool name to Tool, with dispatch by name.

    Registration order is preserved, so rendered prompts are
    deterministic. Registering a name twice is an error.
    """

    def __init__(self, tools: Iterable[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools or ():
            self.register(tool)

    def register(self, tool: Tool) -> Tool:
        """Store a tool by name.

        Args:
            tool: Tool to register.

        Returns:
            The registered tool.

        Raises:
            ToolRegistrationError: If a tool with the same name exists.
        """
        if tool.name in self._tools:
            raise ToolRegistrationError(
                f"Tool {tool.name} is already registered",
                tool_name=tool.name,
            )
        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool=tool.name)
        return tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def count(self) -> int:
        return len(self._tools)

    def all_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def execute(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        """Execute a tool by name.

        Args:
            name: Registered tool name.
            params: Argument mapping passed to the handler.

        Returns:
            Whatever the handler returns.

        Raises:
            ToolNotFoundError: If no tool has this name.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool {name} not found", tool_name=name)
        logger.debug("Executing tool", tool=name, params=dict(params or {}))
        return tool.handler(dict(params or {}))

    def generate_tool_descriptions(self) -> str:
        """Render ``- name: description`` for every tool, one per line."""
        return "\n".join(f"- {t.name}: {t.description}" for t in self._tools.values())

    def generate_tool_schema_prompt(self, names: Iterable[str] | None = None) -> str:
        """Render every tool with its argument list, one per line.

        Args:
            names: Optional subset of tool names to include.

        Returns:
            Prompt text in registration order.
        """
        return "\n".join(t.to_prompt() for t in self._select(names))

    def openai_schemas(self, names: Iterable[str] | None = None) -> list[dict[str, Any]]:
        """Return OpenAI function schemas for all or some tools."""
        return [t.to_openai_schema() for t in self._select(names)]

    def _select(self, names: Iterable[str] | None) -> list[Tool]:
        if names is None:
            return self.all_tools()
        wanted = set(names)
        return [t for t in self._tools.values() if t.name in wanted]


__all__ = [
    "ToolHandler",
    "ToolParameter",
    "Tool",
    "ToolRegistry",
]
