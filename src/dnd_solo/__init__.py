"""dnd-solo: single-player D&D 5E with an LLM Dungeon Master.

The DM narrates; a tool layer keeps the character sheet in sync with the
story and attaches canonical rules data from the public 5E reference API.

Subpackages:
    core: Configuration, logging and the exception hierarchy.
    models: Character sheet, chat messages and state-tool call schemas.
    tools: Tool registry, reference lookups and character-state tools.
    llm: OpenAI client wrapper and prompt templates.
    dm: Tool executor, state extractor, turn orchestration and creation.
    storage: SQLite-backed game store.
    api: FastAPI server.
"""

__version__ = "0.1.0"
