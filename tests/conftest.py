"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the dnd-solo test suite.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from dnd_solo.llm.client import StreamChunk


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dnd_solo.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DND_SOLO_OPENAI_API_KEY": "test-openai-key",
        "DND_SOLO_DEBUG": "true",
        "DND_SOLO_LOG_LEVEL": "DEBUG",
        "DND_SOLO_DATABASE_PATH": str(tmp_path / "env.db"),
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def sample_character_data() -> dict[str, Any]:
    """Provide a wire-format (camelCase) character sheet.

    Returns:
        Dictionary of character data.
    """
    return {
        "name": "Thorin",
        "species": "Dwarf",
        "background": "Soldier",
        "alignment": "Lawful Good",
        "classes": ["Fighter"],
        "subClass": "Champion",
        "level": 3,
        "experience": 900,
        "hitPoints": 20,
        "maxHitPoints": 20,
        "armorClass": 16,
        "initiative": 1,
        "speed": 25,
        "strength": 16,
        "dexterity": 12,
        "constitution": 15,
        "intelligence": 10,
        "wisdom": 13,
        "charisma": 8,
        "money": {"gold": 10, "silver": 5},
        "equipment": {
            "weapons": ["Longsword", "Dagger"],
            "armor": ["Chain Mail"],
            "items": ["Rope (50 feet)"],
        },
    }


@pytest.fixture
def sample_character(sample_character_data: dict[str, Any]) -> Any:
    """Create a sample Character instance for testing."""
    from dnd_solo.models.character import Character

    return Character.model_validate(sample_character_data)


@pytest.fixture
def sample_messages() -> list[Any]:
    """A two-exchange conversation."""
    from dnd_solo.models.messages import Message

    return [
        Message(content="I enter the tavern.", sender="user"),
        Message(content="The barkeep nods at you.", sender="ai"),
        Message(content="I toss him a gold coin for a drink.", sender="user"),
        Message(content="He bites the coin and pours you an ale.", sender="ai"),
    ]


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def game_store(tmp_path: Path) -> Any:
    """A GameStore backed by a temporary database file."""
    from dnd_solo.storage.database import GameStore

    return GameStore(tmp_path / "game.db")


@pytest.fixture
def seeded_store(game_store: Any, sample_character: Any) -> Any:
    """A GameStore holding the sample character."""
    game_store.save_character(sample_character)
    game_store.set_character_created(True)
    return game_store


# =============================================================================
# LLM Fixtures
# =============================================================================


@pytest.fixture
def mock_llm() -> MagicMock:
    """An LLMClient stand-in with real LLM settings attached.

    Configure ``complete.return_value`` / ``stream.side_effect`` per test.
    """
    from dnd_solo.core.config import LLMSettings
    from dnd_solo.llm.client import LLMClient

    llm = MagicMock(spec=LLMClient)
    llm.settings = LLMSettings(openai_api_key="test-key")
    return llm


def stream_of(*texts: str, tool_calls: list[Any] | None = None) -> list[StreamChunk]:
    """Build the chunk list one streamed completion would yield."""
    from dnd_solo.llm.client import StreamChunk

    chunks = [StreamChunk(text=text) for text in texts]
    if tool_calls:
        chunks.append(StreamChunk(tool_calls=list(tool_calls)))
    return chunks


def extraction_answer(*calls: dict[str, Any]) -> str:
    """JSON body an extraction model would return."""
    return json.dumps({"tool_calls": list(calls)})


# =============================================================================
# Reference Fixtures
# =============================================================================


SPELL_INDEX = {
    "count": 2,
    "results": [
        {"index": "fireball", "name": "Fireball", "url": "/api/2014/spells/fireball"},
        {"index": "mage-armor", "name": "Mage Armor", "url": "/api/2014/spells/mage-armor"},
    ],
}

FIREBALL = {
    "index": "fireball",
    "name": "Fireball",
    "level": 3,
    "school": {"name": "Evocation"},
    "casting_time": "1 action",
    "range": "150 feet",
    "components": ["V", "S", "M"],
    "material": "A tiny ball of bat guano and sulfur.",
    "duration": "Instantaneous",
    "desc": ["A bright streak flashes from your pointing finger."],
    "classes": [{"name": "Sorcerer"}, {"name": "Wizard"}],
}


def json_response(payload: Any, status_code: int = 200) -> MagicMock:
    """A requests.Response stand-in."""
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.json.return_value = payload
    return response


@pytest.fixture
def reference_session() -> MagicMock:
    """A requests session serving the spell index and Fireball."""

    def get(url: str, timeout: float | None = None) -> MagicMock:
        if url.endswith("/api/2014/spells"):
            return json_response(SPELL_INDEX)
        if url.endswith("/api/2014/spells/fireball"):
            return json_response(FIREBALL)
        if url.endswith("/api/2014/races") or url.endswith("/api/2014/classes"):
            return json_response({"count": 0, "results": []})
        return json_response({"error": "Not found"}, status_code=404)

    session = MagicMock()
    session.get.side_effect = get
    return session


@pytest.fixture
def reference_library(reference_session: MagicMock) -> Any:
    """A ReferenceLibrary whose HTTP traffic goes to reference_session."""
    from dnd_solo.core.config import ReferenceAPISettings
    from dnd_solo.tools.reference import ReferenceClient, ReferenceLibrary

    settings = ReferenceAPISettings()
    return ReferenceLibrary(ReferenceClient(settings, session=reference_session), settings)
