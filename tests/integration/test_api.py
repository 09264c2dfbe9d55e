"""Integration tests for the FastAPI server (LLM mocked, real store)."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from conftest import extraction_answer, stream_of
from dnd_solo.api.server import create_app
from dnd_solo.core.exceptions import AIConnectionError, ConfigurationError
from dnd_solo.dm.orchestrator import NARRATION_ERROR
from dnd_solo.storage.database import GameStore


FIREBALL_SELECTION = json.dumps({"tool": "getSpellDetails", "args": {"spellName": "Fireball"}})


@pytest.fixture
def client(seeded_store: GameStore, mock_llm: MagicMock, reference_library: Any) -> TestClient:
    app = create_app(store=seeded_store, llm=mock_llm, reference=reference_library)
    return TestClient(app)


class TestHealthAndState:
    """Tests for /health and /api/state."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0"}

    def test_state(self, client: TestClient) -> None:
        body = client.get("/api/state").json()

        assert body["character"]["name"] == "Thorin"
        assert body["character"]["maxHitPoints"] == 20
        assert body["messages"] == []
        assert body["campaignOutline"] is None
        assert body["lastTurn"] is None


class TestNarration:
    """Tests for the streaming endpoints."""

    def test_chat_streams_text(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.stream.return_value = stream_of("The tavern ", "is warm.")

        response = client.post(
            "/api/chat",
            json={
                "messages": [{"content": "I enter the tavern.", "sender": "user"}],
                "character": {"name": "Mira", "classes": ["Wizard"]},
                "campaignOutline": "# Act I",
            },
        )

        assert response.status_code == 200
        assert response.text == "The tavern is warm."
        system = mock_llm.stream.call_args.args[0][0]["content"]
        assert "Name: Mira" in system
        assert "# Act I" in system

    def test_chat_failure_streams_apology(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.stream.side_effect = AIConnectionError("offline")

        response = client.post("/api/chat", json={"messages": []})

        assert response.status_code == 200
        assert response.text == NARRATION_ERROR

    def test_turn_updates_state(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.stream.side_effect = [stream_of("A goblin strikes you.")]
        mock_llm.complete.side_effect = [
            '{"tool": null}',
            extraction_answer({"tool": "update_hit_points", "params": {"amount": -4, "reason": "goblin"}}),
        ]

        response = client.post("/api/turn", json={"input": "I walk into the cave"})

        assert response.text == "A goblin strikes you."
        state = client.get("/api/state").json()
        assert state["character"]["hitPoints"] == 16
        assert [m["sender"] for m in state["messages"]] == ["user", "ai"]
        assert state["lastTurn"]["reconciled"] == [
            {"tool": "update_hit_points", "params": {"amount": -4, "reason": "goblin"}}
        ]
        assert state["lastTurn"]["notifications"][0]["title"] == "💔 4 damage"

    def test_turn_requires_input(self, client: TestClient) -> None:
        assert client.post("/api/turn", json={"input": ""}).status_code == 422

    def test_state_changes_only_extracts(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = extraction_answer(
            {"tool": "update_currency", "params": {"currency_type": "gold", "amount": -1}}
        )

        response = client.post(
            "/api/state-changes",
            json={
                "messages": [
                    {"content": "I pay for the ale.", "sender": "user"},
                    {"content": "One gold, please.", "sender": "ai"},
                ],
                "character": {"name": "Thorin"},
            },
        )

        assert response.json() == {
            "tool_calls": [{"tool": "update_currency", "params": {"currency_type": "gold", "amount": -1}}]
        }
        assert client.get("/api/state").json()["character"]["money"]["gold"] == 10


class TestCreation:
    """Tests for character and campaign generation endpoints."""

    def test_generate_character(self, client: TestClient, mock_llm: MagicMock, seeded_store: GameStore) -> None:
        mock_llm.complete_json.return_value = {"name": "Mira", "backStory": "Raised by owls."}

        response = client.post("/api/character/generate", json={"classes": ["Wizard"], "level": 2})

        body = response.json()
        assert response.status_code == 200
        assert body["name"] == "Mira"
        assert body["classes"] == ["Wizard"]
        assert body["hitPoints"] == body["maxHitPoints"]
        assert seeded_store.load_character().name == "Mira"
        assert seeded_store.is_character_created() is True

    def test_campaign_outline(self, client: TestClient, mock_llm: MagicMock, seeded_store: GameStore) -> None:
        mock_llm.complete.return_value = "# The Sunken Crypt"

        response = client.post("/api/campaign/outline", json={"character": {"name": "Thorin"}})

        assert response.json() == {"outline": "# The Sunken Crypt"}
        assert seeded_store.get_campaign_outline() == "# The Sunken Crypt"

    def test_missing_api_key_is_503(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.side_effect = ConfigurationError("LLM API key not configured", config_key="openai_api_key")

        response = client.post("/api/campaign/outline", json={"character": {"name": "Thorin"}})

        assert response.status_code == 503
        assert response.json()["error"] == "LLM API key not configured"
        assert response.json()["details"] == {"config_key": "openai_api_key"}


class TestDebugEndpoints:
    """Tests for the tool debugging surfaces."""

    def test_tools_selects_and_formats(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = FIREBALL_SELECTION

        body = client.post("/api/test-tools", json={"userInput": "Tell me about fireball"}).json()

        assert body["success"] is True
        assert body["toolUsed"] is True
        assert body["toolName"] == "getSpellDetails"
        assert body["formattedResult"].startswith("\n\n**Spell Information**:")
        assert body["rawLlmResponse"] == FIREBALL_SELECTION

    def test_tools_llm_failure(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.side_effect = AIConnectionError("offline")

        response = client.post("/api/test-tools", json={"userInput": "Tell me about fireball"})

        assert response.status_code == 502
        assert response.json()["error"] == "offline"

    def test_complex_runs_every_selected_tool(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = json.dumps({
            "tools": [
                {"tool": "getSpellDetails", "args": {"spellName": "Fireball"}},
                {"tool": "getMonsterStats", "args": {"monsterName": "Goblin"}},
            ]
        })

        body = client.post("/api/test-complex", json={"userInput": "Fireball vs goblins"}).json()

        assert len(body["allResults"]) == 2
        assert "**Spell Information**" in body["formattedResult"]
        assert "Monster Information" not in body["formattedResult"]

    def test_list_tools(self, client: TestClient) -> None:
        tools = client.get("/api/test-new-tools").json()["availableTools"]
        names = [t["name"] for t in tools]

        assert len(tools) == 20
        assert names[0] == "update_hit_points"
        assert "getSpellDetails" in names

    def test_run_unknown_tool(self, client: TestClient) -> None:
        response = client.post("/api/test-new-tools", json={"toolName": "getDragon", "args": {}})

        assert response.status_code == 404
        assert "getSpellDetails" in response.json()["availableTools"]

    def test_run_reference_tool(self, client: TestClient) -> None:
        body = client.post(
            "/api/test-new-tools",
            json={"toolName": "getSpellDetails", "args": {"spellName": "fireball"}},
        ).json()

        assert body["success"] is True
        assert body["result"]["name"] == "Fireball"

    def test_run_character_tool(self, client: TestClient, seeded_store: GameStore) -> None:
        body = client.post(
            "/api/test-new-tools",
            json={"toolName": "update_hit_points", "args": {"amount": -5, "reason": "test"}},
        ).json()

        assert body["result"]["newHP"] == 15
        assert seeded_store.load_character().hit_points == 15

    def test_executor(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = FIREBALL_SELECTION

        body = client.post(
            "/api/test-executor",
            json={"userInput": "I cast fireball", "aiResponse": "Flames erupt."},
        ).json()

        assert body["success"] is True
        assert body["toolUsed"] is True
        assert "**School**: Evocation" in body["formattedResult"]

    def test_executor_nothing_selected(self, client: TestClient, mock_llm: MagicMock) -> None:
        mock_llm.complete.return_value = '{"tool": null}'

        body = client.post(
            "/api/test-executor",
            json={"userInput": "I nap", "aiResponse": "You sleep."},
        ).json()

        assert body["toolUsed"] is False
        assert body["formattedResult"] is None
