"""FastAPI server for the solo D&D game.

Streaming endpoints return plain text; everything else is JSON. Handlers
are sync functions (FastAPI runs them in its threadpool) because the
LLM, reference and storage layers are sync.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from dnd_solo.core.config import get_settings
from dnd_solo.core.exceptions import (
    AIControlError,
    ConfigurationError,
    DndSoloError,
    StorageError,
)
from dnd_solo.core.logging import configure_logging, get_logger
from dnd_solo.dm.creation import generate_campaign_outline, generate_character_details
from dnd_solo.dm.executor import execute_tools_from_response, parse_tool_selection, run_selected_tools
from dnd_solo.dm.extractor import extract_state_changes
from dnd_solo.dm.orchestrator import NARRATION_ERROR, ChatOrchestrator, TurnSummary
from dnd_solo.llm.client import LLMClient, parse_json_object
from dnd_solo.llm.prompts import build_test_tool_selection_messages
from dnd_solo.models.character import Character
from dnd_solo.models.messages import Message
from dnd_solo.storage.database import GameStore, get_game_store
from dnd_solo.tools import build_default_registry, get_reference_library
from dnd_solo.tools.formatting import format_tool_result, format_tool_results
from dnd_solo.tools.reference import ReferenceLibrary
from dnd_solo.tools.registry import ToolRegistry


logger = get_logger(__name__)

TEST_SELECTION_MAX_TOKENS = 500


# =============================================================================
# Request Models
# =============================================================================


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChatRequest(_Body):
    messages: list[Message] = Field(default_factory=list)
    character: Character = Field(default_factory=Character)
    campaign_outline: str | None = Field(default=None, alias="campaignOutline")


class TurnRequest(_Body):
    input: str = Field(..., min_length=1, description="Player's message to the DM")


class StateChangesRequest(_Body):
    messages: list[Message] = Field(default_factory=list)
    character: Character = Field(default_factory=Character)


class UserInputRequest(_Body):
    user_input: str = Field(..., alias="userInput")


class ToolTestRequest(_Body):
    tool_name: str = Field(..., alias="toolName")
    args: dict[str, Any] = Field(default_factory=dict)


class ExecutorTestRequest(_Body):
    user_input: str = Field(..., alias="userInput")
    ai_response: str = Field(..., validation_alias=AliasChoices("aiResponse", "ai_response"))


class CampaignRequest(_Body):
    character: Character


# =============================================================================
# Helpers
# =============================================================================


def _error_status(exc: DndSoloError) -> int:
    if isinstance(exc, ConfigurationError):
        return 503
    if isinstance(exc, AIControlError):
        return 502
    return 500


def _formatted(tool_name: str | None, result: Any) -> str | None:
    if tool_name is None or result is None:
        return None
    return format_tool_result(tool_name, result)


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    orchestrator: ChatOrchestrator | None = None,
    registry: ToolRegistry | None = None,
    store: GameStore | None = None,
    *,
    llm: LLMClient | None = None,
    reference: ReferenceLibrary | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Every collaborator can be injected; missing ones are built from
    settings. Nothing here touches the network or needs an API key
    until a request arrives.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.is_production)

    store = store or (orchestrator.store if orchestrator else get_game_store())
    llm = llm or (orchestrator.llm if orchestrator else LLMClient(settings.llm))
    reference = reference or get_reference_library()
    registry = registry or build_default_registry(reference=reference, store=store)
    if orchestrator is None:
        orchestrator = ChatOrchestrator(store, llm, registry)

    app = FastAPI(
        title=settings.app_name,
        description="Solo D&D adventure with an LLM Dungeon Master",
        version=settings.app_version,
    )
    app.state.store = store
    app.state.llm = llm
    app.state.registry = registry
    app.state.reference = reference
    app.state.orchestrator = orchestrator
    app.state.last_turn = None

    @app.exception_handler(DndSoloError)
    def handle_domain_error(request: Request, exc: DndSoloError) -> JSONResponse:
        logger.error("Request failed", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=_error_status(exc),
            content={"success": False, "error": exc.message, "details": exc.details},
        )

    # -------------------------------------------------------------------------
    # Health & state
    # -------------------------------------------------------------------------

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Check service health."""
        return {"status": "healthy", "version": settings.app_version}

    @app.get("/api/state")
    def get_state() -> dict[str, Any]:
        """Character sheet, message log, outline and the last turn summary."""
        last: TurnSummary | None = app.state.last_turn
        return {
            "character": store.load_character().to_wire(),
            "messages": [m.model_dump(mode="json") for m in store.messages()],
            "campaignOutline": store.get_campaign_outline(),
            "lastTurn": last.to_dict() if last else None,
        }

    # -------------------------------------------------------------------------
    # Narration
    # -------------------------------------------------------------------------

    @app.post("/api/chat")
    def chat(body: ChatRequest) -> StreamingResponse:
        """Stream narration for a client-held conversation."""

        def generate() -> Iterator[str]:
            try:
                yield from orchestrator.stream_narration(body.messages, body.character, body.campaign_outline)
            except (AIControlError, ConfigurationError) as exc:
                logger.error("Chat stream failed", error=str(exc))
                yield NARRATION_ERROR

        return StreamingResponse(generate(), media_type="text/plain; charset=utf-8")

    @app.post("/api/turn")
    def turn(body: TurnRequest) -> StreamingResponse:
        """Play a full stateful turn; the summary lands in GET /api/state."""

        def generate() -> Iterator[str]:
            for item in orchestrator.play_turn(body.input):
                if isinstance(item, TurnSummary):
                    app.state.last_turn = item
                else:
                    yield item

        return StreamingResponse(generate(), media_type="text/plain; charset=utf-8")

    @app.post("/api/state-changes")
    def state_changes(body: StateChangesRequest) -> dict[str, Any]:
        """Run the extractor only; nothing is applied."""
        calls = extract_state_changes(body.messages, body.character, llm)
        return {"tool_calls": [c.model_dump() for c in calls]}

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    @app.post("/api/character/generate")
    def generate_character(partial: Character) -> dict[str, Any]:
        """Fill in a partial character and make it the active sheet."""
        character = generate_character_details(partial, reference, llm)
        store.save_character(character)
        store.set_character_created(True)
        return character.to_wire()

    @app.post("/api/campaign/outline")
    def campaign_outline(body: CampaignRequest) -> dict[str, Any]:
        outline = generate_campaign_outline(body.character, registry, llm)
        store.set_campaign_outline(outline)
        return {"outline": outline}

    # -------------------------------------------------------------------------
    # Debug surfaces
    # -------------------------------------------------------------------------

    def select_and_run(user_input: str, *, complex_examples: bool) -> Any:
        messages = build_test_tool_selection_messages(registry, user_input, complex_examples=complex_examples)
        try:
            raw = llm.complete(
                messages,
                model=settings.llm.tool_selection_model,
                temperature=settings.llm.tool_temperature,
                max_tokens=TEST_SELECTION_MAX_TOKENS,
                json_mode=True,
            )
            outcome = run_selected_tools(parse_tool_selection(parse_json_object(raw)), registry)
        except (AIControlError, ConfigurationError) as exc:
            return JSONResponse(
                status_code=_error_status(exc),
                content={"success": False, "userInput": user_input, "error": exc.message},
            )

        formatted = format_tool_results(outcome.successes) if complex_examples else _formatted(
            outcome.tool_name, outcome.result
        )
        return {
            "success": True,
            "userInput": user_input,
            **outcome.to_dict(),
            "formattedResult": formatted,
            "rawLlmResponse": raw,
        }

    @app.post("/api/test-tools")
    def test_tools(body: UserInputRequest) -> Any:
        return select_and_run(body.user_input, complex_examples=False)

    @app.post("/api/test-complex")
    def test_complex(body: UserInputRequest) -> Any:
        return select_and_run(body.user_input, complex_examples=True)

    @app.get("/api/test-new-tools")
    def list_tools() -> dict[str, Any]:
        return {
            "availableTools": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": [
                        {"name": p.name, "type": p.type, "description": p.description, "required": p.required}
                        for p in tool.parameters
                    ],
                }
                for tool in registry.all_tools()
            ]
        }

    @app.post("/api/test-new-tools")
    def run_tool(body: ToolTestRequest) -> Any:
        if not registry.has(body.tool_name):
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": f"Tool '{body.tool_name}' not found",
                    "availableTools": registry.names(),
                },
            )
        try:
            result = registry.execute(body.tool_name, body.args)
        except Exception as exc:
            logger.exception("Tool test failed", tool=body.tool_name)
            return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
        return {"success": True, "toolName": body.tool_name, "args": body.args, "result": result}

    @app.post("/api/test-executor")
    def test_executor(body: ExecutorTestRequest) -> dict[str, Any]:
        outcome = execute_tools_from_response(body.ai_response, body.user_input, registry, llm)
        return {
            "success": outcome.error is None,
            **outcome.to_dict(),
            "formattedResult": _formatted(outcome.tool_name, outcome.result),
        }

    logger.info("API ready", tools=registry.count(), database=str(store.db_path))
    return app


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()
    try:
        app = create_app()
    except StorageError as exc:
        logger.error("Cannot open game store", error=str(exc))
        raise SystemExit(1) from exc

    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
