"""Tests for structured logging helpers."""

from __future__ import annotations

import pytest
import structlog

from dnd_solo.core.logging import (
    MAX_FIELD_CHARS,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    truncate_long_values,
    turn_context,
)


class TestTruncateLongValues:
    """Tests for the payload-shortening processor."""

    def test_long_field_cut(self) -> None:
        raw = "x" * (MAX_FIELD_CHARS + 50)

        event = truncate_long_values(None, "info", {"event": "LLM answered", "raw": raw})

        assert event["raw"].startswith("x" * MAX_FIELD_CHARS)
        assert event["raw"].endswith(f"({len(raw)} chars)")

    def test_event_and_short_fields_kept(self) -> None:
        message = "y" * (MAX_FIELD_CHARS + 1)

        event = truncate_long_values(None, "info", {"event": message, "tool": "getSpellDetails", "count": 3})

        assert event == {"event": message, "tool": "getSpellDetails", "count": 3}


class TestContext:
    """Tests for context binding."""

    def test_turn_context_scoped(self) -> None:
        clear_context()
        bind_context(session="cli")

        with turn_context(turn=4):
            assert structlog.contextvars.get_contextvars() == {"session": "cli", "turn": 4}

        assert structlog.contextvars.get_contextvars() == {"session": "cli"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_mode_logs(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="DEBUG", json_format=True)

        get_logger("dnd_solo.test").info("Reference index loaded", category="spells")

        err = capsys.readouterr().err
        assert '"event": "Reference index loaded"' in err
        assert '"app": "dnd_solo"' in err

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(level="WARNING")

        get_logger("dnd_solo.test").info("hidden")

        assert "hidden" not in capsys.readouterr().err
