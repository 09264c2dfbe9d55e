"""SQLite persistence for the solo game.

A small key-value table of JSON documents holds everything a session
needs:
- login flag and character-created flag
- the character sheet
- the append-only message log
- the campaign outline and UI filter state
- the reconciliation bookmark (messages already checked for state changes)

Storage location defaults to ``data/dnd_solo.db`` (see StorageSettings).
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from pydantic import ValidationError as PydanticValidationError

from dnd_solo.core.config import get_settings
from dnd_solo.core.exceptions import StorageError
from dnd_solo.core.logging import get_logger
from dnd_solo.models.character import Character
from dnd_solo.models.messages import Message, Sender


logger = get_logger(__name__)


# Store keys
LOGGED_IN = "logged_in"
CHARACTER = "character"
CHARACTER_CREATED = "character_created"
MESSAGES = "messages"
CAMPAIGN_OUTLINE = "campaign_outline"
FILTERS = "filters"
RECONCILED_THROUGH = "reconciled_through"


# =============================================================================
# Game Store
# =============================================================================


class GameStore:
    """SQLite-backed key-value store for one player's game.

    Every operation opens its own connection, so a store can be shared
    between the API threadpool and the CLI.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the database file; parent directories are created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info(f"Game store initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open game store: {exc}", details={"path": str(self.db_path)}) from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Game store operation failed: {exc}", details={"path": str(self.db_path)}) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS game_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    # =========================================================================
    # Raw Access
    # =========================================================================

    @staticmethod
    def _read(conn: sqlite3.Connection, key: str, default: Any = None) -> Any:
        row = conn.execute("SELECT value FROM game_state WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise StorageError(f"Stored value for {key!r} is not valid JSON", details={"key": key}) from exc

    @staticmethod
    def _write(conn: sqlite3.Connection, key: str, value: Any) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO game_state (key, value, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), datetime.now(timezone.utc).isoformat()),
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Read a JSON value, or ``default`` if the key is unset."""
        with self._get_connection() as conn:
            return self._read(conn, key, default)

    def set(self, key: str, value: Any) -> None:
        """Write a JSON-serializable value."""
        with self._get_connection() as conn:
            self._write(conn, key, value)

    def delete(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM game_state WHERE key = ?", (key,))

    # =========================================================================
    # Session Flags
    # =========================================================================

    def is_logged_in(self) -> bool:
        return bool(self.get(LOGGED_IN, False))

    def set_logged_in(self, value: bool) -> None:
        self.set(LOGGED_IN, bool(value))

    def is_character_created(self) -> bool:
        return bool(self.get(CHARACTER_CREATED, False))

    def set_character_created(self, value: bool) -> None:
        self.set(CHARACTER_CREATED, bool(value))

    # =========================================================================
    # Character
    # =========================================================================

    def load_character(self) -> Character:
        """Load the character sheet, or a fresh default one if none is saved.

        Raises:
            StorageError: If the stored sheet no longer validates.
        """
        data = self.get(CHARACTER)
        if data is None:
            return Character()
        try:
            return Character.model_validate(data)
        except PydanticValidationError as exc:
            raise StorageError("Stored character is invalid", details={"errors": exc.error_count()}) from exc

    def save_character(self, character: Character) -> None:
        self.set(CHARACTER, character.to_wire())

    # =========================================================================
    # Message Log
    # =========================================================================

    def messages(self) -> list[Message]:
        """Return the conversation log, oldest first."""
        return [Message.model_validate(m) for m in self.get(MESSAGES, [])]

    def add_message(self, content: str, sender: Sender) -> Message:
        """Append a message to the log and return it."""
        message = Message(content=content, sender=sender)
        with self._get_connection() as conn:
            log = self._read(conn, MESSAGES, [])
            log.append(message.model_dump(mode="json"))
            self._write(conn, MESSAGES, log)
        return message

    def update_last_message(self, content: str) -> bool:
        """Replace the content of the last message if the DM sent it.

        Returns:
            True if a message was updated.
        """
        with self._get_connection() as conn:
            log = self._read(conn, MESSAGES, [])
            if not log or log[-1].get("sender") != "ai":
                return False
            log[-1]["content"] = content
            self._write(conn, MESSAGES, log)
        return True

    def clear_messages(self) -> None:
        """Empty the log; the reconciliation bookmark goes with it."""
        with self._get_connection() as conn:
            self._write(conn, MESSAGES, [])
            self._write(conn, RECONCILED_THROUGH, 0)

    # =========================================================================
    # Campaign, Filters, Bookmark
    # =========================================================================

    def get_campaign_outline(self) -> str | None:
        return self.get(CAMPAIGN_OUTLINE)

    def set_campaign_outline(self, outline: str | None) -> None:
        self.set(CAMPAIGN_OUTLINE, outline)

    def get_filters(self) -> dict[str, Any]:
        return dict(self.get(FILTERS, {}))

    def set_filters(self, filters: dict[str, Any]) -> None:
        self.set(FILTERS, dict(filters))

    def reconciled_through(self) -> int:
        """Number of log messages already checked for state changes."""
        return int(self.get(RECONCILED_THROUGH, 0))

    def set_reconciled_through(self, count: int) -> None:
        self.set(RECONCILED_THROUGH, max(0, int(count)))

    def reset(self) -> None:
        """Forget everything: the next load starts a brand-new game."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM game_state")
        logger.info("Game store reset", path=str(self.db_path))


# =============================================================================
# Singleton Instance
# =============================================================================


_store_instance: GameStore | None = None


def get_game_store() -> GameStore:
    """Get the global game store, built from StorageSettings.

    Returns:
        GameStore singleton instance.
    """
    global _store_instance

    if _store_instance is None:
        _store_instance = GameStore(get_settings().storage.database_path)

    return _store_instance


__all__ = [
    "GameStore",
    "get_game_store",
]
