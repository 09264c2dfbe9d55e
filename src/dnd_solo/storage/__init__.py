"""Storage module for dnd-solo persistence.

Provides a SQLite key-value store for the character sheet, the message
log, the campaign outline and session flags.
"""

from dnd_solo.storage.database import GameStore, get_game_store

__all__ = [
    "GameStore",
    "get_game_store",
]
