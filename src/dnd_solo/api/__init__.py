"""HTTP interface for the solo D&D game."""

from dnd_solo.api.server import create_app, main

__all__ = ["create_app", "main"]
