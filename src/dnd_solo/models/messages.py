"""Chat message and notification schemas."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


Sender = Literal["user", "ai"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """One entry of the append-only conversation log.

    Attributes:
        id: Unique message identifier.
        content: Message text (markdown for DM messages).
        sender: "user" for the player, "ai" for the Dungeon Master.
        timestamp: When the message was created.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str
    sender: Sender
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def speaker(self) -> str:
        """Label used when the message is quoted inside a prompt."""
        return "Player" if self.sender == "user" else "DM"


class Notification(BaseModel):
    """A user-facing toast describing a character-state change.

    Attributes:
        title: Short headline, e.g. "💔 6 damage".
        description: Supporting line, usually the reason and new totals.
        tone: Display hint for the client.
    """

    title: str
    description: str = ""
    tone: Literal["success", "danger", "info"] = "info"

    def __str__(self) -> str:
        if self.description:
            return f"{self.title} ({self.description})"
        return self.title


__all__ = ["Sender", "Message", "Notification"]
