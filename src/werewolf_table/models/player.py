"""Player, role and chat models."""

import time
import uuid
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Player roles in the game."""

    WEREWOLF = "WEREWOLF"
    VILLAGER = "VILLAGER"
    SEER = "SEER"
    HUNTER = "HUNTER"
    WITCH = "WITCH"


class Channel(str, Enum):
    """Chat channels."""

    PUBLIC = "PUBLIC"
    WOLF = "WOLF"


class Player(BaseModel):
    """A seat at the table.

    Uses seat (int) as primary identifier. Seats are handed out in join
    order and never reused within a session. Role stays None until the
    game starts and is immutable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    seat: int
    name: str
    role: Optional[Role] = None
    is_alive: bool = True
    has_last_words: bool = False  # one-shot posthumous speech
    is_host: bool = False
    peer_id: Optional[str] = None

    @property
    def is_werewolf(self) -> bool:
        return self.role == Role.WEREWOLF

    def label(self) -> str:
        """Short display label, e.g. ``#3 Alice``."""
        return f"#{self.seat} {self.name}"


class ChatMessage(BaseModel):
    """A single chat line. Append-only, never edited."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    sender_seat: int
    sender_name: str
    text: str
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))
    channel: Channel = Channel.PUBLIC
    is_system: bool = False
