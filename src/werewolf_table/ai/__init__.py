"""Bots for filling seats at a table."""

from werewolf_table.ai.stub_ai import (
    StubPlayer,
    StubClient,
    create_stub_player,
)

__all__ = [
    "StubPlayer",
    "StubClient",
    "create_stub_player",
]
