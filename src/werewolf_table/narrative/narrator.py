"""Narrative collaborator - night stories and discussion prompts.

The narrator is an external, fallible service. Callers never talk to it
directly: narrate_with_fallback() bounds every call with a timeout and
swaps in deterministic text on any failure, so phase progress never waits
on it indefinitely.
"""

import asyncio
import logging
from typing import Awaitable, Protocol

from werewolf_table.models.player import Player

logger = logging.getLogger(__name__)

DEFAULT_NARRATIVE_TIMEOUT = 10.0


class Narrator(Protocol):
    """Produces flavor text for the host story panel."""

    async def generate_night_story(
        self,
        round: int,
        dead_players: list[Player],
        all_players: list[Player],
    ) -> str:
        """Describe the night that just ended."""
        ...

    async def generate_discussion_prompt(self, alive_players: list[Player]) -> str:
        """Open the day's discussion."""
        ...


def fallback_night_story(dead_players: list[Player]) -> str:
    """Deterministic night story naming the dead."""
    if not dead_players:
        return "Last night was peaceful. Nobody died."
    names = ", ".join(p.name for p in dead_players)
    return f"Last night, {names} met a gruesome end."


def fallback_discussion_prompt() -> str:
    return "Begin the discussion and find the werewolves hiding among you."


class FallbackNarrator:
    """Narrator that only ever returns the deterministic texts."""

    async def generate_night_story(
        self,
        round: int,
        dead_players: list[Player],
        all_players: list[Player],
    ) -> str:
        return fallback_night_story(dead_players)

    async def generate_discussion_prompt(self, alive_players: list[Player]) -> str:
        return fallback_discussion_prompt()


async def narrate_with_fallback(
    call: Awaitable[str],
    fallback: str,
    timeout: float = DEFAULT_NARRATIVE_TIMEOUT,
) -> str:
    """Await a narrator call, degrading to ``fallback`` on failure.

    Args:
        call: The pending narrator coroutine.
        fallback: Text used on timeout, error or empty output.
        timeout: Seconds to wait before giving up.

    Returns:
        Narrator text, or the fallback.
    """
    try:
        text = await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Narrator timed out after %.1fs, using fallback", timeout)
        return fallback
    except Exception as e:
        logger.warning("Narrator failed (%s), using fallback", e)
        return fallback
    if not text or not text.strip():
        return fallback
    return text.strip()
