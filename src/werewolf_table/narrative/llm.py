"""Narrator backed by an OpenAI-compatible chat completion endpoint."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from werewolf_table.models.player import Player

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class NarratorCallError(Exception):
    """The completion endpoint failed or answered with an unexpected shape."""


class LLMNarrator:
    """Generates atmospheric narration through a chat completion API.

    Errors are raised as NarratorCallError; the host wraps every call in
    narrate_with_fallback(), so a failing endpoint only costs flavor text.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model_name: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model_name = model_name
        self._transport = transport

    async def generate_night_story(
        self,
        round: int,
        dead_players: list[Player],
        all_players: list[Player],
    ) -> str:
        prompt = (
            "You are the game master of a dark, eerie game of Werewolf. "
            f"It is the morning of day {round}."
        )
        if not dead_players:
            prompt += (
                " Last night was peaceful and nobody died. Describe the uneasy"
                " calm of the village in one short, suspenseful sentence (under 50 words)."
            )
        else:
            dead = ", ".join(f"{p.name} ({p.role.value if p.role else 'unknown'})" for p in dead_players)
            prompt += (
                f" Tragedy struck last night. The dead: {dead}. Announce it with a"
                " chilling description of the bodies being found, without revealing"
                " whether werewolves or poison were responsible (under 100 words)."
            )
        return await self.chat(prompt)

    async def generate_discussion_prompt(self, alive_players: list[Player]) -> str:
        names = ", ".join(p.name for p in alive_players)
        prompt = (
            "You are the game master of a game of Werewolf. The day discussion is"
            f" starting. Survivors: {names}. Give a short line urging the players to"
            " suspect each other and unmask the hidden werewolves (under 30 words)."
        )
        return await self.chat(prompt)

    async def chat(self, prompt: str, temperature: float = 0.8, max_tokens: int = 300) -> str:
        """Send one user prompt and return the reply text.

        Raises:
            NarratorCallError: On HTTP errors, timeouts or malformed replies.
        """
        url = f"{self.api_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, transport=self._transport) as client:
            try:
                resp = await client.post(url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
                return data["choices"][0]["message"]["content"].strip()
            except httpx.HTTPStatusError as e:
                body = e.response.text[:300]
                logger.error("Narrator HTTP %d: %s", e.response.status_code, body)
                raise NarratorCallError(f"narrator returned {e.response.status_code}") from e
            except httpx.TimeoutException as e:
                raise NarratorCallError("narrator call timed out") from e
            except (KeyError, IndexError, TypeError, ValueError) as e:
                raise NarratorCallError("narrator reply had an unexpected shape") from e
            except httpx.HTTPError as e:
                raise NarratorCallError(f"narrator call failed: {e}") from e
