"""Tests for the narrator fallback path and the LLM-backed narrator."""

import asyncio
import json

import httpx
import pytest

from werewolf_table.models import Player, Role
from werewolf_table.narrative import (
    FallbackNarrator,
    LLMNarrator,
    NarratorCallError,
    fallback_discussion_prompt,
    fallback_night_story,
    narrate_with_fallback,
)


def create_test_player(seat: int, name: str, role: Role = Role.VILLAGER) -> Player:
    return Player(seat=seat, name=name, role=role, is_alive=False)


def completion_transport(content: str, status: int = 200, seen: list | None = None) -> httpx.MockTransport:
    """Mock an OpenAI-compatible endpoint that always answers ``content``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if status != 200:
            return httpx.Response(status, text="upstream error")
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler)


class TestFallbackText:
    def test_peaceful_night(self):
        assert fallback_night_story([]) == "Last night was peaceful. Nobody died."

    def test_names_the_dead(self):
        dead = [create_test_player(1, "Bob"), create_test_player(4, "Eve")]
        assert fallback_night_story(dead) == "Last night, Bob, Eve met a gruesome end."

    @pytest.mark.asyncio
    async def test_fallback_narrator(self):
        narrator = FallbackNarrator()
        assert await narrator.generate_night_story(1, [], []) == fallback_night_story([])
        assert await narrator.generate_discussion_prompt([]) == fallback_discussion_prompt()


class TestNarrateWithFallback:
    """The narrator can never stall or break a phase."""

    @pytest.mark.asyncio
    async def test_success_is_trimmed(self):
        async def story():
            return "  The fog lifts.  "

        assert await narrate_with_fallback(story(), "fallback") == "The fog lifts."

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self):
        async def slow():
            await asyncio.sleep(1)
            return "too late"

        assert await narrate_with_fallback(slow(), "fallback", timeout=0.01) == "fallback"

    @pytest.mark.asyncio
    async def test_error_uses_fallback(self):
        async def broken():
            raise NarratorCallError("boom")

        assert await narrate_with_fallback(broken(), "fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_empty_text_uses_fallback(self):
        async def blank():
            return "   "

        assert await narrate_with_fallback(blank(), "fallback") == "fallback"


class TestLLMNarrator:
    """Tests for the chat-completion narrator against a mocked endpoint."""

    @pytest.mark.asyncio
    async def test_night_story_request(self):
        seen: list[httpx.Request] = []
        narrator = LLMNarrator(
            "http://llm.local/v1/", "secret", "test-model",
            transport=completion_transport(" Blood on the snow. ", seen=seen),
        )
        dead = [create_test_player(2, "Bob", Role.SEER)]
        text = await narrator.generate_night_story(1, dead, dead)

        assert text == "Blood on the snow."
        request = seen[0]
        assert str(request.url) == "http://llm.local/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer secret"
        payload = json.loads(request.content)
        assert payload["model"] == "test-model"
        assert "Bob (SEER)" in payload["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_peaceful_prompt(self):
        seen: list[httpx.Request] = []
        narrator = LLMNarrator("http://llm.local", "", "m", transport=completion_transport("calm", seen=seen))
        await narrator.generate_night_story(2, [], [])
        payload = json.loads(seen[0].content)
        assert "nobody died" in payload["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        narrator = LLMNarrator("http://llm.local", "", "m", transport=completion_transport("", status=500))
        with pytest.raises(NarratorCallError):
            await narrator.generate_discussion_prompt([])

    @pytest.mark.asyncio
    async def test_malformed_reply_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"nope": []}))
        narrator = LLMNarrator("http://llm.local", "", "m", transport=transport)
        with pytest.raises(NarratorCallError):
            await narrator.chat("hello")

    @pytest.mark.asyncio
    async def test_failure_degrades_to_fallback(self):
        narrator = LLMNarrator("http://llm.local", "", "m", transport=completion_transport("", status=503))
        text = await narrate_with_fallback(
            narrator.generate_night_story(1, [], []),
            fallback_night_story([]),
        )
        assert text == "Last night was peaceful. Nobody died."
