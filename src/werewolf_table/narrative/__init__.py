"""Narrative collaborators."""

from werewolf_table.narrative.narrator import (
    Narrator,
    FallbackNarrator,
    fallback_night_story,
    fallback_discussion_prompt,
    narrate_with_fallback,
)
from werewolf_table.narrative.llm import LLMNarrator, NarratorCallError

__all__ = [
    "Narrator",
    "FallbackNarrator",
    "fallback_night_story",
    "fallback_discussion_prompt",
    "narrate_with_fallback",
    "LLMNarrator",
    "NarratorCallError",
]
