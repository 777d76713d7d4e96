"""Side-effect requests produced by state transitions.

Transitions stay pure: instead of sleeping, calling the narrator or
touching the timer, they return these requests and the host carries
them out.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class FollowUp(str, Enum):
    """Delayed continuations after a vote result is announced."""

    RESUME_NIGHT = "RESUME_NIGHT"  # stalemate: next night after the pause
    FINISH_EXILE = "FINISH_EXILE"  # exile: victory check after the pause


class Effect(BaseModel):
    model_config = ConfigDict(frozen=True)


class StartCountdown(Effect):
    """(Re)start the host countdown; the snapshot already holds the seconds."""

    seconds: int


class StopCountdown(Effect):
    pass


class RequestNightStory(Effect):
    """Ask the narrator to describe the night's deaths."""

    round: int
    dead_seats: list[int] = Field(default_factory=list)
    log_prefix: str
    request_id: int


class RequestDiscussionPrompt(Effect):
    request_id: int


class ScheduleFollowUp(Effect):
    follow_up: FollowUp
