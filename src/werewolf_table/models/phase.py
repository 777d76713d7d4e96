"""Phase and night sub-step definitions."""

from enum import Enum


class Phase(str, Enum):
    """Macro phases of a session, in play order."""

    SETUP = "SETUP"
    LOBBY = "LOBBY"
    ROLE_REVEAL = "ROLE_REVEAL"
    NIGHT = "NIGHT"
    DAY_TRANSITION = "DAY_TRANSITION"
    DAY_DISCUSSION = "DAY_DISCUSSION"
    VOTING = "VOTING"
    GAME_OVER = "GAME_OVER"


class NightStep(str, Enum):
    """Micro phases within NIGHT.

    HUNTER_ACTION is out-of-band: it can be entered after night resolution
    or right after an exile.
    """

    NONE = "NONE"
    WEREWOLF_ACTION = "WEREWOLF_ACTION"
    SEER_ACTION = "SEER_ACTION"
    WITCH_ACTION = "WITCH_ACTION"
    HUNTER_ACTION = "HUNTER_ACTION"


class HunterTrigger(str, Enum):
    """What opened the hunter's step."""

    NIGHT = "NIGHT"
    EXILE = "EXILE"


class Winner(str, Enum):
    """Winning camp."""

    VILLAGERS = "VILLAGERS"
    WEREWOLVES = "WEREWOLVES"


# Steps in which a role holds a timed decision.
TIMED_STEPS = frozenset({
    NightStep.WEREWOLF_ACTION,
    NightStep.SEER_ACTION,
    NightStep.WITCH_ACTION,
    NightStep.HUNTER_ACTION,
})


def is_valid_pair(phase: Phase, step: NightStep) -> bool:
    """Check that a phase and night step may coexist in one snapshot."""
    if phase == Phase.NIGHT:
        return True
    return step == NightStep.NONE
