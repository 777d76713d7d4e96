"""Engine package - host-authoritative game state machine."""

from .game_state import GameState, WitchDecision
from .store import GameStateStore
from .night_resolver import NightOutcome, compute_night_deaths, resolve_night
from .vote_resolver import VoteTally, tally_votes
from .victory import evaluate_victory
from .action_validator import (
    validate_action,
    validate_command,
    validate_join,
)
from .phase_scheduler import (
    PhaseScheduler,
    Transition,
    assign_roles,
    next_night_step,
)
from .countdown import Countdown
from .host import GameHost, JoinResult

__all__ = [
    "GameState",
    "WitchDecision",
    "GameStateStore",
    "NightOutcome",
    "compute_night_deaths",
    "resolve_night",
    "VoteTally",
    "tally_votes",
    "evaluate_victory",
    "validate_action",
    "validate_command",
    "validate_join",
    "PhaseScheduler",
    "Transition",
    "assign_roles",
    "next_night_step",
    "Countdown",
    "GameHost",
    "JoinResult",
]
