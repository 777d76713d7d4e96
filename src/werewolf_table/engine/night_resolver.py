"""Night resolution - computes deaths from the night's accumulated actions.

Resolution rules:
1. The wolves' target dies unless the witch saved tonight.
2. The witch's poison target dies.
3. A seat hit by both dies once.
4. Deaths in round 1 earn last words.
5. A hunter killed by anything but poison gets a final shot.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from werewolf_table.engine.game_state import GameState, WitchDecision
from werewolf_table.models.player import Role

# House rule: only first-round deaths receive last words.
LAST_WORDS_ROUND = 1


class NightOutcome(BaseModel):
    """Result of resolving one night."""

    model_config = ConfigDict(frozen=True)

    dead_seats: list[int] = Field(default_factory=list)
    hunter_seat: Optional[int] = None  # set when a hunter may shoot

    @property
    def hunter_may_shoot(self) -> bool:
        return self.hunter_seat is not None


def compute_night_deaths(
    wolves_target_id: Optional[int],
    witch_action: WitchDecision,
) -> list[int]:
    """Compute the death set from the wolves' and witch's choices.

    Args:
        wolves_target_id: Seat chosen by the werewolves, or None.
        witch_action: The witch's save flag and poison target.

    Returns:
        Seats that die, wolf victim first, without duplicates.
    """
    candidates: list[int] = []
    if wolves_target_id is not None and not witch_action.save:
        candidates.append(wolves_target_id)
    if witch_action.poison_target_id is not None:
        candidates.append(witch_action.poison_target_id)

    deaths: list[int] = []
    for seat in candidates:
        if seat not in deaths:
            deaths.append(seat)
    return deaths


def resolve_night(state: GameState) -> tuple[GameState, NightOutcome]:
    """Apply the night's deaths to a snapshot.

    Pure: the same pre-state always yields the same outcome. Phase and step
    are left for the scheduler to decide.

    Returns:
        Tuple of (new snapshot, outcome).
    """
    deaths = [
        seat for seat in compute_night_deaths(state.wolves_target_id, state.witch_action)
        if state.is_alive(seat)
    ]

    hunter_seat = None
    poisoned = state.witch_action.poison_target_id
    for seat in deaths:
        player = state.get_player(seat)
        if player is not None and player.role == Role.HUNTER and seat != poisoned:
            hunter_seat = seat
            break

    roster = state.kill(deaths, grant_last_words=state.round == LAST_WORDS_ROUND)
    new_state = state.evolve(players=roster, last_night_dead_ids=deaths)
    return new_state, NightOutcome(dead_seats=deaths, hunter_seat=hunter_seat)
