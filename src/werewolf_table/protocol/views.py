"""Per-viewer snapshot masking.

Off by default: clients traditionally receive the full snapshot and hide
secrets in their UI. With HostSettings.mask_roles the host sends each
connection a view scrubbed of what that seat should not know.
"""

from typing import Optional

from werewolf_table.engine.game_state import GameState, WitchDecision
from werewolf_table.models.phase import NightStep, Phase
from werewolf_table.models.player import Role


def visible_seats(state: GameState, viewer_seat: Optional[int]) -> set[int]:
    """Seats whose role the viewer may see."""
    viewer = state.get_player(viewer_seat)
    seats = {p.seat for p in state.players if not p.is_alive}
    if viewer is None:
        return seats
    seats.add(viewer.seat)
    if viewer.role == Role.WEREWOLF:
        seats.update(p.seat for p in state.players_with_role(Role.WEREWOLF, alive_only=False))
    if viewer.role == Role.SEER and state.seer_check_id is not None:
        seats.add(state.seer_check_id)
    return seats


def mask_state(state: GameState, viewer_seat: Optional[int]) -> GameState:
    """Build the snapshot a given seat is allowed to see.

    Everything is revealed once the game is over.
    """
    if state.phase == Phase.GAME_OVER:
        return state

    viewer = state.get_player(viewer_seat)
    role = viewer.role if viewer is not None else None
    known = visible_seats(state, viewer_seat)

    players = [
        p if p.seat in known else p.model_copy(update={"role": None})
        for p in state.players
    ]
    changes: dict = {"players": players}

    if role != Role.WEREWOLF:
        changes["wolf_chat_history"] = []
        witch_needs_target = (
            role == Role.WITCH and state.night_step == NightStep.WITCH_ACTION
        )
        if not witch_needs_target:
            changes["wolves_target_id"] = None
    if role != Role.SEER:
        changes["seer_check_id"] = None
    if role != Role.WITCH:
        changes["witch_action"] = WitchDecision()
    if role != Role.HUNTER:
        changes["hunter_target_id"] = None

    return state.evolve(**changes)
