"""Victory evaluation."""

from typing import Optional

from werewolf_table.engine.game_state import GameState
from werewolf_table.models.phase import Winner


def evaluate_victory(state: GameState) -> Optional[Winner]:
    """Decide whether a camp has won.

    - No living werewolves: villagers win.
    - Living werewolves >= living non-werewolves: werewolves win.

    Returns:
        The winner, or None while the game goes on.
    """
    wolves = state.get_werewolf_count()
    good = state.get_good_count()
    if wolves == 0:
        return Winner.VILLAGERS
    if wolves >= good:
        return Winner.WEREWOLVES
    return None
