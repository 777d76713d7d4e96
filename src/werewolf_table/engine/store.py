"""GameStateStore - the host's single source of truth."""

import logging
from typing import Callable

from werewolf_table.engine.game_state import GameState
from werewolf_table.errors import StateInvariantError

logger = logging.getLogger(__name__)

StateListener = Callable[[GameState], None]


class GameStateStore:
    """Holds the current snapshot and notifies listeners on replacement.

    Only the host writes to the store. Each replace() swaps in a complete
    new snapshot after checking the cross-snapshot invariants:
    - round never decreases
    - a dead player never comes back to life
    - roles, once assigned, never change
    - posthumous speech is never re-granted after it was consumed
    """

    def __init__(self, initial: GameState | None = None):
        self._state = initial or GameState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> GameState:
        return self._state

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def replace(self, new_state: GameState) -> GameState:
        """Swap in a new snapshot and notify listeners.

        Raises:
            StateInvariantError: If the new snapshot breaks an invariant.
        """
        if new_state is self._state:
            return new_state
        self._check_invariants(self._state, new_state)
        self._state = new_state
        for listener in self._listeners:
            try:
                listener(new_state)
            except Exception:
                # One broken subscriber must not starve the others.
                logger.exception("State listener %r failed", listener)
        return new_state

    @staticmethod
    def _check_invariants(old: GameState, new: GameState) -> None:
        if new.round < old.round:
            raise StateInvariantError(f"round went backwards: {old.round} -> {new.round}")

        new_by_seat = {p.seat: p for p in new.players}
        for before in old.players:
            after = new_by_seat.get(before.seat)
            if after is None:
                raise StateInvariantError(f"seat {before.seat} vanished from the roster")
            if not before.is_alive and after.is_alive:
                raise StateInvariantError(f"seat {before.seat} came back to life")
            if before.role is not None and after.role != before.role:
                raise StateInvariantError(f"seat {before.seat} changed role")
            if (
                not before.is_alive
                and not before.has_last_words
                and after.has_last_words
            ):
                raise StateInvariantError(f"seat {before.seat} regained last words")
