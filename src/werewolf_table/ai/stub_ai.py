"""Stub AI players for simulations and tests.

These bots pick random legal actions straight from the snapshot, without
calling an LLM. Useful for:
- Integration tests (full game flow over the loopback transport)
- The CLI table simulation
- Filling empty seats during development
"""

import asyncio
import logging
import random
from typing import Optional

from werewolf_table.engine.action_validator import validate_action
from werewolf_table.engine.game_state import GameState
from werewolf_table.errors import SessionTerminatedError
from werewolf_table.models.phase import NightStep, Phase
from werewolf_table.models.player import Channel, Role
from werewolf_table.protocol.actions import (
    Chat,
    HunterShoot,
    PlayerAction,
    SeerCheck,
    Vote,
    WitchPoison,
    WitchSave,
    WolfKill,
)
from werewolf_table.protocol.session import ClientSession
from werewolf_table.protocol.transport import Connection

logger = logging.getLogger(__name__)

DISCUSSION_LINES = [
    "I have a bad feeling about #{seat}.",
    "#{seat} has been awfully quiet.",
    "I trust #{seat}, for now.",
    "Let's hear what #{seat} has to say.",
]


class StubPlayer:
    """A bot that can act in ANY phase by reading the snapshot.

    Acts at most once per (round, phase, step) so it does not spam the host.
    """

    def __init__(self, seat: int, seed: Optional[int] = None):
        self.seat = seat
        self._rng = random.Random(seed)
        self._acted: set[tuple] = set()
        self._spoke: set[tuple] = set()

    def decide(self, state: GameState) -> list[PlayerAction]:
        """Return the actions this bot wants to send for ``state``.

        Every returned action passes validate_action against ``state``.
        """
        me = state.get_player(self.seat)
        if me is None or me.role is None:
            return []

        actions: list[PlayerAction] = []
        key = (state.round, state.phase, state.night_step)
        if key not in self._acted:
            action = self._choose(state)
            if action is not None and validate_action(state, self.seat, action) is None:
                self._acted.add(key)
                actions.append(action)

        line = self._chat(state)
        if line is not None and validate_action(state, self.seat, line) is None:
            actions.append(line)
        return actions

    def _others_alive(self, state: GameState, exclude_wolves: bool = False) -> list[int]:
        return [
            p.seat for p in state.living_players()
            if p.seat != self.seat and not (exclude_wolves and p.role == Role.WEREWOLF)
        ]

    def _pick(self, seats: list[int]) -> Optional[int]:
        return self._rng.choice(seats) if seats else None

    def _choose(self, state: GameState) -> Optional[PlayerAction]:
        me = state.get_player(self.seat)

        if state.phase == Phase.VOTING:
            target = self._pick(self._others_alive(state))
            return Vote(target=target) if target is not None else None

        if state.phase != Phase.NIGHT:
            return None

        step = state.night_step
        if step == NightStep.WEREWOLF_ACTION and me.role == Role.WEREWOLF:
            target = self._pick(self._others_alive(state, exclude_wolves=True))
            return WolfKill(target=target) if target is not None else None

        if step == NightStep.SEER_ACTION and me.role == Role.SEER:
            target = self._pick(self._others_alive(state))
            return SeerCheck(target=target) if target is not None else None

        if step == NightStep.WITCH_ACTION and me.role == Role.WITCH:
            if state.wolves_target_id is not None and not state.witch_save_used:
                if self._rng.random() < 0.5:
                    return WitchSave(save=True)
            if not state.witch_poison_used and self._rng.random() < 0.2:
                target = self._pick(self._others_alive(state))
                return WitchPoison(target=target) if target is not None else None
            return None

        if step == NightStep.HUNTER_ACTION and me.role == Role.HUNTER:
            target = self._pick(self._others_alive(state))
            return HunterShoot(target=target) if target is not None else None

        return None

    def _chat(self, state: GameState) -> Optional[PlayerAction]:
        me = state.get_player(self.seat)
        key = (state.round, state.phase)
        if key in self._spoke:
            return None

        if not me.is_alive and me.has_last_words and state.phase != Phase.NIGHT:
            self._spoke.add(key)
            return Chat(text="Remember what I told you. Goodbye.")

        if me.is_alive and state.phase == Phase.DAY_DISCUSSION:
            target = self._pick(self._others_alive(state))
            if target is None:
                return None
            self._spoke.add(key)
            line = self._rng.choice(DISCUSSION_LINES).format(seat=target)
            return Chat(text=line)

        if me.is_alive and me.role == Role.WEREWOLF and state.night_step == NightStep.WEREWOLF_ACTION:
            target = state.wolves_target_id
            if target is None:
                return None
            self._spoke.add(key)
            return Chat(text=f"Agreed on #{target}.", channel=Channel.WOLF)

        return None


class StubClient:
    """Drives a StubPlayer through a ClientSession."""

    def __init__(self, connection: Connection, seed: Optional[int] = None):
        self._pending: asyncio.Queue[GameState] = asyncio.Queue()
        self.session = ClientSession(connection, on_state=self._pending.put_nowait)
        self._seed = seed
        self._player: Optional[StubPlayer] = None

    async def play(self, name: str, peer_id: str) -> None:
        """Join and keep reacting to snapshots until the session ends."""
        seat = await self.session.join(name, peer_id)
        self._player = StubPlayer(seat, seed=self._seed)
        listener = asyncio.create_task(self.session.run())
        try:
            while not listener.done():
                get = asyncio.create_task(self._pending.get())
                done, _ = await asyncio.wait({get, listener}, return_when=asyncio.FIRST_COMPLETED)
                if get not in done:
                    get.cancel()
                    break
                for action in self._player.decide(get.result()):
                    await self.session.send_action(action)
        except SessionTerminatedError:
            logger.info("Stub at seat %s lost the host", seat)
        finally:
            listener.cancel()
            await asyncio.gather(listener, return_exceptions=True)


def create_stub_player(seat: int, seed: Optional[int] = None) -> StubPlayer:
    """Factory function to create a StubPlayer."""
    return StubPlayer(seat, seed=seed)
