"""GameHost - the single writer of a table's state.

All inputs (player actions from any seat, the host's own commands, joins,
countdown ticks, delayed vote follow-ups and narrator results) go through
one asyncio queue and are processed strictly one at a time. Narrator calls
run as background tasks and report back through the same queue, so the
table keeps ticking while text is pending.

Usage:
    async with GameHost(config, "Alice") as host:
        seat = await host.join("Bob", "peer-bob")
        ...
        host.begin_night()
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Union

from werewolf_table.engine.action_validator import (
    validate_action,
    validate_command,
    validate_join,
)
from werewolf_table.engine.countdown import Countdown
from werewolf_table.engine.effects import (
    Effect,
    FollowUp,
    RequestDiscussionPrompt,
    RequestNightStory,
    ScheduleFollowUp,
    StartCountdown,
    StopCountdown,
)
from werewolf_table.engine.game_state import GameState
from werewolf_table.engine.phase_scheduler import PhaseScheduler, Transition
from werewolf_table.engine.store import GameStateStore, StateListener
from werewolf_table.errors import StateInvariantError
from werewolf_table.models.config import GameConfig, HostSettings, get_settings
from werewolf_table.models.phase import Phase, TIMED_STEPS
from werewolf_table.narrative.narrator import (
    FallbackNarrator,
    Narrator,
    fallback_discussion_prompt,
    fallback_night_story,
    narrate_with_fallback,
)
from werewolf_table.protocol.actions import CommandKind, HostCommand, PlayerAction

logger = logging.getLogger(__name__)

HOST_SEAT = 0


# ============================================================================
# Queue events
# ============================================================================


@dataclass(frozen=True)
class ActionEvent:
    seat: int
    action: PlayerAction


@dataclass(frozen=True)
class CommandEvent:
    command: HostCommand


@dataclass(frozen=True)
class JoinEvent:
    name: str
    peer_id: Optional[str]
    result: asyncio.Future = field(compare=False)


@dataclass(frozen=True)
class TickEvent:
    generation: int


@dataclass(frozen=True)
class FollowUpEvent:
    follow_up: FollowUp


@dataclass(frozen=True)
class StoryEvent:
    text: str
    requested_in: Phase
    log_prefix: Optional[str] = None
    request_id: Optional[int] = None


HostEvent = Union[ActionEvent, CommandEvent, JoinEvent, TickEvent, FollowUpEvent, StoryEvent]


@dataclass(frozen=True)
class JoinResult:
    """Seat assigned to a newcomer, or why none was."""

    seat: Optional[int] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.seat is not None


# ============================================================================
# Host
# ============================================================================


class GameHost:
    """Owns the store of one table and serializes every change to it."""

    def __init__(
        self,
        config: GameConfig,
        host_name: str,
        room_id: Optional[str] = None,
        settings: Optional[HostSettings] = None,
        narrator: Optional[Narrator] = None,
        rng: Optional[random.Random] = None,
    ):
        """Create the room: SETUP -> LOBBY with the host at seat 0.

        Args:
            config: Validated table configuration.
            host_name: Display name of the hosting player.
            room_id: Room id (the host's peer id), copied into the snapshot.
            settings: Timing and narrator settings. Defaults to environment settings.
            narrator: Narrative collaborator. Defaults to fallback text only.
            rng: Random source for role dealing.
        """
        self.settings = settings or get_settings()
        self._scheduler = PhaseScheduler(action_seconds=self.settings.action_seconds, rng=rng)
        self._store = GameStateStore()
        self._store.replace(self._scheduler.create_room(config, host_name, room_id))
        self._narrator: Narrator = narrator or FallbackNarrator()
        self._queue: asyncio.Queue[HostEvent] = asyncio.Queue()
        self._countdown: Optional[Countdown] = None
        self._runner: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> GameState:
        return self._store.state

    @property
    def host_seat(self) -> int:
        return HOST_SEAT

    def subscribe(self, listener: StateListener) -> None:
        """Call ``listener`` with every new snapshot."""
        self._store.subscribe(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._runner is not None:
            return
        self._countdown = Countdown(self.settings.tick_seconds, self._post_tick)
        self._runner = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._countdown is not None:
            self._countdown.stop()
        tasks = list(self._background)
        if self._runner is not None:
            tasks.append(self._runner)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._background.clear()
        self._runner = None

    async def __aenter__(self) -> "GameHost":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def settle(self) -> None:
        """Wait until the queue is empty and no narrator or delay task is pending.

        Countdown ticks are not waited for.
        """
        while True:
            await self._queue.join()
            pending = [t for t in self._background if not t.done()]
            if not pending:
                if self._queue.empty():
                    return
                continue
            await asyncio.wait(pending)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def submit(self, seat: int, action: PlayerAction) -> None:
        """Queue a player action. The host's own seat uses this too."""
        self._queue.put_nowait(ActionEvent(seat=seat, action=action))

    def command(self, kind: CommandKind) -> None:
        self._queue.put_nowait(CommandEvent(command=HostCommand(kind=kind)))

    def begin_night(self) -> None:
        self.command(CommandKind.BEGIN_NIGHT)

    def confirm_step(self) -> None:
        self.command(CommandKind.CONFIRM_STEP)

    def begin_discussion(self) -> None:
        self.command(CommandKind.BEGIN_DISCUSSION)

    def begin_voting(self) -> None:
        self.command(CommandKind.BEGIN_VOTING)

    def close_voting(self) -> None:
        self.command(CommandKind.CLOSE_VOTING)

    async def join(self, name: str, peer_id: Optional[str] = None) -> JoinResult:
        """Ask for a seat and wait for the host loop's answer."""
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(JoinEvent(name=name, peer_id=peer_id, result=future))
        return await future

    def _post_tick(self, generation: int) -> None:
        self._queue.put_nowait(TickEvent(generation=generation))

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._handle(event)
            except StateInvariantError as exc:
                logger.exception("State invariant broken while handling %s", type(event).__name__)
                self._fail_join(event, exc)
                raise
            except Exception as exc:
                logger.exception("Host failed while handling %s", type(event).__name__)
                self._fail_join(event, exc)
            finally:
                self._queue.task_done()

    @staticmethod
    def _fail_join(event: HostEvent, exc: Exception) -> None:
        if isinstance(event, JoinEvent) and not event.result.done():
            event.result.set_exception(exc)

    def _handle(self, event: HostEvent) -> None:
        state = self.state

        if isinstance(event, ActionEvent):
            reason = validate_action(state, event.seat, event.action)
            if reason:
                logger.debug("Dropped %s from seat %d: %s", event.action.kind.value, event.seat, reason)
                return
            self._commit(self._scheduler.apply_action(state, event.seat, event.action))

        elif isinstance(event, CommandEvent):
            self._run_command(event.command)

        elif isinstance(event, JoinEvent):
            reason = validate_join(state, event.name)
            if reason:
                logger.info("Refused join from %s: %s", event.name, reason)
                event.result.set_result(JoinResult(reason=reason))
                return
            transition, seat = self._scheduler.join(state, event.name, event.peer_id)
            self._commit(transition)
            event.result.set_result(JoinResult(seat=seat))

        elif isinstance(event, TickEvent):
            self._run_tick(event)

        elif isinstance(event, FollowUpEvent):
            self._commit(self._scheduler.apply_follow_up(state, event.follow_up))

        elif isinstance(event, StoryEvent):
            self._commit(self._scheduler.apply_story(
                state, event.text, event.requested_in, event.log_prefix, event.request_id,
            ))

    def _run_command(self, command: HostCommand) -> None:
        reason = validate_command(self.state, command)
        if reason:
            logger.debug("Dropped command %s: %s", command.kind.value, reason)
            return
        self._commit(self._scheduler.apply_command(self.state, command))

    def _run_tick(self, event: TickEvent) -> None:
        if self._countdown is None or event.generation != self._countdown.generation:
            return
        self._commit(self._scheduler.tick(self.state))
        state = self.state
        if state.night_step in TIMED_STEPS and state.countdown <= 0:
            logger.info("%s timed out", state.night_step.value)
            self._run_command(HostCommand(kind=CommandKind.CONFIRM_STEP, expired=True))

    def _commit(self, transition: Transition) -> None:
        self._store.replace(transition.state)
        for effect in transition.effects:
            self._apply_effect(effect)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _apply_effect(self, effect: Effect) -> None:
        if isinstance(effect, StartCountdown):
            if self._countdown is not None:
                self._countdown.restart()
        elif isinstance(effect, StopCountdown):
            if self._countdown is not None:
                self._countdown.stop()
        elif isinstance(effect, RequestNightStory):
            self._spawn(self._narrate_night(effect, self.state))
        elif isinstance(effect, RequestDiscussionPrompt):
            self._spawn(self._narrate_discussion(effect, self.state))
        elif isinstance(effect, ScheduleFollowUp):
            self._spawn(self._delayed_follow_up(effect.follow_up))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _narrate_night(self, effect: RequestNightStory, state: GameState) -> None:
        dead = [p for p in state.players if p.seat in effect.dead_seats]
        text = await narrate_with_fallback(
            self._narrator.generate_night_story(effect.round, dead, list(state.players)),
            fallback_night_story(dead),
            timeout=self.settings.narrative_timeout_seconds,
        )
        self._queue.put_nowait(StoryEvent(
            text=text,
            requested_in=state.phase,
            log_prefix=effect.log_prefix,
            request_id=effect.request_id,
        ))

    async def _narrate_discussion(self, effect: RequestDiscussionPrompt, state: GameState) -> None:
        text = await narrate_with_fallback(
            self._narrator.generate_discussion_prompt(state.living_players()),
            fallback_discussion_prompt(),
            timeout=self.settings.narrative_timeout_seconds,
        )
        self._queue.put_nowait(StoryEvent(
            text=text, requested_in=state.phase, request_id=effect.request_id,
        ))

    async def _delayed_follow_up(self, follow_up: FollowUp) -> None:
        await asyncio.sleep(self.settings.resolution_delay_seconds)
        self._queue.put_nowait(FollowUpEvent(follow_up=follow_up))
