"""PhaseScheduler - the host-side finite-state machine of a session.

Phase order:
    SETUP -> LOBBY -> ROLE_REVEAL -> NIGHT -> DAY_TRANSITION
          -> DAY_DISCUSSION -> VOTING -> (NIGHT | GAME_OVER)

Night order (each step skipped when its role is not in the config):
    WEREWOLF_ACTION -> SEER_ACTION -> WITCH_ACTION -> NONE (resolution)

HUNTER_ACTION is entered after night resolution or after an exile when
a hunter dies by anything but poison.

Every method takes a snapshot and returns a Transition: the new snapshot
plus the side effects the host has to carry out. Nothing here sleeps,
does I/O or touches the clock.
"""

import logging
import random
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from werewolf_table.engine.effects import (
    Effect,
    FollowUp,
    RequestDiscussionPrompt,
    RequestNightStory,
    ScheduleFollowUp,
    StartCountdown,
    StopCountdown,
)
from werewolf_table.engine.game_state import GameState, WitchDecision
from werewolf_table.engine.night_resolver import LAST_WORDS_ROUND, resolve_night
from werewolf_table.engine.victory import evaluate_victory
from werewolf_table.engine.vote_resolver import tally_votes
from werewolf_table.models.config import GameConfig
from werewolf_table.models.phase import HunterTrigger, NightStep, Phase, Winner
from werewolf_table.models.player import Channel, ChatMessage, Player, Role
from werewolf_table.protocol.actions import (
    Chat,
    CommandKind,
    HostCommand,
    HunterShoot,
    PlayerAction,
    SeerCheck,
    Vote,
    WitchPoison,
    WitchSave,
    WolfKill,
)

logger = logging.getLogger(__name__)

ACTION_COUNTDOWN_SECONDS = 20
LAST_WORDS_SUFFIX = " (last words)"

STORY_GAME_START = "The game begins. Check your role."
STORY_NIGHTFALL = "Night falls. Werewolves, open your eyes and choose your victim..."
STORY_SEER = "Werewolves, close your eyes. Seer, open your eyes. Whose identity will you check?"
STORY_WITCH = "Witch, open your eyes. You hold one antidote and one poison..."
STORY_DAWN = "Dawn breaks..."
STORY_HUNTER_NIGHT = "Hunter, open your eyes. You have fallen. Choose who to take with you..."
STORY_HUNTER_EXILE = "The hunter has been exiled. Take your shot."
STORY_VOTING = "All surviving players, cast your votes."
STORY_STALEMATE = "The vote is tied. Nobody is exiled. Night approaches again..."
LOG_STALEMATE = "Tied vote, nobody exiled."

_NIGHT_ORDER = [
    (NightStep.WEREWOLF_ACTION, Role.WEREWOLF),
    (NightStep.SEER_ACTION, Role.SEER),
    (NightStep.WITCH_ACTION, Role.WITCH),
]

_STEP_STORIES = {
    NightStep.SEER_ACTION: STORY_SEER,
    NightStep.WITCH_ACTION: STORY_WITCH,
    NightStep.NONE: STORY_DAWN,
}

_WINNER_STORIES = {
    Winner.VILLAGERS: "Every werewolf has been found. The villagers win!",
    Winner.WEREWOLVES: "The werewolves have overrun the village. The werewolves win!",
}


class Transition(BaseModel):
    """A new snapshot and the side effects it requests."""

    model_config = ConfigDict(frozen=True)

    state: GameState
    effects: list[Effect] = Field(default_factory=list)


def next_night_step(config: GameConfig, current: NightStep) -> NightStep:
    """Find the step after ``current``, skipping roles absent from the config."""
    steps = [step for step, _ in _NIGHT_ORDER]
    start = steps.index(current) + 1 if current in steps else 0
    for step, role in _NIGHT_ORDER[start:]:
        if config.has_role(role):
            return step
    return NightStep.NONE


def assign_roles(players: list[Player], config: GameConfig, rng: random.Random) -> list[Player]:
    """Deal roles with a uniform shuffle of the configured multiset.

    Pads with villagers if the pool is short, which cannot happen for a
    validated config.
    """
    roles = config.role_pool()
    while len(roles) < len(players):
        roles.append(Role.VILLAGER)
    rng.shuffle(roles)
    return [p.model_copy(update={"role": roles[i]}) for i, p in enumerate(players)]


class PhaseScheduler:
    """Drives phase and night-step transitions for one table."""

    def __init__(
        self,
        action_seconds: int = ACTION_COUNTDOWN_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the scheduler.

        Args:
            action_seconds: Countdown for every timed step.
            rng: Random source for role dealing. Pass a seeded instance
                 for reproducible games.
        """
        self._action_seconds = action_seconds
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Setup & lobby
    # ------------------------------------------------------------------

    def create_room(
        self,
        config: GameConfig,
        host_name: str,
        room_id: Optional[str] = None,
    ) -> GameState:
        """SETUP -> LOBBY with the host seated at seat 0."""
        host = Player(seat=0, name=host_name, is_host=True, peer_id=room_id)
        return GameState(
            room_id=room_id,
            config=config,
            phase=Phase.LOBBY,
            players=[host],
        )

    def join(self, state: GameState, name: str, peer_id: Optional[str] = None) -> tuple[Transition, int]:
        """Seat a new player. Fills the last seat -> deal roles.

        Returns:
            Tuple of (transition, assigned seat).
        """
        seat = max((p.seat for p in state.players), default=-1) + 1
        players = list(state.players) + [Player(seat=seat, name=name, peer_id=peer_id)]
        new_state = state.evolve(players=players)
        logger.info("Seat %d taken by %s (%d/%d)", seat, name, len(players), state.config.total_players)
        if new_state.is_full():
            new_state = self.start_game(new_state)
        return Transition(state=new_state), seat

    def start_game(self, state: GameState) -> GameState:
        """LOBBY -> ROLE_REVEAL."""
        players = assign_roles(state.players, state.config, self._rng)
        logger.info("Roles dealt for %d players", len(players))
        return state.evolve(
            players=players,
            phase=Phase.ROLE_REVEAL,
            story_log=[STORY_GAME_START],
            current_story=STORY_GAME_START,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def apply_command(self, state: GameState, command: HostCommand) -> Transition:
        """Dispatch a validated host command."""
        if command.kind == CommandKind.BEGIN_NIGHT:
            return self.begin_night(state)
        if command.kind == CommandKind.CONFIRM_STEP:
            return self.confirm_step(state)
        if command.kind == CommandKind.BEGIN_DISCUSSION:
            return self.begin_discussion(state)
        if command.kind == CommandKind.BEGIN_VOTING:
            return self.begin_voting(state)
        if command.kind == CommandKind.CLOSE_VOTING:
            return self.close_voting(state)
        raise ValueError(f"unknown command {command.kind}")

    def begin_night(self, state: GameState) -> Transition:
        """Enter NIGHT(WEREWOLF_ACTION) for the next round."""
        new_state = state.evolve(
            phase=Phase.NIGHT,
            night_step=NightStep.WEREWOLF_ACTION,
            round=state.round + 1,
            wolves_target_id=None,
            seer_check_id=None,
            witch_action=WitchDecision(),
            hunter_target_id=None,
            hunter_trigger=None,
            current_votes={},
            voting_closed=False,
            countdown=self._action_seconds,
            current_story=STORY_NIGHTFALL,
        )
        logger.info("Night %d begins", new_state.round)
        return Transition(state=new_state, effects=[StartCountdown(seconds=self._action_seconds)])

    def confirm_step(self, state: GameState) -> Transition:
        """Close the current night step (host confirm or countdown expiry)."""
        step = state.night_step
        if step == NightStep.HUNTER_ACTION:
            return self._finish_hunter(state)
        if step == NightStep.WITCH_ACTION:
            state = state.evolve(
                witch_save_used=state.witch_save_used or state.witch_action.save,
                witch_poison_used=(
                    state.witch_poison_used or state.witch_action.poison_target_id is not None
                ),
            )
        return self._advance_night(state, next_night_step(state.config, step))

    def _advance_night(self, state: GameState, step: NightStep) -> Transition:
        if step == NightStep.NONE:
            dawn = state.evolve(
                night_step=NightStep.NONE,
                countdown=0,
                current_story=STORY_DAWN,
            )
            return self._resolve_night(dawn)

        new_state = state.evolve(
            night_step=step,
            countdown=self._action_seconds,
            current_story=_STEP_STORIES[step],
        )
        logger.info("Night %d: %s", state.round, step.value)
        return Transition(state=new_state, effects=[StartCountdown(seconds=self._action_seconds)])

    def _resolve_night(self, state: GameState) -> Transition:
        resolved, outcome = resolve_night(state)
        logger.info("Night %d resolved, dead: %s", state.round, outcome.dead_seats)

        if outcome.hunter_may_shoot:
            new_state = resolved.evolve(
                night_step=NightStep.HUNTER_ACTION,
                hunter_target_id=None,
                hunter_trigger=HunterTrigger.NIGHT,
                countdown=self._action_seconds,
                current_story=STORY_HUNTER_NIGHT,
            )
            return Transition(state=new_state, effects=[StartCountdown(seconds=self._action_seconds)])

        return self._enter_day(resolved, f"Night {state.round}")

    def _enter_day(self, state: GameState, log_prefix: str) -> Transition:
        request_id = state.story_request + 1
        new_state = state.evolve(
            phase=Phase.DAY_TRANSITION,
            night_step=NightStep.NONE,
            countdown=0,
            hunter_trigger=None,
            is_loading_story=True,
            story_request=request_id,
        )
        return Transition(
            state=new_state,
            effects=[
                StopCountdown(),
                RequestNightStory(
                    round=state.round,
                    dead_seats=list(state.last_night_dead_ids),
                    log_prefix=log_prefix,
                    request_id=request_id,
                ),
            ],
        )

    def _finish_hunter(self, state: GameState) -> Transition:
        target = state.hunter_target_id
        shot = target is not None and state.is_alive(target)
        by_night = state.hunter_trigger != HunterTrigger.EXILE
        if shot:
            # A night shot is part of that night's deaths; a daytime one is not.
            changes: dict = {
                "players": state.kill(
                    [target],
                    grant_last_words=by_night and state.round == LAST_WORDS_ROUND,
                ),
            }
            if by_night:
                changes["last_night_dead_ids"] = list(state.last_night_dead_ids) + [target]
            state = state.evolve(**changes)
            logger.info("Hunter shot seat %d", target)
        else:
            logger.info("Hunter forfeited the shot")

        if not by_night:
            if shot:
                victim = state.get_player(target)
                state = state.evolve(story_log=list(state.story_log) + [
                    f"The hunter took {victim.name} down with them."
                ])
            state = state.evolve(hunter_trigger=None, countdown=0)
            return self._after_death(state)

        return self._enter_day(state, "Hunter's shot" if shot else f"Night {state.round}")

    # ------------------------------------------------------------------
    # Day
    # ------------------------------------------------------------------

    def begin_discussion(self, state: GameState) -> Transition:
        """DAY_TRANSITION -> DAY_DISCUSSION; asks the narrator for a prompt."""
        request_id = state.story_request + 1
        new_state = state.evolve(
            phase=Phase.DAY_DISCUSSION,
            is_loading_story=True,
            story_request=request_id,
        )
        return Transition(state=new_state, effects=[RequestDiscussionPrompt(request_id=request_id)])

    def begin_voting(self, state: GameState) -> Transition:
        """DAY_DISCUSSION -> VOTING with an empty ballot."""
        new_state = state.evolve(
            phase=Phase.VOTING,
            current_votes={},
            voting_closed=False,
            current_story=STORY_VOTING,
        )
        return Transition(state=new_state)

    def close_voting(self, state: GameState) -> Transition:
        """Tally the votes and exile the single front-runner, if any."""
        result = tally_votes(state.current_votes)

        if result.is_stalemate:
            logger.info("Vote stalemate (tied: %s)", result.tied_players)
            new_state = state.evolve(
                voting_closed=True,
                story_log=list(state.story_log) + [LOG_STALEMATE],
                current_story=STORY_STALEMATE,
            )
            return Transition(
                state=new_state,
                effects=[ScheduleFollowUp(follow_up=FollowUp.RESUME_NIGHT)],
            )

        exiled = state.get_player(result.exiled)
        logger.info("Seat %d exiled with %d votes", exiled.seat, result.counts[exiled.seat])
        new_state = state.evolve(
            players=state.kill([exiled.seat], grant_last_words=True),
            voting_closed=True,
            story_log=list(state.story_log) + [f"{exiled.name} was exiled."],
            current_story=f"{exiled.name} has been voted out.",
        )

        if exiled.role == Role.HUNTER:
            new_state = new_state.evolve(
                phase=Phase.NIGHT,
                night_step=NightStep.HUNTER_ACTION,
                hunter_target_id=None,
                hunter_trigger=HunterTrigger.EXILE,
                countdown=self._action_seconds,
                current_story=STORY_HUNTER_EXILE,
            )
            return Transition(state=new_state, effects=[StartCountdown(seconds=self._action_seconds)])

        return Transition(
            state=new_state,
            effects=[ScheduleFollowUp(follow_up=FollowUp.FINISH_EXILE)],
        )

    def apply_follow_up(self, state: GameState, follow_up: FollowUp) -> Transition:
        """Run a delayed continuation, if the snapshot still expects it."""
        if state.phase != Phase.VOTING or not state.voting_closed:
            return Transition(state=state)
        if follow_up == FollowUp.RESUME_NIGHT:
            return self.begin_night(state)
        return self._after_death(state)

    def _after_death(self, state: GameState) -> Transition:
        winner = evaluate_victory(state)
        if winner is not None:
            return Transition(state=self.game_over(state, winner), effects=[StopCountdown()])
        return self.begin_night(state)

    def game_over(self, state: GameState, winner: Winner) -> GameState:
        story = _WINNER_STORIES[winner]
        logger.info("Game over: %s", winner.value)
        return state.evolve(
            phase=Phase.GAME_OVER,
            night_step=NightStep.NONE,
            countdown=0,
            winner=winner,
            story_log=list(state.story_log) + [story],
            current_story=story,
        )

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def apply_action(self, state: GameState, seat: int, action: PlayerAction) -> Transition:
        """Record a validated player action."""
        if isinstance(action, WolfKill):
            return Transition(state=state.evolve(wolves_target_id=action.target))
        if isinstance(action, SeerCheck):
            return Transition(state=state.evolve(seer_check_id=action.target))
        if isinstance(action, WitchSave):
            decision = state.witch_action.model_copy(update={"save": action.save})
            return Transition(state=state.evolve(witch_action=decision))
        if isinstance(action, WitchPoison):
            decision = state.witch_action.model_copy(update={"poison_target_id": action.target})
            return Transition(state=state.evolve(witch_action=decision))
        if isinstance(action, HunterShoot):
            return Transition(state=state.evolve(hunter_target_id=action.target))
        if isinstance(action, Vote):
            votes = dict(state.current_votes)
            votes[seat] = action.target
            return Transition(state=state.evolve(current_votes=votes))
        if isinstance(action, Chat):
            return Transition(state=self._post_chat(state, seat, action))
        raise ValueError(f"unsupported action {type(action).__name__}")

    def _post_chat(self, state: GameState, seat: int, action: Chat) -> GameState:
        sender = state.get_player(seat)
        name = sender.name
        players = state.players
        if not sender.is_alive and action.channel == Channel.PUBLIC:
            name = f"{sender.name}{LAST_WORDS_SUFFIX}"
            players = state.replace_player(seat, has_last_words=False)

        message = ChatMessage(
            sender_seat=seat,
            sender_name=name,
            text=action.text.strip(),
            channel=action.channel,
        )
        if action.channel == Channel.WOLF:
            return state.evolve(wolf_chat_history=list(state.wolf_chat_history) + [message])
        return state.evolve(
            players=players,
            public_chat_history=list(state.public_chat_history) + [message],
        )

    # ------------------------------------------------------------------
    # Countdown & narrative
    # ------------------------------------------------------------------

    def tick(self, state: GameState) -> Transition:
        """One countdown second. Expiry is left to the caller to confirm."""
        if state.phase != Phase.NIGHT or state.night_step == NightStep.NONE:
            return Transition(state=state)
        if state.countdown <= 0:
            return Transition(state=state)
        return Transition(state=state.evolve(countdown=state.countdown - 1))

    def apply_story(
        self,
        state: GameState,
        text: str,
        requested_in: Phase,
        log_prefix: Optional[str] = None,
        request_id: Optional[int] = None,
    ) -> Transition:
        """Install narrator output.

        The log entry is always appended. The on-screen story is only
        replaced while the table is still in the phase that asked for it,
        and the loading flag stays up until the newest request has answered.
        """
        changes: dict = {}
        if request_id is None or request_id == state.story_request:
            changes["is_loading_story"] = False
        if log_prefix is not None:
            changes["story_log"] = list(state.story_log) + [f"{log_prefix}: {text}"]
        if state.phase == requested_in:
            changes["current_story"] = text
        return Transition(state=state.evolve(**changes))
