"""Action validation - pure legality checks for player actions and host commands.

Every function returns None when the request is legal, or a short reason
string when it must be dropped. Invalid actions are never raised as errors:
the host logs the reason and moves on without touching the state.
"""

from typing import Optional

from werewolf_table.engine.game_state import GameState
from werewolf_table.models.phase import NightStep, Phase, TIMED_STEPS
from werewolf_table.models.player import Channel, Player, Role
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

Rejection = Optional[str]


def validate_action(state: GameState, seat: int, action: PlayerAction) -> Rejection:
    """Check whether ``seat`` may perform ``action`` on ``state``.

    Args:
        state: Current snapshot.
        seat: Acting seat, as known to the host (never taken from the payload).
        action: The requested action.

    Returns:
        None if legal, otherwise the reason the action is dropped.
    """
    actor = state.get_player(seat)
    if actor is None:
        return f"unknown seat {seat}"

    if isinstance(action, Chat):
        return _validate_chat(state, actor, action)
    if isinstance(action, Vote):
        return _validate_vote(state, actor, action)
    if isinstance(action, WolfKill):
        return _validate_wolf_kill(state, actor, action)
    if isinstance(action, SeerCheck):
        return _validate_seer_check(state, actor, action)
    if isinstance(action, WitchSave):
        return _validate_witch_save(state, actor, action)
    if isinstance(action, WitchPoison):
        return _validate_witch_poison(state, actor, action)
    if isinstance(action, HunterShoot):
        return _validate_hunter_shoot(state, actor, action)
    return f"unsupported action {type(action).__name__}"


def _night_step_gate(state: GameState, actor: Player, step: NightStep, role: Role) -> Rejection:
    """Common gate: right step, right role, step still open."""
    if state.phase != Phase.NIGHT or state.night_step != step:
        return f"not in {step.value}"
    if actor.role != role:
        return f"seat {actor.seat} is not {role.value}"
    if step in TIMED_STEPS and state.countdown <= 0:
        return f"{step.value} timed out"
    return None


def _validate_wolf_kill(state: GameState, actor: Player, action: WolfKill) -> Rejection:
    reason = _night_step_gate(state, actor, NightStep.WEREWOLF_ACTION, Role.WEREWOLF)
    if reason:
        return reason
    if not actor.is_alive:
        return "dead werewolves cannot hunt"
    if not state.is_alive(action.target):
        return f"target {action.target} is not a living player"
    return None


def _validate_seer_check(state: GameState, actor: Player, action: SeerCheck) -> Rejection:
    reason = _night_step_gate(state, actor, NightStep.SEER_ACTION, Role.SEER)
    if reason:
        return reason
    if not actor.is_alive:
        return "dead seer cannot check"
    if action.target == actor.seat:
        return "seer cannot check themself"
    if not state.is_alive(action.target):
        return f"target {action.target} is not a living player"
    return None


def _validate_witch_save(state: GameState, actor: Player, action: WitchSave) -> Rejection:
    reason = _night_step_gate(state, actor, NightStep.WITCH_ACTION, Role.WITCH)
    if reason:
        return reason
    if not actor.is_alive:
        return "dead witch cannot act"
    if state.witch_save_used:
        return "antidote already used"
    if action.save and state.wolves_target_id is None:
        return "nobody to save tonight"
    return None


def _validate_witch_poison(state: GameState, actor: Player, action: WitchPoison) -> Rejection:
    reason = _night_step_gate(state, actor, NightStep.WITCH_ACTION, Role.WITCH)
    if reason:
        return reason
    if not actor.is_alive:
        return "dead witch cannot act"
    if state.witch_poison_used:
        return "poison already used"
    if action.target is not None and not state.is_alive(action.target):
        return f"target {action.target} is not a living player"
    return None


def _validate_hunter_shoot(state: GameState, actor: Player, action: HunterShoot) -> Rejection:
    # The hunter acts from the grave: liveness is not required here.
    reason = _night_step_gate(state, actor, NightStep.HUNTER_ACTION, Role.HUNTER)
    if reason:
        return reason
    if actor.is_alive:
        return "hunter only shoots after dying"
    if not state.is_alive(action.target):
        return f"target {action.target} is not a living player"
    return None


def _validate_vote(state: GameState, actor: Player, action: Vote) -> Rejection:
    if state.phase != Phase.VOTING:
        return "not in VOTING"
    if state.voting_closed:
        return "voting already closed"
    if not actor.is_alive:
        return "dead players cannot vote"
    if not state.is_alive(action.target):
        return f"target {action.target} is not a living player"
    return None


def _validate_chat(state: GameState, actor: Player, action: Chat) -> Rejection:
    if not action.text.strip():
        return "empty message"

    if action.channel == Channel.WOLF:
        if actor.role != Role.WEREWOLF:
            return "wolf channel is for werewolves"
        if not actor.is_alive:
            return "dead werewolves leave the wolf channel"
        return None

    if state.phase == Phase.NIGHT:
        return "public channel is closed at night"
    if actor.is_alive:
        return None
    if actor.has_last_words:
        return None
    return "dead players may not speak"


def validate_command(state: GameState, command: HostCommand) -> Rejection:
    """Check whether a host command applies to the current phase."""
    kind = command.kind
    if kind == CommandKind.BEGIN_NIGHT:
        # Later nights follow a vote result on their own.
        if state.phase != Phase.ROLE_REVEAL:
            return f"cannot begin night from {state.phase.value}"
        return None
    if kind == CommandKind.CONFIRM_STEP:
        if state.phase != Phase.NIGHT or state.night_step == NightStep.NONE:
            return "no night step to confirm"
        if (
            state.night_step == NightStep.HUNTER_ACTION
            and state.hunter_target_id is None
            and not command.expired
        ):
            return "hunter has not chosen a target"
        return None
    if kind == CommandKind.BEGIN_DISCUSSION:
        if state.phase != Phase.DAY_TRANSITION:
            return f"cannot begin discussion from {state.phase.value}"
        return None
    if kind == CommandKind.BEGIN_VOTING:
        if state.phase != Phase.DAY_DISCUSSION:
            return f"cannot begin voting from {state.phase.value}"
        return None
    if kind == CommandKind.CLOSE_VOTING:
        if state.phase != Phase.VOTING:
            return "not in VOTING"
        if state.voting_closed:
            return "voting already closed"
        return None
    return f"unknown command {kind}"


def validate_join(state: GameState, name: str) -> Rejection:
    """Check whether a newcomer can take a seat."""
    if state.phase != Phase.LOBBY:
        return "game already started"
    if state.is_full():
        return "room is full"
    if not name.strip():
        return "name is required"
    return None
