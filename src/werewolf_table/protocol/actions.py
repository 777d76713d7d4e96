"""Player actions and host commands as closed tagged unions.

Each action kind carries its own typed payload. Anything with an unknown
``kind`` tag fails validation at the boundary.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from werewolf_table.models.player import Channel


class ActionKind(str, Enum):
    """Kinds of player-originated actions."""

    VOTE = "VOTE"
    WOLF_KILL = "WOLF_KILL"
    SEER_CHECK = "SEER_CHECK"
    WITCH_SAVE = "WITCH_SAVE"
    WITCH_POISON = "WITCH_POISON"
    HUNTER_SHOOT = "HUNTER_SHOOT"
    CHAT = "CHAT"


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Vote(_Action):
    """Cast (or overwrite) a vote during VOTING."""

    kind: Literal[ActionKind.VOTE] = ActionKind.VOTE
    target: int


class WolfKill(_Action):
    """A werewolf records the pack's victim. Last write wins."""

    kind: Literal[ActionKind.WOLF_KILL] = ActionKind.WOLF_KILL
    target: int


class SeerCheck(_Action):
    kind: Literal[ActionKind.SEER_CHECK] = ActionKind.SEER_CHECK
    target: int


class WitchSave(_Action):
    """Use (or retract) the antidote on tonight's wolf target."""

    kind: Literal[ActionKind.WITCH_SAVE] = ActionKind.WITCH_SAVE
    save: bool = True


class WitchPoison(_Action):
    """Pick a poison target; None clears a previous pick."""

    kind: Literal[ActionKind.WITCH_POISON] = ActionKind.WITCH_POISON
    target: Optional[int] = None


class HunterShoot(_Action):
    kind: Literal[ActionKind.HUNTER_SHOOT] = ActionKind.HUNTER_SHOOT
    target: int


class Chat(_Action):
    kind: Literal[ActionKind.CHAT] = ActionKind.CHAT
    text: str
    channel: Channel = Channel.PUBLIC


PlayerAction = Annotated[
    Union[Vote, WolfKill, SeerCheck, WitchSave, WitchPoison, HunterShoot, Chat],
    Field(discriminator="kind"),
]

player_action_adapter: TypeAdapter[PlayerAction] = TypeAdapter(PlayerAction)


# ============================================================================
# Host commands (phase-advancing triggers only the host may issue)
# ============================================================================


class CommandKind(str, Enum):
    BEGIN_NIGHT = "BEGIN_NIGHT"
    CONFIRM_STEP = "CONFIRM_STEP"
    BEGIN_DISCUSSION = "BEGIN_DISCUSSION"
    BEGIN_VOTING = "BEGIN_VOTING"
    CLOSE_VOTING = "CLOSE_VOTING"


class HostCommand(_Action):
    """A phase-advancing trigger issued by the host."""

    kind: CommandKind
    expired: bool = False  # synthesized by countdown expiry
