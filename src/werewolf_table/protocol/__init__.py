"""Synchronization protocol: actions, wire messages, transport and sessions."""

from werewolf_table.protocol.actions import (
    ActionKind,
    Vote,
    WolfKill,
    SeerCheck,
    WitchSave,
    WitchPoison,
    HunterShoot,
    Chat,
    PlayerAction,
    CommandKind,
    HostCommand,
)
from werewolf_table.protocol.messages import (
    MessageKind,
    JoinMessage,
    WelcomeMessage,
    StateUpdateMessage,
    ActionMessage,
    ChatEnvelope,
    RejectedMessage,
    WireMessage,
    encode_message,
    decode_message,
)
from werewolf_table.protocol.transport import (
    Connection,
    LoopbackConnection,
    LoopbackNetwork,
    loopback_pair,
)
from werewolf_table.protocol.views import mask_state, visible_seats

# Sessions depend on the engine host; import them from
# werewolf_table.protocol.session directly.

__all__ = [
    "ActionKind",
    "Vote",
    "WolfKill",
    "SeerCheck",
    "WitchSave",
    "WitchPoison",
    "HunterShoot",
    "Chat",
    "PlayerAction",
    "CommandKind",
    "HostCommand",
    "MessageKind",
    "JoinMessage",
    "WelcomeMessage",
    "StateUpdateMessage",
    "ActionMessage",
    "ChatEnvelope",
    "RejectedMessage",
    "WireMessage",
    "encode_message",
    "decode_message",
    "Connection",
    "LoopbackConnection",
    "LoopbackNetwork",
    "loopback_pair",
    "mask_state",
    "visible_seats",
]
