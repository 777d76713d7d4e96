"""Wire protocol between the host and its clients.

Every message is a tagged variant serialized as JSON. State always travels
as the complete snapshot, never as a delta.
"""

from enum import Enum
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from werewolf_table.engine.game_state import GameState
from werewolf_table.errors import ProtocolError
from werewolf_table.models.player import Channel, ChatMessage
from werewolf_table.protocol.actions import PlayerAction


class MessageKind(str, Enum):
    JOIN = "JOIN"
    WELCOME = "WELCOME"
    STATE_UPDATE = "STATE_UPDATE"
    ACTION = "ACTION"
    CHAT = "CHAT"
    REJECTED = "REJECTED"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


class JoinMessage(_Message):
    """client -> host: ask for a seat."""

    kind: Literal[MessageKind.JOIN] = MessageKind.JOIN
    name: str
    client_peer_id: str


class WelcomeMessage(_Message):
    """host -> new client: its seat plus the current snapshot."""

    kind: Literal[MessageKind.WELCOME] = MessageKind.WELCOME
    assigned_seat: int
    full_state: GameState


class StateUpdateMessage(_Message):
    """host -> every client after each mutation."""

    kind: Literal[MessageKind.STATE_UPDATE] = MessageKind.STATE_UPDATE
    full_state: GameState


class ActionMessage(_Message):
    """client -> host: a command checked at the host."""

    kind: Literal[MessageKind.ACTION] = MessageKind.ACTION
    action: PlayerAction
    from_seat: int


class ChatEnvelope(_Message):
    """client -> host. The host answers through the next StateUpdate."""

    kind: Literal[MessageKind.CHAT] = MessageKind.CHAT
    message: ChatMessage
    channel: Channel = Channel.PUBLIC


class RejectedMessage(_Message):
    """host -> client: the join was refused."""

    kind: Literal[MessageKind.REJECTED] = MessageKind.REJECTED
    reason: str


WireMessage = Annotated[
    Union[
        JoinMessage,
        WelcomeMessage,
        StateUpdateMessage,
        ActionMessage,
        ChatEnvelope,
        RejectedMessage,
    ],
    Field(discriminator="kind"),
]

_wire_adapter: TypeAdapter[WireMessage] = TypeAdapter(WireMessage)


def encode_message(message: _Message) -> str:
    """Serialize a message to its JSON wire form."""
    return message.model_dump_json()


def decode_message(raw: Union[str, bytes]) -> WireMessage:
    """Parse a JSON wire message.

    Raises:
        ProtocolError: On malformed JSON, an unknown tag or a bad payload.
    """
    try:
        return _wire_adapter.validate_json(raw)
    except ValidationError as e:
        raise ProtocolError(f"undecodable message: {e.error_count()} error(s)") from e
