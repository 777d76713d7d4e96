"""Host and client sessions: the broadcast/apply discipline over connections.

HostSession accepts connections, seats joining clients, forwards their
actions into the GameHost, and pushes the complete snapshot to every
connection after each mutation. Each connection has its own outbox and
writer task, so messages to one peer stay in order and a slow or dead peer
never blocks the host.

ClientSession is the thin side: it joins, keeps a read-only mirror that is
replaced wholesale on every update, and sends actions upstream.
"""

import asyncio
import logging
from typing import Callable, Optional

from werewolf_table.engine.game_state import GameState
from werewolf_table.engine.host import GameHost
from werewolf_table.errors import (
    ConnectionClosedError,
    ProtocolError,
    SessionTerminatedError,
)
from werewolf_table.models.player import Channel, ChatMessage
from werewolf_table.protocol.actions import Chat, PlayerAction
from werewolf_table.protocol.messages import (
    ActionMessage,
    ChatEnvelope,
    JoinMessage,
    RejectedMessage,
    StateUpdateMessage,
    WelcomeMessage,
    decode_message,
    encode_message,
)
from werewolf_table.protocol.transport import Connection
from werewolf_table.protocol.views import mask_state

logger = logging.getLogger(__name__)


class _Peer:
    """A connected client as seen by the host."""

    def __init__(self, connection: Connection):
        self.connection = connection
        self.seat: Optional[int] = None
        self.outbox: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self.reader: Optional[asyncio.Task] = None
        self.writer: Optional[asyncio.Task] = None


class HostSession:
    """Serves one GameHost to any number of client connections."""

    def __init__(self, host: GameHost):
        self.host = host
        self._peers: list[_Peer] = []
        host.subscribe(self._broadcast)

    @property
    def connected_seats(self) -> list[int]:
        return [p.seat for p in self._peers if p.seat is not None]

    async def accept(self, connection: Connection) -> None:
        """Start serving a newly opened connection."""
        peer = _Peer(connection)
        self._peers.append(peer)
        peer.writer = asyncio.create_task(self._write_loop(peer))
        peer.reader = asyncio.create_task(self._read_loop(peer))
        logger.debug("Accepted connection from %s", connection.peer_id)

    async def close(self) -> None:
        """Stop every peer task and close their connections."""
        for peer in list(self._peers):
            await self._drop(peer)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _broadcast(self, state: GameState) -> None:
        mask = self.host.settings.mask_roles
        for peer in self._peers:
            if peer.seat is None:
                continue
            view = mask_state(state, peer.seat) if mask else state
            peer.outbox.put_nowait(encode_message(StateUpdateMessage(full_state=view)))

    async def _write_loop(self, peer: _Peer) -> None:
        while True:
            data = await peer.outbox.get()
            if data is None:
                return
            try:
                await peer.connection.send(data)
            except ConnectionClosedError:
                logger.warning("Lost connection to seat %s, pruning", peer.seat)
                self._forget(peer)
                return

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _read_loop(self, peer: _Peer) -> None:
        while True:
            try:
                raw = await peer.connection.receive()
            except ConnectionClosedError:
                logger.warning("Connection from seat %s closed, pruning", peer.seat)
                self._forget(peer)
                return
            try:
                message = decode_message(raw)
            except ProtocolError as e:
                logger.warning("Dropped message from %s: %s", peer.connection.peer_id, e)
                continue
            await self._dispatch(peer, message)

    async def _dispatch(self, peer: _Peer, message) -> None:
        if isinstance(message, JoinMessage):
            await self._handle_join(peer, message)
        elif peer.seat is None:
            logger.debug("Ignored %s from unseated peer", message.kind.value)
        elif isinstance(message, ActionMessage):
            if message.from_seat != peer.seat:
                logger.debug("Seat %d tried to act as seat %d", peer.seat, message.from_seat)
                return
            self.host.submit(peer.seat, message.action)
        elif isinstance(message, ChatEnvelope):
            self.host.submit(peer.seat, Chat(text=message.message.text, channel=message.channel))
        else:
            logger.debug("Ignored %s sent to host", message.kind.value)

    async def _handle_join(self, peer: _Peer, message: JoinMessage) -> None:
        if peer.seat is not None:
            return
        result = await self.host.join(message.name, message.client_peer_id)
        if not result.accepted:
            peer.outbox.put_nowait(encode_message(RejectedMessage(reason=result.reason)))
            return
        # Seat and welcome together, before any further broadcast can slip in.
        peer.seat = result.seat
        state = self.host.state
        view = mask_state(state, peer.seat) if self.host.settings.mask_roles else state
        peer.outbox.put_nowait(encode_message(
            WelcomeMessage(assigned_seat=result.seat, full_state=view)
        ))

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def _forget(self, peer: _Peer) -> None:
        if peer in self._peers:
            self._peers.remove(peer)
        peer.outbox.put_nowait(None)
        for task in (peer.reader, peer.writer):
            if task is not None and task is not asyncio.current_task():
                task.cancel()

    async def _drop(self, peer: _Peer) -> None:
        self._forget(peer)
        await peer.connection.close()
        tasks = [t for t in (peer.reader, peer.writer) if t is not None]
        await asyncio.gather(*tasks, return_exceptions=True)


StateCallback = Callable[[GameState], None]


class ClientSession:
    """A participant's connection to the host."""

    def __init__(self, connection: Connection, on_state: Optional[StateCallback] = None):
        self.connection = connection
        self.seat: Optional[int] = None
        self.state: Optional[GameState] = None
        self._on_state = on_state

    async def join(self, name: str, peer_id: str) -> int:
        """Request a seat and wait for the welcome.

        Raises:
            SessionTerminatedError: If the host refuses or the connection drops.
        """
        await self._send(encode_message(JoinMessage(name=name, client_peer_id=peer_id)))
        while True:
            message = await self._receive()
            if isinstance(message, WelcomeMessage):
                self.seat = message.assigned_seat
                self._apply(message.full_state)
                return self.seat
            if isinstance(message, RejectedMessage):
                await self.connection.close()
                raise SessionTerminatedError(f"join refused: {message.reason}")

    async def run(self) -> None:
        """Apply state updates until the connection ends.

        Raises:
            SessionTerminatedError: When the host goes away.
        """
        while True:
            message = await self._receive()
            if isinstance(message, StateUpdateMessage):
                self._apply(message.full_state)

    async def send_action(self, action: PlayerAction) -> None:
        if self.seat is None:
            raise SessionTerminatedError("not seated")
        await self._send(encode_message(ActionMessage(action=action, from_seat=self.seat)))

    async def send_chat(self, text: str, channel: Channel = Channel.PUBLIC) -> None:
        if self.seat is None:
            raise SessionTerminatedError("not seated")
        me = self.state.get_player(self.seat) if self.state else None
        message = ChatMessage(
            sender_seat=self.seat,
            sender_name=me.name if me else "",
            text=text,
            channel=channel,
        )
        await self._send(encode_message(ChatEnvelope(message=message, channel=channel)))

    async def leave(self) -> None:
        await self.connection.close()

    def _apply(self, state: GameState) -> None:
        self.state = state
        if self._on_state is not None:
            self._on_state(state)

    async def _send(self, data: str) -> None:
        try:
            await self.connection.send(data)
        except ConnectionClosedError as e:
            raise SessionTerminatedError("lost connection to host") from e

    async def _receive(self):
        while True:
            try:
                raw = await self.connection.receive()
            except ConnectionClosedError as e:
                raise SessionTerminatedError("lost connection to host") from e
            try:
                return decode_message(raw)
            except ProtocolError as e:
                logger.warning("Dropped message from host: %s", e)
