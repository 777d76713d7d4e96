"""Transport collaborator interface and an in-memory implementation.

The core only needs an addressable, ordered, reliable channel per peer.
Real deployments plug a WebRTC or websocket layer in behind Connection;
the loopback network here backs local play and tests.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from werewolf_table.errors import ConnectionClosedError

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """One ordered, reliable channel to a remote peer."""

    @property
    def peer_id(self) -> str:
        """Id of the remote end."""
        ...

    @property
    def closed(self) -> bool:
        ...

    async def send(self, data: str) -> None:
        """Deliver one message. Raises ConnectionClosedError if gone."""
        ...

    async def receive(self) -> str:
        """Wait for the next message. Raises ConnectionClosedError on close."""
        ...

    async def close(self) -> None:
        ...


_CLOSED = object()


class LoopbackConnection:
    """One end of an in-process connection pair."""

    def __init__(self, local_id: str, peer_id: str):
        self._local_id = local_id
        self._peer_id = peer_id
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._peer: Optional["LoopbackConnection"] = None
        self._closed = False

    @property
    def peer_id(self) -> str:
        return self._peer_id

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, data: str) -> None:
        if self._closed or self._peer is None or self._peer._closed:
            raise ConnectionClosedError(f"connection to {self._peer_id} is closed")
        self._peer._inbox.put_nowait(data)

    async def receive(self) -> str:
        if self._closed and self._inbox.empty():
            raise ConnectionClosedError(f"connection to {self._peer_id} is closed")
        item = await self._inbox.get()
        if item is _CLOSED:
            self._closed = True
            raise ConnectionClosedError(f"{self._peer_id} hung up")
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._inbox.put_nowait(_CLOSED)
        if self._peer is not None and not self._peer._closed:
            self._peer._inbox.put_nowait(_CLOSED)


def loopback_pair(a_id: str, b_id: str) -> tuple[LoopbackConnection, LoopbackConnection]:
    """Create two connected ends: (a's end, b's end)."""
    a = LoopbackConnection(local_id=a_id, peer_id=b_id)
    b = LoopbackConnection(local_id=b_id, peer_id=a_id)
    a._peer = b
    b._peer = a
    return a, b


ConnectionHandler = Callable[[LoopbackConnection], Awaitable[None]]


class LoopbackNetwork:
    """Registry of listening peers for in-process sessions."""

    def __init__(self):
        self._listeners: dict[str, ConnectionHandler] = {}

    def listen(self, peer_id: str, on_connection: ConnectionHandler) -> None:
        """Accept incoming connections addressed to ``peer_id``."""
        self._listeners[peer_id] = on_connection

    def unlisten(self, peer_id: str) -> None:
        self._listeners.pop(peer_id, None)

    async def connect(self, remote_id: str, local_id: str) -> LoopbackConnection:
        """Open a connection to a listening peer.

        Raises:
            ConnectionClosedError: If nobody listens on ``remote_id``.
        """
        handler = self._listeners.get(remote_id)
        if handler is None:
            raise ConnectionClosedError(f"peer {remote_id} unavailable")
        local_end, remote_end = loopback_pair(local_id, remote_id)
        await handler(remote_end)
        logger.debug("%s connected to %s", local_id, remote_id)
        return local_end
