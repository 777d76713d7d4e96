"""Exceptions raised by the table engine and protocol layers."""


class WerewolfTableError(Exception):
    """Base class for all werewolf_table errors."""


class ProtocolError(WerewolfTableError):
    """A wire message could not be decoded or carries an unknown tag."""


class ConnectionClosedError(WerewolfTableError):
    """The transport behind a connection is gone."""


class SessionTerminatedError(WerewolfTableError):
    """A client lost its host. The participant has to leave and rejoin."""


class StateInvariantError(WerewolfTableError):
    """A snapshot violates a game state invariant.

    Raised by the store; indicates an engine bug rather than bad input.
    """
