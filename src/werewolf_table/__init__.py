"""Host-authoritative Werewolf table for 6-10 players."""

__version__ = "0.1.0"
