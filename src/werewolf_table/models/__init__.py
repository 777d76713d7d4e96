"""Models package."""

from werewolf_table.models.player import (
    Role,
    Channel,
    Player,
    ChatMessage,
)
from werewolf_table.models.phase import (
    Phase,
    NightStep,
    HunterTrigger,
    Winner,
    TIMED_STEPS,
    is_valid_pair,
)
from werewolf_table.models.config import (
    GameConfig,
    HostSettings,
    DEFAULT_ROLES_6,
    DEFAULT_ROLES_8,
    DEFAULT_6_PLAYER_CONFIG,
    DEFAULT_8_PLAYER_CONFIG,
    load_config,
    get_settings,
)

__all__ = [
    "Role",
    "Channel",
    "Player",
    "ChatMessage",
    "Phase",
    "NightStep",
    "HunterTrigger",
    "Winner",
    "TIMED_STEPS",
    "is_valid_pair",
    "GameConfig",
    "HostSettings",
    "DEFAULT_ROLES_6",
    "DEFAULT_ROLES_8",
    "DEFAULT_6_PLAYER_CONFIG",
    "DEFAULT_8_PLAYER_CONFIG",
    "load_config",
    "get_settings",
]
