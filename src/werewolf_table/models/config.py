"""Table configuration and host settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from werewolf_table.models.player import Role

MIN_PLAYERS = 6
MAX_PLAYERS = 10


class GameConfig(BaseModel):
    """Seat count and role distribution for one room.

    Fixed at room creation. The role counts must add up to the seat count
    and include at least one werewolf.
    """

    model_config = ConfigDict(frozen=True)

    total_players: int = Field(ge=MIN_PLAYERS, le=MAX_PLAYERS)
    role_counts: dict[Role, int]

    @model_validator(mode="after")
    def validate_counts(self) -> "GameConfig":
        for role, count in self.role_counts.items():
            if count < 0:
                raise ValueError(f"role count for {role.value} must be >= 0, got {count}")
        total = sum(self.role_counts.values())
        if total != self.total_players:
            raise ValueError(
                f"role counts sum to {total}, expected {self.total_players}"
            )
        if self.count(Role.WEREWOLF) <= 0:
            raise ValueError("at least one werewolf is required")
        return self

    def count(self, role: Role) -> int:
        """Configured number of seats for a role (0 if absent)."""
        return self.role_counts.get(role, 0)

    def has_role(self, role: Role) -> bool:
        return self.count(role) > 0

    def role_pool(self) -> list[Role]:
        """The exact role multiset, in declaration order."""
        roles: list[Role] = []
        for role in Role:
            roles.extend([role] * self.count(role))
        return roles

    @classmethod
    def with_villager_fill(cls, total_players: int, specials: dict[Role, int]) -> "GameConfig":
        """Build a config whose remaining seats are villagers.

        Args:
            total_players: Seat count (6-10).
            specials: Counts for every non-villager role.

        Returns:
            A validated GameConfig.
        """
        counts = {role: count for role, count in specials.items() if role != Role.VILLAGER}
        counts[Role.VILLAGER] = max(0, total_players - sum(counts.values()))
        return cls(total_players=total_players, role_counts=counts)


DEFAULT_ROLES_6 = {
    Role.WEREWOLF: 2,
    Role.VILLAGER: 2,
    Role.SEER: 1,
    Role.HUNTER: 1,
    Role.WITCH: 0,
}

DEFAULT_ROLES_8 = {
    Role.WEREWOLF: 3,
    Role.VILLAGER: 3,
    Role.SEER: 1,
    Role.WITCH: 1,
    Role.HUNTER: 0,
}

DEFAULT_6_PLAYER_CONFIG = GameConfig(total_players=6, role_counts=DEFAULT_ROLES_6)
DEFAULT_8_PLAYER_CONFIG = GameConfig(total_players=8, role_counts=DEFAULT_ROLES_8)


def load_config(path: Union[str, Path]) -> GameConfig:
    """Load a table preset from a YAML file.

    Expected layout::

        total_players: 8
        role_counts:
          WEREWOLF: 3
          VILLAGER: 3
          SEER: 1
          WITCH: 1
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return GameConfig.model_validate(data)


class HostSettings(BaseSettings):
    """Host runtime settings, read from the environment or a .env file."""

    action_seconds: int = 20  # countdown for every timed step
    tick_seconds: float = 1.0  # wall time of one countdown tick
    resolution_delay_seconds: float = 4.0  # pause after a vote result
    narrative_timeout_seconds: float = 10.0
    mask_roles: bool = False  # scrub per-viewer snapshots before sending

    llm_api_url: Optional[str] = None
    llm_api_key: str = ""
    llm_model: str = "gpt-4o-mini"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="WEREWOLF_TABLE_")


@lru_cache
def get_settings() -> HostSettings:
    return HostSettings()
