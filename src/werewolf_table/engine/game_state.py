"""Game state snapshot for a Werewolf table."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from werewolf_table.models.config import GameConfig, DEFAULT_6_PLAYER_CONFIG
from werewolf_table.models.phase import HunterTrigger, NightStep, Phase, Winner, is_valid_pair
from werewolf_table.models.player import ChatMessage, Player, Role


class WitchDecision(BaseModel):
    """The witch's pending decision for the current night."""

    model_config = ConfigDict(frozen=True)

    save: bool = False
    poison_target_id: Optional[int] = None


class GameState(BaseModel):
    """Complete snapshot of a session.

    Snapshots are never edited in place. Every transition builds a new one
    with evolve(), and the whole snapshot is what gets broadcast.
    """

    model_config = ConfigDict(frozen=True)

    room_id: Optional[str] = None
    config: GameConfig = DEFAULT_6_PLAYER_CONFIG
    phase: Phase = Phase.SETUP
    night_step: NightStep = NightStep.NONE
    round: int = 0
    players: list[Player] = Field(default_factory=list)

    # Night action tracking
    wolves_target_id: Optional[int] = None
    seer_check_id: Optional[int] = None
    witch_save_used: bool = False
    witch_poison_used: bool = False
    witch_action: WitchDecision = Field(default_factory=WitchDecision)
    hunter_target_id: Optional[int] = None
    hunter_trigger: Optional[HunterTrigger] = None
    countdown: int = 0

    # Voting & chat
    current_votes: dict[int, int] = Field(default_factory=dict)  # voter -> target
    voting_closed: bool = False
    public_chat_history: list[ChatMessage] = Field(default_factory=list)
    wolf_chat_history: list[ChatMessage] = Field(default_factory=list)

    last_night_dead_ids: list[int] = Field(default_factory=list)
    winner: Optional[Winner] = None

    # Narrative
    story_log: list[str] = Field(default_factory=list)
    current_story: str = ""
    is_loading_story: bool = False
    story_request: int = 0  # id of the newest narrator request

    @model_validator(mode="after")
    def validate_phase_pair(self) -> "GameState":
        if not is_valid_pair(self.phase, self.night_step):
            raise ValueError(
                f"night_step {self.night_step.value} is not valid in phase {self.phase.value}"
            )
        return self

    def evolve(self, **changes: Any) -> "GameState":
        """Return a new snapshot with the given fields replaced.

        The result is re-validated, so an illegal phase/step pair raises.
        """
        data = self.model_dump()
        data.update(changes)
        return GameState.model_validate(data)

    def get_player(self, seat: Optional[int]) -> Optional[Player]:
        """Get player by seat number.

        Args:
            seat: The player's seat number

        Returns:
            Player if found, None otherwise
        """
        if seat is None:
            return None
        for player in self.players:
            if player.seat == seat:
                return player
        return None

    def is_alive(self, seat: Optional[int]) -> bool:
        player = self.get_player(seat)
        return player is not None and player.is_alive

    def living_players(self) -> list[Player]:
        return [p for p in self.players if p.is_alive]

    def living_seats(self) -> list[int]:
        return [p.seat for p in self.players if p.is_alive]

    def players_with_role(self, role: Role, alive_only: bool = True) -> list[Player]:
        """Players holding a role, optionally restricted to the living."""
        return [
            p for p in self.players
            if p.role == role and (p.is_alive or not alive_only)
        ]

    def get_werewolf_count(self) -> int:
        """Get count of living werewolves."""
        return len(self.players_with_role(Role.WEREWOLF))

    def get_good_count(self) -> int:
        """Get count of living non-werewolves."""
        return sum(1 for p in self.players if p.is_alive and p.role != Role.WEREWOLF)

    def is_full(self) -> bool:
        return len(self.players) >= self.config.total_players

    def replace_player(self, seat: int, **changes: Any) -> list[Player]:
        """Build a new roster with one player's fields replaced."""
        return [
            p.model_copy(update=changes) if p.seat == seat else p
            for p in self.players
        ]

    def kill(self, seats: list[int], grant_last_words: bool = False) -> list[Player]:
        """Build a new roster with the given seats dead.

        Args:
            seats: Seats to mark dead. Already dead seats are left untouched.
            grant_last_words: Whether newly dead players get posthumous speech.

        Returns:
            The new player list.
        """
        doomed = set(seats)
        roster = []
        for p in self.players:
            if p.seat in doomed and p.is_alive:
                roster.append(p.model_copy(update={
                    "is_alive": False,
                    "has_last_words": grant_last_words,
                }))
            else:
                roster.append(p)
        return roster
