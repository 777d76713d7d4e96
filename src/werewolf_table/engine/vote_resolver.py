"""Vote tally for the day's exile."""

from collections import Counter
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class VoteTally(BaseModel):
    """Outcome of counting one vote.

    ``exiled`` is set only when a single seat holds the strict maximum.
    ``tied_players`` lists the seats sharing the maximum when nobody is exiled.
    """

    model_config = ConfigDict(frozen=True)

    counts: dict[int, int] = Field(default_factory=dict)  # target -> votes
    exiled: Optional[int] = None
    tied_players: list[int] = Field(default_factory=list)

    @property
    def is_stalemate(self) -> bool:
        return self.exiled is None


def tally_votes(votes: dict[int, int]) -> VoteTally:
    """Count votes and find the exiled seat.

    Args:
        votes: Voter seat -> target seat. Each voter appears once; a later
            vote has already overwritten an earlier one by the time it gets here.

    Returns:
        VoteTally. Zero votes or a shared maximum means no exile.
    """
    counts = Counter(votes.values())
    if not counts:
        return VoteTally()

    top = max(counts.values())
    leaders = sorted(seat for seat, n in counts.items() if n == top)
    if len(leaders) > 1:
        return VoteTally(counts=dict(counts), tied_players=leaders)
    return VoteTally(counts=dict(counts), exiled=leaders[0])
