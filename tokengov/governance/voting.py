"""
Balance-Weighted Vote Tally

Implements:
  - 1 base unit of balance = 1 unit of voting weight, captured at cast time
  - Yes / No choices (no abstain)
  - Basis-point approval threshold, inclusive: exactly 50.00% passes
  - Zero participation settles as a failure
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, NamedTuple

from ..constants import BASIS_POINTS, VOTING_THRESHOLD


class VoteCounts(NamedTuple):
    """(yes, no, total) weight tuple returned by vote-count queries."""
    yes: int
    no: int
    total: int


@dataclass(frozen=True)
class VoteRecord:
    """A single vote. Weight is fixed when cast and never re-read."""
    proposal_id: int
    voter: str
    support: bool
    weight: int
    timestamp: float = field(default_factory=time.time)

    @property
    def choice(self) -> str:
        return "YES" if self.support else "NO"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "support": self.support,
            "weight": str(self.weight),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteRecord":
        return cls(
            proposal_id=int(data["proposalId"]),
            voter=data["voter"],
            support=bool(data["support"]),
            weight=int(data["weight"]),
            timestamp=data.get("timestamp", 0),
        )


def approval_basis_points(yes_votes: int, no_votes: int) -> int:
    """Share of yes weight in basis points, floored. 0 when nobody voted."""
    total = yes_votes + no_votes
    if total == 0:
        return 0
    return (yes_votes * BASIS_POINTS) // total


def compute_outcome(yes_votes: int, no_votes: int) -> bool:
    """Deterministic pass/fail decision for a settled proposal."""
    if yes_votes + no_votes == 0:
        return False
    return approval_basis_points(yes_votes, no_votes) >= VOTING_THRESHOLD
