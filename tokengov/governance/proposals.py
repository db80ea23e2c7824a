"""
Governance Proposals

Defines the lifecycle states and the Proposal dataclass that tracks an
individual governance proposal from creation to settlement.

Lifecycle (settlement performs execution in the same step):

    ACTIVE ──settle──▶ EXECUTED   (approval ≥ threshold)
           └─settle──▶ FAILED     (approval < threshold, or no votes)

PASSED keeps its slot in the enum so stored status codes line up with the
on-chain contract, but no transition ever leads to it.
"""

import copy
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Set

from ..constants import MAX_VOTING_PERIOD, MIN_VOTING_PERIOD
from ..exceptions import ProposalLifecycleError, ValidationError
from ..logger import get_logger

logger = get_logger(__name__)


class ProposalStatus(IntEnum):
    """Lifecycle stage."""
    ACTIVE = 0      # Accepting votes until the deadline
    PASSED = 1      # Reserved; settlement promotes straight to EXECUTED
    FAILED = 2      # Settled, did not meet the threshold
    EXECUTED = 3    # Settled, met the threshold


# Valid forward transitions
_VALID_TRANSITIONS: Dict[ProposalStatus, Set[ProposalStatus]] = {
    ProposalStatus.ACTIVE:   {ProposalStatus.FAILED, ProposalStatus.EXECUTED},
    # Terminal states: no further transitions
    ProposalStatus.PASSED:   set(),
    ProposalStatus.FAILED:   set(),
    ProposalStatus.EXECUTED: set(),
}

TERMINAL_STATUSES = frozenset({ProposalStatus.FAILED, ProposalStatus.EXECUTED})

_RESTORABLE_STATUSES = TERMINAL_STATUSES | {ProposalStatus.ACTIVE}


@dataclass
class Proposal:
    """
    Governance proposal record.

    Fields:
        id:           Unique sequential identifier, starting at 1
        description:  Free text, never empty
        proposer:     Checksum address of the creator
        created_at:   Creation timestamp (seconds)
        deadline:     created_at + voting period; votes accepted while now <= deadline
        yes_votes:    Accumulated weight of supporting votes
        no_votes:     Accumulated weight of opposing votes
        executed:     Set exactly once, by settlement
        status:       Current lifecycle stage
    """
    id: int
    description: str
    proposer: str
    created_at: int
    deadline: int
    yes_votes: int = 0
    no_votes: int = 0
    executed: bool = False
    status: ProposalStatus = ProposalStatus.ACTIVE
    _history: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if self.id < 1:
            raise ValidationError(f"Proposal id must be positive, got {self.id}")
        if not self.description:
            raise ValidationError("Description cannot be empty")
        if self.deadline < self.created_at:
            raise ValidationError("Deadline cannot precede creation time")
        if not self._history:
            self._history.append({
                "from": "INIT",
                "to": self.status.name,
                "reason": "created",
                "timestamp": self.created_at,
            })

    # ── Properties ────────────────────────────────────────────────────

    @property
    def total_votes(self) -> int:
        return self.yes_votes + self.no_votes

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_votable(self) -> bool:
        return self.status == ProposalStatus.ACTIVE

    @property
    def history(self) -> List[Dict[str, Any]]:
        return list(self._history)

    def voting_open_at(self, now: int) -> bool:
        return self.is_votable and now <= self.deadline

    # ── State transitions ─────────────────────────────────────────────

    def transition_to(self, new_status: ProposalStatus, timestamp: int, reason: str = ""):
        """
        Advance proposal to *new_status*.

        Raises ProposalLifecycleError on invalid transitions.
        """
        allowed = _VALID_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise ProposalLifecycleError(
                f"Cannot transition from {self.status.name} → {new_status.name}. "
                f"Allowed: {sorted(s.name for s in allowed)}"
            )
        old = self.status
        self._history.append({
            "from": old.name,
            "to": new_status.name,
            "reason": reason,
            "timestamp": timestamp,
        })
        self.status = new_status
        logger.info(f"Proposal #{self.id}: {old.name} → {new_status.name} | {reason}")

    def mark_settled(self, passed: bool, timestamp: int):
        """ACTIVE → EXECUTED or FAILED, setting the executed flag with it."""
        target = ProposalStatus.EXECUTED if passed else ProposalStatus.FAILED
        reason = "Threshold met" if passed else "Threshold not met"
        self.transition_to(target, timestamp, reason)
        self.executed = True

    def snapshot(self) -> "Proposal":
        """Detached copy safe to hand to callers."""
        return copy.deepcopy(self)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "proposer": self.proposer,
            "yesVotes": str(self.yes_votes),
            "noVotes": str(self.no_votes),
            "createdAt": self.created_at,
            "deadline": self.deadline,
            "executed": self.executed,
            "status": self.status.name,
            "history": self.history,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Proposal":
        proposal = cls(
            id=int(data["id"]),
            description=data["description"],
            proposer=data["proposer"],
            created_at=int(data["createdAt"]),
            deadline=int(data["deadline"]),
            yes_votes=int(data.get("yesVotes", 0)),
            no_votes=int(data.get("noVotes", 0)),
            executed=bool(data.get("executed", False)),
            status=ProposalStatus[data.get("status", "ACTIVE")],
            _history=list(data.get("history", [])),
        )
        if proposal.status not in _RESTORABLE_STATUSES:
            raise ValidationError(
                f"Proposal #{proposal.id}: status {proposal.status.name} is never stored"
            )
        if proposal.executed != (proposal.status != ProposalStatus.ACTIVE):
            raise ValidationError(
                f"Proposal #{proposal.id}: executed flag disagrees with status "
                f"{proposal.status.name}"
            )
        period = proposal.deadline - proposal.created_at
        if not MIN_VOTING_PERIOD <= period <= MAX_VOTING_PERIOD:
            raise ValidationError(
                f"Proposal #{proposal.id}: voting period {period}s is out of bounds"
            )
        return proposal

    def __repr__(self) -> str:
        return (
            f"<Proposal #{self.id} status={self.status.name} "
            f"yes={self.yes_votes} no={self.no_votes}>"
        )
