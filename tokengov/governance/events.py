"""
Governance Notifications

Events emitted by the proposal registry for external consumers (indexers,
UIs). They are delivered after the mutation that produced them has been
committed and play no part in the registry's own correctness.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Union


@dataclass(frozen=True)
class ProposalCreatedEvent:
    proposal_id: int
    proposer: str
    description: str
    deadline: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCreated",
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "description": self.description,
            "deadline": self.deadline,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteCastEvent:
    proposal_id: int
    voter: str
    support: bool
    weight: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteCast",
            "proposalId": self.proposal_id,
            "voter": self.voter,
            "support": self.support,
            "weight": str(self.weight),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalExecutedEvent:
    proposal_id: int
    passed: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalExecuted",
            "proposalId": self.proposal_id,
            "passed": self.passed,
            "timestamp": self.timestamp,
        }


GovernanceEvent = Union[ProposalCreatedEvent, VoteCastEvent, ProposalExecutedEvent]
GovernanceListener = Callable[[GovernanceEvent], None]
