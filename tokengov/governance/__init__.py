"""
tokengov Governance

Provides:
  - ProposalStatus / Proposal                         (proposals.py)
  - VoteRecord / VoteCounts / compute_outcome          (voting.py)
  - ProposalCreatedEvent / VoteCastEvent / ProposalExecutedEvent (events.py)
  - ProposalRegistry                                   (registry.py)
"""

from .proposals import (
    Proposal,
    ProposalStatus,
)
from .voting import (
    VoteCounts,
    VoteRecord,
    approval_basis_points,
    compute_outcome,
)
from .events import (
    ProposalCreatedEvent,
    ProposalExecutedEvent,
    VoteCastEvent,
)
from .registry import ProposalRegistry

__all__ = [
    # Proposals
    "Proposal",
    "ProposalStatus",
    # Voting
    "VoteCounts",
    "VoteRecord",
    "approval_basis_points",
    "compute_outcome",
    # Events
    "ProposalCreatedEvent",
    "ProposalExecutedEvent",
    "VoteCastEvent",
    # Registry
    "ProposalRegistry",
]
