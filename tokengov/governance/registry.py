"""
Proposal Registry

Owns every proposal record, the per-proposal vote ledger and the lifecycle
transitions:

    create_proposal → vote* → settle

The registry is a single logical state machine. Each mutating call runs its
whole check-then-update sequence under one registry-wide lock, so two votes
from the same account can never both pass the has-voted check, and a
proposal can never be settled twice. Read-only queries take the same lock and
therefore never observe a half-applied vote or settlement.

The ledger is consulted through `balance_of` only, exactly twice per
participant: once at creation (minimum-balance gate) and once at vote time
(weight capture). Later balance changes never touch recorded weight.
"""

import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from ..address import canonical
from ..constants import (
    MAX_EVENT_HISTORY,
    MAX_VOTING_PERIOD,
    MIN_TOKENS_TO_PROPOSE,
    MIN_VOTING_PERIOD,
)
from ..exceptions import (
    AlreadyExecutedError,
    AlreadyVotedError,
    EmptyDescriptionError,
    InsufficientTokensError,
    NoVotingPowerError,
    ProposalNotActiveError,
    ProposalNotFoundError,
    ValidationError,
    VotingClosedError,
    VotingNotEndedError,
    VotingPeriodTooLongError,
    VotingPeriodTooShortError,
)
from ..logger import get_logger
from ..tokens.ledger import BalanceSource
from .events import (
    GovernanceEvent,
    GovernanceListener,
    ProposalCreatedEvent,
    ProposalExecutedEvent,
    VoteCastEvent,
)
from .proposals import Proposal, ProposalStatus
from .voting import VoteCounts, VoteRecord, approval_basis_points, compute_outcome

logger = get_logger(__name__)

Clock = Callable[[], float]


class ProposalRegistry:
    """
    Balance-weighted proposal registry.

    Responsibilities:
        - Gate proposal creation on a minimum balance
        - Accept one vote per (proposal, account), weighted by balance at cast time
        - Settle each proposal exactly once after its deadline
        - Notify subscribers of creations, votes and settlements
    """

    def __init__(
        self,
        ledger: BalanceSource,
        clock: Clock = time.time,
        max_events: int = MAX_EVENT_HISTORY,
    ):
        """
        Args:
            ledger: Anything exposing balance_of(account) → int
            clock:  Callable returning the current time in seconds
            max_events: Most recent events kept in `events`; older ones are dropped
        """
        self._ledger = ledger
        self._clock = clock

        self._proposals: Dict[int, Proposal] = {}
        self._votes: Dict[Tuple[int, str], VoteRecord] = {}  # (proposal_id, voter)
        self._proposal_count = 0

        self._events: Deque[GovernanceEvent] = deque(maxlen=max_events)
        self._listeners: List[GovernanceListener] = []
        self._lock = threading.RLock()

    # ── Helpers ───────────────────────────────────────────────────────

    def now(self) -> int:
        return int(self._clock())

    def _require_proposal(self, proposal_id: int) -> Proposal:
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError("Proposal does not exist")
        return proposal

    def _emit(self, event: GovernanceEvent) -> None:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Governance listener failed on {type(event).__name__}")

    def subscribe(self, listener: GovernanceListener) -> None:
        """Register a callback invoked after every committed mutation."""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: GovernanceListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ── Create ────────────────────────────────────────────────────────

    def create_proposal(self, caller: str, description: str, voting_period: int) -> int:
        """
        Open a new proposal for voting.

        Args:
            caller: Proposer address; must hold at least MIN_TOKENS_TO_PROPOSE
            description: Non-empty proposal text
            voting_period: Seconds until the deadline, 60 to 30 days inclusive

        Returns:
            The new proposal id.
        """
        caller = canonical(caller)
        if not isinstance(description, str):
            raise ValidationError("Description must be a string")
        if not isinstance(voting_period, int) or isinstance(voting_period, bool):
            raise ValidationError("Voting period must be an integer number of seconds")

        with self._lock:
            if self._ledger.balance_of(caller) < MIN_TOKENS_TO_PROPOSE:
                raise InsufficientTokensError("Insufficient tokens to create proposal")
            if not description:
                raise EmptyDescriptionError("Description cannot be empty")
            if voting_period < MIN_VOTING_PERIOD:
                raise VotingPeriodTooShortError(
                    f"Voting period must be at least {MIN_VOTING_PERIOD} seconds"
                )
            if voting_period > MAX_VOTING_PERIOD:
                raise VotingPeriodTooLongError("Voting period cannot exceed 30 days")

            now = self.now()
            proposal_id = self._proposal_count + 1
            proposal = Proposal(
                id=proposal_id,
                description=description,
                proposer=caller,
                created_at=now,
                deadline=now + voting_period,
            )
            self._proposals[proposal_id] = proposal
            self._proposal_count = proposal_id

            logger.info(
                f"Proposal #{proposal_id} created by {caller}, "
                f"deadline={proposal.deadline}"
            )
            self._emit(ProposalCreatedEvent(
                proposal_id=proposal_id,
                proposer=caller,
                description=description,
                deadline=proposal.deadline,
            ))
            return proposal_id

    # ── Vote ──────────────────────────────────────────────────────────

    def vote(self, caller: str, proposal_id: int, support: bool) -> VoteRecord:
        """
        Cast the caller's balance-weighted vote.

        The weight is the caller's balance right now. Recording the vote and
        adding its weight to the tally happen under the same lock as the
        has-voted check.
        """
        caller = canonical(caller)

        with self._lock:
            proposal = self._require_proposal(proposal_id)
            if not proposal.is_votable:
                raise ProposalNotActiveError("Proposal is not active")
            now = self.now()
            if now > proposal.deadline:
                raise VotingClosedError("Voting period has ended")

            weight = self._ledger.balance_of(caller)
            if weight <= 0:
                raise NoVotingPowerError("Must have tokens to vote")

            key = (proposal_id, caller)
            if key in self._votes:
                raise AlreadyVotedError("Already voted on this proposal")

            record = VoteRecord(
                proposal_id=proposal_id,
                voter=caller,
                support=bool(support),
                weight=weight,
                timestamp=now,
            )
            self._votes[key] = record
            if record.support:
                proposal.yes_votes += weight
            else:
                proposal.no_votes += weight

            logger.info(
                f"Vote: {caller} → {record.choice} on proposal #{proposal_id} "
                f"weight={weight}"
            )
            self._emit(VoteCastEvent(
                proposal_id=proposal_id,
                voter=caller,
                support=record.support,
                weight=weight,
            ))
            return record

    # ── Settle ────────────────────────────────────────────────────────

    def settle(self, proposal_id: int) -> bool:
        """
        Compute and permanently fix a proposal's outcome.

        Returns True when the proposal met the threshold (status EXECUTED),
        False otherwise (status FAILED). A second call on the same proposal
        raises AlreadyExecutedError and changes nothing.
        """
        with self._lock:
            proposal = self._require_proposal(proposal_id)
            now = self.now()
            if now <= proposal.deadline:
                raise VotingNotEndedError("Voting period has not ended")
            if proposal.executed or not proposal.is_votable:
                raise AlreadyExecutedError("Proposal already executed")

            passed = compute_outcome(proposal.yes_votes, proposal.no_votes)
            proposal.mark_settled(passed, now)

            logger.info(
                f"Proposal #{proposal_id}: {'PASSED' if passed else 'FAILED'} "
                f"(yes={proposal.yes_votes}, no={proposal.no_votes}, "
                f"approval={approval_basis_points(proposal.yes_votes, proposal.no_votes)}bp)"
            )
            self._emit(ProposalExecutedEvent(proposal_id=proposal_id, passed=passed))
            return passed

    execute_proposal = settle

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def proposal_count(self) -> int:
        with self._lock:
            return self._proposal_count

    def get_proposal(self, proposal_id: int) -> Proposal:
        with self._lock:
            return self._require_proposal(proposal_id).snapshot()

    def list_proposals(self, status: Optional[ProposalStatus] = None) -> List[Proposal]:
        with self._lock:
            return [
                p.snapshot() for _, p in sorted(self._proposals.items())
                if status is None or p.status == status
            ]

    def get_vote_counts(self, proposal_id: int) -> VoteCounts:
        with self._lock:
            proposal = self._require_proposal(proposal_id)
            return VoteCounts(proposal.yes_votes, proposal.no_votes, proposal.total_votes)

    def is_voting_active(self, proposal_id: int) -> bool:
        with self._lock:
            return self._require_proposal(proposal_id).voting_open_at(self.now())

    def has_voted(self, proposal_id: int, account: str) -> bool:
        with self._lock:
            return (proposal_id, canonical(account)) in self._votes

    def get_vote(self, proposal_id: int, account: str) -> Optional[VoteRecord]:
        with self._lock:
            return self._votes.get((proposal_id, canonical(account)))

    def get_votes(self, proposal_id: int) -> List[VoteRecord]:
        with self._lock:
            self._require_proposal(proposal_id)
            return [v for (pid, _), v in self._votes.items() if pid == proposal_id]

    def voter_count(self, proposal_id: int) -> int:
        return len(self.get_votes(proposal_id))

    def get_voting_power(self, account: str) -> int:
        return self._ledger.balance_of(canonical(account))

    @property
    def events(self) -> List[GovernanceEvent]:
        with self._lock:
            return list(self._events)

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "proposalCount": self._proposal_count,
                "proposals": [p.to_dict() for _, p in sorted(self._proposals.items())],
                "votes": [v.to_dict() for v in self._votes.values()],
            }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        ledger: BalanceSource,
        clock: Clock = time.time,
    ) -> "ProposalRegistry":
        """
        Restore a registry from `to_dict` output.

        Raises ValidationError when the snapshot breaks a tally invariant.
        """
        registry = cls(ledger, clock)
        for entry in data.get("proposals", []):
            proposal = Proposal.from_dict(entry)
            if proposal.id in registry._proposals:
                raise ValidationError(f"Duplicate proposal id {proposal.id} in snapshot")
            registry._proposals[proposal.id] = proposal

        count = int(data.get("proposalCount", len(registry._proposals)))
        if sorted(registry._proposals) != list(range(1, count + 1)):
            raise ValidationError("Snapshot proposal ids are not sequential")
        registry._proposal_count = count

        for entry in data.get("votes", []):
            record = VoteRecord.from_dict(entry)
            key = (record.proposal_id, record.voter)
            if record.proposal_id not in registry._proposals:
                raise ValidationError(f"Vote for unknown proposal #{record.proposal_id}")
            if key in registry._votes:
                raise ValidationError(f"Duplicate vote by {record.voter} on #{record.proposal_id}")
            if record.weight <= 0:
                raise ValidationError(f"Vote by {record.voter} carries no weight")
            registry._votes[key] = record

        for proposal in registry._proposals.values():
            yes = sum(v.weight for (pid, _), v in registry._votes.items()
                      if pid == proposal.id and v.support)
            no = sum(v.weight for (pid, _), v in registry._votes.items()
                     if pid == proposal.id and not v.support)
            if (yes, no) != (proposal.yes_votes, proposal.no_votes):
                raise ValidationError(
                    f"Proposal #{proposal.id} tallies do not match its vote records"
                )
            if proposal.is_terminal:
                cls._check_settlement(proposal)
        return registry

    @staticmethod
    def _check_settlement(proposal: Proposal) -> None:
        """A stored outcome must be one settle() could have produced."""
        passed = compute_outcome(proposal.yes_votes, proposal.no_votes)
        expected = ProposalStatus.EXECUTED if passed else ProposalStatus.FAILED
        if proposal.status != expected:
            raise ValidationError(
                f"Proposal #{proposal.id} is {proposal.status.name} but its tally "
                f"settles as {expected.name}"
            )
        settled_at = [
            h.get("timestamp") for h in proposal.history if h.get("to") == expected.name
        ]
        if not settled_at or int(settled_at[-1]) <= proposal.deadline:
            raise ValidationError(
                f"Proposal #{proposal.id} was not settled after its deadline"
            )

    def __repr__(self) -> str:
        return f"<ProposalRegistry proposals={self._proposal_count} votes={len(self._votes)}>"
