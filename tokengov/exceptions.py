"""
tokengov Exceptions

Custom exception classes for the governance token and proposal registry.

Every error is raised synchronously by the call that triggered it and no
partial mutation survives it. The three families tell the caller what to do
next:

    ValidationError     fix the input and retry
    AuthorizationError  not retryable until the caller's balance/role changes
    StateError          the caller's view of the proposal is stale
"""


class TokenGovException(Exception):
    """Base exception for tokengov."""
    pass


class ConfigurationError(TokenGovException):
    """Configuration error."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  VALIDATION
# ══════════════════════════════════════════════════════════════════════

class ValidationError(TokenGovException):
    """Malformed call arguments."""
    pass


class EmptyDescriptionError(ValidationError):
    """Proposal description is empty."""
    pass


class VotingPeriodTooShortError(ValidationError):
    """Voting period below the 60 second floor."""
    pass


class VotingPeriodTooLongError(ValidationError):
    """Voting period above the 30 day ceiling."""
    pass


class InvalidAmountError(ValidationError):
    """Non-positive mint / transfer / burn amount."""
    pass


class InvalidAddressError(ValidationError):
    """Invalid address format."""
    pass


class InvalidReceiverError(ValidationError):
    """Tokens sent or approved to the zero address."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  AUTHORIZATION
# ══════════════════════════════════════════════════════════════════════

class AuthorizationError(TokenGovException):
    """Caller lacks the balance or role required for the call."""
    pass


class InsufficientTokensError(AuthorizationError):
    """Balance below the minimum required to create a proposal."""
    pass


class NoVotingPowerError(AuthorizationError):
    """Zero balance at vote time."""
    pass


class UnauthorizedAccountError(AuthorizationError):
    """Admin-only ledger operation called by a non-owner."""
    pass


class InsufficientBalanceError(AuthorizationError):
    """Sender balance is too low."""
    pass


class InsufficientAllowanceError(AuthorizationError):
    """Spender allowance is too low."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  STATE
# ══════════════════════════════════════════════════════════════════════

class StateError(TokenGovException):
    """Operation is not valid for the current proposal state."""
    pass


class ProposalNotFoundError(StateError):
    """No proposal with the requested id."""
    pass


class ProposalNotActiveError(StateError):
    """Proposal has already been settled."""
    pass


class VotingClosedError(StateError):
    """Vote cast after the proposal deadline."""
    pass


class AlreadyVotedError(StateError):
    """Voter already cast a vote on this proposal."""
    pass


class VotingNotEndedError(StateError):
    """Settlement attempted before the deadline passed."""
    pass


class AlreadyExecutedError(StateError):
    """Proposal was already settled."""
    pass


class ProposalLifecycleError(StateError):
    """Illegal proposal status transition."""
    pass
