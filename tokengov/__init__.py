"""
tokengov Package

Token-weighted governance: a ledger of fungible voting rights and a proposal
lifecycle that tallies votes by balance.

Core imports are lazily loaded so that importing a submodule does not pull
in the whole package. For direct module access, import from submodules:

    from tokengov.tokens import GovernanceToken
    from tokengov.governance import ProposalRegistry
    from tokengov.exceptions import AlreadyVotedError
"""

__version__ = "1.0.0"


def __getattr__(name):
    """Lazy module loading."""
    if name == 'GovernanceToken':
        from .tokens import GovernanceToken
        return GovernanceToken
    elif name == 'ProposalRegistry':
        from .governance import ProposalRegistry
        return ProposalRegistry
    elif name == 'GovernanceService':
        from .service import GovernanceService
        return GovernanceService
    raise AttributeError(f"module 'tokengov' has no attribute {name!r}")

__all__ = ['GovernanceToken', 'ProposalRegistry', 'GovernanceService']
