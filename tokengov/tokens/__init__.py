"""
tokengov Token Ledger

Provides:
  - GovernanceToken  : ERC-20-style ledger whose balances are voting weight
  - BalanceSource    : the read-only surface the proposal registry consumes
  - parse_units / format_units : whole-token ↔ base-unit conversion
"""

from .ledger import (
    ApprovalEvent,
    BalanceSource,
    GovernanceToken,
    MintEvent,
    TransferEvent,
    format_units,
    parse_units,
)

__all__ = [
    "ApprovalEvent",
    "BalanceSource",
    "GovernanceToken",
    "MintEvent",
    "TransferEvent",
    "format_units",
    "parse_units",
]
