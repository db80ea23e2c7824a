"""
tokengov Address Helpers

Accounts are Ethereum-style 20-byte addresses. Every address stored by the
ledger or the registry is kept in its EIP-55 checksum form so that the same
account is never keyed twice under different casings.
"""

from eth_utils import is_address, to_checksum_address

from .constants import ZERO_ADDRESS
from .exceptions import InvalidAddressError


def normalize_address(address: str) -> str:
    """
    Return the checksum form of *address*.

    Raises InvalidAddressError when *address* is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def canonical(address: str) -> str:
    """Non-raising variant of normalize_address for pure reads."""
    if isinstance(address, str) and is_address(address):
        return to_checksum_address(address)
    return address


def is_zero_address(address: str) -> bool:
    return canonical(address) == ZERO_ADDRESS


def short_address(address: str) -> str:
    """Format address for display."""
    return f"{address[:8]}...{address[-6:]}"
