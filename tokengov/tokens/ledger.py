"""
Governance Token Ledger

Implements the fungible token whose balances are the voting weight of the
proposal registry:
  - ERC-20-style interface (transfer, approve, transfer_from, balance_of)
  - Owner-only mint and holder burn
  - Mutation notifications for collaborators (indexers, UIs)

Amounts are integers in base units (18 decimals). `parse_units` and
`format_units` convert to and from whole-token decimal strings.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Deque, Dict, List, Protocol, Tuple, Union

from ..address import canonical, is_zero_address, normalize_address
from ..constants import (
    INITIAL_SUPPLY,
    MAX_EVENT_HISTORY,
    TOKEN_DECIMALS,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    ZERO_ADDRESS,
)
from ..exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidReceiverError,
    UnauthorizedAccountError,
    ValidationError,
)
from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  UNITS
# ══════════════════════════════════════════════════════════════════════

def parse_units(amount: Union[str, int, Decimal], decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a whole-token amount ("1.5") into integer base units."""
    try:
        value = Decimal(str(amount)).scaleb(decimals)
    except InvalidOperation:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value != value.to_integral_value():
        raise InvalidAmountError(
            f"Amount {amount} has more than {decimals} decimal places"
        )
    return int(value)


def format_units(amount: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Render integer base units as a whole-token decimal string."""
    value = Decimal(amount).scaleb(-decimals).normalize()
    text = format(value, "f")
    return text


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every balance movement; mint/burn use the zero address."""
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Emitted on every successful approve."""
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class MintEvent:
    """Emitted when the owner mints new supply."""
    token_symbol: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TokensMinted",
            "token": self.token_symbol,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


LedgerEvent = Union[TransferEvent, ApprovalEvent, MintEvent]
LedgerListener = Callable[[LedgerEvent], None]


class BalanceSource(Protocol):
    """The only ledger surface the proposal registry depends on."""

    def balance_of(self, account: str) -> int:
        ...


# ══════════════════════════════════════════════════════════════════════
#  GOVERNANCE TOKEN
# ══════════════════════════════════════════════════════════════════════

class GovernanceToken:
    """
    Governance token ledger.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, sender, recipient, amount)
        - total_supply → int

    Additional operations:
        - mint (owner only) / burn (holder)
        - subscribe(listener) for mutation notifications

    Invariant: the sum of all balances equals total_supply and no balance is
    ever negative. Mutations are serialised by an internal lock; reads are
    single dict lookups.
    """

    def __init__(
        self,
        owner: str,
        name: str = TOKEN_NAME,
        symbol: str = TOKEN_SYMBOL,
        decimals: int = TOKEN_DECIMALS,
        initial_supply: int = INITIAL_SUPPLY,
        max_events: int = MAX_EVENT_HISTORY,
    ):
        """
        Args:
            owner: Admin account; receives the initial supply and may mint
            name: Human-readable token name
            symbol: Short ticker
            decimals: Fractional digits
            initial_supply: Base units credited to *owner* at deployment
            max_events: Most recent events kept in `events`
        """
        if not name:
            raise ValidationError("Token name cannot be empty")
        if not symbol:
            raise ValidationError("Token symbol cannot be empty")
        if decimals < 0 or decimals > 18:
            raise ValidationError(f"Decimals must be 0-18, got {decimals}")
        if initial_supply < 0:
            raise ValidationError("Initial supply cannot be negative")

        owner = normalize_address(owner)
        if is_zero_address(owner):
            raise InvalidReceiverError("Owner cannot be the zero address")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = owner
        self._total_supply = 0

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)

        self._events: Deque[LedgerEvent] = deque(maxlen=max_events)
        self._listeners: List[LedgerListener] = []
        self._lock = threading.RLock()

        if initial_supply > 0:
            self._credit(owner, initial_supply)
            self._total_supply = initial_supply
            self._events.append(TransferEvent(symbol, ZERO_ADDRESS, owner, initial_supply))

        logger.info(f"Token deployed: {symbol} ({name}), owner={owner}, supply={initial_supply}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(canonical(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((canonical(owner), canonical(spender)), 0)

    def holders(self) -> Dict[str, int]:
        """Accounts with a non-zero balance."""
        with self._lock:
            return {a: b for a, b in self._balances.items() if b > 0}

    @property
    def events(self) -> List[LedgerEvent]:
        with self._lock:
            return list(self._events)

    # ── Notifications ─────────────────────────────────────────────────

    def subscribe(self, listener: LedgerListener) -> None:
        """Register a callback invoked after every committed mutation."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: LedgerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: LedgerEvent) -> None:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Ledger listener failed on {type(event).__name__}")

    # ── Guards ────────────────────────────────────────────────────────

    @staticmethod
    def _require_positive(amount: int, action: str):
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidAmountError(f"{action} amount must be greater than zero")

    @staticmethod
    def _require_receiver(address: str, action: str) -> str:
        address = normalize_address(address)
        if is_zero_address(address):
            raise InvalidReceiverError(f"Cannot {action} to zero address")
        return address

    def _require_owner(self, caller: str):
        if canonical(caller) != self.owner:
            raise UnauthorizedAccountError("Only owner can call this function")

    def _credit(self, account: str, amount: int):
        self._balances[account] = self._balances.get(account, 0) + amount

    def _debit(self, account: str, amount: int):
        bal = self._balances.get(account, 0)
        if bal < amount:
            raise InsufficientBalanceError(
                f"Insufficient balance: {account} has {bal}, needs {amount}"
            )
        self._balances[account] = bal - amount

    # ── Core ERC-20 operations ────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """Move *amount* base units from *sender* to *recipient*."""
        self._require_positive(amount, "Transfer")
        sender = normalize_address(sender)
        recipient = self._require_receiver(recipient, "transfer")

        with self._lock:
            self._debit(sender, amount)
            self._credit(recipient, amount)
            event = TransferEvent(self.symbol, sender, recipient, amount)
            self._emit(event)

        logger.debug(f"Transfer: {sender} → {recipient} amount={amount}")
        return event

    def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set *spender*'s allowance over *owner*'s balance."""
        if not isinstance(amount, int) or amount < 0:
            raise InvalidAmountError("Allowance amount cannot be negative")
        owner = normalize_address(owner)
        spender = self._require_receiver(spender, "approve")

        with self._lock:
            self._allowances[(owner, spender)] = amount
            event = ApprovalEvent(self.symbol, owner, spender, amount)
            self._emit(event)

        logger.debug(f"Approve: {owner} → {spender} amount={amount}")
        return event

    def transfer_from(
        self,
        spender: str,
        sender: str,
        recipient: str,
        amount: int,
    ) -> TransferEvent:
        """Transfer on behalf of *sender* using *spender*'s allowance."""
        self._require_positive(amount, "Transfer")
        spender = normalize_address(spender)
        sender = normalize_address(sender)
        recipient = self._require_receiver(recipient, "transfer")

        with self._lock:
            allow = self._allowances.get((sender, spender), 0)
            if allow < amount:
                raise InsufficientAllowanceError(
                    f"Insufficient allowance: {allow} < {amount}"
                )
            self._debit(sender, amount)
            self._credit(recipient, amount)
            self._allowances[(sender, spender)] = allow - amount
            event = TransferEvent(self.symbol, sender, recipient, amount)
            self._emit(event)

        logger.debug(f"transferFrom: spender={spender} {sender} → {recipient} amount={amount}")
        return event

    # ── Supply management ─────────────────────────────────────────────

    def mint(self, caller: str, recipient: str, amount: int) -> MintEvent:
        """Owner-only: create *amount* new base units for *recipient*."""
        self._require_owner(caller)
        recipient = self._require_receiver(recipient, "mint")
        self._require_positive(amount, "Mint")

        with self._lock:
            self._credit(recipient, amount)
            self._total_supply += amount
            self._emit(TransferEvent(self.symbol, ZERO_ADDRESS, recipient, amount))
            event = MintEvent(self.symbol, recipient, amount)
            self._emit(event)

        logger.info(f"Mint: {recipient} amount={amount} (supply={self._total_supply})")
        return event

    def burn(self, caller: str, amount: int) -> TransferEvent:
        """Destroy *amount* base units from the caller's balance."""
        self._require_positive(amount, "Burn")
        caller = normalize_address(caller)

        with self._lock:
            self._debit(caller, amount)
            self._total_supply -= amount
            event = TransferEvent(self.symbol, caller, ZERO_ADDRESS, amount)
            self._emit(event)

        logger.info(f"Burn: {caller} amount={amount} (supply={self._total_supply})")
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "symbol": self.symbol,
                "decimals": self.decimals,
                "owner": self.owner,
                "totalSupply": str(self._total_supply),
                "balances": {a: str(b) for a, b in self._balances.items() if b > 0},
                "allowances": [
                    {"owner": o, "spender": s, "amount": str(v)}
                    for (o, s), v in self._allowances.items()
                    if v > 0
                ],
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceToken":
        """Restore a ledger from `to_dict` output without replaying mints."""
        token = cls(
            owner=data["owner"],
            name=data.get("name", TOKEN_NAME),
            symbol=data.get("symbol", TOKEN_SYMBOL),
            decimals=data.get("decimals", TOKEN_DECIMALS),
            initial_supply=0,
        )
        token._events.clear()
        for account, amount in data.get("balances", {}).items():
            token._balances[normalize_address(account)] = int(amount)
        for entry in data.get("allowances", []):
            key = (normalize_address(entry["owner"]), normalize_address(entry["spender"]))
            token._allowances[key] = int(entry["amount"])
        if any(b < 0 for b in token._balances.values()):
            raise ValidationError("Snapshot holds a negative balance")
        if any(a < 0 for a in token._allowances.values()):
            raise ValidationError("Snapshot holds a negative allowance")
        token._total_supply = int(data.get("totalSupply", sum(token._balances.values())))
        if token._total_supply != sum(token._balances.values()):
            raise ValidationError("Snapshot balances do not add up to total supply")
        return token

    def __repr__(self) -> str:
        return f"<GovernanceToken {self.symbol} supply={self._total_supply}>"
