"""
Governance Service

Wires a GovernanceToken and a ProposalRegistry together from configuration
and persists both as one JSON snapshot between CLI invocations.
"""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import GovernanceConfig
from .exceptions import ConfigurationError
from .governance.registry import ProposalRegistry
from .logger import get_logger
from .tokens.ledger import GovernanceToken

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


class StateStore:
    """JSON snapshot file with atomic replace-on-write."""

    def __init__(self, path: str):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise ConfigurationError(
                f"No state at {self.path}; run `tokengov init` first"
            )
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ConfigurationError(f"Unsupported state version: {version}")
        return data

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug(f"State saved to {self.path}")


class GovernanceService:
    """
    Token ledger + proposal registry pair.

    The registry reads voting weight from the token; nothing in the registry
    ever mutates the token.
    """

    def __init__(
        self,
        token: GovernanceToken,
        registry: ProposalRegistry,
        store: Optional[StateStore] = None,
    ):
        self.token = token
        self.registry = registry
        self.store = store

    # ── Factories ─────────────────────────────────────────────────────

    @classmethod
    def bootstrap(
        cls,
        config: GovernanceConfig,
        clock: Callable[[], float] = time.time,
    ) -> "GovernanceService":
        """Fresh deployment: the configured owner receives the initial supply."""
        config.validate()
        token = GovernanceToken(
            owner=config.ledger.owner,
            name=config.ledger.name,
            symbol=config.ledger.symbol,
            initial_supply=config.ledger.initial_supply_units,
        )
        registry = ProposalRegistry(token, clock=clock)
        logger.info(f"Deployed {token.symbol} governance, owner={token.owner}")
        return cls(token, registry, StateStore(config.state.path))

    @classmethod
    def load(
        cls,
        config: GovernanceConfig,
        clock: Callable[[], float] = time.time,
    ) -> "GovernanceService":
        """Restore the service from the configured state file."""
        store = StateStore(config.state.path)
        data = store.load()
        token = GovernanceToken.from_dict(data["ledger"])
        registry = ProposalRegistry.from_dict(data["governance"], token, clock=clock)
        return cls(token, registry, store)

    # ── Persistence ───────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "ledger": self.token.to_dict(),
            "governance": self.registry.to_dict(),
        }

    def save(self) -> None:
        if self.store is None:
            raise ConfigurationError("Service has no state store")
        self.store.save(self.snapshot())

    def __repr__(self) -> str:
        return f"<GovernanceService {self.token!r} {self.registry!r}>"
