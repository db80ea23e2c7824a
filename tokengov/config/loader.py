"""
tokengov TOML Configuration Loader

Loads every section of config.toml with environment variable overrides.

Environment variable mapping:
    [ledger] owner           → TOKENGOV_OWNER
    [ledger] initial_supply  → TOKENGOV_INITIAL_SUPPLY
    [state] path             → TOKENGOV_STATE_PATH
    [logging] level          → TOKENGOV_LOG_LEVEL

Governance constants (thresholds, voting period bounds, proposal minimum)
are protocol-fixed and not configurable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from eth_utils import is_address

from ..constants import INITIAL_SUPPLY, TOKEN_NAME, TOKEN_SYMBOL, TOKEN_UNIT

logger = logging.getLogger(__name__)

# Hardhat's first default account; only used when nothing else is configured
DEFAULT_OWNER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LedgerConfig:
    """[ledger] section."""
    name: str = TOKEN_NAME
    symbol: str = TOKEN_SYMBOL
    owner: str = DEFAULT_OWNER
    initial_supply: int = INITIAL_SUPPLY // TOKEN_UNIT  # whole tokens

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        return cls(
            name=data.get("name", TOKEN_NAME),
            symbol=data.get("symbol", TOKEN_SYMBOL),
            owner=data.get("owner", DEFAULT_OWNER),
            initial_supply=data.get("initial_supply", INITIAL_SUPPLY // TOKEN_UNIT),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("TOKENGOV_OWNER"):
            self.owner = v
        if v := os.environ.get("TOKENGOV_INITIAL_SUPPLY"):
            try:
                self.initial_supply = int(v)
            except ValueError:
                raise ValueError(f"TOKENGOV_INITIAL_SUPPLY must be an integer, got {v!r}")

    @property
    def initial_supply_units(self) -> int:
        return int(self.initial_supply) * TOKEN_UNIT


@dataclass
class StateConfig:
    """[state] section."""
    path: str = "./data/tokengov-state.json"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateConfig":
        return cls(path=data.get("path", "./data/tokengov-state.json"))

    def apply_env(self) -> None:
        if v := os.environ.get("TOKENGOV_STATE_PATH"):
            self.path = v


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False
    file: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=data.get("file_output", False),
            file=data.get("file", ""),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("TOKENGOV_LOG_LEVEL"):
            self.level = v.upper()


# -----------------------------------------------------------------------
# Top-level unified config
# -----------------------------------------------------------------------

@dataclass
class GovernanceConfig:
    """
    Unified configuration.

    Loads every section of config.toml and applies environment variable
    overrides. This is the single source of truth at runtime.
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    state: StateConfig = field(default_factory=StateConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        """Create GovernanceConfig from a parsed TOML dict."""
        return cls(
            ledger=LedgerConfig.from_dict(data.get("ledger", {})),
            state=StateConfig.from_dict(data.get("state", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "GovernanceConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults plus environment overrides
        are used instead.
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            raw = tomli.load(f)

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.ledger.apply_env()
        self.state.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ValueError: on invalid config
        """
        if self.logging.level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")
        if not is_address(self.ledger.owner):
            raise ValueError(f"Invalid owner address: {self.ledger.owner}")
        if int(self.ledger.initial_supply) <= 0:
            raise ValueError("initial_supply must be > 0")
        if not self.ledger.name or not self.ledger.symbol:
            raise ValueError("Token name and symbol are required")
        if not self.state.path:
            raise ValueError("State path cannot be empty")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "ledger": {
                "name": self.ledger.name,
                "symbol": self.ledger.symbol,
                "owner": self.ledger.owner,
                "initial_supply": self.ledger.initial_supply,
            },
            "state": {"path": self.state.path},
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "file": self.logging.file,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> GovernanceConfig:
    """
    Load configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TOKENGOV_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("TOKENGOV_CONFIG", "config.toml")
    return GovernanceConfig.from_file(path)
