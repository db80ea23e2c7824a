"""
tokengov Configuration

Loads all sections of config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    GovernanceConfig,
    LedgerConfig,
    LoggingConfig,
    StateConfig,
    load_config,
)

__all__ = [
    "GovernanceConfig",
    "LedgerConfig",
    "LoggingConfig",
    "StateConfig",
    "load_config",
]
