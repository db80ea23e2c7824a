"""
Configuration Test Suite

Coverage:
  - Defaults when no file exists
  - TOML parsing of every section
  - Environment variable overrides
  - Validation errors
  - load_config resolution order
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokengov.config import GovernanceConfig, load_config
from tokengov.config.loader import DEFAULT_OWNER
from tokengov.constants import INITIAL_SUPPLY, TOKEN_NAME, TOKEN_SYMBOL

ENV_VARS = (
    "TOKENGOV_CONFIG",
    "TOKENGOV_OWNER",
    "TOKENGOV_INITIAL_SUPPLY",
    "TOKENGOV_STATE_PATH",
    "TOKENGOV_LOG_LEVEL",
)

SAMPLE_TOML = """
[ledger]
name = "CouncilToken"
symbol = "CNL"
owner = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
initial_supply = 2500

[state]
path = "/var/lib/tokengov/state.json"

[logging]
level = "debug"
file_output = true
file = "/var/log/tokengov.log"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(SAMPLE_TOML)
    return path


class TestDefaults:

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.ledger.name == TOKEN_NAME
        assert cfg.ledger.symbol == TOKEN_SYMBOL
        assert cfg.ledger.owner == DEFAULT_OWNER
        assert cfg.ledger.initial_supply_units == INITIAL_SUPPLY
        assert cfg.state.path.endswith("tokengov-state.json")
        assert cfg.logging.level == "INFO"
        assert cfg.logging.file_output is False

    def test_defaults_validate(self):
        assert GovernanceConfig().validate() is True


class TestTomlLoading:

    def test_all_sections(self, config_file):
        cfg = GovernanceConfig.from_file(str(config_file))
        assert cfg.ledger.name == "CouncilToken"
        assert cfg.ledger.symbol == "CNL"
        assert cfg.ledger.owner == "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
        assert cfg.ledger.initial_supply == 2500
        assert cfg.ledger.initial_supply_units == 2500 * 10 ** 18
        assert cfg.state.path == "/var/lib/tokengov/state.json"
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.file_output is True
        assert cfg.logging.file == "/var/log/tokengov.log"

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[state]\npath = "elsewhere.json"\n')
        cfg = GovernanceConfig.from_file(str(path))
        assert cfg.state.path == "elsewhere.json"
        assert cfg.ledger.symbol == TOKEN_SYMBOL

    def test_to_dict(self, config_file):
        d = GovernanceConfig.from_file(str(config_file)).to_dict()
        assert d["ledger"]["symbol"] == "CNL"
        assert d["state"]["path"] == "/var/lib/tokengov/state.json"
        assert d["logging"]["level"] == "DEBUG"


class TestEnvOverrides:

    def test_env_beats_file(self, config_file, monkeypatch):
        monkeypatch.setenv("TOKENGOV_OWNER", "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc")
        monkeypatch.setenv("TOKENGOV_INITIAL_SUPPLY", "42")
        monkeypatch.setenv("TOKENGOV_STATE_PATH", "/tmp/override.json")
        monkeypatch.setenv("TOKENGOV_LOG_LEVEL", "warning")
        cfg = GovernanceConfig.from_file(str(config_file))
        assert cfg.ledger.owner == "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
        assert cfg.ledger.initial_supply == 42
        assert cfg.state.path == "/tmp/override.json"
        assert cfg.logging.level == "WARNING"

    def test_non_integer_supply(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENGOV_INITIAL_SUPPLY", "1e3")
        with pytest.raises(ValueError, match="must be an integer"):
            GovernanceConfig.from_file(str(tmp_path / "absent.toml"))

    def test_env_applies_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENGOV_STATE_PATH", "/tmp/only-env.json")
        cfg = GovernanceConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.state.path == "/tmp/only-env.json"


class TestValidation:

    def test_bad_log_level(self):
        cfg = GovernanceConfig()
        cfg.logging.level = "LOUD"
        with pytest.raises(ValueError, match="log level"):
            cfg.validate()

    def test_bad_owner(self):
        cfg = GovernanceConfig()
        cfg.ledger.owner = "not-an-address"
        with pytest.raises(ValueError, match="owner"):
            cfg.validate()

    def test_non_positive_supply(self):
        cfg = GovernanceConfig()
        cfg.ledger.initial_supply = 0
        with pytest.raises(ValueError, match="initial_supply"):
            cfg.validate()

    def test_empty_symbol(self):
        cfg = GovernanceConfig()
        cfg.ledger.symbol = ""
        with pytest.raises(ValueError):
            cfg.validate()

    def test_empty_state_path(self):
        cfg = GovernanceConfig()
        cfg.state.path = ""
        with pytest.raises(ValueError, match="State path"):
            cfg.validate()


class TestLoadConfig:

    def test_explicit_path(self, config_file):
        assert load_config(str(config_file)).ledger.symbol == "CNL"

    def test_env_path(self, config_file, monkeypatch):
        monkeypatch.setenv("TOKENGOV_CONFIG", str(config_file))
        assert load_config().ledger.symbol == "CNL"

    def test_cwd_fallback(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)
        assert load_config().ledger.symbol == "CNL"

    def test_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config().ledger.symbol == TOKEN_SYMBOL
