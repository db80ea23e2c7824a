"""
Service and State Store Test Suite

Coverage:
  - Bootstrap from configuration
  - Save / load round trip of ledger and registry together
  - Missing, stale and corrupted snapshots
"""

import json
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokengov.address import canonical
from tokengov.clock import ManualClock
from tokengov.config import GovernanceConfig
from tokengov.exceptions import AlreadyVotedError, ConfigurationError, ValidationError
from tokengov.governance import ProposalStatus
from tokengov.service import SNAPSHOT_VERSION, GovernanceService, StateStore
from tokengov.tokens import parse_units

OWNER = "0x" + "0a" * 20
ALICE = "0x" + "a1" * 20

START = 1_700_000_000


@pytest.fixture
def config(tmp_path):
    cfg = GovernanceConfig()
    cfg.ledger.owner = OWNER
    cfg.ledger.initial_supply = 5000
    cfg.state.path = str(tmp_path / "state" / "tokengov.json")
    return cfg


@pytest.fixture
def clock():
    return ManualClock(START)


class TestBootstrap:

    def test_owner_gets_initial_supply(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        assert service.token.owner == canonical(OWNER)
        assert service.token.total_supply == parse_units(5000)
        assert service.token.balance_of(OWNER) == parse_units(5000)
        assert service.registry.proposal_count == 0

    def test_registry_reads_from_token(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        service.token.transfer(OWNER, ALICE, parse_units(150))
        assert service.registry.get_voting_power(ALICE) == parse_units(150)

    def test_invalid_config_rejected(self, config, clock):
        config.ledger.owner = "0x1234"
        with pytest.raises(ValueError):
            GovernanceService.bootstrap(config, clock=clock)

    def test_nothing_written_until_save(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        assert not service.store.exists()


class TestPersistence:

    def test_round_trip(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        service.token.transfer(OWNER, ALICE, parse_units(200))
        pid = service.registry.create_proposal(ALICE, "Persist me", 3600)
        service.registry.vote(ALICE, pid, True)
        service.save()

        restored = GovernanceService.load(config, clock=clock)
        assert restored.token.balance_of(ALICE) == parse_units(200)
        assert restored.token.total_supply == service.token.total_supply
        assert restored.registry.get_vote_counts(pid) == service.registry.get_vote_counts(pid)
        with pytest.raises(AlreadyVotedError):
            restored.registry.vote(ALICE, pid, False)

        clock.advance(3601)
        assert restored.registry.settle(pid) is True
        restored.save()

        again = GovernanceService.load(config, clock=clock)
        p = again.registry.get_proposal(pid)
        assert p.status == ProposalStatus.EXECUTED
        assert p.executed is True

    def test_snapshot_layout(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        service.save()
        with open(config.state.path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["version"] == SNAPSHOT_VERSION
        assert set(data) == {"version", "ledger", "governance"}

    def test_save_leaves_no_temp_files(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        service.save()
        service.save()
        parent = os.path.dirname(config.state.path)
        assert os.listdir(parent) == [os.path.basename(config.state.path)]

    def test_save_without_store(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        service.store = None
        with pytest.raises(ConfigurationError):
            service.save()


class TestBrokenState:

    def test_missing_state(self, config, clock):
        with pytest.raises(ConfigurationError, match="tokengov init"):
            GovernanceService.load(config, clock=clock)

    def test_wrong_version(self, config, clock):
        StateStore(config.state.path).save({"version": 99})
        with pytest.raises(ConfigurationError, match="Unsupported state version"):
            GovernanceService.load(config, clock=clock)

    def test_tampered_balances(self, config, clock):
        service = GovernanceService.bootstrap(config, clock=clock)
        data = service.snapshot()
        data["ledger"]["totalSupply"] = "1"
        StateStore(config.state.path).save(data)
        with pytest.raises(ValidationError):
            GovernanceService.load(config, clock=clock)
