"""
CLI Test Suite

Drives the click commands through CliRunner against a state file in a
temporary directory.
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tokengov.cli.governance import cli
from tokengov.config.loader import DEFAULT_OWNER

OWNER = DEFAULT_OWNER
ALICE = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
BOB = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def invoke(runner, tmp_path, state_path, monkeypatch):
    for name in ("TOKENGOV_CONFIG", "TOKENGOV_OWNER", "TOKENGOV_STATE_PATH", "TOKENGOV_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    base = ["--config", str(tmp_path / "absent.toml"), "--state", str(state_path)]

    def _invoke(*args):
        return runner.invoke(cli, base + list(args))

    return _invoke


@pytest.fixture
def deployed(invoke):
    result = invoke("init")
    assert result.exit_code == 0, result.output
    return invoke


def expire_proposals(state_path):
    """Move every proposal's voting window into the past."""
    with open(state_path, encoding="utf-8") as f:
        data = json.load(f)
    for proposal in data["governance"]["proposals"]:
        proposal["createdAt"] = 1000
        proposal["deadline"] = 1060
    with open(state_path, "w", encoding="utf-8") as f:
        json.dump(data, f)


class TestInit:

    def test_init_creates_state(self, invoke, state_path):
        result = invoke("init")
        assert result.exit_code == 0, result.output
        assert "Governance deployed" in result.output
        assert "10000 GOV" in result.output
        assert state_path.exists()

    def test_init_twice_refused(self, deployed):
        result = deployed("init")
        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_init_force(self, deployed):
        deployed("mint", OWNER, ALICE, "5")
        result = deployed("init", "--force")
        assert result.exit_code == 0, result.output
        assert deployed("balance", ALICE).output.strip().endswith("0 GOV")

    def test_commands_need_state(self, invoke):
        result = invoke("info")
        assert result.exit_code != 0
        assert "Failed to load state" in result.output


class TestLedgerCommands:

    def test_info(self, deployed):
        result = deployed("info")
        assert result.exit_code == 0, result.output
        assert "GovernanceToken (GOV)" in result.output
        assert "Proposals:    0" in result.output

    def test_owner_balance(self, deployed):
        result = deployed("balance", OWNER)
        assert result.exit_code == 0
        assert "10000 GOV" in result.output

    def test_mint_persists(self, deployed):
        result = deployed("mint", OWNER, ALICE, "500")
        assert result.exit_code == 0, result.output
        assert "500 GOV" in deployed("balance", ALICE).output

    def test_mint_by_non_owner(self, deployed):
        result = deployed("mint", ALICE, ALICE, "500")
        assert result.exit_code != 0

    def test_transfer(self, deployed):
        result = deployed("transfer", OWNER, BOB, "1.5")
        assert result.exit_code == 0, result.output
        assert "1.5 GOV" in deployed("balance", BOB).output
        assert "9998.5 GOV" in deployed("balance", OWNER).output

    def test_transfer_overdraft(self, deployed):
        result = deployed("transfer", ALICE, BOB, "1")
        assert result.exit_code != 0

    def test_bad_amount(self, deployed):
        result = deployed("transfer", OWNER, BOB, "abc")
        assert result.exit_code != 0

    def test_burn(self, deployed):
        result = deployed("burn", OWNER, "1000")
        assert result.exit_code == 0, result.output
        assert "9000 GOV" in deployed("info").output


class TestGovernanceCommands:

    def test_propose(self, deployed):
        result = deployed("propose", OWNER, "Upgrade to v2", "--period", "3600")
        assert result.exit_code == 0, result.output
        assert "Proposal #1 created" in result.output

    def test_propose_without_tokens(self, deployed):
        result = deployed("propose", ALICE, "Nope")
        assert result.exit_code != 0
        assert "Insufficient tokens" in result.output

    def test_propose_period_too_short(self, deployed):
        result = deployed("propose", OWNER, "Hasty", "--period", "10")
        assert result.exit_code != 0
        assert "at least 60 seconds" in result.output

    def test_vote_and_double_vote(self, deployed):
        deployed("propose", OWNER, "Upgrade", "--period", "3600")
        result = deployed("vote", OWNER, "1", "yes")
        assert result.exit_code == 0, result.output
        assert "Voted YES on #1" in result.output

        again = deployed("vote", OWNER, "1", "no")
        assert again.exit_code != 0
        assert "Already voted" in again.output

    def test_vote_without_tokens(self, deployed):
        deployed("propose", OWNER, "Upgrade", "--period", "3600")
        result = deployed("vote", ALICE, "1", "yes")
        assert result.exit_code != 0
        assert "Must have tokens" in result.output

    def test_settle_before_deadline(self, deployed):
        deployed("propose", OWNER, "Upgrade", "--period", "3600")
        result = deployed("settle", "1")
        assert result.exit_code != 0
        assert "has not ended" in result.output

    def test_settle_after_deadline(self, deployed, state_path):
        deployed("mint", OWNER, ALICE, "500")
        deployed("propose", OWNER, "Upgrade", "--period", "3600")
        deployed("vote", OWNER, "1", "yes")
        deployed("vote", ALICE, "1", "no")
        expire_proposals(state_path)

        result = deployed("settle", "1")
        assert result.exit_code == 0, result.output
        assert "PASSED" in result.output

        shown = deployed("proposal", "1")
        assert "Status:      EXECUTED" in shown.output
        assert "Voting open: no" in shown.output

        again = deployed("settle", "1")
        assert again.exit_code != 0
        assert "already executed" in again.output

    def test_failed_settlement(self, deployed, state_path):
        deployed("mint", OWNER, ALICE, "500")
        deployed("propose", ALICE, "Unpopular", "--period", "3600")
        deployed("vote", OWNER, "1", "no")
        expire_proposals(state_path)
        result = deployed("settle", "1")
        assert result.exit_code == 0, result.output
        assert "FAILED" in result.output

    def test_missing_proposal(self, deployed):
        result = deployed("proposal", "7")
        assert result.exit_code != 0
        assert "does not exist" in result.output

    def test_list_proposals(self, deployed, state_path):
        assert "No proposals" in deployed("proposals").output
        deployed("propose", OWNER, "First", "--period", "3600")
        deployed("propose", OWNER, "Second", "--period", "3600")
        listing = deployed("proposals")
        assert "First" in listing.output and "Second" in listing.output
        active = deployed("proposals", "--status", "active")
        assert "#1" in active.output and "#2" in active.output
        assert "No proposals" in deployed("proposals", "--status", "FAILED").output


class TestDemo:

    def test_demo_runs_without_state(self, runner, tmp_path, state_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "absent.toml"),
                                     "--state", str(state_path), "demo"])
        assert result.exit_code == 0, result.output
        assert "Proposal #1 created" in result.output
        assert "Final status: EXECUTED" in result.output
        assert not state_path.exists()


class TestBadConfiguration:

    def test_malformed_toml(self, runner, tmp_path, state_path):
        config = tmp_path / "config.toml"
        config.write_text("[ledger\nowner = ")
        result = runner.invoke(cli, ["--config", str(config), "--state", str(state_path), "info"])
        assert result.exit_code != 0
        assert "Invalid configuration" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_non_integer_supply_env(self, runner, tmp_path, state_path, monkeypatch):
        monkeypatch.setenv("TOKENGOV_INITIAL_SUPPLY", "lots")
        result = runner.invoke(cli, ["--config", str(tmp_path / "absent.toml"),
                                     "--state", str(state_path), "init"])
        assert result.exit_code != 0
        assert "TOKENGOV_INITIAL_SUPPLY must be an integer" in result.output
        assert not state_path.exists()
