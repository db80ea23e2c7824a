#!/usr/bin/env python3
"""
tokengov CLI

Command-line interface for the governance token and proposal registry.
State lives in a JSON snapshot (see [state] path in config.toml) and is
saved after every successful mutating command.

Usage:
    tokengov init [--force]
    tokengov info
    tokengov balance <address>
    tokengov mint <caller> <to> <amount>
    tokengov transfer <from> <to> <amount>
    tokengov burn <caller> <amount>
    tokengov propose <caller> <description> [--period SECONDS]
    tokengov vote <caller> <proposal_id> yes|no
    tokengov settle <proposal_id>
    tokengov proposal <proposal_id>
    tokengov proposals [--status STATUS]
    tokengov demo
"""

import datetime
from pathlib import Path
from typing import Optional

import click

from tokengov import __version__
from tokengov.address import short_address
from tokengov.clock import ManualClock
from tokengov.config import GovernanceConfig, load_config
from tokengov.exceptions import TokenGovException
from tokengov.governance import Proposal, ProposalRegistry, ProposalStatus
from tokengov.governance.voting import approval_basis_points
from tokengov.logger import configure_logging
from tokengov.service import GovernanceService
from tokengov.tokens import GovernanceToken, format_units, parse_units


# Hardhat's default development accounts, used by the demo scenario
DEMO_OWNER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
DEMO_VOTERS = (
    "0x70997970c51812dc3a010c7d01b50e0d17dc79c8",
    "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc",
    "0x90f79bf6eb2c4f870365e785982e1f101e93b906",
)

RULE = "=" * 60


def _tokens(amount: int) -> str:
    return f"{format_units(amount)} GOV"


def _format_time(timestamp: int) -> str:
    return datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S UTC"
    )


def _parse_amount(amount: str) -> int:
    try:
        return parse_units(amount)
    except TokenGovException as e:
        raise click.BadParameter(str(e))


def _echo_proposal(proposal: Proposal) -> None:
    click.echo(f"ID:          {proposal.id}")
    click.echo(f"Description: {proposal.description}")
    click.echo(f"Proposer:    {proposal.proposer}")
    click.echo(f"Status:      {proposal.status.name}")
    click.echo(f"Created:     {_format_time(proposal.created_at)}")
    click.echo(f"Deadline:    {_format_time(proposal.deadline)}")
    click.echo(f"Yes votes:   {_tokens(proposal.yes_votes)}")
    click.echo(f"No votes:    {_tokens(proposal.no_votes)}")
    bp = approval_basis_points(proposal.yes_votes, proposal.no_votes)
    click.echo(f"Approval:    {bp / 100:.2f}%")


class CliContext:
    """Config plus lazily loaded service, shared by every command."""

    def __init__(self, config: GovernanceConfig):
        self.config = config
        self._service: Optional[GovernanceService] = None

    @property
    def service(self) -> GovernanceService:
        if self._service is None:
            try:
                self._service = GovernanceService.load(self.config)
            except (TokenGovException, KeyError, ValueError) as e:
                raise click.ClickException(f"Failed to load state: {e}")
        return self._service

    def commit(self) -> None:
        try:
            self.service.save()
        except (TokenGovException, OSError) as e:
            raise click.ClickException(f"Failed to save state: {e}")


pass_ctx = click.make_pass_decorator(CliContext)


@click.group()
@click.version_option(version=__version__, prog_name="tokengov")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to config.toml (default: $TOKENGOV_CONFIG or ./config.toml)",
)
@click.option("--state", "state_path", type=click.Path(dir_okay=False), help="Override state file path")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), help="Log level")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], state_path: Optional[str], log_level: Optional[str]):
    """tokengov Command Line Interface

    Token-weighted governance: mint and move voting tokens, create proposals,
    vote with your balance and settle proposals after their deadline.
    """
    try:
        config = load_config(config_path)
        if state_path:
            config.state.path = state_path
        if log_level:
            config.logging.level = log_level
        config.validate()
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    configure_logging(
        log_level=config.logging.level,
        file_output=config.logging.file_output,
        log_file=Path(config.logging.file) if config.logging.file else None,
    )
    ctx.obj = CliContext(config)


# ── Ledger commands ───────────────────────────────────────────────────

@cli.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing state")
@pass_ctx
def init_cmd(obj: CliContext, force: bool):
    """Deploy a fresh token and registry.

    The configured owner receives the initial supply.
    """
    config = obj.config
    service = GovernanceService.bootstrap(config)
    if service.store.exists() and not force:
        raise click.ClickException(
            f"State already exists at {service.store.path} (use --force to overwrite)"
        )
    obj._service = service
    obj.commit()

    click.echo(click.style("✓ Governance deployed", fg="green"))
    click.echo(f"Token:        {service.token.name} ({service.token.symbol})")
    click.echo(f"Owner:        {service.token.owner}")
    click.echo(f"Total supply: {_tokens(service.token.total_supply)}")
    click.echo(f"State file:   {service.store.path}")


@cli.command("info")
@pass_ctx
def info_cmd(obj: CliContext):
    """Show token and registry summary."""
    service = obj.service
    token = service.token
    click.echo(click.style(RULE, fg="cyan"))
    click.echo(f"Token:        {token.name} ({token.symbol}), {token.decimals} decimals")
    click.echo(f"Owner:        {token.owner}")
    click.echo(f"Total supply: {_tokens(token.total_supply)}")
    click.echo(f"Holders:      {len(token.holders())}")
    click.echo(f"Proposals:    {service.registry.proposal_count}")
    click.echo(click.style(RULE, fg="cyan"))


@cli.command("balance")
@click.argument("address")
@pass_ctx
def balance_cmd(obj: CliContext, address: str):
    """Show the balance (= voting power) of ADDRESS."""
    click.echo(_tokens(obj.service.registry.get_voting_power(address)))


@cli.command("mint")
@click.argument("caller")
@click.argument("to")
@click.argument("amount")
@pass_ctx
def mint_cmd(obj: CliContext, caller: str, to: str, amount: str):
    """Mint AMOUNT whole tokens to TO (owner only)."""
    units = _parse_amount(amount)
    try:
        obj.service.token.mint(caller, to, units)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    click.echo(click.style(f"✓ Minted {_tokens(units)} to {to}", fg="green"))


@cli.command("transfer")
@click.argument("sender")
@click.argument("recipient")
@click.argument("amount")
@pass_ctx
def transfer_cmd(obj: CliContext, sender: str, recipient: str, amount: str):
    """Transfer AMOUNT whole tokens from SENDER to RECIPIENT."""
    units = _parse_amount(amount)
    try:
        obj.service.token.transfer(sender, recipient, units)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    click.echo(click.style(f"✓ Transferred {_tokens(units)} to {recipient}", fg="green"))


@cli.command("burn")
@click.argument("caller")
@click.argument("amount")
@pass_ctx
def burn_cmd(obj: CliContext, caller: str, amount: str):
    """Burn AMOUNT whole tokens from CALLER."""
    units = _parse_amount(amount)
    try:
        obj.service.token.burn(caller, units)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    click.echo(click.style(f"✓ Burned {_tokens(units)}", fg="green"))


# ── Governance commands ───────────────────────────────────────────────

@cli.command("propose")
@click.argument("caller")
@click.argument("description")
@click.option("--period", "-p", type=int, default=7 * 24 * 3600, show_default=True,
              help="Voting period in seconds (60 to 2592000)")
@pass_ctx
def propose_cmd(obj: CliContext, caller: str, description: str, period: int):
    """Create a proposal as CALLER."""
    try:
        proposal_id = obj.service.registry.create_proposal(caller, description, period)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    proposal = obj.service.registry.get_proposal(proposal_id)
    click.echo(click.style(f"✓ Proposal #{proposal_id} created", fg="green"))
    click.echo(f"Deadline: {_format_time(proposal.deadline)}")


@cli.command("vote")
@click.argument("caller")
@click.argument("proposal_id", type=int)
@click.argument("choice", type=click.Choice(["yes", "no"], case_sensitive=False))
@pass_ctx
def vote_cmd(obj: CliContext, caller: str, proposal_id: int, choice: str):
    """Vote CHOICE on PROPOSAL_ID with CALLER's full balance."""
    try:
        record = obj.service.registry.vote(caller, proposal_id, choice.lower() == "yes")
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    click.echo(click.style(
        f"✓ Voted {record.choice} on #{proposal_id} with {_tokens(record.weight)}", fg="green"
    ))


@cli.command("settle")
@click.argument("proposal_id", type=int)
@pass_ctx
def settle_cmd(obj: CliContext, proposal_id: int):
    """Settle PROPOSAL_ID after its deadline."""
    try:
        passed = obj.service.registry.settle(proposal_id)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    obj.commit()
    if passed:
        click.echo(click.style(f"✓ Proposal #{proposal_id} PASSED and was executed", fg="green"))
    else:
        click.echo(click.style(f"✗ Proposal #{proposal_id} FAILED", fg="red"))


@cli.command("proposal")
@click.argument("proposal_id", type=int)
@pass_ctx
def proposal_cmd(obj: CliContext, proposal_id: int):
    """Show PROPOSAL_ID."""
    registry = obj.service.registry
    try:
        proposal = registry.get_proposal(proposal_id)
        active = registry.is_voting_active(proposal_id)
    except TokenGovException as e:
        raise click.ClickException(str(e))
    _echo_proposal(proposal)
    click.echo(f"Voting open: {'yes' if active else 'no'}")


@cli.command("proposals")
@click.option("--status", type=click.Choice([s.name for s in ProposalStatus], case_sensitive=False))
@pass_ctx
def proposals_cmd(obj: CliContext, status: Optional[str]):
    """List proposals."""
    wanted = ProposalStatus[status.upper()] if status else None
    proposals = obj.service.registry.list_proposals(wanted)
    if not proposals:
        click.echo("No proposals")
        return
    for p in proposals:
        click.echo(
            f"#{p.id:<4} {p.status.name:<9} yes={format_units(p.yes_votes):<12} "
            f"no={format_units(p.no_votes):<12} {p.description}"
        )


# ── Demo ──────────────────────────────────────────────────────────────

@cli.command("demo")
@click.option("--period", type=int, default=300, show_default=True, help="Voting period in seconds")
def demo_cmd(period: int):
    """Run the full proposal lifecycle in memory.

    Distributes tokens, creates a proposal, casts four votes, fast-forwards
    past the deadline and settles. Nothing is written to disk.
    """
    clock = ManualClock()
    token = GovernanceToken(owner=DEMO_OWNER)
    registry = ProposalRegistry(token, clock=clock)
    voter1, voter2, voter3 = DEMO_VOTERS

    try:
        click.echo(f"Owner balance: {_tokens(token.balance_of(DEMO_OWNER))}")
        click.echo(RULE)

        click.echo("Distributing tokens to voters...")
        for voter, amount in zip(DEMO_VOTERS, ("1000", "500", "200")):
            token.transfer(DEMO_OWNER, voter, parse_units(amount))
            click.echo(f"  {short_address(voter)}: {_tokens(token.balance_of(voter))}")
        click.echo(RULE)

        description = "Should we upgrade the protocol to v2.0?"
        proposal_id = registry.create_proposal(DEMO_OWNER, description, period)
        click.echo(click.style(f"✓ Proposal #{proposal_id} created", fg="green"))
        _echo_proposal(registry.get_proposal(proposal_id))
        click.echo(RULE)

        for voter, support in ((DEMO_OWNER, True), (voter1, True), (voter2, False), (voter3, True)):
            record = registry.vote(voter, proposal_id, support)
            click.echo(f"  {short_address(voter)} voted {record.choice} ({_tokens(record.weight)})")
        click.echo(RULE)

        yes, no, total = registry.get_vote_counts(proposal_id)
        click.echo(f"YES votes:   {_tokens(yes)}")
        click.echo(f"NO votes:    {_tokens(no)}")
        click.echo(f"Total votes: {_tokens(total)}")
        click.echo(f"YES share:   {approval_basis_points(yes, no) / 100:.2f}%")
        click.echo(RULE)

        click.echo("Fast-forwarding past the deadline...")
        clock.advance(period + 1)
        passed = registry.settle(proposal_id)
    except TokenGovException as e:
        raise click.ClickException(str(e))

    final = registry.get_proposal(proposal_id)
    click.echo(f"Final status: {final.status.name}")
    if passed:
        click.echo(click.style("Proposal PASSED ✓", fg="green"))
    else:
        click.echo(click.style("Proposal FAILED ✗", fg="red"))


def main():
    cli()


if __name__ == "__main__":
    main()
