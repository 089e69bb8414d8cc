"""
bazaarscore/cli.py

Command-line access to participation scores.

Run with: bazaarscore --endpoint http://ledger:3001/api/participation score 0xabc...
"""

import json
import logging
import sys

import click
import trio

from .config import DEFAULT_LEADERBOARD_LIMIT, ParticipationConfig
from .ledger.client import LedgerError
from .protocol.activity import EVENT_CLASSES, build_event
from .service import ParticipationService

logger = logging.getLogger("bazaarscore.cli")


def _run(service: ParticipationService, coro_fn, *args):
    async def main():
        await service.start()
        try:
            return await coro_fn(*args)
        finally:
            await service.stop()

    return trio.run(main)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option(
    '--endpoint',
    default=None,
    help='Participation ledger URL (default: $BAZAARSCORE_LEDGER_ENDPOINT or localhost)',
)
@click.option('--timeout', type=float, default=None, help='Ledger request timeout in seconds')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, endpoint, timeout, verbose):
    """Participation scores for the marketplace network."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s',
    )
    config = ParticipationConfig.from_env(ledger_endpoint=endpoint, request_timeout=timeout)
    ctx.obj = ParticipationService(config)


@main.command()
@click.argument('address')
@click.option('--json', 'as_json', is_flag=True, help='Print the full score as JSON')
@click.pass_obj
def score(service: ParticipationService, address, as_json):
    """Show the participation score for ADDRESS."""
    result = _run(service, service.get_score, address)
    if as_json:
        _echo_json(result.to_dict())
        return

    c = result.components
    click.echo(f"Address:      {result.address}")
    click.echo(f"Total score:  {result.total_score}")
    click.echo(f"  referrals:    {c.referrals.points}")
    click.echo(f"  publishing:   {c.publishing.points}")
    click.echo(f"  forum:        {c.forum_activity.points}")
    click.echo(f"  marketplace:  {c.marketplace_activity.points}")
    click.echo(f"  policing:     {c.community_policing.points}")
    click.echo(f"  reliability:  {c.reliability.points}")
    click.echo(f"Validator:    {'yes' if result.qualified_as_validator else 'no'}")
    click.echo(f"Listing node: {'yes' if result.qualified_as_listing_node else 'no'}")


@main.command()
@click.argument('address')
@click.option(
    '--role',
    type=click.Choice(['validator', 'listing-node'], case_sensitive=False),
    default='listing-node',
    help='Role to check qualification for',
)
@click.pass_obj
def qualify(service: ParticipationService, address, role):
    """Check whether ADDRESS qualifies for a role."""
    if role.lower() == 'validator':
        result = _run(service, service.check_validator_qualification, address)
    else:
        result = _run(service, service.check_listing_node_qualification, address)
    _echo_json(result.to_dict())
    if not result.qualified:
        sys.exit(1)


@main.command()
@click.option('--limit', type=click.IntRange(min=0), default=DEFAULT_LEADERBOARD_LIMIT)
@click.pass_obj
def leaderboard(service: ParticipationService, limit):
    """Show the top addresses by score."""
    entries = _run(service, service.get_leaderboard, limit)
    if not entries:
        click.echo("No leaderboard data")
        return
    for entry in entries:
        roles = []
        if entry.is_validator:
            roles.append("validator")
        if entry.is_listing_node:
            roles.append("listing-node")
        click.echo(f"{entry.rank:>4}  {entry.score:>6}  {entry.address}  {','.join(roles)}")


@main.command()
@click.argument('address')
@click.argument('component', type=click.Choice(sorted(EVENT_CLASSES)))
@click.argument('activity_type')
@click.option('--ref', default='', help='Referred address, listing, transaction or report ID')
@click.option('--verified', is_flag=True, help='Mark a community report as verified')
@click.pass_obj
def report(service: ParticipationService, address, component, activity_type, ref, verified):
    """Report an ACTIVITY_TYPE event for ADDRESS under COMPONENT."""
    try:
        event = build_event(component, activity_type, ref=ref, verified=verified)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='activity_type')

    try:
        result = _run(service, service.update_activity, address, event)
    except LedgerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    click.echo(f"Reported {component}/{activity_type} for {address}; score now {result.total_score}")


if __name__ == "__main__":
    main()
