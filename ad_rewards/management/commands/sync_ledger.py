"""
Management command for manual ledger synchronization.
"""

import asyncio

import click

from ad_rewards.services.ledger_sync import sync_ledger as run_ledger_sync
from ad_rewards.store.redis_store import create_store
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


@click.command()
@click.option(
    "--dry-run",
    is_flag=True,
    help="Count store records without writing to the database"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Print the full statistics"
)
def sync_ledger(dry_run: bool, verbose: bool):
    """
    Mirror accounts and transactions from the shared store into PostgreSQL.
    """
    logger.info(f"Starting manual ledger synchronization (dry_run={dry_run})")

    try:
        result = asyncio.run(_sync_ledger_async(dry_run))
    except Exception as e:
        logger.error(f"Error during ledger synchronization: {e}")
        raise click.ClickException(str(e))

    if dry_run:
        click.echo(
            f"DRY RUN - {result['accounts_found']} accounts and "
            f"{result['transactions_found']} transactions would be synced"
        )
    elif result["status"] == "completed":
        click.echo(
            f"Ledger synchronized: {result['accounts_created']} accounts created, "
            f"{result['accounts_updated']} updated, {result['transactions_archived']} transactions archived"
        )
    else:
        click.echo(f"Ledger synchronized with {result['error_count']} errors")

    if verbose:
        for key, value in result.items():
            click.echo(f"  {key}: {value}")


async def _sync_ledger_async(dry_run: bool) -> dict:
    store = create_store(max_connections=2)
    try:
        return await run_ledger_sync(store, dry_run=dry_run)
    finally:
        await store.close()


if __name__ == "__main__":
    sync_ledger()
