"""
Management command for the daily watch counter reset.
"""

import asyncio

import click

from ad_rewards.services.reset_scheduler import WATCH_RECORDS_PREFIX, ResetScheduler
from ad_rewards.store.redis_store import create_store
from ad_rewards.utils.clock import utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help="Reset even if today's reset has already run"
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be reset without actually doing it"
)
def reset_counters(force: bool, dry_run: bool):
    """
    Reset the per-provider daily watch counters of every account.
    """
    logger.info(f"Manual counter reset requested (force={force}, dry_run={dry_run})")

    try:
        result = asyncio.run(_reset_counters_async(force, dry_run))
    except Exception as e:
        logger.error(f"Error during counter reset: {e}")
        raise click.ClickException(str(e))

    if dry_run:
        click.echo(
            f"DRY RUN - last reset: {result['last_reset_date']}, due: {result['due']}, "
            f"{result['records']} watch records would be reset"
        )
        return

    if result.get("error"):
        raise click.ClickException(f"Counter reset failed: {result['error']}")
    if result["performed"]:
        click.echo(f"Counters reset for {result['reset_date']}: {result['records_reset']} watch records")
    else:
        click.echo(f"Reset not due, last reset: {result['reset_date']} (use --force to override)")


async def _reset_counters_async(force: bool, dry_run: bool) -> dict:
    store = create_store(max_connections=2)
    try:
        scheduler = ResetScheduler(store)
        if dry_run:
            last_reset_date = await scheduler.last_reset_date()
            return {
                "last_reset_date": last_reset_date,
                "due": force or scheduler.is_due(utcnow(), last_reset_date),
                "records": len(await store.keys(WATCH_RECORDS_PREFIX)),
            }
        report = await scheduler.tick(force=force)
        return report.model_dump()
    finally:
        await store.close()


if __name__ == "__main__":
    reset_counters()
