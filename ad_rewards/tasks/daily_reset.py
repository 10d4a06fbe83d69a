"""
Celery tasks for the daily watch counter reset.
"""

import asyncio
from typing import Dict

from celery.signals import worker_ready

from ad_rewards.services.reset_scheduler import ResetScheduler
from ad_rewards.store.redis_store import create_store
from ad_rewards.utils.logger import get_logger
from .celery_app import CHECK_DAILY_RESET, DAILY_RESET_QUEUE, celery_app

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name=CHECK_DAILY_RESET,
    max_retries=3,
    default_retry_delay=30,
)
def check_daily_reset_task(self, force: bool = False) -> Dict:
    """
    Проверить, наступило ли время ежедневного сброса, и выполнить его.

    Args:
        force: Сбросить счетчики без проверки маркера

    Returns:
        Dict: ResetReport
    """
    task_id = self.request.id
    logger.debug(f"Daily reset check {task_id} (force={force})")

    report = asyncio.run(_check_daily_reset_async(force))

    if report["error"]:
        logger.error(f"Daily reset task {task_id} failed: {report['error']}")
        if self.request.retries < self.max_retries:
            raise self.retry(exc=RuntimeError(report["error"]))
    elif report["performed"]:
        logger.info(f"Daily reset task {task_id} cleared {report['records_reset']} records")
    return report


async def _check_daily_reset_async(force: bool = False) -> Dict:
    store = create_store(max_connections=2)
    try:
        report = await ResetScheduler(store).tick(force=force)
        return report.model_dump()
    finally:
        await store.close()


@worker_ready.connect
def run_reset_check_on_startup(sender, **kwargs):
    """Первая проверка сброса сразу после запуска воркера."""
    logger.info("Worker ready, scheduling initial daily reset check")
    check_daily_reset_task.apply_async(queue=DAILY_RESET_QUEUE)
