"""
Celery tasks for mirroring the ledger from the shared store to PostgreSQL.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict

from redis.exceptions import RedisError
from sqlalchemy import text

from ad_rewards.db.session import get_session
from ad_rewards.services.ledger_sync import sync_ledger
from ad_rewards.store.redis_store import create_redis_client, create_store
from ad_rewards.utils.logger import get_logger
from .celery_app import HEALTH_CHECK, SYNC_LEDGER, celery_app

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name=SYNC_LEDGER,
    max_retries=3,
    default_retry_delay=300,  # 5 минут
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_jitter=True
)
def sync_ledger_task(self, dry_run: bool = False) -> Dict:
    """
    Задача синхронизации аккаунтов и транзакций из хранилища в базу данных.

    Args:
        dry_run: Только посчитать записи

    Returns:
        Dict: Статистика синхронизации
    """
    task_id = self.request.id
    logger.info(f"Starting ledger sync task {task_id} (dry_run={dry_run})")

    result = asyncio.run(_sync_ledger_async(dry_run))

    logger.info(f"Ledger sync task {task_id} finished: {result['status']}")
    return result


async def _sync_ledger_async(dry_run: bool = False) -> Dict:
    store = create_store(max_connections=2)
    try:
        return await sync_ledger(store, dry_run=dry_run)
    finally:
        await store.close()


@celery_app.task(
    bind=True,
    name=HEALTH_CHECK
)
def health_check_task(self) -> Dict:
    """
    Задача проверки здоровья хранилища и базы данных.

    Returns:
        Dict: Статус здоровья
    """
    logger.info(f"Starting health check task {self.request.id}")
    result = asyncio.run(_health_check_async())
    logger.info(f"Health check completed: {result['status']}")
    return result


async def _health_check_async() -> Dict:
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {}
    }

    redis_client = create_redis_client(max_connections=1)
    try:
        health_status["checks"]["redis"] = "ok" if await redis_client.ping() else "failed"
    except RedisError as e:
        health_status["checks"]["redis"] = "failed"
        health_status["error"] = str(e)
    finally:
        await redis_client.close()

    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = "failed"
        health_status["error"] = str(e)

    if any(check != "ok" for check in health_status["checks"].values()):
        health_status["status"] = "unhealthy"
    return health_status
