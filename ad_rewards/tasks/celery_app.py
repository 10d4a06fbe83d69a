"""
Celery: ежедневный сброс счётчиков и зеркалирование леджера в PostgreSQL.

Beat проверяет сброс каждые RESET_CHECK_INTERVAL_SECONDS, сам сброс
выполняется не чаще раза в сутки (маркер в хранилище).
"""

from celery import Celery
from celery.schedules import crontab

from ad_rewards.core.config import settings
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

DAILY_RESET_QUEUE = "daily_reset"
LEDGER_SYNC_QUEUE = "ledger_sync"

CHECK_DAILY_RESET = "ad_rewards.tasks.daily_reset.check_daily_reset_task"
SYNC_LEDGER = "ad_rewards.tasks.ledger_sync.sync_ledger_task"
HEALTH_CHECK = "ad_rewards.tasks.ledger_sync.health_check_task"

celery_app = Celery(
    "ad_rewards_backend",
    broker=f"{settings.REDIS_URL}/0",
    backend=f"{settings.REDIS_URL}/1",
    include=["ad_rewards.tasks.daily_reset", "ad_rewards.tasks.ledger_sync"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # один сброс за раз: воркер не берёт задачи про запас
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    beat_schedule={
        "check-daily-reset": {
            "task": CHECK_DAILY_RESET,
            "schedule": float(settings.RESET_CHECK_INTERVAL_SECONDS),
            "options": {"queue": DAILY_RESET_QUEUE, "expires": settings.RESET_CHECK_INTERVAL_SECONDS},
        },
        "sync-ledger-hourly": {
            "task": SYNC_LEDGER,
            "schedule": crontab(minute=0, hour="*"),
            "options": {"queue": LEDGER_SYNC_QUEUE},
        },
    },
    task_routes={
        CHECK_DAILY_RESET: {"queue": DAILY_RESET_QUEUE},
        SYNC_LEDGER: {"queue": LEDGER_SYNC_QUEUE},
        HEALTH_CHECK: {"queue": LEDGER_SYNC_QUEUE},
    },

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_eager_propagates=settings.DEBUG,

    worker_task_log_format="[%(asctime)s: %(levelname)s][%(task_name)s(%(task_id)s)] %(message)s",
)

logger.info(f"Celery configured: broker db 0, beat reset check every {settings.RESET_CHECK_INTERVAL_SECONDS}s")
