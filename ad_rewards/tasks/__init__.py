"""
Celery tasks package for background job processing.
"""

from .celery_app import celery_app
from .daily_reset import check_daily_reset_task
from .ledger_sync import health_check_task, sync_ledger_task

__all__ = ["celery_app", "check_daily_reset_task", "sync_ledger_task", "health_check_task"]
