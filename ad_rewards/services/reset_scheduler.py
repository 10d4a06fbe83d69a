"""
Ежедневный сброс счётчиков просмотров рекламы.

Сброс выполняется не раньше 06:00 по опорному часовому поясу (UTC+6) и не
более одного раза за календарный день: дата последнего сброса хранится в
`system/lastResetDate` и записывается до очистки счётчиков.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from ad_rewards.core.config import settings
from ad_rewards.core.exceptions import StoreError
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.utils.clock import reference_today, seconds_until_reset, to_reference, utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

RESET_MARKER_PATH = "system/lastResetDate"
WATCH_RECORDS_PREFIX = "watchRecords/"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RESETTING = "resetting"


class ResetReport(BaseModel):
    performed: bool = False
    records_reset: int = 0
    reset_date: Optional[str] = None
    error: Optional[str] = None


class ResetScheduler:
    def __init__(
            self,
            store: IKeyValueStore,
            cutoff_hour: int = None,
            interval_seconds: float = None,
            clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.clock = clock
        self.cutoff_hour = settings.RESET_CUTOFF_HOUR if cutoff_hour is None else cutoff_hour
        self.interval_seconds = (
            settings.RESET_CHECK_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.state = SchedulerState.IDLE

    def is_due(self, now: datetime, last_reset_date: Optional[str]) -> bool:
        return to_reference(now).hour >= self.cutoff_hour and last_reset_date != reference_today(now)

    def seconds_until_next_reset(self, now: datetime = None) -> int:
        return seconds_until_reset(now or self.clock(), self.cutoff_hour)

    async def last_reset_date(self) -> Optional[str]:
        return await self.store.get(RESET_MARKER_PATH)

    async def tick(self, now: datetime = None, force: bool = False) -> ResetReport:
        """
        Проверить и при необходимости выполнить сброс.

        Args:
            now: текущее время (по умолчанию utcnow)
            force: выполнить сброс без проверки маркера и часа

        Returns:
            ResetReport: выполнен ли сброс и сколько записей очищено
        """
        now = now or self.clock()
        if self.state == SchedulerState.RESETTING:
            logger.debug("Daily reset already in progress, tick skipped")
            return ResetReport()

        self.state = SchedulerState.RESETTING
        try:
            last_reset_date = await self.last_reset_date()
            if not force and not self.is_due(now, last_reset_date):
                return ResetReport(reset_date=last_reset_date)

            today = reference_today(now)
            logger.info(f"Daily reset started for {today} (last reset: {last_reset_date})")

            await self.store.set(RESET_MARKER_PATH, today)

            paths = await self.store.keys(WATCH_RECORDS_PREFIX)
            if paths:
                reset_at = now.isoformat()
                await self.store.update({
                    path: {"watchedToday": 0, "lastReset": reset_at}
                    for path in paths
                })

            logger.info(f"Daily reset completed for {today}: {len(paths)} watch records cleared")
            return ResetReport(performed=True, records_reset=len(paths), reset_date=today)
        except StoreError as exc:
            logger.error(f"Daily reset failed: {exc}")
            return ResetReport(error=str(exc))
        finally:
            self.state = SchedulerState.IDLE

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Первая проверка сразу, далее каждые `interval_seconds` до установки `stop_event`."""
        logger.info(f"Daily reset scheduler started (every {self.interval_seconds}s)")
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as exc:
                logger.exception(f"Daily reset check failed: {exc}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Daily reset scheduler stopped")
