"""
Оркестрация просмотра рекламы: допуск -> показ -> начисление -> реферальная комиссия.
"""

import asyncio
from datetime import datetime
from typing import Callable, Set, Tuple

from ad_rewards.core.exceptions import AnotherWatchInProgress, ObjectNotFoundException, PersistenceFailure, StoreError
from ad_rewards.interfaces.store import IKeyValueStore
from ad_rewards.schemas.provider import CompletionStyle, ProviderConfig
from ad_rewards.schemas.watch import (
    CompletionResult,
    DashboardStatus,
    ProviderStatus,
    WatchOutcome,
    WatchResult,
    WatchStarted,
)
from ad_rewards.services.provider_adapter import NOT_READY
from ad_rewards.services.provider_config import ProviderConfigService
from ad_rewards.services.rate_limit_gate import RateLimitGate, cooldown_remaining, daily_progress
from ad_rewards.services.referral_commission import ReferralCommissionPropagator
from ad_rewards.services.reset_scheduler import ResetScheduler
from ad_rewards.services.reward_ledger import RewardLedger, account_path
from ad_rewards.services.session_state import SessionRegistry, SessionState
from ad_rewards.utils.clock import format_countdown, utcnow
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

INCOMPLETE_MESSAGE = "Ad was not completed. Please watch the full ad without skipping."
LOAD_FAILED_MESSAGE = "Ad failed to load. Please try again."


class WatchOrchestrator:
    """
    Single entry point for a watch attempt. The session lock is taken after
    admission and released on every exit path of the attempt; for callback
    providers that is when the completion latch resolves.
    """

    def __init__(
            self,
            store: IKeyValueStore,
            providers: ProviderConfigService,
            sessions: SessionRegistry,
            ledger: RewardLedger = None,
            referrals: ReferralCommissionPropagator = None,
            scheduler: ResetScheduler = None,
            gate: RateLimitGate = None,
            clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.providers = providers
        self.sessions = sessions
        self.ledger = ledger or RewardLedger(store)
        self.referrals = referrals or ReferralCommissionPropagator(store)
        self.scheduler = scheduler or ResetScheduler(store)
        self.gate = gate or RateLimitGate()
        self.clock = clock
        self._tasks: Set[asyncio.Task] = set()

    async def watch(self, account_id: str, provider_id: str, now: datetime = None) -> WatchResult:
        """Допуск и полный цикл просмотра; возвращает результат после завершения попытки."""
        provider, session = await self._admit(account_id, provider_id, now or self.clock())
        return await self._run(provider, session)

    async def start_watch(self, account_id: str, provider_id: str, now: datetime = None) -> WatchStarted:
        """
        Допуск синхронно (отказ -> исключение), сама попытка выполняется в фоне.
        """
        now = now or self.clock()
        provider, session = await self._admit(account_id, provider_id, now)

        task = asyncio.create_task(self._run(provider, session))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

        return WatchStarted(
            account_id=account_id,
            provider_id=provider_id,
            completion_style=provider.completion_style,
            minimum_watch_seconds=provider.minimum_watch_seconds,
            started_at=now,
        )

    async def status(self, account_id: str, now: datetime = None) -> DashboardStatus:
        now = now or self.clock()
        await self._require_account(account_id)
        session = self.sessions.get(account_id)

        statuses = []
        for provider in self.providers.all():
            record = await self._read(self.ledger.get_watch_record(account_id, provider.provider_id))
            decision = self.gate.evaluate(provider, record, session, now)
            watched, daily_limit = daily_progress(provider, record, now)
            statuses.append(ProviderStatus(
                provider_id=provider.provider_id,
                title=provider.title,
                description=provider.description,
                reward=provider.reward,
                admitted=decision.admitted,
                reason=decision.reason,
                message=decision.message,
                button_text=self.gate.button_text(decision, provider, session),
                cooldown_remaining=cooldown_remaining(provider, record, now),
                watched=watched,
                daily_limit=daily_limit,
                progress=f"{watched}/{daily_limit}",
                minimum_watch_seconds=provider.minimum_watch_seconds,
            ))

        seconds = self.scheduler.seconds_until_next_reset(now)
        return DashboardStatus(
            account_id=account_id,
            providers=statuses,
            in_flight_provider=session.in_flight_provider,
            seconds_until_reset=seconds,
            time_until_reset=format_countdown(seconds),
            last_notification=session.last_notification,
        )

    async def drain(self) -> None:
        """Дождаться фоновых попыток (остановка приложения)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _admit(self, account_id: str, provider_id: str, now: datetime) -> Tuple[ProviderConfig, SessionState]:
        provider = self.providers.get(provider_id)
        await self._require_account(account_id)
        session = self.sessions.get(account_id)
        record = await self._read(self.ledger.get_watch_record(account_id, provider_id))

        decision = self.gate.evaluate(provider, record, session, now)
        if not decision.admitted:
            logger.debug(f"Watch {account_id}/{provider_id} denied: {decision.reason.value}")
            session.notify("info", decision.message, now)
            decision.raise_for_denial()

        if not session.acquire(provider_id, now):
            session.notify("info", "Please complete the current ad first", now)
            raise AnotherWatchInProgress()

        logger.info(f"Watch {account_id}/{provider_id} admitted ({provider.completion_style.value})")
        return provider, session

    async def _run(self, provider: ProviderConfig, session: SessionState) -> WatchResult:
        account_id = session.account_id
        provider_id = provider.provider_id
        try:
            session.notify("info", "Preparing ad... Please wait", self.clock())

            integration = session.integration(provider_id)
            if integration is None:
                completion = CompletionResult(outcome=WatchOutcome.FAILED, reason=NOT_READY)
            else:
                completion = await integration.attempt(provider.minimum_watch_seconds)

            result = WatchResult(account_id=account_id, provider_id=provider_id, completion=completion)
            if not completion.completed:
                logger.info(f"Watch {account_id}/{provider_id} {completion.outcome.value}: {completion.reason}")
                session.notify("error", self._failure_message(provider, completion), self.clock())
                return result

            now = self.clock()
            credit = await self.ledger.credit(
                account_id, provider_id, provider.reward, now, daily_limit=provider.daily_limit
            )
            result.credit = credit
            if not credit.ok:
                session.notify("error", credit.error, now)
                return result

            session.notify("success", f"+${provider.reward:.2f} earned! Balance updated.", now)
            result.commission_paid = await self.referrals.propagate(account_id, provider.reward, now)
            return result
        finally:
            session.release(provider_id)

    def _failure_message(self, provider: ProviderConfig, completion: CompletionResult) -> str:
        if completion.reason == NOT_READY:
            return "Ad provider is loading... Please wait a moment"
        if completion.outcome == WatchOutcome.TIMED_OUT or provider.completion_style == CompletionStyle.CALLBACK:
            return LOAD_FAILED_MESSAGE
        return INCOMPLETE_MESSAGE

    async def _require_account(self, account_id: str) -> None:
        if await self._read(self.store.get(account_path(account_id))) is None:
            raise ObjectNotFoundException(f"Account {account_id} not found")

    async def _read(self, awaitable):
        try:
            return await awaitable
        except StoreError as exc:
            logger.error(f"Store read failed: {exc}")
            raise PersistenceFailure() from exc

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error(f"Background watch failed: {exc}")
