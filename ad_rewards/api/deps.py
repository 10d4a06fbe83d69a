import asyncio
from typing import Optional

from fastapi import Depends, Request
from redis import asyncio as aioredis
from redis.asyncio import Redis

from ad_rewards.core.config import settings
from ad_rewards.interfaces.store import IKeyValueStore, Unsubscribe
from ad_rewards.services.account_service import AccountService
from ad_rewards.services.client_signals import ClientSignalHub
from ad_rewards.services.provider_config import PROVIDER_CONFIG_PATH, ProviderConfigService
from ad_rewards.services.referral_commission import ReferralCommissionPropagator
from ad_rewards.services.reset_scheduler import ResetScheduler
from ad_rewards.services.reward_ledger import RewardLedger
from ad_rewards.services.session_state import SessionRegistry
from ad_rewards.services.watch_orchestrator import WatchOrchestrator
from ad_rewards.utils.cache import invalidate_providers_cache
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


async def get_redis_client() -> Redis:
    redis = await aioredis.from_url(
        f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}",
        password=settings.REDIS_PASSWORD or None,
        max_connections=10,
        encoding="utf8",
        decode_responses=True,
        db=settings.REDIS_DB
    )
    return redis


class ServiceContainer:
    """Engine services of one API process, wired to one store."""

    def __init__(self, store: IKeyValueStore):
        self.store = store
        self.signals = ClientSignalHub()
        self.providers = ProviderConfigService(store)
        self.sessions = SessionRegistry(
            lambda account_id: self.signals.integrations(account_id, self.providers.all())
        )
        self.scheduler = ResetScheduler(store)
        self.ledger = RewardLedger(store)
        self.referrals = ReferralCommissionPropagator(store)
        self.accounts = AccountService(store)
        self.orchestrator = WatchOrchestrator(
            store,
            self.providers,
            self.sessions,
            ledger=self.ledger,
            referrals=self.referrals,
            scheduler=self.scheduler,
        )
        self._stop_event: Optional[asyncio.Event] = None
        self._reset_loop: Optional[asyncio.Task] = None
        self._cache_unsubscribe: Optional[Unsubscribe] = None

    async def start(self, reset_loop: bool = False) -> None:
        await self.providers.load()
        await self.providers.subscribe()
        self._cache_unsubscribe = await self.store.on_change(
            f"{PROVIDER_CONFIG_PATH}/*", invalidate_providers_cache
        )
        if reset_loop:
            self._stop_event = asyncio.Event()
            self._reset_loop = asyncio.create_task(self.scheduler.run_forever(self._stop_event))
        else:
            await self.scheduler.tick()

    async def stop(self) -> None:
        if self._reset_loop is not None:
            self._stop_event.set()
            await self._reset_loop
            self._reset_loop = None
        await self.providers.unsubscribe()
        if self._cache_unsubscribe is not None:
            await self._cache_unsubscribe()
            self._cache_unsubscribe = None
        await self.store.close()


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_orchestrator(services: ServiceContainer = Depends(get_services)) -> WatchOrchestrator:
    return services.orchestrator


def get_account_service(services: ServiceContainer = Depends(get_services)) -> AccountService:
    return services.accounts


def get_signals(services: ServiceContainer = Depends(get_services)) -> ClientSignalHub:
    return services.signals
