"""
Нормализация сигналов завершения рекламы от разных провайдеров.

Провайдеры сообщают о завершении двумя способами:
- awaited: точка входа возвращает awaitable, завершение = возврат без ошибки;
- callback: точка входа принимает пару колбэков success/failure, ровно один
  из них должен сработать, иначе срабатывает сторожевой таймер. Если точка
  входа возвращает callable, он вызывается по завершении попытки и снимает
  регистрацию колбэков.

Оба варианта приводятся к одному CompletionResult: completed / failed / timed_out.
"""

import asyncio
import inspect
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ad_rewards.core.config import settings
from ad_rewards.schemas.watch import CompletionResult, WatchOutcome
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

NOT_READY = "provider not ready"

ShowFunction = Callable[[], Awaitable[Any]]
Signal = Callable[[], None]
LaunchFunction = Callable[[Signal, Signal], Any]


class CompletionLatch:
    """
    One-shot completion: the first `resolve` wins, later calls return False
    and change nothing.
    """

    def __init__(self):
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def resolve(self, result: CompletionResult) -> bool:
        if self._future.done():
            return False
        self._future.set_result(result)
        return True

    async def wait(self) -> CompletionResult:
        return await self._future


class ProviderIntegration(ABC):
    """A provider's entry point, wrapped behind one `attempt` operation."""

    provider_id: str

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    async def attempt(self, minimum_watch_seconds: float) -> CompletionResult:
        ...


class AwaitedProvider(ProviderIntegration):
    def __init__(
            self,
            provider_id: str,
            show: Optional[ShowFunction],
            clock: Callable[[], float] = time.monotonic,
    ):
        self.provider_id = provider_id
        self.show = show
        self.clock = clock

    def is_available(self) -> bool:
        return callable(self.show)

    async def attempt(self, minimum_watch_seconds: float) -> CompletionResult:
        show = self.show
        if not callable(show):
            logger.warning(f"{self.provider_id}: entry point unavailable at invocation")
            return CompletionResult(outcome=WatchOutcome.FAILED, reason=NOT_READY)

        start = self.clock()
        try:
            await show()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            elapsed = self.clock() - start
            logger.info(f"{self.provider_id}: ad skipped or failed after {elapsed:.1f}s: {exc}")
            return CompletionResult(
                outcome=WatchOutcome.FAILED,
                reason=getattr(exc, "detail", None) or str(exc) or "Ad was not completed",
                elapsed_seconds=elapsed,
            )

        elapsed = self.clock() - start
        if elapsed < minimum_watch_seconds:
            logger.info(f"{self.provider_id}: finished in {elapsed:.1f}s, minimum is {minimum_watch_seconds}s")
            return CompletionResult(
                outcome=WatchOutcome.FAILED,
                reason=f"Please watch the ad completely (minimum {minimum_watch_seconds} seconds)",
                elapsed_seconds=elapsed,
            )

        return CompletionResult(outcome=WatchOutcome.COMPLETED, elapsed_seconds=elapsed)


class CallbackProvider(ProviderIntegration):
    def __init__(
            self,
            provider_id: str,
            launch: Optional[LaunchFunction],
            watchdog_floor: float = None,
            watchdog_grace: float = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.provider_id = provider_id
        self.launch = launch
        self.watchdog_floor = settings.WATCHDOG_FLOOR_SECONDS if watchdog_floor is None else watchdog_floor
        self.watchdog_grace = settings.WATCHDOG_GRACE_SECONDS if watchdog_grace is None else watchdog_grace
        self.clock = clock

    def is_available(self) -> bool:
        return callable(self.launch)

    def watchdog_seconds(self, minimum_watch_seconds: float) -> float:
        return max(self.watchdog_floor, minimum_watch_seconds + self.watchdog_grace)

    async def attempt(self, minimum_watch_seconds: float) -> CompletionResult:
        launch = self.launch
        if not callable(launch):
            logger.warning(f"{self.provider_id}: entry point unavailable at invocation")
            return CompletionResult(outcome=WatchOutcome.FAILED, reason=NOT_READY)

        latch = CompletionLatch()
        start = self.clock()
        timeout = self.watchdog_seconds(minimum_watch_seconds)

        def finish(outcome: WatchOutcome, reason: str = "") -> None:
            result = CompletionResult(outcome=outcome, reason=reason, elapsed_seconds=self.clock() - start)
            if not latch.resolve(result):
                logger.debug(f"{self.provider_id}: late {outcome.value} signal ignored")

        def on_success() -> None:
            finish(WatchOutcome.COMPLETED)

        def on_failure() -> None:
            finish(WatchOutcome.FAILED, "Ad failed to load. Please try again.")

        watchdog = asyncio.get_running_loop().call_later(
            timeout, finish, WatchOutcome.TIMED_OUT, f"No completion signal within {timeout:g}s"
        )
        release = None
        try:
            try:
                launched = launch(on_success, on_failure)
                if inspect.isawaitable(launched):
                    launched = await launched
                if callable(launched):
                    release = launched
            except Exception as exc:
                logger.info(f"{self.provider_id}: launch failed: {exc}")
                finish(WatchOutcome.FAILED, str(exc) or "Ad failed to load. Please try again.")
            return await latch.wait()
        finally:
            watchdog.cancel()
            # колбэки попытки больше не должны срабатывать
            if release is not None:
                release()


class ProviderRegistry:
    """Provider id -> integration lookup for one session."""

    def __init__(self, integrations: Iterable[ProviderIntegration] = ()):
        self._integrations: Dict[str, ProviderIntegration] = {}
        for integration in integrations:
            self.register(integration)

    def register(self, integration: ProviderIntegration) -> None:
        self._integrations[integration.provider_id] = integration

    def get(self, provider_id: str) -> Optional[ProviderIntegration]:
        return self._integrations.get(provider_id)

    def ids(self) -> List[str]:
        return list(self._integrations)

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._integrations

    def __len__(self) -> int:
        return len(self._integrations)
