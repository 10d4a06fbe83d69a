"""
Сигналы завершения рекламы, приходящие по HTTP.

Реклама показывается на клиенте, поэтому точки входа провайдеров на сервере
ждут сигнала:
- awaited-провайдеры: `show()` ждёт подтверждения клиента (`/complete` или `/fail`);
- callback-провайдеры: `launch(on_success, on_failure)` регистрирует колбэки,
  которые вызывает postback рекламной сети. Регистрация живёт, пока идёт
  попытка: после сторожевого таймера postback уже ничего не найдёт.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Tuple

from ad_rewards.core.config import settings
from ad_rewards.core.exceptions import IncompleteWatch
from ad_rewards.schemas.provider import CompletionStyle, ProviderConfig
from ad_rewards.services.provider_adapter import (
    AwaitedProvider,
    CallbackProvider,
    LaunchFunction,
    ProviderIntegration,
    ShowFunction,
    Signal,
)
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

SignalKey = Tuple[str, str]


class ClientSignalHub:
    def __init__(self, confirm_timeout: float = None):
        self.confirm_timeout = (
            settings.CLIENT_CONFIRM_TIMEOUT_SECONDS if confirm_timeout is None else confirm_timeout
        )
        self._confirmations: Dict[SignalKey, asyncio.Future] = {}
        self._postbacks: Dict[SignalKey, Tuple[Signal, Signal]] = {}

    def show_function(self, account_id: str, provider_id: str) -> ShowFunction:
        key = (account_id, provider_id)

        async def show() -> None:
            future = asyncio.get_running_loop().create_future()
            self._confirmations[key] = future
            try:
                await asyncio.wait_for(future, timeout=self.confirm_timeout)
            except asyncio.TimeoutError:
                raise IncompleteWatch(detail="Ad was not confirmed in time")
            finally:
                if self._confirmations.get(key) is future:
                    del self._confirmations[key]

        return show

    def launch_function(self, account_id: str, provider_id: str) -> LaunchFunction:
        key = (account_id, provider_id)

        def launch(on_success: Signal, on_failure: Signal) -> Callable[[], None]:
            callbacks = (on_success, on_failure)
            self._postbacks[key] = callbacks

            def release() -> None:
                if self._postbacks.get(key) is callbacks:
                    del self._postbacks[key]

            return release

        return launch

    def confirm(self, account_id: str, provider_id: str) -> bool:
        """Клиент досмотрел рекламу. False, если подтверждать нечего."""
        future = self._confirmations.get((account_id, provider_id))
        if future is None or future.done():
            return False
        future.set_result(None)
        return True

    def reject(self, account_id: str, provider_id: str, reason: str = None) -> bool:
        """Клиент сообщил о пропуске или ошибке показа."""
        future = self._confirmations.get((account_id, provider_id))
        if future is None or future.done():
            return False
        future.set_exception(IncompleteWatch(detail=reason or None))
        return True

    def postback(self, account_id: str, provider_id: str, success: bool) -> bool:
        """Postback рекламной сети. Колбэки одноразовые: повторный postback возвращает False."""
        callbacks = self._postbacks.pop((account_id, provider_id), None)
        if callbacks is None:
            logger.warning(f"Postback for {account_id}/{provider_id} without a pending ad")
            return False
        on_success, on_failure = callbacks
        if success:
            on_success()
        else:
            on_failure()
        return True

    def is_pending(self, account_id: str, provider_id: str) -> bool:
        key = (account_id, provider_id)
        return key in self._confirmations or key in self._postbacks

    def integrations(self, account_id: str, providers: Iterable[ProviderConfig]) -> List[ProviderIntegration]:
        """Точки входа всех провайдеров для сессии аккаунта."""
        integrations: List[ProviderIntegration] = []
        for provider in providers:
            if provider.completion_style == CompletionStyle.CALLBACK:
                integrations.append(CallbackProvider(
                    provider.provider_id, self.launch_function(account_id, provider.provider_id)
                ))
            else:
                integrations.append(AwaitedProvider(
                    provider.provider_id, self.show_function(account_id, provider.provider_id)
                ))
        return integrations
