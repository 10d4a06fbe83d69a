from typing import Any

from fastapi import Request
from fastapi_cache import FastAPICache

from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)

PROVIDERS_NAMESPACE = "ad_providers"


def providers_cache_key_builder(
    func,
    namespace: str = "",
    request: Request = None,
    *args,
    **kwargs,
) -> str:
    # каталог одинаков для всех аккаунтов
    return f"{namespace}:catalogue"


async def invalidate_providers_cache(path: str, value: Any) -> None:
    """Обработчик on_change для providerConfig/*: сбросить закэшированный каталог."""
    cleared = await FastAPICache.clear(namespace=PROVIDERS_NAMESPACE)
    logger.debug(f"Provider catalogue cache cleared after change of {path} ({cleared} keys)")
