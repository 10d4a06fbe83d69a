"""
Redis implementation of the shared key-value store.

Layout:
- mapping values are hashes, every field JSON encoded (numbers stay usable by HINCRBY*)
- scalar values are JSON encoded strings
- every write is announced on the `{prefix}changes:{path}` channel
"""

import asyncio
import inspect
import json
from collections import defaultdict
from typing import Any, Dict, List, Optional, Union

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from ad_rewards.core.config import settings
from ad_rewards.core.exceptions import StoreError
from ad_rewards.interfaces.store import ChangeHandler, IKeyValueStore, Unsubscribe
from ad_rewards.utils.logger import get_logger

logger = get_logger(__name__)


def _encode(value: Any) -> str:
    return json.dumps(value, default=str)


def _decode(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


class RedisStore(IKeyValueStore):
    """
    Store backed by a `redis.asyncio.Redis` client created with `decode_responses=True`.
    """

    def __init__(self, redis: Redis, prefix: str = None) -> None:
        self.redis = redis
        self.prefix = settings.STORE_PREFIX if prefix is None else prefix
        self._handlers: Dict[str, List[ChangeHandler]] = defaultdict(list)
        self._pubsub: Optional[PubSub] = None
        self._listener: Optional[asyncio.Task] = None

    def _key(self, path: str) -> str:
        return f"{self.prefix}{path.strip('/')}"

    def _channel(self, path: str) -> str:
        return f"{self.prefix}changes:{path.strip('/')}"

    def _path_from_channel(self, channel: str) -> str:
        return channel[len(f"{self.prefix}changes:"):]

    async def get(self, path: str) -> Optional[Any]:
        key = self._key(path)
        try:
            kind = await self.redis.type(key)
            if kind == "hash":
                raw = await self.redis.hgetall(key)
                return {field: _decode(value) for field, value in raw.items()}
            if kind == "string":
                return _decode(await self.redis.get(key))
            return None
        except RedisError as exc:
            logger.error(f"Store read failed for {path}: {exc}")
            raise StoreError(path, str(exc)) from exc

    async def set(self, path: str, value: Any) -> None:
        key = self._key(path)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                self._queue_write(pipe, key, value)
                pipe.publish(self._channel(path), path)
                await pipe.execute()
        except RedisError as exc:
            logger.error(f"Store write failed for {path}: {exc}")
            raise StoreError(path, str(exc)) from exc

    async def update(self, values: Dict[str, Any]) -> None:
        if not values:
            return
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for path, value in values.items():
                    self._queue_write(pipe, self._key(path), value)
                for path in values:
                    pipe.publish(self._channel(path), path)
                await pipe.execute()
            logger.debug(f"Store batch update of {len(values)} paths")
        except RedisError as exc:
            paths = ", ".join(list(values)[:5])
            logger.error(f"Store batch update failed ({paths}...): {exc}")
            raise StoreError(paths, str(exc)) from exc

    async def append(self, collection: str, value: Dict[str, Any]) -> str:
        collection = collection.strip("/")
        try:
            record_id = str(await self.redis.incr(f"{self.prefix}seq:{collection}"))
        except RedisError as exc:
            logger.error(f"Could not allocate id in {collection}: {exc}")
            raise StoreError(collection, str(exc)) from exc

        await self.set(f"{collection}/{record_id}", {**value, "id": record_id})
        return record_id

    async def increment(self, path: str, field: str, amount: Union[int, float] = 1) -> Union[int, float]:
        key = self._key(path)
        try:
            if isinstance(amount, int):
                result = await self.redis.hincrby(key, field, amount)
            else:
                result = await self.redis.hincrbyfloat(key, field, amount)
            await self.redis.publish(self._channel(path), path)
            return result
        except RedisError as exc:
            logger.error(f"Store increment failed for {path}.{field}: {exc}")
            raise StoreError(path, str(exc)) from exc

    async def keys(self, prefix: str) -> List[str]:
        pattern = f"{self._key(prefix)}*"
        try:
            found = [key[len(self.prefix):] async for key in self.redis.scan_iter(match=pattern, count=500)]
        except RedisError as exc:
            logger.error(f"Store scan failed for {prefix}: {exc}")
            raise StoreError(prefix, str(exc)) from exc
        return sorted(found)

    async def on_change(self, path: str, handler: ChangeHandler) -> Unsubscribe:
        is_pattern = path.endswith("*")
        channel = self._channel(path)

        if self._pubsub is None:
            self._pubsub = self.redis.pubsub()

        if not self._handlers[channel]:
            if is_pattern:
                await self._pubsub.psubscribe(channel)
            else:
                await self._pubsub.subscribe(channel)
        self._handlers[channel].append(handler)

        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

        async def unsubscribe() -> None:
            handlers = self._handlers.get(channel, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers and self._pubsub is not None:
                self._handlers.pop(channel, None)
                if is_pattern:
                    await self._pubsub.punsubscribe(channel)
                else:
                    await self._pubsub.unsubscribe(channel)

        return unsubscribe

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.close()
            self._pubsub = None
        await self.redis.close()

    def _queue_write(self, pipe, key: str, value: Any) -> None:
        if isinstance(value, dict):
            if value:
                pipe.hset(key, mapping={field: _encode(item) for field, item in value.items()})
        else:
            pipe.set(key, _encode(value))

    async def _listen(self) -> None:
        async for message in self._pubsub.listen():
            if message["type"] == "message":
                subscription = message["channel"]
            elif message["type"] == "pmessage":
                subscription = message["pattern"]
            else:
                continue

            path = self._path_from_channel(message["channel"])
            handlers = list(self._handlers.get(subscription, []))
            if not handlers:
                continue

            try:
                value = await self.get(path)
            except StoreError:
                logger.warning(f"Skipping change notification for {path}: value unreadable")
                continue

            for handler in handlers:
                try:
                    result = handler(path, value)
                    if inspect.isawaitable(result):
                        await result
                except Exception as exc:
                    logger.exception(f"Change handler for {path} failed: {exc}")


def create_redis_client(max_connections: int = 10) -> Redis:
    return Redis(
        host=settings.REDIS_HOST,
        port=int(settings.REDIS_PORT),
        password=settings.REDIS_PASSWORD or None,
        db=settings.REDIS_DB,
        max_connections=max_connections,
        encoding="utf8",
        decode_responses=True,
    )


def create_store(max_connections: int = 10) -> RedisStore:
    return RedisStore(create_redis_client(max_connections))
