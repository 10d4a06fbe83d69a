"""
Общие фикстуры: хранилище в памяти с семантикой RedisStore.
"""

import inspect
import json
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Set, Tuple

import pytest

from ad_rewards.core.exceptions import StoreError
from ad_rewards.interfaces.store import ChangeHandler, IKeyValueStore, Unsubscribe

# 09:00 in the reference timezone (UTC+6)
NOW = datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc)
YESTERDAY = NOW - timedelta(days=1)


def _roundtrip(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


class InMemoryStore(IKeyValueStore):
    def __init__(self, data: Dict[str, Any] = None):
        self.data: Dict[str, Any] = {path: _roundtrip(value) for path, value in (data or {}).items()}
        self.failing: Set[str] = set()
        self.writes: List[Tuple[str, str]] = []
        self._sequences: Dict[str, int] = defaultdict(int)
        self._handlers: List[Tuple[str, ChangeHandler]] = []
        self.closed = False

    def _check(self, operation: str, path: str) -> None:
        if operation in self.failing:
            raise StoreError(path, "connection refused")

    async def get(self, path: str) -> Any:
        self._check("get", path)
        value = self.data.get(path.strip("/"))
        return _roundtrip(value) if value is not None else None

    async def set(self, path: str, value: Any) -> None:
        self._check("set", path)
        path = path.strip("/")
        self.data[path] = _roundtrip(value)
        self.writes.append(("set", path))
        await self._notify(path)

    async def update(self, values: Dict[str, Any]) -> None:
        self._check("update", ", ".join(values))
        for path, value in values.items():
            path = path.strip("/")
            current = self.data.get(path)
            if isinstance(value, dict) and isinstance(current, dict):
                self.data[path] = {**current, **_roundtrip(value)}
            else:
                self.data[path] = _roundtrip(value)
            self.writes.append(("update", path))
        for path in values:
            await self._notify(path.strip("/"))

    async def append(self, collection: str, value: Dict[str, Any]) -> str:
        self._check("append", collection)
        collection = collection.strip("/")
        self._sequences[collection] += 1
        record_id = str(self._sequences[collection])
        await self.set(f"{collection}/{record_id}", {**value, "id": record_id})
        return record_id

    async def increment(self, path: str, field: str, amount=1):
        self._check("increment", path)
        path = path.strip("/")
        record = self.data.setdefault(path, {})
        record[field] = record.get(field, 0) + amount
        self.writes.append(("increment", path))
        await self._notify(path)
        return record[field]

    async def keys(self, prefix: str) -> List[str]:
        self._check("keys", prefix)
        return sorted(path for path in self.data if path.startswith(prefix))

    async def on_change(self, path: str, handler: ChangeHandler) -> Unsubscribe:
        entry = (path, handler)
        self._handlers.append(entry)

        async def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    async def close(self) -> None:
        self.closed = True

    async def _notify(self, path: str) -> None:
        for pattern, handler in list(self._handlers):
            matches = path.startswith(pattern[:-1]) if pattern.endswith("*") else path == pattern
            if matches:
                result = handler(path, _roundtrip(self.data.get(path)))
                if inspect.isawaitable(result):
                    await result


class FakeMonotonic:
    """Подменяемые монотонные часы для адаптера провайдеров."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def monotonic():
    return FakeMonotonic()


def make_account(account_id: str, **fields) -> Dict[str, Any]:
    data = {"id": account_id, "balance": 0.0, "totalEarned": 0.0, "totalWithdrawn": 0.0, "adsWatchedToday": 0}
    data.update(fields)
    return data
