from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

ChangeHandler = Callable[[str, Any], Union[Awaitable[None], None]]
Unsubscribe = Callable[[], Awaitable[None]]


class IKeyValueStore(ABC):
    """
    Shared key-value store addressed by slash separated paths
    (`accounts/42`, `watchRecords/42/adexora`, `system/lastResetDate`).

    Mapping values are merged field by field on `update`; any other value
    replaces what is stored at the path.
    """

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """Snapshot read; None when nothing is stored at `path`."""

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Replace the value at `path`."""

    @abstractmethod
    async def update(self, values: Dict[str, Any]) -> None:
        """Apply several path writes as one atomic batch."""

    @abstractmethod
    async def append(self, collection: str, value: Dict[str, Any]) -> str:
        """Store `value` under a new store generated id in `collection` and return the id."""

    @abstractmethod
    async def increment(self, path: str, field: str, amount: Union[int, float] = 1) -> Union[int, float]:
        """Atomically add `amount` to a numeric field and return the new value."""

    @abstractmethod
    async def keys(self, prefix: str) -> List[str]:
        """All paths starting with `prefix`."""

    @abstractmethod
    async def on_change(self, path: str, handler: ChangeHandler) -> Unsubscribe:
        """
        Call `handler(path, value)` after every write to `path`.
        A trailing `*` subscribes to every path with that prefix.
        """

    async def close(self) -> None:
        return None
