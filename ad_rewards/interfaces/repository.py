from abc import ABC, abstractmethod
from typing import Any, List, Optional


class IRepository(ABC):
    @abstractmethod
    async def find(self, **kwargs: Any) -> Optional[Any]:
        ...

    @abstractmethod
    async def existing(self, column: str, values: List[Any]) -> List[Any]:
        ...

    @abstractmethod
    async def commit(self, action: str) -> None:
        ...
