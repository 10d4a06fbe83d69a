from datetime import datetime, timezone
from typing import Any, Dict, Generic, TypeVar
from typing import Optional

from pydantic import BaseModel, Field

T = TypeVar("T")


class IResponseBase(BaseModel, Generic[T]):
    message: str = ""
    meta: Optional[Dict[str, Any]] = {}
    query_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Optional[T] = None


class IGetResponseBase(IResponseBase[T], Generic[T]):
    message: str = "Success"
    data: Optional[T] = None


class IPostResponseBase(IResponseBase[T], Generic[T]):
    message: str = "Created successfully"


class IAcceptedResponseBase(IResponseBase[T], Generic[T]):
    message: str = "Accepted"
