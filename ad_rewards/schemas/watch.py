"""
Схемы состояния просмотров рекламы и результатов попыток.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ad_rewards.core.exceptions import (
    AnotherWatchInProgress,
    BaseException,
    CooldownActive,
    DailyLimitReached,
    IncompleteWatch,
    ObjectNotFoundException,
    PersistenceFailure,
    ProviderDisabled,
    ProviderNotReady,
    ProviderTimedOut,
)
from ad_rewards.schemas.account import StoreModel
from ad_rewards.schemas.provider import CompletionStyle
from ad_rewards.utils.clock import same_reference_day


class WatchRecord(StoreModel):
    """`watchRecords/{accountId}/{providerId}`"""

    watched_today: int = Field(default=0, ge=0, description="Completed watches today")
    last_watched: Optional[datetime] = Field(default=None, description="Last completed watch")
    last_reset: Optional[datetime] = Field(default=None, description="Last counter reset")

    def watched_today_at(self, now: datetime) -> int:
        """Counter as observed at `now`: a reset from an earlier day reads as zero."""
        if self.is_stale(now):
            return 0
        return self.watched_today

    def is_stale(self, now: datetime) -> bool:
        return self.last_reset is not None and not same_reference_day(self.last_reset, now)


class DenyReason(str, Enum):
    PROVIDER_DISABLED = "provider_disabled"
    DAILY_LIMIT_REACHED = "daily_limit_reached"
    PROVIDER_NOT_READY = "provider_not_ready"
    COOLDOWN_ACTIVE = "cooldown_active"
    ANOTHER_WATCH_IN_PROGRESS = "another_watch_in_progress"


class AdmissionDecision(BaseModel):
    admitted: bool
    reason: Optional[DenyReason] = None
    message: str = ""
    remaining_seconds: int = 0

    @classmethod
    def admit(cls) -> "AdmissionDecision":
        return cls(admitted=True, message="Watch Now")

    @classmethod
    def deny(cls, reason: DenyReason, message: str, remaining_seconds: int = 0) -> "AdmissionDecision":
        return cls(admitted=False, reason=reason, message=message, remaining_seconds=remaining_seconds)

    def to_exception(self) -> Optional[BaseException]:
        if self.admitted:
            return None
        if self.reason == DenyReason.COOLDOWN_ACTIVE:
            return CooldownActive(self.remaining_seconds, detail=self.message)
        exc_class = {
            DenyReason.PROVIDER_DISABLED: ProviderDisabled,
            DenyReason.DAILY_LIMIT_REACHED: DailyLimitReached,
            DenyReason.PROVIDER_NOT_READY: ProviderNotReady,
            DenyReason.ANOTHER_WATCH_IN_PROGRESS: AnotherWatchInProgress,
        }[self.reason]
        return exc_class(detail=self.message)

    def raise_for_denial(self) -> None:
        exc = self.to_exception()
        if exc is not None:
            raise exc


class WatchOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class CompletionResult(BaseModel):
    outcome: WatchOutcome
    reason: str = ""
    elapsed_seconds: float = 0.0

    @property
    def completed(self) -> bool:
        return self.outcome == WatchOutcome.COMPLETED

    def to_exception(self) -> Optional[BaseException]:
        if self.outcome == WatchOutcome.TIMED_OUT:
            return ProviderTimedOut(detail=self.reason or None)
        if self.outcome == WatchOutcome.FAILED:
            if self.reason == "provider not ready":
                return ProviderNotReady()
            return IncompleteWatch(detail=self.reason or None)
        return None


class CreditResult(BaseModel):
    """Result of a credit: `ok` distinguishes a zero reward from a failed write."""

    ok: bool
    amount: float = 0.0
    transaction_id: Optional[str] = None
    watched_today: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def failed(cls, error: str, error_code: str = "persistence_failure") -> "CreditResult":
        return cls(ok=False, error=error, error_code=error_code)

    def to_exception(self) -> Optional[BaseException]:
        if self.ok:
            return None
        if self.error_code == "daily_limit_reached":
            return DailyLimitReached()
        if self.error_code == "account_not_found":
            return ObjectNotFoundException(detail=self.error)
        return PersistenceFailure(detail=self.error)


class Notification(BaseModel):
    type: str = Field(..., description="success, error or info")
    message: str
    created_at: datetime


class WatchResult(BaseModel):
    account_id: str
    provider_id: str
    completion: CompletionResult
    credit: Optional[CreditResult] = None
    commission_paid: bool = False

    @property
    def rewarded(self) -> bool:
        return self.credit is not None and self.credit.ok


class WatchStarted(BaseModel):
    account_id: str
    provider_id: str
    completion_style: CompletionStyle
    minimum_watch_seconds: int
    started_at: datetime


class ProviderStatus(BaseModel):
    provider_id: str
    title: str
    description: str
    reward: float
    admitted: bool
    reason: Optional[DenyReason] = None
    message: str
    button_text: str
    cooldown_remaining: int = 0
    watched: int = 0
    daily_limit: int = 0
    progress: str = Field(..., description="watched / dailyLimit")
    minimum_watch_seconds: int = 0


class DashboardStatus(BaseModel):
    account_id: str
    providers: List[ProviderStatus]
    in_flight_provider: Optional[str] = None
    seconds_until_reset: int
    time_until_reset: str
    last_notification: Optional[Notification] = None


class ClientFailure(BaseModel):
    reason: Optional[str] = Field(None, description="Why the ad was not completed")


class Postback(BaseModel):
    success: bool = Field(True, description="Ad network reported a completed view")
