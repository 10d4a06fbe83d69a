import math
from datetime import datetime
from typing import Optional, Tuple

from ad_rewards.schemas.provider import ProviderConfig
from ad_rewards.schemas.watch import AdmissionDecision, DenyReason, WatchRecord
from ad_rewards.services.session_state import SessionState
from ad_rewards.utils.clock import format_wait


def cooldown_remaining(provider: ProviderConfig, record: Optional[WatchRecord], now: datetime) -> int:
    """Whole seconds left before `provider` may be watched again (0 when free)."""
    if record is None or record.last_watched is None:
        return 0
    elapsed = max((now - record.last_watched).total_seconds(), 0.0)
    if elapsed >= provider.cooldown_seconds:
        return 0
    return math.ceil(provider.cooldown_seconds - elapsed)


def daily_progress(provider: ProviderConfig, record: Optional[WatchRecord], now: datetime) -> Tuple[int, int]:
    watched = record.watched_today_at(now) if record is not None else 0
    return watched, provider.daily_limit


class RateLimitGate:
    """
    Admission decision for a watch attempt. Read only: evaluating never
    changes the record or the session.

    `hourly_limit` is part of the provider configuration but is not
    checked here.
    """

    def evaluate(
            self,
            provider: ProviderConfig,
            watch_record: Optional[WatchRecord],
            session: SessionState,
            now: datetime,
    ) -> AdmissionDecision:
        if not provider.enabled:
            return AdmissionDecision.deny(
                DenyReason.PROVIDER_DISABLED,
                "This ad provider is temporarily unavailable",
            )

        watched, daily_limit = daily_progress(provider, watch_record, now)
        if daily_limit > 0 and watched >= daily_limit:
            return AdmissionDecision.deny(
                DenyReason.DAILY_LIMIT_REACHED,
                "Daily limit reached. Come back tomorrow for more ads!",
            )

        if not session.is_ready(provider.provider_id):
            return AdmissionDecision.deny(
                DenyReason.PROVIDER_NOT_READY,
                "Ad provider is loading... Please wait a moment",
            )

        remaining = cooldown_remaining(provider, watch_record, now)
        if remaining > 0:
            return AdmissionDecision.deny(
                DenyReason.COOLDOWN_ACTIVE,
                f"Please wait {format_wait(remaining)} before watching another ad",
                remaining_seconds=remaining,
            )

        if session.another_in_flight(provider.provider_id):
            return AdmissionDecision.deny(
                DenyReason.ANOTHER_WATCH_IN_PROGRESS,
                "Another ad is in progress. Please complete it first",
            )

        return AdmissionDecision.admit()

    def button_text(self, decision: AdmissionDecision, provider: ProviderConfig, session: SessionState) -> str:
        if session.is_watching(provider.provider_id):
            return "Watching Ad..."
        if decision.admitted:
            return "Watch Now"
        return {
            DenyReason.PROVIDER_DISABLED: "Temporarily Disabled",
            DenyReason.DAILY_LIMIT_REACHED: "Daily Limit Reached",
            DenyReason.PROVIDER_NOT_READY: "Loading...",
            DenyReason.COOLDOWN_ACTIVE: f"Wait {format_wait(decision.remaining_seconds)}",
            DenyReason.ANOTHER_WATCH_IN_PROGRESS: "Another Ad in Progress",
        }[decision.reason]
