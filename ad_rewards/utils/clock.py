"""
Время в опорном часовом поясе (UTC+6), относительно которого считаются
календарные дни и ежедневный сброс в 06:00.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from ad_rewards.core.config import settings

REFERENCE_TZ = timezone(timedelta(hours=settings.RESET_UTC_OFFSET_HOURS))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """ISO string or datetime -> aware datetime (naive values are treated as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def to_reference(moment: datetime) -> datetime:
    return parse_timestamp(moment).astimezone(REFERENCE_TZ)


def reference_date(moment: datetime) -> date:
    return to_reference(moment).date()


def reference_today(now: datetime) -> str:
    """Today's date in the reference timezone, formatted YYYY-MM-DD."""
    return reference_date(now).isoformat()


def same_reference_day(first: Optional[datetime], second: datetime) -> bool:
    if first is None:
        return False
    return reference_date(first) == reference_date(second)


def seconds_until_reset(now: datetime, cutoff_hour: int = None) -> int:
    """Seconds from `now` until the next cutoff hour in the reference timezone."""
    if cutoff_hour is None:
        cutoff_hour = settings.RESET_CUTOFF_HOUR
    local_now = to_reference(now)
    reset_at = local_now.replace(hour=cutoff_hour, minute=0, second=0, microsecond=0)
    if local_now >= reset_at:
        reset_at += timedelta(days=1)
    return int((reset_at - local_now).total_seconds())


def format_countdown(seconds: int) -> str:
    hours, rest = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_wait(seconds: int) -> str:
    """Human readable wait: 45s, 1m 5s."""
    if seconds < 60:
        return f"{seconds}s"
    return f"{seconds // 60}m {seconds % 60}s"
