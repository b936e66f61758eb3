"""Date helpers for due-date arithmetic."""

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ...core.config import get_timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today_in_timezone(tz: Optional[ZoneInfo] = None, now: Optional[datetime] = None) -> date:
    """Calendar date of *now* in the scheduling timezone (defaults to settings)."""
    tz = tz or get_timezone()
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def utc_midnight(day: date) -> datetime:
    """Start of *day* in UTC; a due date is "reached" at this instant."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
