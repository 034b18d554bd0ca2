from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a timestamp for storage. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def resolve_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    name = tz_name or settings.ATTENDANCE_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', falling back to {settings.ATTENDANCE_TIMEZONE}")
        return ZoneInfo(settings.ATTENDANCE_TIMEZONE)


def local_day(value: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar day of ``value`` in the given timezone (midnight truncation)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(resolve_timezone(tz_name)).date()
