from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"


def _zone(name: Optional[str]):
    """Return a tzinfo for an IANA name, or UTC when the name is unusable."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError, OSError):
        logger.debug(f"Unknown timezone {name!r}, falling back to UTC")
        return timezone.utc


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name or not isinstance(name, str):
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def resolve_local_date(tz_name: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Calendar date (YYYY-MM-DD) that `now` falls on in the given IANA zone.
    Invalid or empty zone names resolve in UTC instead of raising.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_zone(tz_name)).date().isoformat()


def local_date_days_ago(tz_name: Optional[str], days: int, now: Optional[datetime] = None) -> str:
    """Subtract `days` days from `now` and resolve the result in the zone."""
    if now is None:
        now = datetime.now(timezone.utc)
    return resolve_local_date(tz_name, now - timedelta(days=days))
