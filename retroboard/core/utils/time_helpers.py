"""Clock helpers shared by the expiry gate and the client."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expiry_from(start: datetime, days: int) -> datetime:
    """The expiry instant for a session touched at ``start``."""
    return as_utc(start) + timedelta(days=days)


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    True once ``expires_at`` lies in the past.

    Sessions without an expiry never expire. For a fixed ``expires_at`` the
    result is monotonic in ``now``.
    """
    if expires_at is None:
        return False
    return as_utc(expires_at) < as_utc(now or utcnow())
