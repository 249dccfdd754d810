"""
UTC timestamp helpers.

Every timestamp in a program record is a timezone-aware UTC datetime in
memory and an ISO 8601 string with a ``Z`` suffix on disk and over HTTP.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: Optional[datetime]) -> Optional[str]:
    """
    Render a datetime as ``2025-05-01T12:00:00Z``.

    None passes through so optional fields such as ``expiresAt`` stay null.
    """
    if dt is None:
        return None
    return to_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 string into an aware UTC datetime.

    Accepts the ``Z`` suffix, explicit offsets, naive strings (assumed UTC)
    and bare dates such as the ``lastUpdated`` values of older catalogs.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    return to_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
