"""
Time utilities for fyarb.

Chain time is unix seconds (block timestamps, pool maturities). Datetimes
are only used for display and are always UTC.
"""

from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY


def now_utc() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def from_unix(ts: int) -> datetime:
    """Unix seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def format_timestamp(dt: Optional[datetime] = None, fmt: str = "iso") -> str:
    """
    Format datetime to string.

    Args:
        dt: Datetime to format. Uses current UTC time if not provided.
        fmt: Format type - 'iso', 'display', 'date', 'time'

    Returns:
        Formatted string
    """
    if dt is None:
        dt = now_utc()

    formats = {
        "iso": "%Y-%m-%dT%H:%M:%SZ",
        "display": "%Y-%m-%d %H:%M:%S",
        "date": "%Y-%m-%d",
        "time": "%H:%M:%S",
    }

    return dt.strftime(formats.get(fmt, fmt))


def format_unix(ts: int, fmt: str = "display") -> str:
    """Format unix seconds for tables and log lines."""
    return format_timestamp(from_unix(ts), fmt)

