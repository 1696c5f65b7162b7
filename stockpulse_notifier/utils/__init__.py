"""Utility helpers."""

from .locks import KeyedLock, LockTimeoutError
from .timestamps import ensure_utc, format_timestamp, parse_iso_datetime, utc_now

__all__ = [
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    # Locks
    "KeyedLock",
    "LockTimeoutError",
]
