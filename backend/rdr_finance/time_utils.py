from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[str]:
    """
    Validate a calendar date string and return it in canonical YYYY-MM-DD form.

    Entry dates are stored as ISO strings so that report range filters can
    compare them lexicographically. Raises ValueError for malformed input.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    # fromisoformat alone also takes compact forms like 20250105
    if len(s) != 10:
        raise ValueError(f"Invalid date: {s!r}")
    return date.fromisoformat(s).isoformat()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_epoch_ms(dt: Optional[datetime]) -> int:
    """Milliseconds since the epoch; the sort key used by the report ledger."""
    if dt is None:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)
