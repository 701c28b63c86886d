from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is interpreted as midnight UTC of that day
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


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


def end_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.max)


def resolve_report_range(
    start: Optional[datetime], end: Optional[datetime]
) -> tuple[datetime, datetime]:
    """
    Default report window: the last 30 days through the end of today.

    The end bound always covers its whole day (inclusive).
    """
    now = utcnow()
    if end is None:
        end = now
    if start is None:
        start = now - timedelta(days=30)
    return start, end_of_day(end)


def day_key(dt: datetime) -> str:
    """Calendar day (UTC) as YYYY-MM-DD, used for daily report buckets."""
    return dt.date().isoformat()


def compact_date(d: date) -> str:
    return d.strftime("%Y%m%d")


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.min)
