from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

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


def local_day_bounds_utc(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    Start and end of the current *local* calendar day, as UTC-naive datetimes.

    Dashboard "today" figures follow the server's local day, while stored
    timestamps are UTC-naive.
    """
    local_now = (now or datetime.now()).astimezone()
    start_local = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_local = start_local + timedelta(days=1) - timedelta(microseconds=1)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def parse_range_bounds(start, end) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Parse an inclusive [start, end] range from ISO strings or datetimes.

    A date-only end ("YYYY-MM-DD") covers that whole day. Raises ValueError
    on unparseable input.
    """
    def _one(value, *, is_end: bool) -> Optional[datetime]:
        if value is None or isinstance(value, datetime):
            return value
        dt = parse_iso_datetime(str(value))
        if dt is not None and is_end and len(str(value).strip()) == 10:
            dt = dt + timedelta(days=1) - timedelta(microseconds=1)
        return dt

    return _one(start, is_end=False), _one(end, is_end=True)
