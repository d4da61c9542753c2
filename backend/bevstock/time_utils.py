from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app


DATE_FILTERS = (
    "today",
    "yesterday",
    "day_before",
    "7days",
    "this_week",
    "last_week",
    "week_before_last",
    "month",
    "last_30_days",
    "last_90_days",
    "all",
)


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
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


def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_date(now_utc: datetime, tz: ZoneInfo) -> date:
    """Calendar date of a UTC-naive instant as seen in tz."""
    return now_utc.replace(tzinfo=timezone.utc).astimezone(tz).date()


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    [start, end) of a local calendar day, as UTC-naive datetimes.

    End is the next local midnight, so DST days come out 23 or 25 hours long.
    """
    start_local = datetime(day.year, day.month, day.day, tzinfo=tz)
    nxt = day + timedelta(days=1)
    end_local = datetime(nxt.year, nxt.month, nxt.day, tzinfo=tz)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def resolve_date_range(
    filter_name: str, now_utc: datetime, tz: ZoneInfo
) -> tuple[datetime, datetime] | None:
    """
    Map a named history filter to a [start, end) UTC-naive range.

    Returns None for "all". Weeks start on Monday.
    """
    if filter_name not in DATE_FILTERS:
        raise ValueError(f"unknown date filter: {filter_name}")
    if filter_name == "all":
        return None

    today = local_date(now_utc, tz)

    if filter_name == "today":
        first, last = today, today
    elif filter_name == "yesterday":
        first = last = today - timedelta(days=1)
    elif filter_name == "day_before":
        first = last = today - timedelta(days=2)
    elif filter_name == "7days":
        first, last = today - timedelta(days=7), today
    elif filter_name in ("this_week", "last_week", "week_before_last"):
        weeks_back = {"this_week": 0, "last_week": 1, "week_before_last": 2}[filter_name]
        first = today - timedelta(days=today.weekday(), weeks=weeks_back)
        last = first + timedelta(days=6)
    elif filter_name in ("month", "last_30_days"):
        first, last = today - timedelta(days=30), today
    else:  # last_90_days
        first, last = today - timedelta(days=90), today

    start, _ = local_day_bounds(first, tz)
    _, end = local_day_bounds(last, tz)
    return start, end


def report_zone() -> ZoneInfo:
    """Zone of the deployment's local reference time (REPORT_TIMEZONE)."""
    return get_zone(current_app.config.get("REPORT_TIMEZONE", "UTC"))


def resolve_window(
    *,
    date_filter: Optional[str],
    start: Optional[datetime],
    end: Optional[datetime],
    now_utc: datetime,
    tz: ZoneInfo,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """A named filter wins over explicit bounds; either bound may be open."""
    if date_filter:
        rng = resolve_date_range(date_filter, now_utc, tz)
        return rng if rng is not None else (None, None)
    return start, end
