from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

import pytz


DEFAULT_BUSINESS_TZ = "America/Chicago"


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
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
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


def parse_ymd(value) -> Optional[date]:
    """YYYY-MM-DD (or a date) -> date; blank or malformed -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_end(week_start: date) -> date:
    return week_start + timedelta(days=6)


def add_business_days(d: date, days: int) -> date:
    """Step over Saturdays and Sundays; negative `days` walks backwards."""
    step = 1 if days >= 0 else -1
    remaining = abs(days)
    current = d
    while remaining:
        current += timedelta(days=step)
        if current.weekday() < 5:
            remaining -= 1
    return current


class BusinessClock:
    """
    Resolves "now", "today" and week anchors in the configured business timezone.

    `now` may be injected (a callable returning an aware or UTC-naive datetime)
    so tests can pin the calendar.
    """

    def __init__(self, tz_name: str = DEFAULT_BUSINESS_TZ, now: Callable[[], datetime] | None = None):
        self.tz_name = tz_name
        self.tz = pytz.timezone(tz_name)
        self._now = now or utcnow

    def now(self) -> datetime:
        """Current instant as naive UTC."""
        return parse_iso_datetime(self._now())

    def ymd_in_zone(self, dt: datetime | None = None, tz_name: str | None = None) -> str:
        tz = pytz.timezone(tz_name) if tz_name else self.tz
        dt = dt if dt is not None else self.now()
        if dt.tzinfo is None:
            dt = pytz.utc.localize(dt)
        return dt.astimezone(tz).date().isoformat()

    def today(self, tz_name: str | None = None) -> date:
        return date.fromisoformat(self.ymd_in_zone(tz_name=tz_name))

    def today_iso(self) -> str:
        return self.today().isoformat()

    def monday_of(self, d: date | None = None, tz_name: str | None = None) -> date:
        return monday_of(d if d is not None else self.today(tz_name=tz_name))

    def week_end(self, week_start: date) -> date:
        return week_end(week_start)
