"""Date-range presets evaluated in a fixed UTC+5:30 frame.

Boundaries are computed by shifting "now" forward by the offset, taking
calendar boundaries in that shifted frame, and shifting back. No timezone
database is consulted, so there is no DST handling.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

IST_OFFSET = timedelta(hours=5, minutes=30)

PRESETS = [
    "All Time",
    "Today",
    "Yesterday",
    "This Week",
    "Last Week",
    "This Month",
    "Last Month",
    "Last 3 Months",
    "Last 30 Days",
    "This Year",
    "Last Year",
    "Custom",
]


@dataclass(frozen=True)
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    @property
    def start_iso(self) -> Optional[str]:
        return to_iso(self.start)

    @property
    def end_iso(self) -> Optional[str]:
        return to_iso(self.end)


def to_iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    return as_utc(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def start_of_ist_day(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc) - IST_OFFSET


def end_of_ist_day(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, 23, 59, 59, 999000, tzinfo=timezone.utc) - IST_OFFSET


def ist_today(now: Optional[datetime] = None) -> date:
    now = as_utc(now or datetime.now(timezone.utc))
    return (now + IST_OFFSET).date()


def _day_range(first: date, last: date) -> DateRange:
    return DateRange(start_of_ist_day(first), end_of_ist_day(last))


def resolve_preset(preset: str, now: Optional[datetime] = None) -> DateRange:
    today = ist_today(now)

    if preset == "Today":
        return _day_range(today, today)
    if preset == "Yesterday":
        y = today - timedelta(days=1)
        return _day_range(y, y)
    if preset == "This Week":
        monday = today - timedelta(days=today.weekday())
        return _day_range(monday, monday + timedelta(days=6))
    if preset == "Last Week":
        monday = today - timedelta(days=today.weekday() + 7)
        return _day_range(monday, monday + timedelta(days=6))
    if preset == "This Month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return _day_range(today.replace(day=1), today.replace(day=last_day))
    if preset == "Last Month":
        ref = today.replace(day=1) - timedelta(days=1)
        return _day_range(ref.replace(day=1), ref)
    if preset == "Last 3 Months":
        end = end_of_ist_day(today)
        return DateRange(end - timedelta(days=89), end)
    if preset == "Last 30 Days":
        end = end_of_ist_day(today)
        return DateRange(end - timedelta(days=29), end)
    if preset == "This Year":
        return _day_range(date(today.year, 1, 1), date(today.year, 12, 31))
    if preset == "Last Year":
        return _day_range(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))
    # "All Time", "Custom" without dates, and unknown labels are unbounded.
    return DateRange()


def custom_range(start: Optional[str], end: Optional[str]) -> DateRange:
    """Interpret ``YYYY-MM-DD`` strings as whole days in the fixed offset."""
    start_ts = start_of_ist_day(date.fromisoformat(start.strip())) if start and start.strip() else None
    end_ts = end_of_ist_day(date.fromisoformat(end.strip())) if end and end.strip() else None
    return DateRange(start_ts, end_ts)


def resolve_range(
    preset: str,
    custom_start: Optional[str] = None,
    custom_end: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> DateRange:
    if preset == "Custom":
        return custom_range(custom_start, custom_end)
    return resolve_preset(preset, now)


def ist_day_key(ts: datetime) -> str:
    return (as_utc(ts) + IST_OFFSET).strftime("%Y-%m-%d")


def utc_month_key(ts: datetime) -> str:
    # Month buckets use plain UTC while day buckets use the +5:30 frame.
    return as_utc(ts).strftime("%Y-%m")
