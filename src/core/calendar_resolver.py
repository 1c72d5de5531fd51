"""Calendar resolver - pure local-calendar arithmetic.

Turns a reference instant into the civil-calendar facts the rest of the
system needs: the local date and time, the zone and its offset, the next
occurrence of every weekday, and concrete dates for month phrases such as
"mid May" or "next March".

"Local" always means the tzinfo carried by the reference instant; callers
build it with ``datetime.now(observer_tz)``. Dates are constructed from
(year, month, day) components and stepped with ``timedelta(days=...)`` on
``date`` objects, never by offsetting epoch seconds, so DST transitions in
the observer's zone cannot shift a result by a day.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from src.data.models import format_instant

__all__ = [
    "WEEKDAYS",
    "MONTHS",
    "CalendarSnapshot",
    "format_instant",
    "format_local_date",
    "next_weekday_dates",
    "parse_local_date",
    "resolve_month_phrase",
    "resolve_this_weekday",
    "start_of_local_day",
    "timezone_snapshot",
]

# Python's date.weekday(): Monday == 0
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

_WEEKDAY_ALIASES = {name[:3]: name for name in WEEKDAYS}
_MONTH_ALIASES = {name[:3]: i + 1 for i, name in enumerate(MONTHS)}
_LOCAL_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII)


@dataclass(frozen=True)
class CalendarSnapshot:
    """Local calendar facts for one reference instant. Never persisted."""

    timezone: str        # IANA name when known, else the zone abbreviation
    offset_hours: float  # e.g. 2.0, -5.0, 5.5
    local_date: str      # YYYY-MM-DD
    local_time: str      # HH:MM, 24h
    weekday: str         # e.g. "Tuesday"


def _local_date(value: datetime | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _weekday_index(name: str) -> int:
    key = name.strip().lower()
    key = _WEEKDAY_ALIASES.get(key[:3], key)
    if key not in WEEKDAYS:
        raise ValueError(f"Unknown weekday: {name!r}")
    return WEEKDAYS.index(key)


def _month_number(month: int | str) -> int:
    if isinstance(month, int):
        if not 1 <= month <= 12:
            raise ValueError(f"Month out of range: {month}")
        return month
    key = month.strip().lower()[:3]
    if key not in _MONTH_ALIASES:
        raise ValueError(f"Unknown month: {month!r}")
    return _MONTH_ALIASES[key]


# ---------------------------------------------------------------------------
# Formatting / parsing
# ---------------------------------------------------------------------------


def format_local_date(value: datetime | date) -> str:
    """Format the local calendar date of an instant (or a date) as YYYY-MM-DD."""
    d = _local_date(value)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_local_date(value: str) -> date:
    """Parse YYYY-MM-DD as a civil date.

    The result is a plain ``date`` with no zone attached, so the host's UTC
    offset cannot move it. Raises ValueError on malformed input.
    """
    match = _LOCAL_DATE_RE.fullmatch(value.strip())
    if match is None:
        raise ValueError(f"Expected YYYY-MM-DD, got {value!r}")
    year, month, day = (int(p) for p in match.groups())
    return date(year, month, day)


# ---------------------------------------------------------------------------
# Weekday / month resolution
# ---------------------------------------------------------------------------


def next_weekday_dates(reference: datetime | date) -> dict[str, date]:
    """Return the next occurrence of each weekday after the reference's local date.

    The gap is always 1 to 7 days: when the reference already falls on a
    weekday, that weekday resolves to the same day next week.
    """
    today = _local_date(reference)
    result: dict[str, date] = {}
    for target, name in enumerate(WEEKDAYS):
        days_until = (target - today.weekday()) % 7 or 7
        result[name] = today + timedelta(days=days_until)
    return result


def resolve_this_weekday(reference: datetime | date, weekday: str) -> date | None:
    """Resolve "this <weekday>" to a date within the current Monday-start week.

    Returns None when that weekday is today or has already passed.
    """
    today = _local_date(reference)
    target = _weekday_index(weekday)
    if target <= today.weekday():
        return None
    return today + timedelta(days=target - today.weekday())


def resolve_month_phrase(
    reference: datetime | date,
    month: int | str,
    qualifier: str = "by",
    next_year: bool = False,
) -> date:
    """Resolve a month phrase to a concrete date.

    qualifier: "mid" -> 15th, "end" -> last day, "by" / "" -> 1st.
    next_year: "next <month>" always means that month of the following
    calendar year. Otherwise a date before the reference rolls forward a year.
    """
    today = _local_date(reference)
    month_no = _month_number(month)
    year = today.year + 1 if next_year else today.year

    def _day_in(y: int) -> date:
        q = (qualifier or "by").strip().lower()
        if q == "mid":
            return date(y, month_no, 15)
        if q == "end":
            return date(y, month_no, calendar.monthrange(y, month_no)[1])
        if q in ("by", "start", "early"):
            return date(y, month_no, 1)
        raise ValueError(f"Unknown month qualifier: {qualifier!r}")

    resolved = _day_in(year)
    if resolved < today:
        resolved = _day_in(year + 1)
    return resolved


def start_of_local_day(instant: datetime, days: int = 0) -> datetime:
    """Local midnight ``days`` days after the instant's local date, in its zone."""
    target = instant.date() + timedelta(days=days)
    return datetime.combine(target, time(0, 0), tzinfo=instant.tzinfo)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def _zone_name(instant: datetime) -> str:
    tz = instant.tzinfo
    if tz is None:
        return "local"
    key = getattr(tz, "key", None)
    if key:
        return key
    return instant.tzname() or "UTC"


def timezone_snapshot(reference: datetime) -> CalendarSnapshot:
    """Collect the local calendar facts for a reference instant."""
    offset = reference.utcoffset()
    offset_hours = offset.total_seconds() / 3600 if offset is not None else 0.0
    return CalendarSnapshot(
        timezone=_zone_name(reference),
        offset_hours=offset_hours,
        local_date=format_local_date(reference),
        local_time=f"{reference.hour:02d}:{reference.minute:02d}",
        weekday=WEEKDAYS[reference.weekday()].capitalize(),
    )
