"""Horizon classifier - groups obligations into display buckets.

One implementation shared by the HTTP API and the CLI. Buckets, in display
order: Missed, Now, Today, This week, Later. Each bucket is sorted by due
instant ascending with undated obligations last.

Priority per obligation:

1. status missed             -> Missed
2. status done               -> excluded
3. no due_at                 -> Later
4. due_at before now         -> Missed (not yet swept)
5. due in under 2 hours      -> Now  (checked before the today boundary)
6. before local midnight +1d -> Today
7. before local midnight +7d -> This week
8. otherwise                 -> Later

Day boundaries are local midnights built from calendar components in the
evaluation instant's zone, not "now + 24h".

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Iterator

from src.core.calendar_resolver import start_of_local_day
from src.data.models import Obligation, ObligationStatus

NOW_WINDOW = timedelta(hours=2)


class Horizon(str, Enum):
    MISSED = "missed"
    NOW = "now"
    TODAY = "today"
    THIS_WEEK = "this_week"
    LATER = "later"


_LABELS = {
    Horizon.MISSED: "Missed",
    Horizon.NOW: "Now",
    Horizon.TODAY: "Today",
    Horizon.THIS_WEEK: "This week",
    Horizon.LATER: "Later",
}


@dataclass
class HorizonGroups:
    """Obligations partitioned by horizon, each list already sorted."""

    missed: list[Obligation] = field(default_factory=list)
    now: list[Obligation] = field(default_factory=list)
    today: list[Obligation] = field(default_factory=list)
    this_week: list[Obligation] = field(default_factory=list)
    later: list[Obligation] = field(default_factory=list)

    def bucket(self, horizon: Horizon) -> list[Obligation]:
        return getattr(self, horizon.value)

    def sections(self) -> Iterator[tuple[str, list[Obligation]]]:
        """Yield (label, items) in display order, skipping empty buckets."""
        for horizon in Horizon:
            items = self.bucket(horizon)
            if items:
                yield _LABELS[horizon], items

    def to_dict(self) -> dict[str, list[dict]]:
        return {h.value: [ob.to_dict() for ob in self.bucket(h)] for h in Horizon}

    def __len__(self) -> int:
        return sum(len(self.bucket(h)) for h in Horizon)


def _between(start: datetime, end: datetime) -> timedelta:
    # Aware datetimes sharing a tzinfo subtract as wall-clock times
    return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)


def bucket_for(obligation: Obligation, now: datetime) -> Horizon | None:
    """Return the horizon for one obligation, or None if it is done."""
    if obligation.status is ObligationStatus.MISSED:
        return Horizon.MISSED
    if obligation.status is ObligationStatus.DONE:
        return None
    if obligation.due_at is None:
        return Horizon.LATER

    due_at = obligation.due_at
    if due_at < now:
        return Horizon.MISSED
    if _between(now, due_at) < NOW_WINDOW:
        return Horizon.NOW
    if due_at < start_of_local_day(now, days=1):
        return Horizon.TODAY
    if due_at < start_of_local_day(now, days=7):
        return Horizon.THIS_WEEK
    return Horizon.LATER


def classify(obligations: Iterable[Obligation], now: datetime) -> HorizonGroups:
    """Partition obligations into horizons as seen at ``now``."""
    groups = HorizonGroups()
    for obligation in obligations:
        horizon = bucket_for(obligation, now)
        if horizon is not None:
            groups.bucket(horizon).append(obligation)

    for horizon in Horizon:
        items = groups.bucket(horizon)
        # stable sort; undated kept in input order after every dated item
        dated = sorted((o for o in items if o.due_at is not None), key=lambda o: o.due_at)
        undated = [o for o in items if o.due_at is None]
        items[:] = dated + undated
    return groups


# ---------------------------------------------------------------------------
# Presentation helper
# ---------------------------------------------------------------------------


def _clock_label(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def _date_label(dt: datetime) -> str:
    return f"{dt.strftime('%b')} {dt.day}"


def describe_due(due_at: datetime | None, now: datetime) -> str:
    """Human label for a due instant relative to ``now``, in now's zone.

    Day differences are counted between local calendar dates, so 23:59
    today and 00:05 tomorrow read as "Today" and "Tomorrow".
    """
    if due_at is None:
        return "No date"

    local_due = due_at.astimezone(now.tzinfo) if now.tzinfo is not None else due_at
    time_str = _clock_label(local_due)
    date_str = _date_label(local_due)

    diff = _between(now, due_at)
    if diff < timedelta(0):
        return f"Overdue: {date_str} {time_str}"

    day_gap = (local_due.date() - now.date()).days
    if day_gap == 0:
        if diff < timedelta(hours=1):
            minutes = int(diff.total_seconds() // 60)
            return f"now ({time_str})" if minutes <= 0 else f"in {minutes}m ({time_str})"
        return f"Today {time_str}"
    if day_gap == 1:
        return f"Tomorrow {time_str}"
    return f"{date_str} {time_str}"
