"""
Obligation Tracker - Obligation Store.

Source of truth for the obligation collection. Enforces the status state
machine:

    pending --toggle--> done --toggle--> pending
    pending --sweep (due_at < now)--> missed --toggle--> done
    any but done --due_at edited--> missed (past) | pending (future / cleared)

``done`` is never produced or overwritten by the sweep.

Every mutation is applied to a copy of the collection, written through the
StoragePort, and only then committed in memory; a failed write leaves the
store exactly as it was after the last successful save.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, time, timedelta
from threading import RLock
from typing import Any, Callable, Mapping

from src.data.models import (
    Obligation,
    ObligationStatus,
    TaskType,
    Urgency,
    ValidationError,
    coerce_enum,
    normalize_duration,
    normalize_title,
    parse_instant,
)
from src.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

UPDATABLE_FIELDS = frozenset({"title", "due_at", "estimated_duration", "urgency"})


def _default_clock() -> datetime:
    from src.config import settings
    return datetime.now(settings.tz)


def _derive_status_for_due(due_at: datetime | None, now: datetime) -> ObligationStatus:
    """Status of a not-done obligation whose due date was just set or cleared."""
    if due_at is not None and due_at < now:
        return ObligationStatus.MISSED
    return ObligationStatus.PENDING


# (title, day offset, hour, minute, task_type, duration)
_SAMPLES: list[tuple[str, int, int, int, str, int | None]] = [
    ("Submit expense report", -3, 17, 0, "business", 30),
    ("Call mom", -2, 19, 0, "personal", 20),
    ("Review contract", -1, 14, 0, "business", 60),
    ("Pick up dry cleaning", 0, 18, 0, "personal", 15),
    ("Team standup meeting", 1, 9, 0, "business", 30),
    ("Buy groceries", 1, 10, 0, "personal", 45),
    ("Dinner with friends", 1, 19, 0, "social", 120),
    ("Doctor appointment", 3, 14, 0, "business", 60),
    ("Gym session", 4, 19, 0, "personal", 90),
    ("Weekend brunch", 5, 11, 0, "social", 90),
    ("Review quarterly report", 6, 16, 0, "business", 120),
    ("Client presentation", 10, 10, 0, "business", 60),
    ("Practice guitar", 11, 20, 0, "personal", 60),
    ("Lunch with colleague", 12, 12, 30, "social", 60),
    ("Submit tax forms", 23, 17, 0, "business", 180),
    ("Dentist cleaning", 28, 9, 0, "business", 60),
    ("Birthday party", 44, 18, 0, "social", 180),
    ("Project deadline", 54, 17, 0, "business", None),
    ("Vacation planning", 69, 10, 0, "personal", 120),
    ("Annual review meeting", 83, 14, 0, "business", 90),
]


class ObligationStore:
    """Serialized, durably-persisted obligation collection."""

    def __init__(self, storage: StoragePort, clock: Clock | None = None) -> None:
        self._storage = storage
        self._clock = clock or _default_clock
        self._lock = RLock()
        self._items: list[Obligation] = storage.load_all()
        logger.info(
            "Obligation store ready: %d obligations (%s backend)",
            len(self._items), getattr(storage, "name", type(storage).__name__),
        )

    @property
    def storage(self) -> StoragePort:
        return self._storage

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        """The current instant according to the store's clock."""
        return self._clock()

    def _now(self, now: datetime | None) -> datetime:
        return now if now is not None else self._clock()

    def _index(self, obligation_id: str) -> int | None:
        for i, ob in enumerate(self._items):
            if ob.id == obligation_id:
                return i
        return None

    def _commit(self, items: list[Obligation]) -> None:
        """Persist ``items`` and adopt them; raises PersistenceError on failure."""
        self._storage.save_all(items)
        self._items = items

    def _working_copy(self) -> list[Obligation]:
        return [ob.copy() for ob in self._items]

    def _sweep(self, items: list[Obligation], now: datetime) -> int:
        """Promote overdue pending obligations to missed. Returns how many changed."""
        changed = 0
        for ob in items:
            if ob.status is ObligationStatus.PENDING and ob.due_at is not None and ob.due_at < now:
                ob.status = ObligationStatus.MISSED
                changed += 1
        return changed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_all(self, now: datetime | None = None) -> list[Obligation]:
        """Return every obligation in insertion order, after the missed sweep.

        The sweep result is persisted before the list is returned.
        """
        with self._lock:
            now = self._now(now)
            items = self._working_copy()
            changed = self._sweep(items, now)
            if changed:
                self._commit(items)
                logger.info("Missed sweep: %d obligation(s) now missed", changed)
            return self._working_copy()

    def get(self, obligation_id: str) -> Obligation | None:
        with self._lock:
            idx = self._index(obligation_id)
            return self._items[idx].copy() if idx is not None else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, candidate: Mapping[str, Any] | Any, now: datetime | None = None) -> Obligation:
        """Create a pending obligation from an extraction result or a mapping.

        Raises ValidationError if the title is empty or a field is malformed.
        """
        data = candidate.model_dump() if hasattr(candidate, "model_dump") else dict(candidate)
        now = self._now(now)
        due_raw = data.get("due_at")

        obligation = Obligation(
            id=uuid.uuid4().hex,
            title=normalize_title(data.get("title")),
            status=ObligationStatus.PENDING,
            created_at=now,
            due_at=parse_instant(due_raw, now.tzinfo) if due_raw else None,
            estimated_duration=normalize_duration(data.get("estimated_duration")),
            urgency=coerce_enum(Urgency, data.get("urgency"), "urgency"),
            task_type=coerce_enum(TaskType, data.get("task_type"), "task_type"),
        )

        with self._lock:
            items = self._working_copy()
            items.append(obligation)
            self._commit(items)
        logger.info("Added obligation %s: %s", obligation.id, obligation.title)
        return obligation.copy()

    def update(
        self,
        obligation_id: str,
        fields: Mapping[str, Any],
        now: datetime | None = None,
    ) -> Obligation | None:
        """Apply a partial update; returns None if the id is unknown.

        When ``due_at`` is among the fields and the obligation is not done,
        its status is re-derived: past -> missed, future or cleared -> pending.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            idx = self._index(obligation_id)
            if idx is None:
                return None

            now = self._now(now)
            items = self._working_copy()
            ob = items[idx]

            if "title" in fields:
                ob.title = normalize_title(fields["title"])
            if "estimated_duration" in fields:
                ob.estimated_duration = normalize_duration(fields["estimated_duration"])
            if "urgency" in fields:
                ob.urgency = coerce_enum(Urgency, fields["urgency"], "urgency")
            if "due_at" in fields:
                raw = fields["due_at"]
                ob.due_at = parse_instant(raw, now.tzinfo) if raw else None
                if ob.status is not ObligationStatus.DONE:
                    ob.status = _derive_status_for_due(ob.due_at, now)

            self._commit(items)
            logger.info("Updated obligation %s (%s)", ob.id, ", ".join(sorted(fields)))
            return ob.copy()

    def toggle_done(self, obligation_id: str) -> Obligation | None:
        """Flip done <-> not done. A missed obligation becomes done; done goes back to pending."""
        with self._lock:
            idx = self._index(obligation_id)
            if idx is None:
                return None
            items = self._working_copy()
            ob = items[idx]
            if ob.status is ObligationStatus.DONE:
                ob.status = ObligationStatus.PENDING
            else:
                ob.status = ObligationStatus.DONE
            self._commit(items)
            logger.info("Toggled obligation %s -> %s", ob.id, ob.status.value)
            return ob.copy()

    def delete(self, obligation_id: str) -> Obligation | None:
        with self._lock:
            idx = self._index(obligation_id)
            if idx is None:
                return None
            items = self._working_copy()
            removed = items.pop(idx)
            self._commit(items)
            logger.info("Deleted obligation %s", removed.id)
            return removed

    def clear_all(self) -> int:
        """Remove every obligation; returns how many were removed."""
        with self._lock:
            count = len(self._items)
            self._commit([])
            logger.info("Cleared %d obligations", count)
            return count

    def load_samples(self, now: datetime | None = None) -> int:
        """Replace the collection with a demo set spread across every horizon."""
        now = self._now(now)
        today = now.date()
        samples: list[Obligation] = []
        for i, (title, days, hour, minute, task_type, duration) in enumerate(_SAMPLES):
            due_at = datetime.combine(today + timedelta(days=days), time(hour, minute), tzinfo=now.tzinfo)
            samples.append(Obligation(
                id=uuid.uuid4().hex,
                title=title,
                status=_derive_status_for_due(due_at, now),
                created_at=now + timedelta(milliseconds=i),
                due_at=due_at,
                estimated_duration=duration,
                urgency=Urgency.NORMAL,
                task_type=TaskType(task_type),
            ))

        with self._lock:
            self._commit(samples)
        logger.info("Loaded %d sample obligations", len(samples))
        return len(samples)
