"""
Obligation Tracker - Data Models.

An obligation is the only persistent entity: a short-lived task with an
optional due instant. Every timestamp is timezone-aware and serialized as
ISO-8601 with an explicit UTC offset, so a round-trip through any storage
back-end never reinterprets it through a different offset.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any


class ValidationError(ValueError):
    """Raised when an add/update carries empty or malformed fields."""


class ObligationStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    MISSED = "missed"


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    NORMAL = "normal"


class TaskType(str, Enum):
    BUSINESS = "business"
    PERSONAL = "personal"
    SOCIAL = "social"


def parse_instant(value: datetime | str, default_tz: tzinfo | None = None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing "Z" means UTC. A naive value is pinned to ``default_tz``
    (the observer's zone); without one it is rejected.

    Raises ValidationError on malformed input.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValidationError(f"Invalid timestamp type: {type(value).__name__}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        if default_tz is None:
            raise ValidationError(f"Timestamp has no UTC offset: {value!r}")
        dt = dt.replace(tzinfo=default_tz)
    return dt


def format_instant(dt: datetime) -> str:
    """Render an aware datetime as ISO-8601 with an explicit offset (never "Z")."""
    return dt.isoformat(timespec="seconds")


def coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of {allowed}; got {value!r}") from exc


def normalize_title(value: Any) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError("title must not be empty")
    return title


def normalize_duration(value: Any) -> int | None:
    """Accept a positive whole number of minutes, or None."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("estimated_duration must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"estimated_duration must be a positive integer; got {value!r}")
    return value


@dataclass
class Obligation:
    """A trackable task or reminder.

    ``status`` follows the pending/done/missed state machine enforced by
    ObligationStore; a ``missed`` obligation always has a ``due_at``.
    """

    id: str
    title: str
    status: ObligationStatus
    created_at: datetime
    due_at: datetime | None = None
    estimated_duration: int | None = None     # minutes
    urgency: Urgency | None = None
    task_type: TaskType | None = None

    def copy(self) -> Obligation:
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "due_at": format_instant(self.due_at) if self.due_at else None,
            "estimated_duration": self.estimated_duration,
            "urgency": self.urgency.value if self.urgency else None,
            "task_type": self.task_type.value if self.task_type else None,
            "status": self.status.value,
            "created_at": format_instant(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict, default_tz: tzinfo | None = None) -> Obligation:
        """Build an Obligation from its stored/serialized form.

        Raises ValidationError if a required field is missing or malformed.
        """
        if not data.get("id"):
            raise ValidationError("obligation is missing an id")
        due_raw = data.get("due_at")
        created_raw = data.get("created_at")
        status = coerce_enum(ObligationStatus, data.get("status"), "status") or ObligationStatus.PENDING
        if status is ObligationStatus.MISSED and not due_raw:
            raise ValidationError(f"obligation {data['id']} is missed but has no due_at")
        return cls(
            id=str(data["id"]),
            title=normalize_title(data.get("title")),
            status=status,
            created_at=parse_instant(created_raw, default_tz or timezone.utc)
            if created_raw
            else datetime.now(timezone.utc),
            due_at=parse_instant(due_raw, default_tz) if due_raw else None,
            estimated_duration=normalize_duration(data.get("estimated_duration")),
            urgency=coerce_enum(Urgency, data.get("urgency"), "urgency"),
            task_type=coerce_enum(TaskType, data.get("task_type"), "task_type"),
        )
