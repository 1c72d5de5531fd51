"""
Obligation Tracker - LLM Extractor.

Turns a free-text obligation ("call dentist tomorrow", "submit taxes mid
April") into a structured record: title, due instant, duration, urgency,
task type and a self-reported confidence.

The prompt is grounded with local calendar facts from the calendar
resolver (today's date and weekday, the zone and offset, the next date of
every weekday and month anchors), so the model copies dates instead of
doing calendar arithmetic itself.

Extraction never raises: a missing API key, a provider error, a timeout or
an unparseable response all produce a low-confidence result that asks the
caller for clarification.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, tzinfo
from enum import Enum

from pydantic import BaseModel, ValidationInfo, field_serializer, field_validator

from src.config import settings
from src.core import calendar_resolver as cal
from src.core.llm import LLMResponseError, LLMUnavailable, complete_json, is_configured
from src.data.models import TaskType, Urgency, format_instant

logger = logging.getLogger(__name__)

_MAX_TITLE_LENGTH = 200


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Shared JSON contract - consumed by ObligationService and the HTTP API
# ---------------------------------------------------------------------------

class ExtractionResult(BaseModel):
    """Structured obligation extracted from natural language.

    JSON example:
    {
        "title": "Call dentist",
        "due_at": "2026-10-20T09:00:00+03:00",
        "estimated_duration": 10,
        "urgency": "normal",
        "task_type": "business",
        "confidence": "high",
        "needs_clarification": false
    }
    """
    title: str = ""
    due_at: datetime | None = None
    estimated_duration: int | None = None
    urgency: Urgency | None = None
    task_type: TaskType | None = None
    confidence: Confidence = Confidence.LOW
    needs_clarification: bool = True

    @field_validator("estimated_duration", mode="before")
    @classmethod
    def _positive_minutes(cls, v: object) -> int | None:
        if v in (None, ""):
            return None
        try:
            minutes = int(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        return minutes if minutes > 0 else None

    @field_validator("urgency", "task_type", mode="before")
    @classmethod
    def _known_or_none(cls, v: object, info: ValidationInfo) -> object:
        # Models occasionally invent labels; drop anything outside the enum
        if isinstance(v, str):
            enum_cls = Urgency if info.field_name == "urgency" else TaskType
            v = v.strip().lower()
            return v if v in {m.value for m in enum_cls} else None
        return v

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip().lower()
            return v if v in {c.value for c in Confidence} else Confidence.MEDIUM
        return v

    @field_validator("due_at", mode="before")
    @classmethod
    def _parseable_due(cls, v: object) -> object:
        if isinstance(v, str):
            raw = v.strip()
            if raw.endswith(("Z", "z")):
                raw = raw[:-1] + "+00:00"
            try:
                return datetime.fromisoformat(raw)
            except ValueError:
                return None
        return v

    @field_serializer("due_at")
    def _serialize_due(self, due_at: datetime | None) -> str | None:
        return format_instant(due_at) if due_at else None


# ---------------------------------------------------------------------------
# System prompt for LLM
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """\
You are a precise obligation parser. Extract structured data from the user's input.
Extract only what is explicitly stated. Never guess dates or times.

Current date/time: {local_date} {local_time}
Timezone: {timezone} (UTC{offset})
Day of week: {weekday}
Tomorrow: {tomorrow}
Next week starts: {next_week}
Next occurrence of each weekday (never today):
{weekday_lines}
Month anchors (first / 15th / last day, already rolled into the future):
{month_lines}

Rules:
1. Title: short imperative phrase, filler removed. Keep urgency markers (ASAP,
   urgent) and appointment times.

2. Urgency:
   - "immediate" for ASAP, urgent, immediately, right now, as soon as possible,
     or calling/emailing to book something happening soon (today, tomorrow,
     this week, within 3 days). Then due_at = "{now_timestamp}" exactly.
   - Otherwise "normal" and due_at is the event/appointment date.

3. Dates (non-urgent): all dates must be in the FUTURE.
   - Bare or "next <weekday>" -> the weekday list above.
   - "this <weekday>" -> this week only; null if already passed.
   - "next <month>" -> that month next calendar year.
   - "mid <month>" -> 15th, "end of <month>" -> last day, "by <month>" or bare -> 1st.
   Use the anchors above; do not compute dates yourself.

4. Time defaults when no time is given:
   - business (calls/emails to companies, meetings, admin) -> 09:00
   - personal (gym, practice, solo work, calls to family/friends) -> 19:00
   - social -> 18:00 for dinner, 12:00 for lunch

5. Duration: estimate minutes only for short tasks (calls, emails, admin),
   otherwise null. Do not invent large durations.

6. Confidence: "high" for explicit or well-defined relative dates, "medium" for
   fuzzy but bounded dates, "low" when the date is unclear or missing.

Return ONLY a JSON object, no markdown:
{{"title": "string", "due_at": "YYYY-MM-DDTHH:MM:SS{offset_iso} or null", \
"task_type": "business" | "personal" | "social", "estimated_duration": integer or null, \
"urgency": "immediate" | "normal", "confidence": "high" | "medium" | "low"}}
Always write due_at in the local timezone with its offset ({offset_iso}).
"""


def _offset_iso(now: datetime) -> str:
    # "+03:00" style, from the aware instant itself
    return format_instant(now)[19:] or "+00:00"


def build_system_prompt(now: datetime) -> str:
    """Render the extraction prompt grounded on ``now``'s local calendar."""
    snap = cal.timezone_snapshot(now)
    next_dates = cal.next_weekday_dates(now)
    weekday_lines = "\n".join(
        f"- {name.capitalize()}: {cal.format_local_date(d)}" for name, d in next_dates.items()
    )
    month_lines = "\n".join(
        "- {m}: {first} / {mid} / {end}".format(
            m=month.capitalize(),
            first=cal.resolve_month_phrase(now, month, "by"),
            mid=cal.resolve_month_phrase(now, month, "mid"),
            end=cal.resolve_month_phrase(now, month, "end"),
        )
        for month in cal.MONTHS
    )
    offset = snap.offset_hours
    offset_str = f"{'+' if offset >= 0 else '-'}{abs(offset):g}"

    return _SYSTEM_PROMPT.format(
        local_date=snap.local_date,
        local_time=snap.local_time,
        timezone=snap.timezone,
        offset=offset_str,
        offset_iso=_offset_iso(now),
        weekday=snap.weekday,
        tomorrow=cal.format_local_date(now.date() + timedelta(days=1)),
        next_week=cal.format_local_date(next_dates["monday"]),
        weekday_lines=weekday_lines,
        month_lines=month_lines,
        now_timestamp=format_instant(now.replace(second=0, microsecond=0)),
    )


# ---------------------------------------------------------------------------
# Response normalization
# ---------------------------------------------------------------------------

def _localize(due_at: datetime | None, tz: tzinfo | None) -> datetime | None:
    """Pin a naive due time to the observer zone, convert an aware one into it."""
    if due_at is None or tz is None:
        return due_at
    if due_at.tzinfo is None:
        return due_at.replace(tzinfo=tz)
    return due_at.astimezone(tz)


def low_confidence(text: str) -> ExtractionResult:
    """The 'needs clarification' outcome: raw text as title, no date."""
    return ExtractionResult(
        title=(text or "").strip()[:_MAX_TITLE_LENGTH],
        confidence=Confidence.LOW,
        needs_clarification=True,
    )


def _to_result(data: dict, text: str, now: datetime) -> ExtractionResult:
    data = dict(data)
    if not data.get("confidence"):
        data["confidence"] = "medium"
    if not data.get("due_at"):
        data["due_at"] = None
    data["title"] = str(data.get("title") or "")

    result = ExtractionResult.model_validate(data)
    result.title = (result.title.strip() or text)[:_MAX_TITLE_LENGTH]
    result.due_at = _localize(result.due_at, now.tzinfo)
    result.needs_clarification = result.confidence is Confidence.LOW or result.due_at is None
    return result


# ---------------------------------------------------------------------------
# Extractor function
# ---------------------------------------------------------------------------

async def extract(text: str, now: datetime | None = None) -> ExtractionResult:
    """Extract a structured obligation from free text using the configured LLM.

    ``needs_clarification`` is True exactly when confidence is low or no
    usable due date came back.
    """
    if not text or not isinstance(text, str) or not text.strip():
        return low_confidence(text if isinstance(text, str) else "")

    text = text.strip()
    if now is None:
        now = datetime.now(settings.tz)

    if not is_configured():
        logger.warning("LLM_API_KEY not set; capture will need clarification")
        return low_confidence(text)

    started = datetime.now()
    try:
        data = await asyncio.wait_for(
            complete_json(
                system=build_system_prompt(now),
                user_message=f'Input: "{text}"',
                max_tokens=512,
            ),
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )
        result = _to_result(data, text, now)
        logger.info(
            "Extracted '%s' due %s (confidence %s) in %.0fms",
            result.title,
            format_instant(result.due_at) if result.due_at else "none",
            result.confidence.value,
            (datetime.now() - started).total_seconds() * 1000,
        )
        return result

    except LLMResponseError as exc:
        logger.error("Unusable LLM response: %s", exc)
    except asyncio.TimeoutError:
        logger.error("LLM call timed out after %ss for input: %s", settings.LLM_TIMEOUT_SECONDS, text[:80])
    except LLMUnavailable as exc:
        logger.warning("LLM unavailable: %s", exc)
    except Exception as exc:
        logger.error("Unexpected error in extract: %s", exc)
    return low_confidence(text)
