"""
Obligation Tracker - UI-Agnostic Obligation Service.

Service layer that orchestrates capture and listing:
extract text -> ask for clarification or add to the store -> return
structured response objects; sweep -> classify into horizons.

Each surface (HTTP API, CLI) calls this service and renders the response
objects its own way. Not-found and needs-clarification are returned as
values; ValidationError and PersistenceError propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from src.core.horizon_classifier import HorizonGroups, classify
from src.data.models import ValidationError

if TYPE_CHECKING:
    from src.core.extractor import ExtractionResult
    from src.core.obligation_store import ObligationStore
    from src.data.models import Obligation

logger = logging.getLogger(__name__)

Extractor = Callable[[str, datetime], Awaitable["ExtractionResult"]]


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ResponseKind(Enum):
    CREATED = "created"
    NEEDS_CLARIFICATION = "needs_clarification"


@dataclass
class ServiceResponse:
    kind: ResponseKind
    message: str


@dataclass
class CreatedResponse(ServiceResponse):
    obligation: Obligation | None = None


@dataclass
class ClarificationResponse(ServiceResponse):
    result: ExtractionResult | None = None


# ---------------------------------------------------------------------------
# ObligationService
# ---------------------------------------------------------------------------


class ObligationService:
    """Orchestrates the extractor, the store and the horizon classifier."""

    def __init__(self, store: ObligationStore, extractor: Extractor | None = None) -> None:
        if extractor is None:
            from src.core.extractor import extract as extractor
        self._store = store
        self._extract = extractor

    @property
    def store(self) -> ObligationStore:
        return self._store

    def _now(self, now: datetime | None) -> datetime:
        return now if now is not None else self._store.now()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def capture(
        self, text: str, followup: str | None = None, now: datetime | None = None,
    ) -> ServiceResponse:
        """Extract an obligation from free text and add it, unless it needs clarification.

        Args:
            text: The user's original phrase.
            followup: Answer to a previous clarification prompt ("tomorrow 5pm");
                appended to ``text`` before extraction. With a follow-up the
                obligation is always added, dated or not.

        Raises ValidationError for empty input and PersistenceError when the
        store cannot save.
        """
        if not text or not text.strip():
            raise ValidationError("Text is required")

        now = self._now(now)
        followup = (followup or "").strip()
        input_text = f"{text.strip()} {followup}" if followup else text.strip()

        result = await self._extract(input_text, now)

        if result.needs_clarification and result.due_at is None and not followup:
            logger.info("Clarification needed for: %s", input_text[:80])
            return ClarificationResponse(
                kind=ResponseKind.NEEDS_CLARIFICATION,
                message="When is this due?",
                result=result,
            )

        if not result.title.strip():
            result.title = text.strip()[:200]

        obligation = self._store.add(result, now=now)
        return CreatedResponse(
            kind=ResponseKind.CREATED,
            message=f"Added: {obligation.title}",
            obligation=obligation,
        )

    # ------------------------------------------------------------------
    # Queries / mutations
    # ------------------------------------------------------------------

    def list_all(self, now: datetime | None = None) -> list[Obligation]:
        return self._store.list_all(now=self._now(now))

    def horizons(self, now: datetime | None = None) -> HorizonGroups:
        """Sweep, then group every obligation into display horizons."""
        now = self._now(now)
        return classify(self._store.list_all(now=now), now)

    def update(
        self, obligation_id: str, fields: Mapping[str, Any], now: datetime | None = None,
    ) -> Obligation | None:
        return self._store.update(obligation_id, fields, now=self._now(now))

    def toggle_done(self, obligation_id: str) -> Obligation | None:
        return self._store.toggle_done(obligation_id)

    def delete(self, obligation_id: str) -> Obligation | None:
        return self._store.delete(obligation_id)

    def clear_all(self) -> int:
        return self._store.clear_all()

    def load_samples(self, now: datetime | None = None) -> int:
        return self._store.load_samples(now=self._now(now))
