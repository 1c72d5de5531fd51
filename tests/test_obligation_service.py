"""Tests for src.core.obligation_service - UI-agnostic service layer.

Tests the ObligationService with an in-memory store and a mocked extractor.
No HTTP or CLI dependency anywhere in this file.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from src.core.extractor import Confidence, ExtractionResult
from src.core.horizon_classifier import HorizonGroups
from src.core.obligation_service import (
    ClarificationResponse,
    CreatedResponse,
    ObligationService,
    ResponseKind,
)
from src.data.models import ObligationStatus, TaskType, ValidationError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_service(store, result=None):
    """Create an ObligationService whose extractor returns ``result``."""
    extractor = AsyncMock(return_value=result or ExtractionResult(title="x"))
    return ObligationService(store, extractor=extractor), extractor


def _dated(now, title="Call dentist", **overrides):
    fields = dict(
        title=title,
        due_at=now + timedelta(days=1),
        confidence=Confidence.HIGH,
        needs_clarification=False,
        task_type=TaskType.BUSINESS,
        estimated_duration=10,
    )
    fields.update(overrides)
    return ExtractionResult(**fields)


# ---------------------------------------------------------------------------
# capture
# ---------------------------------------------------------------------------


class TestCapture:
    @pytest.mark.asyncio
    async def test_dated_result_is_added(self, store, now):
        service, extractor = _make_service(store, _dated(now))
        response = await service.capture("call dentist tomorrow")

        assert isinstance(response, CreatedResponse)
        assert response.kind == ResponseKind.CREATED
        assert response.message == "Added: Call dentist"
        assert response.obligation.status is ObligationStatus.PENDING
        assert response.obligation.task_type is TaskType.BUSINESS
        assert [o.id for o in store.list_all()] == [response.obligation.id]
        extractor.assert_awaited_once_with("call dentist tomorrow", now)

    @pytest.mark.asyncio
    async def test_undated_asks_for_clarification(self, store, memory_storage):
        result = ExtractionResult(title="Fix bike", confidence=Confidence.LOW, needs_clarification=True)
        service, _ = _make_service(store, result)
        response = await service.capture("fix bike")

        assert isinstance(response, ClarificationResponse)
        assert response.kind == ResponseKind.NEEDS_CLARIFICATION
        assert response.message == "When is this due?"
        assert response.result is result
        assert store.list_all() == []
        assert memory_storage.save_count == 0

    @pytest.mark.asyncio
    async def test_low_confidence_with_date_is_added(self, store, now):
        result = _dated(now, confidence=Confidence.LOW, needs_clarification=True)
        service, _ = _make_service(store, result)
        response = await service.capture("call dentist maybe tomorrow")
        assert isinstance(response, CreatedResponse)

    @pytest.mark.asyncio
    async def test_followup_is_appended_and_always_adds(self, store):
        result = ExtractionResult(title="Fix bike", confidence=Confidence.LOW, needs_clarification=True)
        service, extractor = _make_service(store, result)
        response = await service.capture("fix bike", followup="  someday ")

        assert isinstance(response, CreatedResponse)
        assert response.obligation.due_at is None
        assert extractor.await_args.args[0] == "fix bike someday"

    @pytest.mark.asyncio
    async def test_empty_title_uses_text(self, store, now):
        service, _ = _make_service(store, _dated(now, title="  "))
        response = await service.capture("  renew passport ")
        assert response.obligation.title == "renew passport"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   "])
    async def test_empty_text_rejected(self, store, text):
        service, extractor = _make_service(store)
        with pytest.raises(ValidationError, match="Text is required"):
            await service.capture(text)
        extractor.assert_not_called()

    @pytest.mark.asyncio
    async def test_default_extractor_without_llm_key(self, store):
        # Falls back to the real extractor, which skips the LLM when unconfigured
        with patch("src.core.extractor.is_configured", return_value=False):
            service = ObligationService(store)
            response = await service.capture("water plants")
        assert isinstance(response, ClarificationResponse)
        assert response.result.title == "water plants"


# ---------------------------------------------------------------------------
# Listing and horizons
# ---------------------------------------------------------------------------


class TestHorizons:
    def test_horizons_sweep_then_classify(self, store, now):
        service, _ = _make_service(store)
        late = store.add({"title": "Late", "due_at": (now - timedelta(hours=1)).isoformat()})
        soon = store.add({"title": "Soon", "due_at": (now + timedelta(minutes=30)).isoformat()})
        store.add({"title": "Undated"})

        groups = service.horizons()
        assert isinstance(groups, HorizonGroups)
        assert [o.id for o in groups.missed] == [late.id]
        assert groups.missed[0].status is ObligationStatus.MISSED
        assert [o.id for o in groups.now] == [soon.id]
        assert [o.title for o in groups.later] == ["Undated"]
        assert store.get(late.id).status is ObligationStatus.MISSED

    def test_horizons_at_explicit_instant(self, store, now):
        service, _ = _make_service(store)
        store.add({"title": "Next week", "due_at": (now + timedelta(days=8)).isoformat()})
        assert len(service.horizons().later) == 1
        assert len(service.horizons(now=now + timedelta(days=7, hours=23)).now) == 1

    def test_list_all_in_insertion_order(self, store):
        service, _ = _make_service(store)
        for title in ("b", "a"):
            store.add({"title": title})
        assert [o.title for o in service.list_all()] == ["b", "a"]


# ---------------------------------------------------------------------------
# Pass-through mutations
# ---------------------------------------------------------------------------


class TestMutations:
    def test_update_toggle_delete(self, store, now):
        service, _ = _make_service(store)
        ob = store.add({"title": "Task", "due_at": (now + timedelta(days=1)).isoformat()})

        moved = service.update(ob.id, {"due_at": (now - timedelta(days=1)).isoformat()})
        assert moved.status is ObligationStatus.MISSED
        assert service.toggle_done(ob.id).status is ObligationStatus.DONE
        assert service.delete(ob.id).id == ob.id
        assert service.delete(ob.id) is None
        assert service.update(ob.id, {"title": "gone"}) is None
        assert service.toggle_done(ob.id) is None

    def test_clear_and_samples(self, store):
        service, _ = _make_service(store)
        assert service.load_samples() == 20
        assert service.clear_all() == 20
        assert service.list_all() == []
