"""
Obligation Tracker - HTTP API.

Thin FastAPI layer over ObligationService. Routing and JSON transport
only: every rule about status, sweeping and horizons lives in src/core.

Error mapping: ValidationError -> 400, unknown id -> 404,
PersistenceError -> 500 with a generic "Failed to ..." message.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Union

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.schemas import (
    CaptureRequest,
    ClarificationOut,
    CountOut,
    HorizonsOut,
    ObligationOut,
    SuccessOut,
    UpdateRequest,
)
from src.config import settings
from src.core.obligation_service import ClarificationResponse, CreatedResponse, ObligationService
from src.data.models import Obligation
from src.data.models import ValidationError as ObligationValidationError
from src.ports.storage_port import PersistenceError

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "obligations", "description": "Capture, list, edit and group obligations."},
]

app = FastAPI(
    title="Obligation Tracker",
    description="Tracks short-lived obligations and groups them into time horizons.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------

_service: ObligationService | None = None
_service_lock = threading.Lock()


def get_service() -> ObligationService:
    """Lazily build the process-wide service from configuration.

    Sync dependencies run in the threadpool, so construction is locked:
    exactly one store may own the data file.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                from src.adapters.storage_factory import create_storage
                from src.core.obligation_store import ObligationStore

                _service = ObligationService(ObligationStore(create_storage()))
                logger.info("Obligation service ready (%s backend)", _service.store.storage.name)
    return _service


def _out(obligation: Obligation) -> ObligationOut:
    return ObligationOut(**obligation.to_dict())


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Obligation not found")


def _failed(action: str, exc: Exception) -> HTTPException:
    logger.error("%s error: %s", action.capitalize(), exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}",
    )


@app.exception_handler(ObligationValidationError)
async def validation_exception_handler(request: Request, exc: ObligationValidationError) -> JSONResponse:
    """Reject one malformed add/update with a 400 and the reason."""
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/", tags=["health"], summary="Health check")
def health(service: ObligationService = Depends(get_service)) -> dict:
    backend = getattr(service.store.storage, "name", "unknown")
    return {"message": "Healthy", "backend": backend}


@app.get("/api/obligations", response_model=List[ObligationOut], tags=["obligations"])
def list_obligations(service: ObligationService = Depends(get_service)) -> List[ObligationOut]:
    """All obligations in insertion order, after the missed sweep."""
    try:
        return [_out(o) for o in service.list_all()]
    except PersistenceError as exc:
        raise _failed("get obligations", exc) from exc


@app.get("/api/obligations/horizons", response_model=HorizonsOut, tags=["obligations"])
def list_horizons(service: ObligationService = Depends(get_service)) -> HorizonsOut:
    """Obligations grouped into missed / now / today / this week / later."""
    try:
        groups = service.horizons()
    except PersistenceError as exc:
        raise _failed("get obligations", exc) from exc
    return HorizonsOut(**groups.to_dict())


@app.post(
    "/api/obligations",
    response_model=Union[ObligationOut, ClarificationOut],
    tags=["obligations"],
)
async def capture_obligation(
    payload: CaptureRequest, service: ObligationService = Depends(get_service),
) -> Union[ObligationOut, ClarificationOut]:
    """Extract an obligation from text; ask for a date when none could be found."""
    if not payload.text or not payload.text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Text is required")

    try:
        response = await service.capture(payload.text, followup=payload.followup)
    except PersistenceError as exc:
        raise _failed("add obligation", exc) from exc

    if isinstance(response, ClarificationResponse):
        return ClarificationOut(result=response.result.model_dump(mode="json"))
    if not isinstance(response, CreatedResponse) or response.obligation is None:
        raise _failed("add obligation", RuntimeError(f"unexpected response {response.kind}"))
    return _out(response.obligation)


@app.patch("/api/obligations/{obligation_id}/toggle", response_model=ObligationOut, tags=["obligations"])
def toggle_obligation(
    obligation_id: str, service: ObligationService = Depends(get_service),
) -> ObligationOut:
    try:
        obligation = service.toggle_done(obligation_id)
    except PersistenceError as exc:
        raise _failed("toggle obligation", exc) from exc
    if obligation is None:
        raise _not_found()
    return _out(obligation)


@app.patch("/api/obligations/{obligation_id}", response_model=ObligationOut, tags=["obligations"])
def update_obligation(
    obligation_id: str,
    payload: UpdateRequest,
    service: ObligationService = Depends(get_service),
) -> ObligationOut:
    """Partial update; editing due_at re-derives status unless the obligation is done."""
    fields = payload.model_dump(exclude_unset=True)
    try:
        obligation = service.update(obligation_id, fields)
    except PersistenceError as exc:
        raise _failed("update obligation", exc) from exc
    if obligation is None:
        raise _not_found()
    return _out(obligation)


# Must be registered before /{obligation_id}
@app.delete("/api/obligations/all", response_model=CountOut, tags=["obligations"])
def clear_obligations(service: ObligationService = Depends(get_service)) -> CountOut:
    try:
        return CountOut(count=service.clear_all())
    except PersistenceError as exc:
        raise _failed("clear obligations", exc) from exc


@app.post("/api/obligations/samples", response_model=CountOut, tags=["obligations"])
def load_samples(service: ObligationService = Depends(get_service)) -> CountOut:
    try:
        return CountOut(count=service.load_samples())
    except PersistenceError as exc:
        raise _failed("load samples", exc) from exc


@app.delete("/api/obligations/{obligation_id}", response_model=SuccessOut, tags=["obligations"])
def delete_obligation(
    obligation_id: str, service: ObligationService = Depends(get_service),
) -> SuccessOut:
    try:
        obligation = service.delete(obligation_id)
    except PersistenceError as exc:
        raise _failed("delete obligation", exc) from exc
    if obligation is None:
        raise _not_found()
    return SuccessOut()
