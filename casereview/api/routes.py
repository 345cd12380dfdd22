"""REST API routes for case review.

Provides endpoints for:
- Listing a matter's extraction runs
- Reconciling the best available evidence graph into a review model
- Focusing the review on a citation
- Requesting reprocessing
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from casereview.api.auth import require_identity
from casereview.api.session_repository import SessionRepository
from casereview.backend.auth import Identity
from casereview.backend.client import BackendClient
from casereview.backend.errors import BackendError
from casereview.config.settings import Settings
from casereview.engine.analytics import CaseAnalytics
from casereview.engine.models import ReconciliationResult
from casereview.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

router = APIRouter()

_settings = Settings()
_sessions = SessionRepository.from_config(_settings.api, _settings.reconcile)
# Overridden in tests with an httpx.MockTransport.
_backend_transport: httpx.AsyncBaseTransport | None = None


def _backend(identity: Identity) -> BackendClient:
    return BackendClient(identity, _settings.backend, transport=_backend_transport)


@contextmanager
def _backend_errors(matter_id: str) -> Iterator[None]:
    """Surface backend failures as HTTP errors with the backend's own detail."""
    try:
        yield
    except BackendError as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.BACKEND_REQUEST_FAILED,
            message=exc.detail,
            suppressed=False,
            matter_id=matter_id,
            details={"status_code": exc.status_code},
        )
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    except httpx.HTTPError as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.BACKEND_REQUEST_FAILED,
            message=str(exc) or exc.__class__.__name__,
            suppressed=False,
            matter_id=matter_id,
        )
        raise HTTPException(status_code=502, detail="Extraction backend unavailable") from exc
    except ValueError as exc:
        emit_structured_error(
            logger,
            code=ErrorCode.BACKEND_REQUEST_FAILED,
            message=str(exc),
            suppressed=False,
            matter_id=matter_id,
        )
        raise HTTPException(status_code=502, detail="Malformed backend response") from exc


# --- Request/Response Models ---


class RunView(BaseModel):
    """A run as shown in the matter's run table."""

    id: str
    status: str
    started_at: datetime | None = None
    heartbeat_at: datetime | None = None
    metrics: dict[str, Any] | None = None
    error_message: str | None = None
    eligible: bool = False
    stale: bool = False


class ReviewResponse(BaseModel):
    """The current review model for a matter."""

    matter_id: str
    generation: int
    superseded: bool = False
    result: ReconciliationResult | None = None
    analytics: CaseAnalytics | None = None
    selected_event_id: str | None = None
    selected_citation_id: str | None = None


class FocusRequest(BaseModel):
    citation_id: str


class FocusResponse(BaseModel):
    event_id: str
    citation_id: str


# --- Endpoints ---


@router.get("/matters/{matter_id}/runs", response_model=list[RunView])
async def list_runs(
    matter_id: str, identity: Identity = Depends(require_identity)
) -> list[RunView]:
    """List a matter's runs, flagging which can be reconciled and which look stuck."""
    eligible = _settings.reconcile.eligible_statuses
    with _backend_errors(matter_id):
        async with _backend(identity) as backend:
            runs = await backend.list_runs(matter_id)
    return [
        RunView(**run.model_dump(), eligible=run.status in eligible, stale=run.is_stale())
        for run in runs
    ]


@router.get("/matters/{matter_id}/review", response_model=ReviewResponse)
async def get_review(
    matter_id: str, identity: Identity = Depends(require_identity)
) -> ReviewResponse:
    """Reconcile the matter's best available evidence graph.

    A result with ``status == "empty"`` means no run produced a usable graph;
    its ``remediation`` says what to do next.
    """
    session = _sessions.get_or_create(identity, matter_id)
    with _backend_errors(matter_id):
        async with _backend(identity) as backend:
            accepted = await session.refresh(backend)

    return ReviewResponse(
        matter_id=matter_id,
        generation=session.generation,
        superseded=accepted is None,
        result=session.result,
        analytics=session.analytics,
        selected_event_id=session.selected_event_id,
        selected_citation_id=session.selected_citation_id,
    )


@router.post("/matters/{matter_id}/review/focus", response_model=FocusResponse)
async def focus_citation(
    matter_id: str, request: FocusRequest, identity: Identity = Depends(require_identity)
) -> FocusResponse:
    """Select the event that owns a citation."""
    session = _sessions.get(identity, matter_id)
    if session is None or session.result is None:
        raise HTTPException(status_code=404, detail=f"No review loaded for matter {matter_id}")

    event = session.focus_citation(request.citation_id)
    if event is None:
        raise HTTPException(
            status_code=404, detail=f"Citation {request.citation_id} not found in review"
        )
    return FocusResponse(event_id=event.id, citation_id=request.citation_id)


@router.get("/matters/{matter_id}/review/signals")
async def get_review_signals(
    matter_id: str, identity: Identity = Depends(require_identity)
) -> list[dict[str, Any]]:
    """Signals emitted while reconciling this matter in the current session."""
    session = _sessions.get(identity, matter_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No review loaded for matter {matter_id}")
    return [s.model_dump(mode="json") for s in session.signals.signals]


@router.post("/matters/{matter_id}/reprocess")
async def reprocess(
    matter_id: str, identity: Identity = Depends(require_identity)
) -> Any:
    """Request a new extraction run for the matter."""
    session = _sessions.get_or_create(identity, matter_id)
    with _backend_errors(matter_id):
        async with _backend(identity) as backend:
            return await session.reprocess(backend)
