"""Candidate run selection.

Runs are tried one at a time in caller order. Each run's graph artifact is
fetched by name first, then through the generic artifact endpoint. The best
moat score seen so far is kept, and scanning stops after the first run whose
graph carries any extension signal.

Fetches are deliberately sequential: fetching ahead would waste requests on
runs the early exit discards.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, Protocol

import httpx

from casereview.backend.errors import BackendError
from casereview.config.settings import ReconcileConfig
from casereview.engine.citations import build_citation_index
from casereview.engine.linker import link_events
from casereview.engine.models import ReconciliationResult, Run
from casereview.engine.pages import build_page_index
from casereview.engine.payload import extract_graph, extract_signals
from casereview.signals.emitter import SignalEmitter
from casereview.signals.types import SignalType
from casereview.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)

EVENT_WEIGHT = 0.001

# Failures that mean "this run has no usable graph" rather than a bug.
RECOVERABLE_FETCH_ERRORS = (httpx.HTTPError, BackendError, ValueError)


class ArtifactSource(Protocol):
    """Read-only access to a run's artifacts, returning parsed JSON bodies."""

    async def fetch_artifact_by_name(self, run_id: str, name: str) -> Any: ...

    async def fetch_artifact(self, run_id: str, artifact_type: str) -> Any: ...


def eligible_run_ids(runs: Iterable[Run], statuses: Iterable[str]) -> list[str]:
    """Ids of runs whose status allows reconciliation, in the given order."""
    allowed = set(statuses)
    return [run.id for run in runs if run.status in allowed]


def moat_score(signal_count: int, event_count: int) -> float:
    return signal_count + event_count * EVENT_WEIGHT


def reconcile_graph(
    graph: dict[str, Any], config: ReconcileConfig | None = None
) -> ReconciliationResult:
    """Turn one evidence graph into a review model. Pure and deterministic."""
    config = config or ReconcileConfig()
    page_index = build_page_index(graph.get("pages"))
    citation_index = build_citation_index(graph.get("citations"), page_index)
    events = link_events(graph.get("events"), citation_index, config.summary_max_chars)
    signals = extract_signals(graph)
    signal_count = signals.signal_count

    return ReconciliationResult(
        status="ready",
        events=events,
        signals=signals,
        score=moat_score(signal_count, len(events)),
        signal_count=signal_count,
        pages_per_document=dict(sorted(page_index.pages_per_document.items())),
    )


class CandidateSelector:
    """Picks the reconciliation result to show for a matter."""

    def __init__(
        self,
        source: ArtifactSource,
        config: ReconcileConfig | None = None,
        emitter: SignalEmitter | None = None,
        matter_id: str = "",
    ) -> None:
        self._source = source
        self._config = config or ReconcileConfig()
        self._matter_id = matter_id
        self._signals = emitter or SignalEmitter(matter_id)

    @property
    def signals(self) -> SignalEmitter:
        return self._signals

    def _attempts(self, run_id: str) -> list[tuple[str, Callable[[], Awaitable[Any]]]]:
        name = self._config.graph_artifact_name
        artifact_type = self._config.fallback_artifact_type
        return [
            (f"by-name/{name}", lambda: self._source.fetch_artifact_by_name(run_id, name)),
            (artifact_type, lambda: self._source.fetch_artifact(run_id, artifact_type)),
        ]

    async def _fetch_graph(self, run_id: str) -> dict[str, Any] | None:
        for source, fetch in self._attempts(run_id):
            await self._signals.emit_candidate_attempted(run_id, source)
            try:
                body = await fetch()
            except RECOVERABLE_FETCH_ERRORS as exc:
                emit_structured_error(
                    logger,
                    code=ErrorCode.ARTIFACT_FETCH_FAILED,
                    message=str(exc) or exc.__class__.__name__,
                    suppressed=True,
                    matter_id=self._matter_id,
                    run_id=run_id,
                    details={"source": source},
                )
                await self._signals.emit(
                    SignalType.ARTIFACT_UNAVAILABLE,
                    {"run_id": run_id, "source": source, "reason": "fetch_failed"},
                )
                continue

            graph = extract_graph(body)
            if graph is None:
                emit_structured_error(
                    logger,
                    code=ErrorCode.ARTIFACT_SHAPE_INVALID,
                    message="artifact has no events at any known nesting level",
                    suppressed=True,
                    matter_id=self._matter_id,
                    run_id=run_id,
                    details={"source": source},
                )
                await self._signals.emit(
                    SignalType.ARTIFACT_UNAVAILABLE,
                    {"run_id": run_id, "source": source, "reason": "no_graph"},
                )
                continue
            return graph
        return None

    async def select(self, run_ids: Iterable[str]) -> ReconciliationResult:
        """Scan runs in order and return the best candidate.

        Returns an ``empty`` result when no run yields a usable graph.
        """
        ordered = list(run_ids)
        await self._signals.emit(SignalType.RECONCILE_STARTED, {"run_ids": ordered})

        best: ReconciliationResult | None = None
        attempted: list[str] = []
        for run_id in ordered:
            attempted.append(run_id)
            graph = await self._fetch_graph(run_id)
            if graph is None:
                continue

            candidate = reconcile_graph(graph, self._config).model_copy(
                update={"run_id": run_id}
            )
            await self._signals.emit_graph_accepted(
                run_id, candidate.score, candidate.signal_count, len(candidate.events)
            )
            if best is None or candidate.score > best.score:
                best = candidate
            if candidate.signal_count > 0:
                await self._signals.emit(
                    SignalType.EARLY_EXIT,
                    {"run_id": run_id, "signal_count": candidate.signal_count},
                )
                break

        if best is None:
            emit_structured_error(
                logger,
                code=ErrorCode.NO_GRAPH_FOUND,
                message="no candidate run yielded a usable evidence graph",
                suppressed=False,
                matter_id=self._matter_id,
                details={"attempted_run_ids": attempted},
            )
            await self._signals.emit(SignalType.RECONCILE_EMPTY, {"runs_attempted": len(attempted)})
            return ReconciliationResult.empty(attempted)

        await self._signals.emit_reconcile_complete(best.run_id, best.score, len(attempted))
        return best.model_copy(update={"attempted_run_ids": attempted})
