"""Review session state for one matter.

Each refresh takes a new generation number before its first await. When a
refresh resolves, its result is only accepted if no newer refresh has
started since; otherwise it is discarded so a slow, stale response can
never overwrite a newer one.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from casereview.config.settings import ReconcileConfig
from casereview.engine.analytics import CaseAnalytics, analyze, focus_citation
from casereview.engine.models import ReconciliationResult, ReviewEvent, Run
from casereview.engine.selector import ArtifactSource, CandidateSelector, eligible_run_ids
from casereview.signals.emitter import SignalEmitter
from casereview.signals.types import SignalType
from casereview.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)


class ReviewBackend(ArtifactSource, Protocol):
    async def list_runs(self, matter_id: str) -> list[Run]: ...

    async def create_run(self, matter_id: str, payload: dict[str, Any] | None = None) -> Any: ...


class ReviewSession:
    """The current reconciliation result and selection for a matter."""

    def __init__(self, matter_id: str, config: ReconcileConfig | None = None) -> None:
        self._matter_id = matter_id
        self._config = config or ReconcileConfig()
        self._signals = SignalEmitter(matter_id)
        self._generation = 0
        self._result: ReconciliationResult | None = None
        self._analytics: CaseAnalytics | None = None
        self._selected_event_id: str | None = None
        self._selected_citation_id: str | None = None

    @property
    def matter_id(self) -> str:
        return self._matter_id

    @property
    def signals(self) -> SignalEmitter:
        return self._signals

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def result(self) -> ReconciliationResult | None:
        return self._result

    @property
    def analytics(self) -> CaseAnalytics | None:
        return self._analytics

    @property
    def selected_event_id(self) -> str | None:
        return self._selected_event_id

    @property
    def selected_citation_id(self) -> str | None:
        return self._selected_citation_id

    def begin(self) -> int:
        """Start a new reconciliation and return its generation.

        Signal history covers the latest reconciliation only.
        """
        self._generation += 1
        self._signals.reset()
        return self._generation

    async def accept(self, generation: int, result: ReconciliationResult) -> bool:
        """Install ``result`` if ``generation`` is still the latest.

        The previous result is replaced wholesale, never patched.
        """
        if generation != self._generation:
            emit_structured_error(
                logger,
                code=ErrorCode.STALE_RESULT_DISCARDED,
                message="reconciliation superseded by a newer request",
                suppressed=True,
                matter_id=self._matter_id,
                run_id=result.run_id,
                details={"generation": generation, "latest": self._generation},
            )
            await self._signals.emit(
                SignalType.RESULT_DISCARDED,
                {"generation": generation, "latest": self._generation},
            )
            return False

        self._result = result
        self._analytics = analyze(result)
        if self._selected_citation_id is not None:
            self.focus_citation(self._selected_citation_id)
        return True

    async def refresh(self, backend: ReviewBackend) -> ReconciliationResult | None:
        """Fetch the matter's runs and reconcile the best available graph.

        Returns the accepted result, or None if a newer refresh superseded it.
        """
        generation = self.begin()
        runs = await backend.list_runs(self._matter_id)
        run_ids = eligible_run_ids(runs, self._config.eligible_statuses)
        selector = CandidateSelector(backend, self._config, self._signals, self._matter_id)
        result = await selector.select(run_ids)
        if await self.accept(generation, result):
            return result
        return None

    def focus_citation(self, citation_id: str) -> ReviewEvent | None:
        """Select the first event that owns ``citation_id``.

        An unknown citation clears the selection.
        """
        events = self._result.events if self._result else []
        event = focus_citation(events, citation_id)
        if event is None:
            self._selected_event_id = None
            self._selected_citation_id = None
            return None
        self._selected_event_id = event.id
        self._selected_citation_id = citation_id
        return event

    async def reprocess(self, backend: ReviewBackend) -> Any:
        """Ask the backend for a fresh extraction run; pass-through only."""
        return await backend.create_run(self._matter_id)
