"""Review model types: runs, citations, events, and the reconciliation result."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

ACTIVE_STATUSES = frozenset({"pending", "running"})
STALE_AFTER = timedelta(minutes=10)

ROW_COLLECTIONS: tuple[str, ...] = (
    "claims",
    "causation_chains",
    "case_collapse_candidates",
    "defense_attack_paths",
    "objection_profiles",
    "evidence_upgrade_recommendations",
    "quote_lock_rows",
    "contradiction_matrix",
)
SINGLETON_RECORDS: tuple[str, ...] = ("narrative_duality", "citation_fidelity")


class Run(BaseModel):
    """One extraction attempt for a matter, as reported by the backend."""

    id: str
    status: str
    started_at: datetime | None = None
    heartbeat_at: datetime | None = None
    metrics: dict[str, Any] | None = None
    error_message: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_stale(self, now: datetime | None = None) -> bool:
        """An active run whose last heartbeat is older than STALE_AFTER."""
        if not self.is_active:
            return False
        last_seen = self.heartbeat_at or self.started_at
        if last_seen is None:
            return False
        if last_seen.tzinfo is None:
            last_seen = last_seen.replace(tzinfo=timezone.utc)
        now = now or datetime.now(timezone.utc)
        return now - last_seen > STALE_AFTER


class Page(BaseModel):
    """A page of the packet, identified by its global page number."""

    source_document_id: str
    page_number: int


class Citation(BaseModel):
    """A citation anchored to a page of one source document.

    ``page_number`` is local to the document; ``global_page_number`` keeps
    the packet-wide number the producer emitted.
    """

    citation_id: str
    source_document_id: str
    page_number: int | None = None
    global_page_number: int | None = None
    snippet: str | None = None
    document_page_count: int | None = None

    model_config = {"frozen": True}


class ReviewEvent(BaseModel):
    """A normalized event with its resolved, deduplicated citations."""

    id: str
    date_label: str
    event_type: str
    summary: str
    confidence: float = 0.0
    citations: list[Citation] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def citation_ids(self) -> set[str]:
        return {c.citation_id for c in self.citations}


class ExtensionSignals(BaseModel):
    """Loosely-typed analytical collections attached to an evidence graph.

    Rows are passed through as-is; only their container shape is enforced.
    """

    claims: list[dict[str, Any]] = Field(default_factory=list)
    causation_chains: list[dict[str, Any]] = Field(default_factory=list)
    case_collapse_candidates: list[dict[str, Any]] = Field(default_factory=list)
    defense_attack_paths: list[dict[str, Any]] = Field(default_factory=list)
    objection_profiles: list[dict[str, Any]] = Field(default_factory=list)
    evidence_upgrade_recommendations: list[dict[str, Any]] = Field(default_factory=list)
    quote_lock_rows: list[dict[str, Any]] = Field(default_factory=list)
    contradiction_matrix: list[dict[str, Any]] = Field(default_factory=list)
    narrative_duality: dict[str, Any] | None = None
    citation_fidelity: dict[str, Any] | None = None
    quality_gate: dict[str, Any] | None = None

    @property
    def signal_count(self) -> int:
        """Total rows across collections, plus one per present singleton."""
        rows = sum(len(getattr(self, name)) for name in ROW_COLLECTIONS)
        singletons = sum(1 for name in SINGLETON_RECORDS if getattr(self, name) is not None)
        return rows + singletons


class ReconciliationResult(BaseModel):
    """The chosen candidate for a matter, rebuilt from scratch on every fetch."""

    status: Literal["ready", "empty"] = "ready"
    run_id: str | None = None
    events: list[ReviewEvent] = Field(default_factory=list)
    signals: ExtensionSignals = Field(default_factory=ExtensionSignals)
    score: float = 0.0
    signal_count: int = 0
    pages_per_document: dict[str, int] = Field(default_factory=dict)
    attempted_run_ids: list[str] = Field(default_factory=list)
    reason: str | None = None
    remediation: str | None = None

    @classmethod
    def empty(cls, attempted_run_ids: list[str]) -> ReconciliationResult:
        return cls(
            status="empty",
            attempted_run_ids=attempted_run_ids,
            reason="No extracted graph found",
            remediation="Re-run extraction",
        )
