"""Derived analytics for review triage.

Severity and tags come from keyword matching on the event type and summary.
They are a presentation aid for sorting attention, not a clinical or legal
classifier, and must never be shown as ground truth.
"""

from __future__ import annotations

import math
import re
from typing import Any, Literal

from pydantic import BaseModel, Field

from casereview.engine.linker import collect_citation_ids
from casereview.engine.models import ExtensionSignals, ReconciliationResult, ReviewEvent

Severity = Literal["High", "Medium", "Low"]

HIGH_SEVERITY_TERMS: tuple[str, ...] = (
    "surgery",
    "surgical",
    "procedure",
    "hospital",
    "admission",
    "admitted",
    "emergency",
    "fracture",
    "operative",
    "icu",
)
MEDIUM_SEVERITY_TERMS: tuple[str, ...] = (
    "imaging",
    "mri",
    "x-ray",
    "ct scan",
    "injection",
    "specialist",
    "consult",
    "orthopedic",
    "therapy",
)
TAG_TERMS: dict[str, tuple[str, ...]] = {
    "Emergency": ("emergency", "ed visit", "er visit", "ambulance"),
    "Imaging": ("imaging", "mri", "x-ray", "ct scan", "radiology"),
    "Surgery": ("surgery", "surgical", "operative", "procedure"),
    "Medication": ("medication", "prescribed", "prescription"),
    "Therapy": ("therapy", "chiropract", "rehab"),
    "Pain": ("pain",),
}


class EventInsight(BaseModel):
    event_id: str
    severity: Severity
    tags: list[str] = Field(default_factory=list)
    contradiction_count: int = 0


class CaseAnalytics(BaseModel):
    total_events: int = 0
    anchored_events: int = 0
    coverage_percent: int = 0
    contradicted_events: int = 0
    risk_score: int = 0
    risk_level: Severity = "Low"
    events: list[EventInsight] = Field(default_factory=list)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _term_pattern(terms: tuple[str, ...]) -> re.Pattern[str]:
    # Anchored at word starts so "icu" does not match inside "particular".
    return re.compile(r"\b(?:" + "|".join(map(re.escape, terms)) + ")", re.IGNORECASE)


_HIGH = _term_pattern(HIGH_SEVERITY_TERMS)
_MEDIUM = _term_pattern(MEDIUM_SEVERITY_TERMS)
_TAGS = {tag: _term_pattern(terms) for tag, terms in TAG_TERMS.items()}


def _haystack(event: ReviewEvent) -> str:
    return f"{event.event_type} {event.summary}"


def classify_severity(event: ReviewEvent) -> Severity:
    text = _haystack(event)
    if _HIGH.search(text):
        return "High"
    if _MEDIUM.search(text):
        return "Medium"
    return "Low"


def derive_tags(event: ReviewEvent) -> list[str]:
    text = _haystack(event)
    return [tag for tag, pattern in _TAGS.items() if pattern.search(text)]


def contradiction_counts(
    events: list[ReviewEvent], contradiction_rows: list[dict[str, Any]]
) -> list[int]:
    """Per event, the number of contradiction rows sharing a citation with it."""
    row_ids = [set(collect_citation_ids(row)) for row in contradiction_rows]
    return [sum(1 for ids in row_ids if ids & event.citation_ids) for event in events]


def coverage_percent(anchored: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(anchored / total * 100)


def _filtered_snippets(quality_gate: dict[str, Any] | None) -> int:
    if not quality_gate:
        return 0
    for key in ("filtered_snippets", "filtered_count"):
        value = quality_gate.get(key)
        if isinstance(value, list):
            return len(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return max(value, 0)
    return 0


def risk_score(coverage: int, contradicted_events: int, signals: ExtensionSignals) -> int:
    raw = (
        (100 - coverage) * 0.4
        + contradicted_events * 8
        + len(signals.case_collapse_candidates) * 10
        + len(signals.defense_attack_paths) * 5
        + _filtered_snippets(signals.quality_gate) * 2
    )
    return min(100, round_half_up(raw))


def risk_level(score: int) -> Severity:
    if score >= 60:
        return "High"
    if score >= 30:
        return "Medium"
    return "Low"


def analyze(result: ReconciliationResult) -> CaseAnalytics:
    """Compute coverage, contradiction and risk analytics for a result."""
    events = result.events
    total = len(events)
    anchored = sum(1 for event in events if event.citations)
    coverage = coverage_percent(anchored, total)
    counts = contradiction_counts(events, result.signals.contradiction_matrix)
    contradicted = sum(1 for count in counts if count > 0)
    score = risk_score(coverage, contradicted, result.signals)

    return CaseAnalytics(
        total_events=total,
        anchored_events=anchored,
        coverage_percent=coverage,
        contradicted_events=contradicted,
        risk_score=score,
        risk_level=risk_level(score),
        events=[
            EventInsight(
                event_id=event.id,
                severity=classify_severity(event),
                tags=derive_tags(event),
                contradiction_count=count,
            )
            for event, count in zip(events, counts)
        ],
    )


def focus_citation(events: list[ReviewEvent], citation_id: str) -> ReviewEvent | None:
    """First event owning ``citation_id``, by linear scan."""
    for event in events:
        if any(c.citation_id == citation_id for c in event.citations):
            return event
    return None
