"""Event linking: raw events to normalized review events with resolved citations.

Citation references are gathered from three independent sources and merged,
not prioritized:

1. ``event.citation_ids``
2. ``fact.citation_id`` / ``fact.citation_ids`` for each fact
3. every citation on each page in ``event.source_page_numbers``
"""

from __future__ import annotations

from typing import Any, Iterable

from casereview.engine.citations import CitationIndex
from casereview.engine.models import Citation, ReviewEvent
from casereview.engine.pages import as_page_number

NO_SUMMARY = "No summary available."
DEFAULT_EVENT_TYPE = "Encounter"
UNDATED = "Undated"

# Field names under which signal rows reference citations.
ROW_CITATION_FIELDS: tuple[str, ...] = (
    "citation_ids",
    "citation_id",
    "citations",
    "supporting_citation_ids",
    "source_citation_ids",
    "evidence_citation_ids",
    "citation_refs",
)


def _ids_from(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    # Numeric ids are indexed by their string form.
    if isinstance(value, int) and not isinstance(value, bool):
        return [str(value)]
    if isinstance(value, dict):
        ref = value.get("citation_id")
        return _ids_from(ref) if isinstance(ref, (str, int)) else []
    if isinstance(value, list):
        ids: list[str] = []
        for item in value:
            ids.extend(_ids_from(item))
        return ids
    return []


def collect_citation_ids(row: Any, fields: Iterable[str] = ROW_CITATION_FIELDS) -> list[str]:
    """Collect citation ids referenced by a loosely-typed row, first-seen order."""
    if not isinstance(row, dict):
        return []
    seen: dict[str, None] = {}
    for name in fields:
        for citation_id in _ids_from(row.get(name)):
            seen.setdefault(citation_id, None)
    return list(seen)


def _candidate_ids(raw: dict[str, Any], index: CitationIndex) -> list[str]:
    seen: dict[str, None] = {}

    for citation_id in _ids_from(raw.get("citation_ids")):
        seen.setdefault(citation_id, None)

    facts = raw.get("facts")
    if isinstance(facts, list):
        for fact in facts:
            for citation_id in collect_citation_ids(fact, ("citation_id", "citation_ids")):
                seen.setdefault(citation_id, None)

    pages = raw.get("source_page_numbers")
    if isinstance(pages, list):
        for page in pages:
            number = as_page_number(page)
            if number is None:
                continue
            for citation_id in index.ids_for_page(number):
                seen.setdefault(citation_id, None)

    return list(seen)


def _citation_sort_key(citation: Citation) -> tuple[str, int, str]:
    page = citation.page_number if citation.page_number is not None else 0
    return (citation.source_document_id, page, citation.citation_id)


def resolve_citations(raw: dict[str, Any], index: CitationIndex) -> list[Citation]:
    """Union, dedupe and resolve an event's citation references.

    Ids missing from the index are dropped without error.
    """
    resolved = [index.by_id[cid] for cid in _candidate_ids(raw, index) if cid in index.by_id]
    return sorted(resolved, key=_citation_sort_key)


def _fact_text(fact: Any) -> str:
    if isinstance(fact, str):
        return fact.strip()
    if isinstance(fact, dict):
        text = fact.get("text")
        if isinstance(text, str):
            return text.strip()
    return ""


def summarize(facts: Any, max_chars: int = 280) -> str:
    summary = ""
    if isinstance(facts, list):
        summary = next((text for text in map(_fact_text, facts) if text), "")
    if not summary:
        return NO_SUMMARY
    if len(summary) > max_chars:
        return summary[: max_chars - 3].rstrip() + "..."
    return summary


def format_event_type(value: Any) -> str:
    """``office_visit`` -> ``Office Visit``; missing types become Encounter."""
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_EVENT_TYPE
    words = value.strip().replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def date_label(raw: dict[str, Any]) -> str:
    """Normalized date first, then the producer's free-text date, then Undated."""
    date = raw.get("date")
    normalized: list[Any] = [raw.get("date_normalized")]
    original: list[Any] = [raw.get("date_text")]
    if isinstance(date, dict):
        normalized = [date.get("normalized"), date.get("value"), *normalized]
        original = [date.get("original_text"), date.get("raw"), *original]
    elif isinstance(date, str):
        normalized.insert(0, date)

    for candidate in (*normalized, *original):
        text = _text(candidate)
        if text:
            return text
    return UNDATED


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def link_event(
    raw: dict[str, Any], position: int, index: CitationIndex, max_summary_chars: int = 280
) -> ReviewEvent:
    event_id = raw.get("event_id") or raw.get("id") or f"event_{position}"
    return ReviewEvent(
        id=str(event_id),
        date_label=date_label(raw),
        event_type=format_event_type(raw.get("event_type")),
        summary=summarize(raw.get("facts"), max_summary_chars),
        confidence=_confidence(raw.get("confidence")),
        citations=resolve_citations(raw, index),
    )


def link_events(
    raw_events: Any, index: CitationIndex, max_summary_chars: int = 280
) -> list[ReviewEvent]:
    """Build the review event list.

    Ordering is lexicographic on ``"{date_label}|{id}"``, so "Undated" events
    interleave alphabetically with real dates rather than sorting to an end.
    """
    if not isinstance(raw_events, list):
        return []
    events = [
        link_event(raw, position, index, max_summary_chars)
        for position, raw in enumerate(raw_events)
        if isinstance(raw, dict)
    ]
    return sorted(events, key=lambda event: f"{event.date_label}|{event.id}")
