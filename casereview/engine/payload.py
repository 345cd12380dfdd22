"""Payload normalization for evidence graph artifacts.

The producing system has emitted the graph at three nesting levels over
time. Each level is an extractor tried in order; the first candidate that
carries a non-empty ``events`` list is the graph.
"""

from __future__ import annotations

from typing import Any, Callable

from casereview.engine.models import ROW_COLLECTIONS, SINGLETON_RECORDS, ExtensionSignals

GraphExtractor = Callable[[Any], Any]

# Older producers used these names for the same collections.
_COLLECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "claims": ("claim_rows",),
    "contradiction_matrix": ("contradictions",),
    "quote_lock_rows": ("quote_locks",),
}


def _top_level(document: Any) -> Any:
    return document


def _evidence_graph(document: Any) -> Any:
    if isinstance(document, dict):
        return document.get("evidence_graph")
    return None


def _outputs_evidence_graph(document: Any) -> Any:
    if isinstance(document, dict):
        outputs = document.get("outputs")
        if isinstance(outputs, dict):
            return outputs.get("evidence_graph")
    return None


GRAPH_EXTRACTORS: tuple[GraphExtractor, ...] = (
    _top_level,
    _evidence_graph,
    _outputs_evidence_graph,
)


def _is_graph(candidate: Any) -> bool:
    if not isinstance(candidate, dict):
        return False
    events = candidate.get("events")
    return isinstance(events, list) and len(events) > 0


def extract_graph(document: Any) -> dict[str, Any] | None:
    """Locate the evidence graph within an artifact body.

    Returns None when no nesting level carries a non-empty events list;
    that means "no usable graph", not an error.
    """
    for extractor in GRAPH_EXTRACTORS:
        candidate = extractor(document)
        if _is_graph(candidate):
            return candidate
    return None


def _rows(extensions: dict[str, Any], name: str) -> list[dict[str, Any]]:
    value = extensions.get(name)
    if value is None:
        for alias in _COLLECTION_ALIASES.get(name, ()):
            if alias in extensions:
                value = extensions[alias]
                break
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


def _record(extensions: dict[str, Any], name: str) -> dict[str, Any] | None:
    value = extensions.get(name)
    return value if isinstance(value, dict) else None


def extract_signals(graph: dict[str, Any]) -> ExtensionSignals:
    """Read the named extension collections; malformed containers read as empty."""
    extensions = graph.get("extensions")
    if not isinstance(extensions, dict):
        return ExtensionSignals()

    fields: dict[str, Any] = {name: _rows(extensions, name) for name in ROW_COLLECTIONS}
    for name in SINGLETON_RECORDS:
        fields[name] = _record(extensions, name)
    fields["quality_gate"] = _record(extensions, "quality_gate")
    return ExtensionSignals(**fields)
