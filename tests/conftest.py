"""Shared fixtures: a recording artifact source and a sample evidence graph."""

from __future__ import annotations

import copy
from typing import Any

import pytest


class FakeArtifactSource:
    """In-memory artifact source that records every fetch.

    ``artifacts`` maps ``(run_id, "by-name" | "type")`` to a body, or to an
    exception instance that the fetch raises.
    """

    def __init__(self, artifacts: dict[tuple[str, str], Any], runs: list[Any] | None = None):
        self.artifacts = artifacts
        self.runs = runs or []
        self.calls: list[tuple[str, str]] = []
        self.created: list[str] = []

    def _answer(self, run_id: str, kind: str) -> Any:
        self.calls.append((run_id, kind))
        body = self.artifacts.get((run_id, kind))
        if isinstance(body, Exception):
            raise body
        return copy.deepcopy(body)

    async def fetch_artifact_by_name(self, run_id: str, name: str) -> Any:
        return self._answer(run_id, "by-name")

    async def fetch_artifact(self, run_id: str, artifact_type: str) -> Any:
        return self._answer(run_id, "type")

    async def list_runs(self, matter_id: str) -> list[Any]:
        return list(self.runs)

    async def create_run(self, matter_id: str, payload: dict[str, Any] | None = None) -> Any:
        self.created.append(matter_id)
        return {"id": f"run_for_{matter_id}", "status": "pending"}

    def fetched_runs(self) -> list[str]:
        seen: dict[str, None] = {}
        for run_id, _ in self.calls:
            seen.setdefault(run_id, None)
        return list(seen)


@pytest.fixture
def make_source():
    return FakeArtifactSource


def graph_with_signals(signal_rows: int, events: int = 1) -> dict[str, Any]:
    return {
        "events": [
            {"event_id": f"e{i}", "citation_ids": ["c1"], "facts": [{"text": f"Fact {i}"}]}
            for i in range(events)
        ],
        "citations": [{"citation_id": "c1", "source_document_id": "d1", "page_number": 1}],
        "pages": [{"source_document_id": "d1", "page_number": 1}],
        "extensions": {"claims": [{"claim": f"claim {i}"} for i in range(signal_rows)]},
    }


@pytest.fixture
def signal_graph():
    return graph_with_signals


@pytest.fixture
def sample_graph() -> dict[str, Any]:
    """Two documents interleaved across five global pages."""
    return {
        "pages": [
            {"source_document_id": "doc_b", "page_number": 14},
            {"source_document_id": "doc_a", "page_number": 10},
            {"source_document_id": "doc_a", "page_number": 11},
            {"source_document_id": "doc_b", "page_number": 12},
            {"source_document_id": "doc_a", "page_number": 13},
        ],
        "citations": [
            {"citation_id": "c_a10", "source_document_id": "doc_a", "page_number": 10,
             "snippet": "Patient presented to the emergency department."},
            {"citation_id": "c_a13", "source_document_id": "doc_a", "page_number": 13},
            {"citation_id": "c_b12", "source_document_id": "doc_b", "page_number": 12},
            {"citation_id": "c_b14", "source_document_id": "doc_b", "page_number": 14},
            {"citation_id": "c_b14_2", "source_document_id": "doc_b", "page_number": 14},
            {"source_document_id": "doc_a", "page_number": 11, "snippet": "no id"},
        ],
        "events": [
            {
                "event_id": "evt_2",
                "event_type": "imaging_study",
                "date": {"normalized": "2023-01-18", "original_text": "Jan 18"},
                "confidence": 91,
                "facts": [{"text": "MRI lumbar spine ordered.", "citation_id": "c_b12"}],
                "source_page_numbers": [14],
            },
            {
                "event_id": "evt_1",
                "event_type": "er_visit",
                "date": {"normalized": "2023-01-15"},
                "confidence": 98,
                "facts": [
                    {"text": "   "},
                    {"text": "Presented to emergency department after collision.",
                     "citation_ids": ["c_a10", "c_missing"]},
                ],
                "citation_ids": ["c_a13", "c_a10"],
            },
            {
                "event_id": "evt_3",
                "facts": [],
                "source_page_numbers": [11],
            },
        ],
        "extensions": {
            "claims": [{"claim": "Neck injury", "citation_ids": ["c_a10"]}],
            "contradiction_matrix": [
                {"topic": "pain level", "citations": [{"citation_id": "c_a10"}, "c_b12"]},
                {"topic": "onset", "supporting_citation_ids": ["c_zzz"]},
            ],
            "narrative_duality": {"plaintiff": "...", "defense": "..."},
            "quote_lock_rows": "not a list",
            "citation_fidelity": ["not", "an", "object"],
        },
    }
