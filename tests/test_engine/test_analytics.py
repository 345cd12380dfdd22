"""Tests for derived coverage, contradiction and risk analytics."""

from __future__ import annotations

import pytest

from casereview.engine.analytics import (
    analyze,
    classify_severity,
    contradiction_counts,
    coverage_percent,
    derive_tags,
    focus_citation,
    risk_level,
    risk_score,
    round_half_up,
)
from casereview.engine.models import Citation, ExtensionSignals, ReconciliationResult, ReviewEvent
from casereview.engine.selector import reconcile_graph


def _event(event_id: str, event_type: str = "Encounter", summary: str = "", cites=()):
    return ReviewEvent(
        id=event_id,
        date_label="Undated",
        event_type=event_type,
        summary=summary,
        citations=[
            Citation(citation_id=cid, source_document_id="d1", page_number=1) for cid in cites
        ],
    )


class TestCoverage:
    def test_zero_events(self):
        assert coverage_percent(0, 0) == 0

    def test_rounds_half_up(self):
        assert coverage_percent(1, 8) == 13  # 12.5
        assert coverage_percent(2, 3) == 67
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3


class TestContradictions:
    def test_counts_rows_intersecting_event_citations(self):
        events = [_event("e1", cites=["c1", "c2"]), _event("e2", cites=["c3"]), _event("e3")]
        rows = [
            {"citation_ids": ["c1"]},
            {"citations": [{"citation_id": "c2"}, "c3"]},
            {"supporting_citation_ids": ["c9"]},
        ]
        assert contradiction_counts(events, rows) == [2, 1, 0]

    def test_no_rows(self):
        assert contradiction_counts([_event("e1", cites=["c1"])], []) == [0]


class TestSeverityAndTags:
    @pytest.mark.parametrize(
        ("event_type", "summary", "expected"),
        [
            ("Surgery", "", "High"),
            ("Encounter", "Admitted to HOSPITAL overnight", "High"),
            ("Imaging Study", "MRI ordered", "Medium"),
            ("Office Visit", "Follow-up, stable", "Low"),
        ],
    )
    def test_severity(self, event_type, summary, expected):
        assert classify_severity(_event("e", event_type, summary)) == expected

    def test_tags(self):
        event = _event("e", "Er Visit", "Emergency department; prescribed medication for pain")
        assert derive_tags(event) == ["Emergency", "Medication", "Pain"]

    def test_no_tags(self):
        assert derive_tags(_event("e", "Encounter", "Routine check")) == []


class TestRisk:
    def test_risk_score_components(self):
        signals = ExtensionSignals(
            case_collapse_candidates=[{}],
            defense_attack_paths=[{}, {}],
            quality_gate={"filtered_snippets": 3},
        )
        # 50 * 0.4 + 1 * 8 + 10 + 10 + 6
        assert risk_score(50, 1, signals) == 54

    def test_risk_score_capped(self):
        signals = ExtensionSignals(case_collapse_candidates=[{}] * 20)
        assert risk_score(0, 0, signals) == 100

    def test_quality_gate_list_counts(self):
        signals = ExtensionSignals(quality_gate={"filtered_count": [1, 2]})
        assert risk_score(100, 0, signals) == 4

    @pytest.mark.parametrize(("score", "level"), [(0, "Low"), (29, "Low"), (30, "Medium"), (60, "High")])
    def test_risk_level(self, score, level):
        assert risk_level(score) == level


class TestAnalyze:
    def test_sample_graph(self, sample_graph):
        analytics = analyze(reconcile_graph(sample_graph))
        assert analytics.total_events == 3
        assert analytics.anchored_events == 2
        assert analytics.coverage_percent == 67
        assert analytics.contradicted_events == 2
        assert analytics.risk_score == 29
        assert analytics.risk_level == "Low"

        insights = {insight.event_id: insight for insight in analytics.events}
        assert insights["evt_1"].severity == "High"
        assert insights["evt_1"].contradiction_count == 1
        assert insights["evt_2"].severity == "Medium"
        assert insights["evt_2"].tags == ["Imaging"]
        assert insights["evt_3"].severity == "Low"
        assert insights["evt_3"].contradiction_count == 0

    def test_empty_result(self):
        analytics = analyze(ReconciliationResult.empty([]))
        assert analytics.total_events == 0
        assert analytics.coverage_percent == 0
        assert analytics.events == []


class TestFocusCitation:
    def test_first_owner_wins(self):
        events = [_event("e1", cites=["c1"]), _event("e2", cites=["c2", "c1"])]
        assert focus_citation(events, "c1").id == "e1"
        assert focus_citation(events, "c2").id == "e2"

    def test_unknown_citation(self):
        assert focus_citation([_event("e1", cites=["c1"])], "c9") is None
