"""Tests for run staleness and extension signal counting."""

from datetime import datetime, timedelta, timezone

import pytest

from casereview.engine.models import ExtensionSignals, ReconciliationResult, Run

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestRunStaleness:
    def test_active_run_with_old_heartbeat_is_stale(self):
        run = Run(id="r1", status="running", heartbeat_at=NOW - timedelta(minutes=11))
        assert run.is_stale(NOW)

    def test_recent_heartbeat_not_stale(self):
        run = Run(id="r1", status="pending", heartbeat_at=NOW - timedelta(minutes=9))
        assert not run.is_stale(NOW)

    def test_finished_run_never_stale(self):
        run = Run(id="r1", status="success", heartbeat_at=NOW - timedelta(days=3))
        assert not run.is_stale(NOW)

    def test_falls_back_to_started_at(self):
        run = Run(id="r1", status="running", started_at=NOW - timedelta(hours=1))
        assert run.is_stale(NOW)

    def test_no_timestamps(self):
        assert not Run(id="r1", status="running").is_stale(NOW)

    def test_naive_timestamp_treated_as_utc(self):
        run = Run(id="r1", status="running", heartbeat_at=datetime(2026, 3, 1, 11, 0))
        assert run.is_stale(NOW)

    def test_parses_backend_payload(self):
        run = Run.model_validate(
            {"id": "r1", "status": "running", "heartbeat_at": "2026-03-01T11:55:00Z"}
        )
        assert run.is_active
        assert not run.is_stale(NOW)


class TestSignalCount:
    def test_rows_and_singletons(self):
        signals = ExtensionSignals(
            claims=[{}, {}],
            contradiction_matrix=[{}],
            narrative_duality={"plaintiff": "x"},
            citation_fidelity={},
        )
        assert signals.signal_count == 5

    def test_quality_gate_not_counted(self):
        assert ExtensionSignals(quality_gate={"filtered_snippets": 4}).signal_count == 0


def test_empty_result_is_frozen_in_shape():
    result = ReconciliationResult.empty(["r1"])
    assert result.status == "empty"
    assert result.run_id is None
    assert result.signal_count == 0
    assert result.attempted_run_ids == ["r1"]


def test_review_event_is_immutable(sample_graph):
    from casereview.engine.selector import reconcile_graph

    event = reconcile_graph(sample_graph).events[0]
    with pytest.raises(Exception):
        event.summary = "edited"
