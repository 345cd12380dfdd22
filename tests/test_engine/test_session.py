"""Tests for review session state and the stale-result guard."""

from __future__ import annotations

import asyncio

import pytest

from casereview.engine.models import ReconciliationResult, Run
from casereview.engine.session import ReviewSession
from casereview.signals.types import SignalType


class GatedSource:
    """Artifact source whose first refresh blocks until released."""

    def __init__(self, slow_graph, fast_graph):
        self.release = asyncio.Event()
        self._graphs = [slow_graph, fast_graph]
        self._list_calls = 0

    async def list_runs(self, matter_id):
        self._list_calls += 1
        return [Run(id=f"run_{self._list_calls}", status="success")]

    async def fetch_artifact_by_name(self, run_id, name):
        if run_id == "run_1":
            await self.release.wait()
            return self._graphs[0]
        return self._graphs[1]

    async def fetch_artifact(self, run_id, artifact_type):
        return None


@pytest.mark.asyncio
async def test_refresh_installs_result_and_analytics(make_source, sample_graph):
    source = make_source(
        {("r2", "by-name"): sample_graph},
        runs=[Run(id="r3", status="running"), Run(id="r2", status="success")],
    )
    session = ReviewSession("matter_1")
    result = await session.refresh(source)

    assert result is session.result
    assert result.run_id == "r2"
    assert session.analytics.total_events == 3
    assert source.fetched_runs() == ["r2"]


@pytest.mark.asyncio
async def test_refresh_with_no_eligible_runs(make_source):
    source = make_source({}, runs=[Run(id="r1", status="failed")])
    session = ReviewSession("matter_1")
    result = await session.refresh(source)

    assert result.status == "empty"
    assert result.remediation == "Re-run extraction"
    assert source.calls == []


@pytest.mark.asyncio
async def test_stale_generation_discarded():
    session = ReviewSession("matter_1")
    first = session.begin()
    second = session.begin()

    newer = ReconciliationResult(run_id="new")
    older = ReconciliationResult(run_id="old")
    assert await session.accept(second, newer)
    assert not await session.accept(first, older)
    assert session.result.run_id == "new"
    assert len(session.signals.of_type(SignalType.RESULT_DISCARDED)) == 1


@pytest.mark.asyncio
async def test_slow_refresh_cannot_overwrite_newer(signal_graph):
    slow = signal_graph(1, events=1)
    fast = signal_graph(2, events=2)
    source = GatedSource(slow, fast)
    session = ReviewSession("matter_1")

    slow_task = asyncio.create_task(session.refresh(source))
    await asyncio.sleep(0)
    fast_result = await session.refresh(source)
    source.release.set()
    slow_result = await slow_task

    assert fast_result is not None
    assert slow_result is None
    assert session.result.run_id == "run_2"
    assert session.generation == 2


@pytest.mark.asyncio
async def test_focus_citation(make_source, sample_graph):
    source = make_source({("r1", "by-name"): sample_graph}, runs=[Run(id="r1", status="success")])
    session = ReviewSession("matter_1")
    await session.refresh(source)

    event = session.focus_citation("c_b14")
    assert event.id == "evt_2"
    assert session.selected_event_id == "evt_2"
    assert session.selected_citation_id == "c_b14"

    assert session.focus_citation("c_unknown") is None
    assert session.selected_event_id is None


@pytest.mark.asyncio
async def test_selection_cleared_when_citation_disappears(make_source, sample_graph, signal_graph):
    source = make_source({("r1", "by-name"): sample_graph}, runs=[Run(id="r1", status="success")])
    session = ReviewSession("matter_1")
    await session.refresh(source)
    session.focus_citation("c_a13")

    source.artifacts = {("r1", "by-name"): signal_graph(1)}
    await session.refresh(source)
    assert session.selected_event_id is None


def test_focus_without_result():
    assert ReviewSession("matter_1").focus_citation("c1") is None


@pytest.mark.asyncio
async def test_reprocess_passes_through(make_source):
    source = make_source({})
    session = ReviewSession("matter_9")
    response = await session.reprocess(source)
    assert source.created == ["matter_9"]
    assert response["status"] == "pending"


@pytest.mark.asyncio
async def test_signal_history_covers_latest_refresh_only(make_source, sample_graph):
    source = make_source({("r1", "by-name"): sample_graph}, runs=[Run(id="r1", status="success")])
    session = ReviewSession("matter_1")
    await session.refresh(source)
    per_refresh = len(session.signals.signals)

    for _ in range(20):
        await session.refresh(source)

    signals = session.signals.signals
    assert len(signals) == per_refresh
    assert signals[0].signal_type == SignalType.RECONCILE_STARTED
    assert signals[0].sequence > per_refresh
