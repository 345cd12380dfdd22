"""Signal emitter for reconciliation progress.

Signals are kept in memory for the lifetime of a review session and
streamed to subscribers. Nothing is written to disk.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from casereview.signals.types import Signal, SignalType
from casereview.telemetry.errors import ErrorCode, emit_structured_error

logger = logging.getLogger(__name__)


class SignalEmitter:
    """Emits and broadcasts signals for a single matter.

    Signals are:
    - Frozen pydantic models
    - Assigned monotonic sequence numbers
    - Delivered to subscribers in emission order
    """

    def __init__(self, matter_id: str) -> None:
        self._matter_id = matter_id
        self._sequence = 0
        self._subscribers: list[Callable[[Signal], Any]] = []
        self._signals: list[Signal] = []
        self._lock = asyncio.Lock()

    @property
    def matter_id(self) -> str:
        return self._matter_id

    @property
    def signals(self) -> list[Signal]:
        """Signals emitted so far, oldest first (copy)."""
        return list(self._signals)

    def subscribe(self, callback: Callable[[Signal], Any]) -> None:
        """Register a sync or async callback for new signals."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Signal], Any]) -> None:
        """Remove a subscriber."""
        self._subscribers = [s for s in self._subscribers if s is not callback]

    def reset(self) -> None:
        """Drop recorded history. Sequence numbers keep increasing."""
        self._signals = []

    def of_type(self, signal_type: SignalType) -> list[Signal]:
        return [s for s in self._signals if s.signal_type == signal_type]

    async def emit(self, signal_type: SignalType, payload: dict[str, Any] | None = None) -> Signal:
        """Record a signal for this matter and broadcast it."""
        async with self._lock:
            self._sequence += 1
            signal = Signal(
                sequence=self._sequence,
                signal_type=signal_type,
                timestamp=datetime.now(timezone.utc),
                matter_id=self._matter_id,
                payload=payload or {},
            )
            self._signals.append(signal)

        await self._broadcast(signal)
        return signal

    async def _broadcast(self, signal: Signal) -> None:
        """Deliver to subscribers in registration order; one failure does not stop the rest."""
        for subscriber in self._subscribers:
            try:
                result = subscriber(signal)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                emit_structured_error(
                    logger,
                    code=ErrorCode.SIGNAL_SUBSCRIBER_FAILURE,
                    message=str(exc),
                    suppressed=True,
                    matter_id=self._matter_id,
                    details={"signal_type": signal.signal_type.value},
                )

    async def emit_candidate_attempted(self, run_id: str, source: str) -> Signal:
        """Convenience: emit a CANDIDATE_ATTEMPTED signal."""
        return await self.emit(
            SignalType.CANDIDATE_ATTEMPTED, {"run_id": run_id, "source": source}
        )

    async def emit_graph_accepted(
        self, run_id: str, score: float, signal_count: int, event_count: int
    ) -> Signal:
        """Convenience: emit a GRAPH_ACCEPTED signal."""
        return await self.emit(
            SignalType.GRAPH_ACCEPTED,
            {
                "run_id": run_id,
                "score": score,
                "signal_count": signal_count,
                "event_count": event_count,
            },
        )

    async def emit_reconcile_complete(
        self, run_id: str | None, score: float, attempted: int
    ) -> Signal:
        """Convenience: emit a RECONCILE_COMPLETE signal."""
        return await self.emit(
            SignalType.RECONCILE_COMPLETE,
            {"run_id": run_id, "score": score, "runs_attempted": attempted},
        )
