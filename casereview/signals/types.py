"""Signal type definitions for reconciliation observability."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SignalType(str, Enum):
    """All signal types emitted while reconciling a matter."""

    RECONCILE_STARTED = "RECONCILE_STARTED"
    CANDIDATE_ATTEMPTED = "CANDIDATE_ATTEMPTED"
    ARTIFACT_UNAVAILABLE = "ARTIFACT_UNAVAILABLE"
    GRAPH_ACCEPTED = "GRAPH_ACCEPTED"
    EARLY_EXIT = "EARLY_EXIT"
    RECONCILE_COMPLETE = "RECONCILE_COMPLETE"
    RECONCILE_EMPTY = "RECONCILE_EMPTY"
    RESULT_DISCARDED = "RESULT_DISCARDED"


class Signal(BaseModel):
    """An immutable signal emitted during a reconciliation.

    Signals are append-only and cannot be modified after emission.
    """

    sequence: int = Field(description="Monotonic sequence number within the matter")
    signal_type: SignalType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    matter_id: str
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}
