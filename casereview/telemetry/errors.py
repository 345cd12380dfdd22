"""Structured error telemetry helpers."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Canonical error codes for operational telemetry."""

    ARTIFACT_FETCH_FAILED = "ARTIFACT_FETCH_FAILED"
    ARTIFACT_SHAPE_INVALID = "ARTIFACT_SHAPE_INVALID"
    NO_GRAPH_FOUND = "NO_GRAPH_FOUND"
    BACKEND_REQUEST_FAILED = "BACKEND_REQUEST_FAILED"
    STALE_RESULT_DISCARDED = "STALE_RESULT_DISCARDED"
    SIGNAL_SUBSCRIBER_FAILURE = "SIGNAL_SUBSCRIBER_FAILURE"


def emit_structured_error(
    logger: logging.Logger,
    *,
    code: ErrorCode,
    message: str,
    suppressed: bool,
    matter_id: str | None = None,
    run_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a structured telemetry event via logging.

    Suppressed errors were recovered locally and are logged at WARNING;
    everything else is logged at ERROR.
    """
    level = logging.WARNING if suppressed else logging.ERROR
    logger.log(
        level,
        "casereview_error",
        extra={
            "error_code": code,
            "error_message": message,
            "suppressed": suppressed,
            "matter_id": matter_id,
            "run_id": run_id,
            "details": details or {},
        },
    )
