"""Backend error types and error-body parsing."""

from __future__ import annotations

import json


def parse_api_error(text: str) -> str:
    """Pull a human-readable message out of a backend error body.

    JSON strings are returned as-is; JSON objects yield the first string
    among ``error``, ``detail`` and ``message``. Anything else is returned raw.
    """
    try:
        data = json.loads(text)
    except ValueError:
        return text
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        for key in ("error", "detail", "message"):
            if isinstance(data.get(key), str):
                return data[key]
    return text


class BackendError(Exception):
    """Raised when the extraction backend answers with a non-2xx status."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"backend returned {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
