"""HTTP client for the extraction backend.

Read paths used by reconciliation:
- GET /matters/{matter_id}/runs
- GET /runs/{run_id}/artifacts/by-name/{name}  (preferred)
- GET /runs/{run_id}/artifacts/{type}          (generic fallback)

Write pass-throughs (reprocess, cancel) are forwarded untouched.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from casereview.backend.auth import Identity, server_auth_headers
from casereview.backend.errors import BackendError, parse_api_error
from casereview.config.settings import BackendConfig
from casereview.engine.models import Run


def _segment(value: str) -> str:
    return quote(value, safe="")


class BackendClient:
    """Identity-scoped async client. Use as an async context manager."""

    def __init__(
        self,
        identity: Identity,
        config: BackendConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._identity = identity
        self._config = config or BackendConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> BackendClient:
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url,
            timeout=self._config.timeout_s,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        signed_path: str | None = None,
        json: Any = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("BackendClient must be used as an async context manager")
        headers = server_auth_headers(
            self._identity, method, signed_path or path, self._config
        )
        response = await self._client.request(method, path, headers=headers, json=json)
        if response.is_error:
            raise BackendError(response.status_code, parse_api_error(response.text))
        return response

    async def list_runs(self, matter_id: str) -> list[Run]:
        """Runs for a matter in backend order (most recent first)."""
        response = await self._request("GET", f"/matters/{_segment(matter_id)}/runs")
        body = response.json()
        if not isinstance(body, list):
            raise ValueError("run list response is not an array")
        return [Run.model_validate(item) for item in body]

    async def fetch_artifact_by_name(self, run_id: str, name: str) -> Any:
        response = await self._request(
            "GET",
            f"/runs/{_segment(run_id)}/artifacts/by-name/{_segment(name)}",
            signed_path=f"/runs/{run_id}/artifacts/by-name/{name}",
        )
        return response.json()

    async def fetch_artifact(self, run_id: str, artifact_type: str) -> Any:
        response = await self._request(
            "GET", f"/runs/{_segment(run_id)}/artifacts/{_segment(artifact_type)}"
        )
        return response.json()

    async def create_run(self, matter_id: str, payload: dict[str, Any] | None = None) -> Any:
        """Ask the backend to run extraction again for a matter."""
        response = await self._request(
            "POST", f"/matters/{_segment(matter_id)}/runs", json=payload or {}
        )
        return response.json() if response.content else {}

    async def cancel_run(self, run_id: str) -> Any:
        response = await self._request("POST", f"/runs/{_segment(run_id)}/cancel")
        return response.json() if response.content else {}
