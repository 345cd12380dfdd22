"""Authentication dependencies for the case review API.

Two checks apply to every review endpoint:
1. API token (CASEREVIEW_API_TOKEN): when set, requests need a matching Bearer token.
2. Identity headers (X-User-Id, X-Firm-Id): supplied by the session subsystem
   and used only to scope backend requests.

When CASEREVIEW_API_TOKEN is not set, token auth is disabled (development mode).
"""

from __future__ import annotations

import os
import secrets

from fastapi import Depends, Header, HTTPException

from casereview.backend.auth import Identity


def _get_api_token() -> str:
    """Read the API token at call time (supports test overrides)."""
    return os.getenv("CASEREVIEW_API_TOKEN", "")


def _get_bearer_token(authorization: str = Header(default="")) -> str:
    """Extract bearer token from Authorization header."""
    if authorization.startswith("Bearer "):
        return authorization[7:]
    return ""


async def require_api_auth(token: str = Depends(_get_bearer_token)) -> str:
    """Dependency that enforces API token authentication."""
    api_token = _get_api_token()
    if not api_token:
        return ""
    if not secrets.compare_digest(token, api_token):
        raise HTTPException(status_code=401, detail="Invalid or missing API token")
    return token


async def require_identity(
    _: str = Depends(require_api_auth),
    x_user_id: str = Header(default=""),
    x_firm_id: str = Header(default=""),
) -> Identity:
    """Dependency that resolves the reviewer identity from request headers."""
    if not x_user_id.strip() or not x_firm_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Identity(user_id=x_user_id.strip(), firm_id=x_firm_id.strip())
