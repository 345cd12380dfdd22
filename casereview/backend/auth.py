"""Identity scoping and server-to-server auth headers for backend requests.

Every request carries the reviewer's user and firm ids. When a signing
secret of at least 32 characters is configured, requests also carry a
short-lived HS256 token bound to the HTTP method and path.
"""

from __future__ import annotations

import logging
import time

import jwt
from pydantic import BaseModel

from casereview.config.settings import BackendConfig

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class Identity(BaseModel):
    """Who the request is made for. Supplied by the session subsystem."""

    user_id: str
    firm_id: str

    model_config = {"frozen": True}


def sign_internal_jwt(
    identity: Identity, method: str, path: str, config: BackendConfig, now: int | None = None
) -> str | None:
    secret = config.internal_jwt_secret
    if len(secret) < MIN_SECRET_LENGTH:
        logger.warning(
            "API_INTERNAL_JWT_SECRET not set or too short; skipping server-to-server JWT signing"
        )
        return None

    issued_at = int(time.time()) if now is None else now
    claims = {
        "sub": identity.user_id,
        "firm_id": identity.firm_id,
        "iat": issued_at,
        "exp": issued_at + config.internal_jwt_ttl_s,
        "mth": method.upper(),
        "pth": path,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def server_auth_headers(
    identity: Identity, method: str, path: str, config: BackendConfig
) -> dict[str, str]:
    headers = {
        "X-User-Id": identity.user_id,
        "X-Firm-Id": identity.firm_id,
        # Tunnelled dev backends interpose a browser warning page otherwise.
        "ngrok-skip-browser-warning": "true",
    }
    token = sign_internal_jwt(identity, method, path, config)
    if token:
        headers["X-Internal-Auth"] = f"Bearer {token}"
    return headers
