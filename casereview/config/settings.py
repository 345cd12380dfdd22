"""Case review configuration settings."""

from __future__ import annotations

import os
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

_DEFAULT_API_URL = "http://localhost:8000"


def _resolve_api_url() -> str:
    return os.getenv("API_URL") or os.getenv("NEXT_PUBLIC_API_URL") or _DEFAULT_API_URL


class BackendConfig(BaseModel):
    """Extraction backend connection settings."""

    model_config = {"validate_default": True}

    api_url: str = Field(default_factory=_resolve_api_url)
    timeout_s: float = Field(
        default_factory=lambda: float(os.getenv("CASEREVIEW_BACKEND_TIMEOUT_S", "30"))
    )
    internal_jwt_secret: str = Field(
        default_factory=lambda: os.getenv("API_INTERNAL_JWT_SECRET", "").strip()
    )
    internal_jwt_ttl_s: int = Field(
        default_factory=lambda: int(os.getenv("API_INTERNAL_JWT_TTL_SECONDS", "60"))
    )

    @field_validator("api_url")
    @classmethod
    def _validate_api_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"Invalid backend API URL: {value}")
        return value.rstrip("/")

    @field_validator("internal_jwt_ttl_s")
    @classmethod
    def _validate_ttl(cls, value: int) -> int:
        if value < 1:
            raise ValueError("API_INTERNAL_JWT_TTL_SECONDS must be >= 1")
        return value


class ReconcileConfig(BaseModel):
    """Evidence graph reconciliation settings."""

    model_config = {"validate_default": True}

    graph_artifact_name: str = "evidence_graph.json"
    fallback_artifact_type: str = "json"
    eligible_statuses: frozenset[str] = frozenset({"success", "partial", "completed"})
    summary_max_chars: int = 280

    @field_validator("summary_max_chars")
    @classmethod
    def _validate_summary_length(cls, value: int) -> int:
        # Room for at least one character plus the ellipsis.
        if value < 4:
            raise ValueError("summary_max_chars must be >= 4")
        return value


class APIConfig(BaseModel):
    """API/security and runtime controls from environment."""

    model_config = {"validate_default": True}

    api_token: str = Field(default_factory=lambda: os.getenv("CASEREVIEW_API_TOKEN", ""))
    allowed_origins: list[str] = Field(
        default_factory=lambda: APIConfig.parse_allowed_origins(
            os.getenv("CASEREVIEW_ALLOWED_ORIGINS", "")
        )
    )
    cors_allow_credentials: bool = Field(
        default_factory=lambda: os.getenv("CASEREVIEW_CORS_ALLOW_CREDENTIALS", "").lower()
        == "true"
    )
    session_retention_limit: int = Field(
        default_factory=lambda: int(os.getenv("CASEREVIEW_SESSION_RETENTION_LIMIT", "200"))
    )
    session_ttl_s: int = Field(
        default_factory=lambda: int(os.getenv("CASEREVIEW_SESSION_TTL_SECONDS", "3600"))
    )
    log_level: str = Field(default_factory=lambda: os.getenv("CASEREVIEW_LOG_LEVEL", "INFO"))

    @staticmethod
    def parse_allowed_origins(value: str) -> list[str]:
        if not value.strip():
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        origins = [origin.strip() for origin in value.split(",") if origin.strip()]
        if "*" in origins:
            raise ValueError("CASEREVIEW_ALLOWED_ORIGINS cannot include '*'")
        return origins

    @field_validator("allowed_origins")
    @classmethod
    def _validate_allowed_origins(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("allowed_origins cannot be empty")
        for origin in value:
            parsed = urlparse(origin)
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValueError(f"Invalid CORS origin: {origin}")
        return value

    @field_validator("session_retention_limit")
    @classmethod
    def _validate_retention_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("CASEREVIEW_SESSION_RETENTION_LIMIT must be >= 1")
        return value


class Settings(BaseModel):
    """Root configuration for the case review service."""

    backend: BackendConfig = Field(default_factory=BackendConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    api: APIConfig = Field(default_factory=APIConfig)
