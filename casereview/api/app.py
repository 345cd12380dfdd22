"""FastAPI application entry point for case review."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from casereview.api.routes import router
from casereview.config.settings import APIConfig

VERSION = "1.0.0"


def create_app(config: APIConfig | None = None) -> FastAPI:
    """Factory function for creating the FastAPI application."""
    config = config or APIConfig()
    logging.getLogger("casereview").setLevel(config.log_level.upper())

    app = FastAPI(
        title="Case Review",
        description="Evidence graph reconciliation for case review",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "casereview", "version": VERSION}

    return app


app = create_app()
