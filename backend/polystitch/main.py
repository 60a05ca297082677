"""
Main application module for the polystitch backend.

This file sets up the FastAPI application, configures CORS so browser
clients can make cross-origin requests and exposes a simple health
check endpoint.  The session and assembly routes are included under
the ``/api`` namespace.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes_sessions import router as sessions_router


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="polystitch")

    # Allow all origins by default.  In production you should restrict
    # this to the domains that are allowed to access your API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(sessions_router, prefix="/api", tags=["sessions"])

    return app


# Uvicorn imports this when running `uvicorn polystitch.main:app`.
app = create_app()
