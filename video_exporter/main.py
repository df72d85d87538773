"""FastAPI app entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from video_exporter.core.config import settings
from video_exporter.routers import providers, session, titles
from video_exporter.services.aggregation_session import AggregationSession
from video_exporter.services.ai_gate import AiUnlockGate


def create_app() -> FastAPI:
    """Build FastAPI application."""

    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Video Exporter", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # One operator session per process
    app.state.aggregation = AggregationSession()
    app.state.ai_gate = AiUnlockGate()

    app.include_router(providers.router)
    app.include_router(session.router)
    app.include_router(titles.router)

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
