"""smokewatch — Watch-Point State Reconciliation and Aggregation Engine.

This is the application entry point.  It builds the ServiceContainer
(resolver, history store, normalizer, registry, aggregation engine and
pipeline) and exposes them through HTTP and WebSocket routes.  The
container lives exactly as long as the application's lifespan.

Run with:
    uvicorn smokewatch.main:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from smokewatch.api.events import create_events_router
from smokewatch.api.points import create_points_router
from smokewatch.api.statistics import create_statistics_router
from smokewatch.api.ws_event import create_event_socket_router
from smokewatch.config import Settings, settings as default_settings
from smokewatch.services.container import ServiceContainer, build_services

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """Build a FastAPI app around one ServiceContainer."""
    settings = settings or default_settings
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await services.startup()
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(
        title=settings.app_name,
        description="Watch-point state reconciliation and aggregation engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # ── Routes ───────────────────────────────────────────────────────────

    app.include_router(create_event_socket_router(services.pipeline))
    app.include_router(create_events_router(services.pipeline))
    app.include_router(create_points_router(services.registry))
    app.include_router(create_statistics_router(services.aggregation))

    # ── Health ───────────────────────────────────────────────────────────

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "watch_points": services.registry.count(),
            "status_counts": services.registry.status_counts(),
            "merge_policy": services.registry.merge_policy.value,
            "pipeline_running": services.pipeline.running,
            "queued_events": services.pipeline.queued,
            "outcomes": services.pipeline.stats.to_dict(),
            "adapters": services.normalizer.stats,
            "total_normalized": services.normalizer.total_accepted,
            "total_rejected": services.normalizer.total_rejected,
        }

    return app
