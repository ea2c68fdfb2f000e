"""REST endpoint for single-event ingestion.

Path: POST /api/events

    200  accepted
    422  rejected (payload invalid, do not retry)
    503  unresolved / storage_failed (transient, safe to retry)

With ``?wait=false`` the payload is queued for the pipeline workers and
the call answers ``202 queued`` at once.  The outcome is then only visible
through the pipeline counters on /health.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse

from smokewatch.domain.enums import IngestStatus
from smokewatch.services.pipeline import EventPipeline

_STATUS_CODES: dict[IngestStatus, int] = {
    IngestStatus.ACCEPTED: 200,
    IngestStatus.REJECTED: 422,
    IngestStatus.UNRESOLVED: 503,
    IngestStatus.STORAGE_FAILED: 503,
}


def create_events_router(pipeline: EventPipeline) -> APIRouter:
    """Factory that wires the ingestion endpoint to a concrete pipeline."""

    router = APIRouter(prefix="/api", tags=["events"])

    @router.post("/events")
    async def post_event(raw: Any = Body(...), wait: bool = Query(default=True)) -> JSONResponse:
        if not wait:
            await pipeline.submit(raw)
            return JSONResponse(status_code=202, content={"status": "queued"})

        outcome = await pipeline.process(raw)
        return JSONResponse(
            status_code=_STATUS_CODES[outcome.status],
            content=outcome.model_dump(mode="json"),
        )

    return router
