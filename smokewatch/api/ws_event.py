"""WebSocket endpoint for raw event ingestion.

Path: /ws/event

Accepts raw JSON payloads (flat data dicts or notification envelopes),
runs each through the EventPipeline and answers with one outcome per
message.  A bad payload never closes the connection.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from smokewatch.services.pipeline import EventPipeline

logger = logging.getLogger(__name__)


def create_event_socket_router(pipeline: EventPipeline) -> APIRouter:
    """Factory that wires the event socket to a concrete pipeline."""

    router = APIRouter()

    @router.websocket("/ws/event")
    async def ingest_events(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Event source connected")

        try:
            while True:
                try:
                    raw = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json({
                        "status": "rejected",
                        "detail": "message is not valid JSON",
                    })
                    continue

                outcome = await pipeline.process(raw)
                await websocket.send_json(outcome.model_dump(mode="json"))

        except WebSocketDisconnect:
            logger.info("Event source disconnected")

    return router
