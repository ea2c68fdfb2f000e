"""REST endpoints for the live map view.

Paths:
    GET /api/points                     all current watch points
    GET /api/points/{address}           one watch point
    GET /api/points/{address}/history   persisted alerts, oldest first

Pull-based: every call reads the registry (or the history store) afresh.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from smokewatch.domain.errors import StorageError
from smokewatch.store.registry import WatchPointRegistry


def create_points_router(registry: WatchPointRegistry) -> APIRouter:
    """Factory that wires the map endpoints to a concrete registry."""

    router = APIRouter(prefix="/api", tags=["points"])

    @router.get("/points")
    async def list_points() -> dict[str, Any]:
        points = registry.snapshot()
        return {
            "points": [p.model_dump(mode="json") for p in points],
            "count": len(points),
            "status_counts": registry.status_counts(),
        }

    @router.get("/points/{address}")
    async def get_point(address: str) -> dict[str, Any]:
        point = registry.get(address)
        if point is None:
            raise HTTPException(status_code=404, detail=f"No watch point for {address!r}")
        return point.model_dump(mode="json")

    @router.get("/points/{address}/history")
    async def get_history(address: str) -> dict[str, Any]:
        try:
            entries = await registry.history(address)
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=exc.reason) from exc
        return {
            "address": address,
            "entries": [e.to_record() for e in entries],
            "count": len(entries),
        }

    return router
