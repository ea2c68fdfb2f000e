"""REST endpoint for historical statistics.

Path: GET /api/statistics?window_days=7

Recomputes an AggregateSnapshot from the history store on every request.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query

from smokewatch.core.aggregation import AggregationEngine
from smokewatch.domain.errors import StorageError


def create_statistics_router(engine: AggregationEngine) -> APIRouter:
    """Factory that wires the statistics endpoint to an aggregation engine."""

    router = APIRouter(prefix="/api", tags=["statistics"])

    @router.get("/statistics")
    async def get_statistics(
        window_days: Optional[int] = Query(default=None, gt=0, le=366),
    ) -> dict[str, Any]:
        try:
            snapshot = await engine.compute_snapshot(window_days=window_days)
        except StorageError as exc:
            raise HTTPException(status_code=503, detail=exc.reason) from exc
        return {
            **snapshot.model_dump(mode="json"),
            "total_entries": snapshot.total_entries,
            "hour_of_day_counts": snapshot.hour_of_day_counts(),
            "weekday_breakdown": snapshot.weekday_breakdown(),
        }

    return router
