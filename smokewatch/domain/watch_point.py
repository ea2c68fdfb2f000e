"""WatchPoint — the canonical, address-keyed state of a monitored location.

A WatchPoint carries exactly one current status.  Its identity (``point_id``),
natural key (``address``) and ``coordinates`` are fixed at creation; only the
status fields move as events are applied.

Thread-safety note:
    WatchPoint objects are mutated *only* while the caller holds the
    registry's per-address lock.  They are not themselves locked.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from smokewatch.domain.enums import PointStatus
from smokewatch.domain.event import NormalizedEvent
from smokewatch.domain.geo import Coordinates
from smokewatch.foundation.clock import utc_now
from smokewatch.foundation.identifiers import new_id


class WatchPointSnapshot(BaseModel):
    """Immutable copy of a WatchPoint handed to callers outside the registry."""

    id: str
    address: str
    coordinates: Coordinates
    status: PointStatus
    updated_at: datetime
    photo: Optional[str] = None
    created_at: datetime
    version: int
    alert_count: int

    model_config = {"frozen": True}


class WatchPoint:
    """A mutable watch point owned by the registry."""

    __slots__ = (
        "point_id",
        "address",
        "coordinates",
        "status",
        "updated_at",
        "photo",
        "created_at",
        "version",
        "alert_count",
    )

    def __init__(
        self,
        address: str,
        coordinates: Coordinates,
        status: PointStatus = PointStatus.CLEAR,
        updated_at: datetime | None = None,
        photo: str | None = None,
        point_id: str | None = None,
    ) -> None:
        self.point_id: str = point_id or new_id()
        self.address: str = address
        self.coordinates: Coordinates = coordinates
        self.status: PointStatus = status
        self.updated_at: datetime = updated_at or utc_now()
        self.photo: str | None = photo
        self.created_at: datetime = utc_now()
        self.version: int = 1
        self.alert_count: int = 1 if status == PointStatus.ALERT else 0

    @classmethod
    def from_event(cls, event: NormalizedEvent, coordinates: Coordinates) -> "WatchPoint":
        """Build a brand-new point whose state reflects *event*."""
        return cls(
            address=event.address,
            coordinates=coordinates,
            status=event.status,
            updated_at=event.occurred_at,
            photo=event.photo if event.is_alert else None,
        )

    # ── Mutation ─────────────────────────────────────────────────────────

    def apply(self, event: NormalizedEvent) -> None:
        """Overwrite status fields from *event*.  Identity never changes."""
        self.status = event.status
        self.updated_at = event.occurred_at
        if event.is_alert:
            self.photo = event.photo
            self.alert_count += 1
        self.version += 1

    # ── Queries ──────────────────────────────────────────────────────────

    def is_stale(self, event: NormalizedEvent) -> bool:
        """True if *event* happened before the state already held."""
        return event.occurred_at < self.updated_at

    def snapshot(self) -> WatchPointSnapshot:
        return WatchPointSnapshot(
            id=self.point_id,
            address=self.address,
            coordinates=self.coordinates,
            status=self.status,
            updated_at=self.updated_at,
            photo=self.photo,
            created_at=self.created_at,
            version=self.version,
            alert_count=self.alert_count,
        )

    def __repr__(self) -> str:
        return (
            f"WatchPoint(id={self.point_id}, address={self.address!r}, "
            f"status={self.status.value}, v={self.version})"
        )
