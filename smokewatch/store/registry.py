"""In-memory Watch-Point Registry with per-address serialisation.

Design notes:
    - The registry is the canonical, address-keyed view of current state.
      At most one WatchPoint exists per address.
    - apply() calls for the same address are serialised by a per-address
      asyncio.Lock.  Different addresses proceed concurrently.
    - Coordinates are resolved once, when an address is first seen, and
      cached on the WatchPoint for the rest of the session.
    - Alerts are appended to the history store BEFORE the in-memory state
      changes.  A failed append leaves the registry untouched, so the live
      view never shows an alert the history does not have.
    - The history store is the source of truth.  rebuild() reconstructs the
      registry from it after a restart.
"""

from __future__ import annotations

import asyncio
import logging

from smokewatch.domain.enums import MergePolicy, PointStatus
from smokewatch.domain.errors import ResolutionError, StorageError
from smokewatch.domain.event import NormalizedEvent
from smokewatch.domain.geo import Coordinates
from smokewatch.domain.history import HistoryEntry
from smokewatch.domain.watch_point import WatchPoint, WatchPointSnapshot
from smokewatch.foundation.addresses import canonical_address
from smokewatch.geocode.resolver import GeocodeResolver
from smokewatch.store.history_store import HistoryStore

logger = logging.getLogger(__name__)


class WatchPointRegistry:
    """Async-safe registry of watch points keyed by address.

    Args:
        resolver: Geocoder used the first time an address is seen.
        history: Append-only log that receives one entry per alert.
        merge_policy: Whether the last applied event or the latest
            timestamp decides current state.
        trust_coordinate_hints: Use coordinates carried by the event instead
            of calling the resolver for a new address.
    """

    def __init__(
        self,
        resolver: GeocodeResolver,
        history: HistoryStore,
        merge_policy: MergePolicy = MergePolicy.LAST_APPLIED,
        trust_coordinate_hints: bool = True,
    ) -> None:
        self._resolver = resolver
        self._history = history
        self._merge_policy = MergePolicy(merge_policy)
        self._trust_hints = trust_coordinate_hints
        self._points: dict[str, WatchPoint] = {}
        self._address_locks: dict[str, asyncio.Lock] = {}

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    # ── Public API ───────────────────────────────────────────────────────

    async def apply(self, event: NormalizedEvent) -> WatchPointSnapshot:
        """Merge *event* into the registry and return the resulting point.

        Raises:
            ResolutionError: A new address could not be geocoded.  Nothing
                is created.
            StorageError: An alert could not be historised.  The registry is
                left exactly as it was.
        """
        async with self._lock_for(event.address):
            point = self._points.get(event.address)

            if point is None:
                coordinates = await self._coordinates_for(event)
                point = WatchPoint.from_event(event, coordinates)
                if event.is_alert:
                    await self._append_history(event)
                self._points[event.address] = point
                logger.info(
                    "Created watch point %s for %r at %s (%s)",
                    point.point_id,
                    point.address,
                    coordinates,
                    point.status.value,
                )
                return point.snapshot()

            if event.is_alert:
                await self._append_history(event)

            if self._merge_policy == MergePolicy.LATEST_TIMESTAMP and point.is_stale(event):
                # the alert is historised, so it still counts
                if event.is_alert:
                    point.alert_count += 1
                logger.info(
                    "Ignoring stale %s event for %r (occurred %s, state from %s)",
                    event.status.value,
                    event.address,
                    event.occurred_at.isoformat(),
                    point.updated_at.isoformat(),
                )
                return point.snapshot()

            point.apply(event)
            logger.debug(
                "Applied %s event to %r (v=%d)",
                event.status.value,
                event.address,
                point.version,
            )
            return point.snapshot()

    async def seed(self, address: str) -> WatchPointSnapshot:
        """Register a clear point for *address* without touching history.

        Existing points are returned unchanged.

        Raises:
            ResolutionError: The address could not be geocoded.
        """
        key = canonical_address(address)
        if not key:
            raise ResolutionError(address, "address is empty")
        async with self._lock_for(key):
            point = self._points.get(key)
            if point is None:
                coordinates = await self._resolver.resolve(key)
                point = WatchPoint(address=key, coordinates=coordinates, status=PointStatus.CLEAR)
                self._points[key] = point
                logger.info("Seeded watch point %s for %r", point.point_id, key)
            return point.snapshot()

    async def rebuild(self) -> int:
        """Reconstruct missing points from the history store.

        For every address with history, the entry with the latest timestamp
        becomes the current (alert) state.  Addresses that are already
        registered, cannot be read, or cannot be geocoded are skipped.

        Returns the number of points restored.
        """
        restored = 0
        for address in sorted(await self._history.list_addresses()):
            async with self._lock_for(address):
                if address in self._points:
                    continue
                try:
                    entries = await self._history.read_all(address)
                except StorageError as exc:
                    logger.warning("Skipping %r during rebuild: %s", address, exc)
                    continue
                if not entries:
                    continue
                latest = max(entries, key=lambda e: e.timestamp)
                try:
                    coordinates = await self._resolver.resolve(address)
                except ResolutionError as exc:
                    logger.warning("Skipping %r during rebuild: %s", address, exc)
                    continue
                point = WatchPoint(
                    address=address,
                    coordinates=coordinates,
                    status=PointStatus.ALERT,
                    updated_at=latest.timestamp,
                    photo=latest.photo,
                )
                point.alert_count = len(entries)
                self._points[address] = point
                restored += 1
        if restored:
            logger.info("Rebuilt %d watch point(s) from history", restored)
        return restored

    def get(self, address: str) -> WatchPointSnapshot | None:
        """Current state of *address*, or None if it was never seen."""
        point = self._points.get(canonical_address(address))
        return point.snapshot() if point else None

    def snapshot(self) -> list[WatchPointSnapshot]:
        """All current points, oldest first, for map markers."""
        points = sorted(self._points.values(), key=lambda p: p.created_at)
        return [p.snapshot() for p in points]

    def count(self) -> int:
        return len(self._points)

    def status_counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in PointStatus}
        for point in self._points.values():
            counts[point.status.value] += 1
        return counts

    async def history(self, address: str) -> list[HistoryEntry]:
        """Persisted alerts for *address*, ordered by timestamp."""
        entries = await self._history.read_all(canonical_address(address))
        return sorted(entries, key=lambda e: e.timestamp)

    # ── Internals ────────────────────────────────────────────────────────

    def _lock_for(self, address: str) -> asyncio.Lock:
        lock = self._address_locks.get(address)
        if lock is None:
            lock = self._address_locks[address] = asyncio.Lock()
        return lock

    async def _coordinates_for(self, event: NormalizedEvent) -> Coordinates:
        """Must be called while holding the address lock."""
        if self._trust_hints and event.coordinates_hint is not None:
            return event.coordinates_hint
        return await self._resolver.resolve(event.address)

    async def _append_history(self, event: NormalizedEvent) -> None:
        entry = HistoryEntry(
            address=event.address,
            photo=event.photo,
            timestamp=event.occurred_at,
        )
        await self._history.append(event.address, entry)
