"""Geocode resolver protocol plus in-process implementations.

The registry depends on this protocol only.  Swapping implementations
changes where coordinates come from without touching merge logic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Protocol

from smokewatch.domain.errors import ResolutionError
from smokewatch.domain.geo import Coordinates
from smokewatch.foundation.addresses import canonical_address

logger = logging.getLogger(__name__)


class GeocodeResolver(Protocol):
    """Protocol for free-text address → coordinates lookup."""

    async def resolve(self, address: str) -> Coordinates:
        """Return best-match coordinates or raise ResolutionError."""
        ...

    async def aclose(self) -> None:
        """Release any held resources."""
        ...


class StaticResolver:
    """Resolves addresses from a fixed table.  Unknown addresses fail."""

    def __init__(self, table: Mapping[str, Coordinates] | None = None) -> None:
        self._table: dict[str, Coordinates] = {
            canonical_address(k): v for k, v in (table or {}).items()
        }
        self.calls: int = 0

    def add(self, address: str, coordinates: Coordinates) -> None:
        self._table[canonical_address(address)] = coordinates

    async def resolve(self, address: str) -> Coordinates:
        self.calls += 1
        key = canonical_address(address)
        if not key:
            raise ResolutionError(address, "address is empty")
        try:
            return self._table[key]
        except KeyError:
            raise ResolutionError(address, "no match") from None

    async def aclose(self) -> None:
        return None


class CachingResolver:
    """Memoises successful lookups of an inner resolver.

    Failures are not cached so a later event for the same address gets a
    fresh attempt.  Concurrent lookups of one address share a single call.
    """

    def __init__(self, inner: GeocodeResolver) -> None:
        self._inner = inner
        self._cache: dict[str, Coordinates] = {}
        self._inflight: dict[str, asyncio.Future[Coordinates]] = {}

    async def resolve(self, address: str) -> Coordinates:
        key = canonical_address(address)
        if not key:
            raise ResolutionError(address, "address is empty")

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future[Coordinates] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            coords = await self._inner.resolve(key)
        except Exception as exc:
            future.set_exception(exc)
            # mark retrieved so an unobserved failure does not warn on GC
            future.exception()
            raise
        else:
            self._cache[key] = coords
            future.set_result(coords)
            logger.debug("Cached coordinates for %r: %s", key, coords)
            return coords
        finally:
            if not future.done():
                future.cancel()
            self._inflight.pop(key, None)

    @property
    def cached_count(self) -> int:
        return len(self._cache)

    async def aclose(self) -> None:
        await self._inner.aclose()
