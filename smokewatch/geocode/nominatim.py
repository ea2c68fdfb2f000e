"""NominatimResolver — async geocoding against an OpenStreetMap Nominatim API.

Only the first/best match is used.  Every failure mode (empty input, zero
matches, HTTP error, transport error, malformed coordinates, timeout) is
reported as ResolutionError so the caller can discard the event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from smokewatch.domain.errors import ResolutionError
from smokewatch.domain.geo import Coordinates
from smokewatch.foundation.addresses import canonical_address

logger = logging.getLogger(__name__)

DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


class NominatimResolver:
    """Geocoder backed by a Nominatim-compatible ``/search`` endpoint.

    Args:
        url: Search endpoint.
        user_agent: Sent on every request; Nominatim requires one.
        timeout_seconds: Upper bound on a whole lookup.
        country_codes: Optional comma-separated ISO 3166-1 codes filter.
        client: Pre-built client (tests inject one with a MockTransport).
    """

    def __init__(
        self,
        url: str = DEFAULT_NOMINATIM_URL,
        user_agent: str = "smokewatch/0.1",
        timeout_seconds: float = 5.0,
        country_codes: Optional[str] = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._country_codes = country_codes
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._headers = {"User-Agent": user_agent}

    async def resolve(self, address: str) -> Coordinates:
        query = canonical_address(address or "")
        if not query:
            raise ResolutionError(address, "address is empty")

        try:
            data = await asyncio.wait_for(self._search(query), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Geocoding %r timed out after %.1fs", query, self._timeout)
            raise ResolutionError(query, f"timed out after {self._timeout}s") from None
        except httpx.HTTPStatusError as exc:
            raise ResolutionError(query, f"HTTP {exc.response.status_code}") from exc
        except (httpx.RequestError, httpx.TimeoutException) as exc:
            logger.warning("Geocoding %r failed: %s", query, exc)
            raise ResolutionError(query, f"service unreachable: {exc}") from exc
        except ValueError as exc:
            raise ResolutionError(query, "response is not JSON") from exc

        return self._first_match(query, data)

    async def _search(self, query: str) -> Any:
        params: dict[str, Any] = {"q": query, "format": "jsonv2", "limit": 1}
        if self._country_codes:
            params["countrycodes"] = self._country_codes
        response = await self._client.get(self._url, params=params, headers=self._headers)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _first_match(query: str, data: Any) -> Coordinates:
        if not isinstance(data, list) or not data:
            raise ResolutionError(query, "no match")
        item = data[0]
        if not isinstance(item, dict):
            raise ResolutionError(query, "malformed match")
        try:
            coords = Coordinates(latitude=float(item["lat"]), longitude=float(item["lon"]))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise ResolutionError(query, "match has no usable coordinates") from exc
        logger.debug("Geocoded %r → %s", query, coords)
        return coords

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
