"""Service container — builds the engine's collaborators from Settings.

The container is created once per application lifespan and passed by
reference to whatever needs it.  There is no module-level registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from smokewatch.adapters.normalizer import EventNormalizer
from smokewatch.config import Settings
from smokewatch.core.aggregation import AggregationEngine
from smokewatch.domain.enums import MergePolicy
from smokewatch.domain.errors import ResolutionError, StorageError
from smokewatch.geocode.nominatim import NominatimResolver
from smokewatch.geocode.resolver import CachingResolver, GeocodeResolver
from smokewatch.services.pipeline import EventPipeline
from smokewatch.store.history_store import FileHistoryStore, HistoryStore, InMemoryHistoryStore
from smokewatch.store.registry import WatchPointRegistry

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything one running instance of the engine needs."""

    settings: Settings
    resolver: GeocodeResolver
    history: HistoryStore
    normalizer: EventNormalizer
    registry: WatchPointRegistry
    aggregation: AggregationEngine
    pipeline: EventPipeline

    async def startup(self) -> None:
        """Restore state from history, seed configured points, start workers."""
        if self.settings.rebuild_on_startup:
            try:
                await self.registry.rebuild()
            except StorageError as exc:
                logger.error("Rebuild skipped, history unreadable: %s", exc.reason)
        for address in self.settings.seed_addresses:
            try:
                await self.registry.seed(address)
            except ResolutionError as exc:
                logger.warning("Could not seed %r: %s", address, exc.reason)
        await self.pipeline.start()

    async def shutdown(self) -> None:
        await self.pipeline.stop()
        await self.resolver.aclose()


def _local_tz(name: Optional[str]) -> Optional[tzinfo]:
    return ZoneInfo(name) if name else None


def build_services(
    settings: Settings,
    resolver: GeocodeResolver | None = None,
    history: HistoryStore | None = None,
) -> ServiceContainer:
    """Wire a ServiceContainer.  *resolver* and *history* override settings."""
    if resolver is None:
        resolver = NominatimResolver(
            url=settings.geocoder_url,
            user_agent=settings.geocoder_user_agent,
            timeout_seconds=settings.geocoder_timeout_seconds,
            country_codes=settings.geocoder_country_codes,
        )
        if settings.geocoder_cache_enabled:
            resolver = CachingResolver(resolver)

    if history is None:
        if settings.history_backend == "memory":
            history = InMemoryHistoryStore()
        else:
            history = FileHistoryStore(settings.history_dir)

    normalizer = EventNormalizer.default(
        alert_tag=settings.alert_status_tag,
        require_alert_photo=settings.require_alert_photo,
    )
    registry = WatchPointRegistry(
        resolver=resolver,
        history=history,
        merge_policy=MergePolicy(settings.merge_policy),
        trust_coordinate_hints=settings.trust_coordinate_hints,
    )
    aggregation = AggregationEngine(
        history=history,
        local_tz=_local_tz(settings.local_timezone),
        default_window_days=settings.aggregation_window_days,
    )
    pipeline = EventPipeline(
        normalizer=normalizer,
        registry=registry,
        workers=settings.pipeline_workers,
        queue_size=settings.pipeline_queue_size,
    )
    return ServiceContainer(
        settings=settings,
        resolver=resolver,
        history=history,
        normalizer=normalizer,
        registry=registry,
        aggregation=aggregation,
        pipeline=pipeline,
    )
