"""EventPipeline — the inbound boundary between producers and the registry.

Producers hand raw payloads to the pipeline in one of two ways:

    - ``await pipeline.submit(raw)`` enqueues and returns immediately; worker
      tasks drain the queue (push channels, fire-and-forget producers).
    - ``await pipeline.process(raw)`` runs the payload inline and returns its
      IngestOutcome (request/response producers, tests).

Either way the payload goes Normalizer → Registry, and every failure is
classified into an outcome instead of escaping.  Nothing here retries:
retry policy belongs to whoever delivered the event.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import BaseModel

from smokewatch.adapters.normalizer import EventNormalizer, payload_shape
from smokewatch.domain.enums import IngestStatus
from smokewatch.domain.errors import EventValidationError, ResolutionError, StorageError
from smokewatch.domain.watch_point import WatchPointSnapshot
from smokewatch.store.registry import WatchPointRegistry

logger = logging.getLogger(__name__)


class IngestOutcome(BaseModel):
    """What happened to one raw payload."""

    status: IngestStatus
    address: Optional[str] = None
    point: Optional[WatchPointSnapshot] = None
    detail: Optional[str] = None
    missing_fields: list[str] = []

    model_config = {"frozen": True}

    @property
    def retryable(self) -> bool:
        return self.status.retryable


class PipelineStats:
    """Outcome counters for observability."""

    __slots__ = ("counts",)

    def __init__(self) -> None:
        self.counts: dict[IngestStatus, int] = {status: 0 for status in IngestStatus}

    def record(self, status: IngestStatus) -> None:
        self.counts[status] += 1

    def to_dict(self) -> dict:
        return {status.value: count for status, count in self.counts.items()}


class EventPipeline:
    """Normalises and applies raw events, inline or from a queue.

    Args:
        normalizer: Turns raw payloads into NormalizedEvents.
        registry: Receives every normalised event.
        workers: Number of queue consumers.  Same-address events stay
            serialised by the registry regardless of this number.
        queue_size: Bound on queued payloads; submit() waits when full.
    """

    def __init__(
        self,
        normalizer: EventNormalizer,
        registry: WatchPointRegistry,
        workers: int = 1,
        queue_size: int = 1000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._normalizer = normalizer
        self._registry = registry
        self._worker_count = workers
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=queue_size)
        self._workers: list[asyncio.Task[None]] = []
        self.stats = PipelineStats()

    # ── Inline path ──────────────────────────────────────────────────────

    async def process(self, raw: Any) -> IngestOutcome:
        """Normalise and apply one payload, returning its outcome."""
        try:
            event = self._normalizer.normalize(raw)
        except EventValidationError as exc:
            logger.warning("Discarded invalid event (%s): %s", payload_shape(raw), exc.reason)
            return self._outcome(
                IngestStatus.REJECTED,
                detail=exc.reason,
                missing_fields=list(exc.missing_fields),
            )

        try:
            point = await self._registry.apply(event)
        except ResolutionError as exc:
            logger.warning("Discarded event for %r: %s", event.address, exc.reason)
            return self._outcome(IngestStatus.UNRESOLVED, address=event.address, detail=exc.reason)
        except StorageError as exc:
            logger.error("Event for %r not applied, history append failed: %s", event.address, exc.reason)
            return self._outcome(IngestStatus.STORAGE_FAILED, address=event.address, detail=exc.reason)

        return self._outcome(IngestStatus.ACCEPTED, address=event.address, point=point)

    # ── Queue path ───────────────────────────────────────────────────────

    async def submit(self, raw: Any) -> None:
        """Enqueue a payload for the workers."""
        await self._queue.put(raw)

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._consume(i), name=f"event-pipeline-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Event pipeline started with %d worker(s)", self._worker_count)

    async def join(self) -> None:
        """Wait until every queued payload has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Cancel workers.  Payloads still queued are dropped."""
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        if self._workers:
            logger.info("Event pipeline stopped (%d payload(s) left queued)", self._queue.qsize())
        self._workers = []

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    # ── Internals ────────────────────────────────────────────────────────

    async def _consume(self, worker_id: int) -> None:
        while True:
            raw = await self._queue.get()
            try:
                await self.process(raw)
            except Exception:
                logger.exception("Worker %d failed on payload (%s)", worker_id, payload_shape(raw))
            finally:
                self._queue.task_done()

    def _outcome(self, status: IngestStatus, **fields: Any) -> IngestOutcome:
        self.stats.record(status)
        return IngestOutcome(status=status, **fields)
