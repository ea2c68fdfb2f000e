"""AggregationEngine — windowed statistics derived from the history store.

Design principles:
    1. Reads durable state only.  The in-memory registry is never consulted,
       so statistics survive a restart.
    2. Read-only and lock-free.  A scan may observe a partially updated
       corpus; that is acceptable for a best-effort analytics view.
    3. Recomputed on every call.  Nothing is cached between requests.
    4. One unreadable address never fails the whole scan.

Window:
    An entry contributes when ``now - window_days <= timestamp <= now``.
    The lower bound is inclusive.  Entries dated after ``now`` are excluded.

Local time:
    Hour-of-day and weekday are taken in the engine's time zone (the host's
    local zone when none is configured).  Weekday index 0 is Monday.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from smokewatch.domain.aggregate import AggregateSnapshot, HourPoint
from smokewatch.domain.errors import StorageError
from smokewatch.domain.history import HistoryEntry
from smokewatch.foundation.clock import ensure_utc, utc_now
from smokewatch.store.history_store import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


class AggregationEngine:
    """Computes AggregateSnapshots by scanning every address's history.

    Args:
        history: The durable history store to scan.
        local_tz: Zone used for hour-of-day and weekday bucketing.
            ``None`` means the host's local zone.
        default_window_days: Window used when a call does not pass one.
    """

    def __init__(
        self,
        history: HistoryStore,
        local_tz: Optional[tzinfo] = None,
        default_window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> None:
        if default_window_days <= 0:
            raise ValueError("default_window_days must be positive")
        self._history = history
        self._local_tz = local_tz
        self._default_window_days = default_window_days

    async def compute_snapshot(
        self,
        now: datetime | None = None,
        window_days: int | None = None,
    ) -> AggregateSnapshot:
        """Scan the history store and summarise entries inside the window."""
        days = self._default_window_days if window_days is None else window_days
        if days <= 0:
            raise ValueError(f"window_days must be positive, got {days}")

        now = ensure_utc(now) if now is not None else utc_now()
        window_start = now - timedelta(days=days)

        per_location: dict[str, int] = {}
        in_window: list[HistoryEntry] = []
        weekday_counts = [0] * 7
        skipped: list[str] = []

        for address in sorted(await self._history.list_addresses()):
            try:
                entries = await self._history.read_all(address)
            except StorageError as exc:
                logger.warning("Skipping %r in aggregation: %s", address, exc)
                skipped.append(address)
                continue

            selected = [e for e in entries if window_start <= e.timestamp <= now]
            if not selected:
                continue
            per_location[address] = len(selected)
            in_window.extend(selected)

        in_window.sort(key=lambda e: (e.timestamp, e.address))
        hour_points: list[HourPoint] = []
        for entry in in_window:
            local = self._to_local(entry.timestamp)
            hour_points.append(HourPoint(hour=local.hour, address=entry.address))
            weekday_counts[local.weekday()] += 1

        logger.debug(
            "Aggregated %d entr(ies) across %d address(es) since %s",
            len(in_window),
            len(per_location),
            window_start.isoformat(),
        )
        return AggregateSnapshot(
            generated_at=now,
            window_days=days,
            window_start=window_start,
            per_location_counts=per_location,
            hour_of_day_points=hour_points,
            weekday_counts=weekday_counts,
            skipped_addresses=skipped,
        )

    def _to_local(self, ts: datetime) -> datetime:
        return ts.astimezone(self._local_tz) if self._local_tz is not None else ts.astimezone()
