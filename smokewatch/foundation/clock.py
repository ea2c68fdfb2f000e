"""UTC clock helpers.

Event times, history timestamps and aggregation windows are all compared
as UTC-aware datetimes.  Payloads may carry naive or offset timestamps, so
everything entering the domain passes through ``ensure_utc`` first.
Components that need "now" take it from ``utc_now`` (or accept an
injected clock) so tests can pin it.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
