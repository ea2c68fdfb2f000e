"""Event Normalizer — selects an adapter and validates raw payloads.

The normalizer holds a list of registered EventAdapters.  When a raw
payload arrives, it iterates through adapters in registration order
and selects the first one whose can_handle() returns True.

Nothing untyped leaves this module: callers get a NormalizedEvent or an
EventValidationError.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from smokewatch.adapters.base import EventAdapter
from smokewatch.adapters.envelope import NotificationEnvelopeAdapter
from smokewatch.adapters.flat import REQUIRED_FIELDS, FlatPayloadAdapter
from smokewatch.domain.errors import EventValidationError
from smokewatch.domain.event import NormalizedEvent

logger = logging.getLogger(__name__)


def payload_shape(raw: Any) -> str:
    """Describe a payload by its structure only, never its content."""
    if isinstance(raw, Mapping):
        return f"keys={sorted(str(k) for k in raw.keys())}"
    return f"type={type(raw).__name__}"


class AdapterStats:
    """Per-adapter normalisation statistics for observability."""

    __slots__ = ("adapter_name", "accepted_count", "rejected_count")

    def __init__(self, adapter_name: str) -> None:
        self.adapter_name = adapter_name
        self.accepted_count: int = 0
        self.rejected_count: int = 0

    def to_dict(self) -> dict:
        return {
            "adapter_name": self.adapter_name,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }


class EventNormalizer:
    """Registry of event adapters with selection and stats tracking.

    Usage:
        normalizer = EventNormalizer()
        normalizer.register(NotificationEnvelopeAdapter())
        normalizer.register(FlatPayloadAdapter())

        event = normalizer.normalize(raw_payload)
    """

    def __init__(self) -> None:
        self._adapters: list[EventAdapter] = []
        self._stats: dict[str, AdapterStats] = {}
        self._unmatched: int = 0

    @classmethod
    def default(
        cls,
        alert_tag: str = "smoking",
        require_alert_photo: bool = True,
    ) -> "EventNormalizer":
        """Normalizer for envelope-wrapped and flat notification payloads."""
        flat = FlatPayloadAdapter(alert_tag=alert_tag, require_alert_photo=require_alert_photo)
        normalizer = cls()
        normalizer.register(NotificationEnvelopeAdapter(inner=flat))
        normalizer.register(flat)
        return normalizer

    def register(self, adapter: EventAdapter) -> None:
        """Add an adapter to the normalizer."""
        self._adapters.append(adapter)
        self._stats[adapter.source_name] = AdapterStats(adapter.source_name)
        logger.info("Registered adapter: %s", adapter.source_name)

    def normalize(self, raw: Any) -> NormalizedEvent:
        """Route a raw payload through the first matching adapter.

        Raises:
            EventValidationError: If the payload is not an object, no adapter
                matches, or the matched adapter rejects it.
        """
        if not isinstance(raw, Mapping):
            self._unmatched += 1
            raise EventValidationError(
                f"payload must be a JSON object, got {type(raw).__name__}",
                missing_fields=REQUIRED_FIELDS,
            )

        for adapter in self._adapters:
            if not adapter.can_handle(raw):
                continue
            stats = self._stats[adapter.source_name]
            try:
                event = adapter.adapt(raw)
            except EventValidationError as exc:
                stats.rejected_count += 1
                logger.warning(
                    "Adapter '%s' rejected payload (%s): %s",
                    adapter.source_name,
                    payload_shape(raw),
                    exc.reason,
                )
                raise
            stats.accepted_count += 1
            logger.debug(
                "Adapter '%s' accepted payload → %s event for %r",
                adapter.source_name,
                event.status.value,
                event.address,
            )
            return event

        self._unmatched += 1
        raise EventValidationError(
            f"No adapter can handle payload with {payload_shape(raw)}",
            missing_fields=REQUIRED_FIELDS,
        )

    @property
    def adapter_names(self) -> list[str]:
        """List of registered adapter names in registration order."""
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> list[dict]:
        """Per-adapter stats for observability endpoints."""
        return [s.to_dict() for s in self._stats.values()]

    @property
    def total_accepted(self) -> int:
        return sum(s.accepted_count for s in self._stats.values())

    @property
    def total_rejected(self) -> int:
        return sum(s.rejected_count for s in self._stats.values()) + self._unmatched
