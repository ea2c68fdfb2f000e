"""Abstract base for event adapters.

Event adapters normalise raw notification payloads into the canonical
NormalizedEvent model.

Architectural rules:
    1. Adapters must NOT mutate the incoming payload.
    2. adapt() must return a fully valid NormalizedEvent or raise
       EventValidationError.
    3. No adapter may call the registry, the resolver or the history store.
    4. Fallible parsing fails closed: a bad field is an error, never a default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from smokewatch.domain.event import NormalizedEvent


class EventAdapter(ABC):
    """Base class for converting raw upstream payloads into NormalizedEvents."""

    @abstractmethod
    def can_handle(self, raw: Mapping[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *raw*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, raw: Mapping[str, Any]) -> NormalizedEvent:
        """Translate a raw payload into a validated NormalizedEvent.

        Raises:
            EventValidationError: If the payload cannot be normalised.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the payload shape this adapter handles."""
        ...
