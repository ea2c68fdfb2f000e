"""NotificationEnvelopeAdapter — unwraps push-notification objects.

Expected raw format (as delivered by the mobile push SDK):
{
    "request": {
        "identifier": "...",
        "content": {
            "title": "...",
            "data": {"address": "...", "status": "smoking", "photo": "..."}
        }
    },
    "date": 1739455200000
}

The inner data dict is mapped with the same rules as FlatPayloadAdapter.
"""

from __future__ import annotations

from typing import Any, Mapping

from smokewatch.adapters.base import EventAdapter
from smokewatch.adapters.flat import FlatPayloadAdapter
from smokewatch.domain.errors import EventValidationError
from smokewatch.domain.event import NormalizedEvent


def _envelope_data(raw: Mapping[str, Any]) -> Any:
    request = raw.get("request")
    if not isinstance(request, Mapping):
        return None
    content = request.get("content")
    if not isinstance(content, Mapping):
        return None
    return content.get("data")


class NotificationEnvelopeAdapter(EventAdapter):
    """Maps ``request.content.data`` of a notification to a NormalizedEvent."""

    def __init__(self, inner: FlatPayloadAdapter | None = None) -> None:
        self._inner = inner or FlatPayloadAdapter()

    @property
    def source_name(self) -> str:
        return "notification_envelope"

    def can_handle(self, raw: Mapping[str, Any]) -> bool:
        return isinstance(raw.get("request"), Mapping)

    def adapt(self, raw: Mapping[str, Any]) -> NormalizedEvent:
        data = _envelope_data(raw)
        if data is None:
            raise EventValidationError(
                "notification envelope carries no request.content.data",
                missing_fields=["address", "status"],
            )
        if not isinstance(data, Mapping):
            raise EventValidationError(f"notification data must be an object, got {type(data).__name__}")
        event = self._inner.adapt(data)
        return event.model_copy(update={"source": self.source_name})
