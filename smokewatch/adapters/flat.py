"""FlatPayloadAdapter — translates the flat notification data dict.

Expected raw format:
{
    "address": "Hansung University",
    "status": "smoking",
    "photo": "https://example.org/capture/123.png",
    "timestamp": "2026-02-13T14:00:00Z",     (optional)
    "latitude": "37.5826",                    (optional, with longitude)
    "longitude": "127.0106"                   (optional, with latitude)
}

``status == "smoking"`` means alert; any other tag means clear.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from smokewatch.adapters.base import EventAdapter
from smokewatch.domain.errors import EventValidationError
from smokewatch.domain.event import NormalizedEvent
from smokewatch.domain.geo import Coordinates
from smokewatch.foundation.addresses import canonical_address
from smokewatch.foundation.clock import ensure_utc, utc_now

REQUIRED_FIELDS: tuple[str, ...] = ("address", "status")
TIMESTAMP_FIELDS: tuple[str, ...] = ("timestamp", "occurredAt", "occurred_at")


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise EventValidationError(f"timestamp must be an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise EventValidationError(f"timestamp is not ISO-8601: {value!r}") from exc


def _parse_coordinate(name: str, value: Any) -> float:
    # bool is an int subclass; True is not a latitude
    if isinstance(value, bool):
        raise EventValidationError(f"{name} must be numeric, got bool")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise EventValidationError(f"{name} is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise EventValidationError(f"{name} must be finite, got {value!r}")
    return number


def _parse_coordinates_hint(raw: Mapping[str, Any]) -> Optional[Coordinates]:
    lat_raw, lon_raw = raw.get("latitude"), raw.get("longitude")
    if lat_raw is None and lon_raw is None:
        return None
    if lat_raw is None or lon_raw is None:
        missing = "latitude" if lat_raw is None else "longitude"
        raise EventValidationError(
            "coordinate hint needs both latitude and longitude",
            missing_fields=[missing],
        )
    try:
        return Coordinates(
            latitude=_parse_coordinate("latitude", lat_raw),
            longitude=_parse_coordinate("longitude", lon_raw),
        )
    except ValidationError as exc:
        raise EventValidationError(f"coordinate hint out of range: {exc.errors()[0]['msg']}") from exc


class FlatPayloadAdapter(EventAdapter):
    """Maps the flat ``{address, status, photo}`` data dict to NormalizedEvents.

    Args:
        alert_tag: Status tag that means "alert" (compared case-insensitively).
        require_alert_photo: Reject alerts that carry no photo reference.
        clock: Source of "now" for payloads without a timestamp.
    """

    def __init__(
        self,
        alert_tag: str = "smoking",
        require_alert_photo: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._alert_tag = alert_tag.strip().lower()
        self._require_alert_photo = require_alert_photo
        self._clock = clock

    @property
    def source_name(self) -> str:
        return "flat_payload"

    def can_handle(self, raw: Mapping[str, Any]) -> bool:
        return not isinstance(raw.get("request"), Mapping)

    def adapt(self, raw: Mapping[str, Any]) -> NormalizedEvent:
        # ── Required fields ──────────────────────────────────────────────
        missing = [f for f in REQUIRED_FIELDS if _is_missing(raw.get(f))]
        if missing:
            raise EventValidationError(
                f"payload missing required field(s): {', '.join(missing)}",
                missing_fields=missing,
            )

        address = raw["address"]
        status = raw["status"]
        if not isinstance(address, str):
            raise EventValidationError(f"address must be a string, got {type(address).__name__}")
        if not isinstance(status, str):
            raise EventValidationError(f"status must be a string, got {type(status).__name__}")

        status_tag = status.strip().lower()
        is_alert = status_tag == self._alert_tag

        # ── Optional fields ──────────────────────────────────────────────
        photo = raw.get("photo")
        if _is_missing(photo):
            photo = None
        elif not isinstance(photo, str):
            raise EventValidationError(f"photo must be a string reference, got {type(photo).__name__}")
        if is_alert and photo is None and self._require_alert_photo:
            raise EventValidationError(
                "alert payload missing photo reference",
                missing_fields=["photo"],
            )

        occurred_at = self._clock()
        for key in TIMESTAMP_FIELDS:
            if raw.get(key) is not None:
                occurred_at = _parse_timestamp(raw[key])
                break

        hint = _parse_coordinates_hint(raw)

        try:
            return NormalizedEvent(
                address=canonical_address(address),
                is_alert=is_alert,
                photo=photo.strip() if photo else None,
                occurred_at=occurred_at,
                status_tag=status_tag,
                coordinates_hint=hint,
                source=self.source_name,
            )
        except ValidationError as exc:
            raise EventValidationError(f"event rejected: {exc.errors()[0]['msg']}") from exc
