"""NormalizedEvent — the typed contract between the normalizer and the registry.

Untyped payloads never travel past the normalizer.  Everything downstream
receives one of these, already validated and canonicalised.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from smokewatch.domain.enums import PointStatus
from smokewatch.domain.geo import Coordinates
from smokewatch.foundation.clock import ensure_utc


class NormalizedEvent(BaseModel):
    """A validated status-change notification for a single address."""

    address: str = Field(..., min_length=1, max_length=512)
    is_alert: bool
    photo: Optional[str] = Field(default=None, max_length=4096)
    occurred_at: datetime = Field(..., description="When the condition was observed (UTC-aware)")
    status_tag: str = Field(..., min_length=1, description="Raw status tag as delivered")
    coordinates_hint: Optional[Coordinates] = None
    source: str = Field(default="unknown", description="Adapter that produced this event")

    model_config = {"frozen": True}

    @field_validator("occurred_at")
    @classmethod
    def occurred_at_must_be_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def status(self) -> PointStatus:
        return PointStatus.ALERT if self.is_alert else PointStatus.CLEAR
