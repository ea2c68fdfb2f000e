"""HistoryEntry — one immutable, timestamped alert record for an address."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from smokewatch.foundation.clock import ensure_utc


class HistoryEntry(BaseModel):
    """An alert that happened at *address* at *timestamp*.

    Entries are written once and never rewritten.  Ordering is by
    ``timestamp``; arrival order carries no meaning.
    """

    address: str = Field(..., min_length=1)
    photo: Optional[str] = None
    timestamp: datetime

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def to_record(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "photo": self.photo,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_record(cls, address: str, record: dict[str, Any]) -> "HistoryEntry":
        return cls.model_validate({**record, "address": address})
