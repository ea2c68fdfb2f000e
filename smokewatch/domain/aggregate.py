"""AggregateSnapshot — derived statistics over a trailing window of history.

A pure data structure with no persistent identity.  It is recomputed from
the history store every time someone asks for it.

Weekday convention: ``weekday_counts[0]`` is Monday and
``weekday_counts[6]`` is Sunday, in the engine's local time zone.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

WEEKDAY_LABELS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class HourPoint(BaseModel):
    """One alert placed on the hour-of-day axis."""

    hour: int = Field(..., ge=0, le=23)
    address: str

    model_config = {"frozen": True}


class AggregateSnapshot(BaseModel):
    """Counts of alerts inside ``[window_start, generated_at]``."""

    generated_at: datetime
    window_days: int = Field(..., gt=0)
    window_start: datetime
    per_location_counts: dict[str, int] = Field(default_factory=dict)
    hour_of_day_points: list[HourPoint] = Field(default_factory=list)
    weekday_counts: list[int] = Field(default_factory=lambda: [0] * 7)
    skipped_addresses: list[str] = Field(
        default_factory=list,
        description="Addresses whose history could not be read during the scan",
    )

    model_config = {"frozen": True}

    @field_validator("weekday_counts")
    @classmethod
    def weekday_counts_has_seven_slots(cls, v: list[int]) -> list[int]:
        if len(v) != 7:
            raise ValueError(f"weekday_counts must have 7 slots, got {len(v)}")
        return v

    @property
    def total_entries(self) -> int:
        return sum(self.per_location_counts.values())

    def hour_of_day_counts(self) -> list[int]:
        """24-slot histogram derived from ``hour_of_day_points``."""
        counts = [0] * 24
        for point in self.hour_of_day_points:
            counts[point.hour] += 1
        return counts

    def weekday_breakdown(self) -> dict[str, int]:
        return dict(zip(WEEKDAY_LABELS, self.weekday_counts))
