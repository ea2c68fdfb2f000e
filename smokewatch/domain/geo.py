"""Geographic value types."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator


class Coordinates(BaseModel):
    """A WGS-84 point.  Immutable once resolved."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = {"frozen": True}

    @field_validator("latitude", "longitude")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinate must be a finite number")
        return v

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"
