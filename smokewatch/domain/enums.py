"""Controlled enumerations for the smokewatch domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class PointStatus(str, Enum):
    """Current status of a watch point on the map."""

    CLEAR = "clear"
    ALERT = "alert"


class MergePolicy(str, Enum):
    """Rule deciding whether an event may overwrite a point's current state."""

    # The most recently applied event wins, whatever its timestamp.
    LAST_APPLIED = "last_applied"
    # Events older than the point's updated_at leave current state alone.
    LATEST_TIMESTAMP = "latest_timestamp"


class IngestStatus(str, Enum):
    """Outcome classification for one raw event passed through the pipeline."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNRESOLVED = "unresolved"
    STORAGE_FAILED = "storage_failed"

    @property
    def retryable(self) -> bool:
        return self in (IngestStatus.UNRESOLVED, IngestStatus.STORAGE_FAILED)
