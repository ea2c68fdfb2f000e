"""Exception taxonomy for the reconciliation engine.

    WatchPointError
    ├── EventValidationError   malformed or incomplete inbound event
    ├── ResolutionError        geocoding failed or timed out
    └── StorageError           history append/read failed

None of these is fatal to the process.  Validation and resolution errors
discard the event; storage errors fail the apply that raised them.
"""

from __future__ import annotations

from typing import Iterable


class WatchPointError(Exception):
    """Base class for every recoverable error raised by the core."""


class EventValidationError(WatchPointError):
    """Raised when an inbound payload cannot be normalised."""

    def __init__(self, reason: str, missing_fields: Iterable[str] = ()) -> None:
        self.reason = reason
        self.missing_fields: tuple[str, ...] = tuple(missing_fields)
        super().__init__(reason)


class ResolutionError(WatchPointError):
    """Raised when an address cannot be turned into coordinates."""

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Could not resolve {address!r}: {reason}")


class StorageError(WatchPointError):
    """Raised when the history store fails to append or read."""

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"History storage failed for {address!r}: {reason}")
