"""ID generation for watch points."""

from __future__ import annotations

from uuid import uuid4


def new_id() -> str:
    """Generate a new random UUID v4 string for a watch point."""
    return str(uuid4())
