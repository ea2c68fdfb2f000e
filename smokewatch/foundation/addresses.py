"""Address canonicalisation shared by the normalizer, resolvers and stores."""

from __future__ import annotations


def canonical_address(value: str) -> str:
    """Strip and collapse internal whitespace.  Case is preserved."""
    return " ".join(value.split())
