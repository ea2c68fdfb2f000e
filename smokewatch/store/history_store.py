"""Durable, per-address, append-only history of alert events.

Design notes:
    - One logical namespace keyed by address.  Each address owns an
      independent log; there are no cross-address transactions.
    - Appends to the same address are serialised by a per-address
      asyncio.Lock.  Appends to different addresses never wait on each other.
    - append() returns only after the entry is durable.  Nothing is ever
      rewritten or deleted.
    - read_all() returns insertion order.  Consumers that care about time
      sort by ``timestamp``.
    - list_addresses() reads durable state only, so analytics work after a
      restart without the in-memory registry.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from smokewatch.domain.errors import StorageError
from smokewatch.domain.history import HistoryEntry

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"


class HistoryStore(Protocol):
    """Protocol for the append-only history log."""

    async def append(self, address: str, entry: HistoryEntry) -> None:
        """Durably add one entry to *address*'s log."""
        ...

    async def read_all(self, address: str) -> list[HistoryEntry]:
        """Every entry ever appended for *address*, in insertion order."""
        ...

    async def list_addresses(self) -> set[str]:
        """Every address with at least one entry."""
        ...


class _AddressLocks:
    """Lazily created per-address locks."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        return lock


def _check_entry(address: str, entry: HistoryEntry) -> None:
    if entry.address != address:
        raise StorageError(address, f"entry belongs to {entry.address!r}")


# ── In-memory backend ────────────────────────────────────────────────────────


class InMemoryHistoryStore:
    """Dict-backed store for tests and ephemeral runs.  Not durable."""

    def __init__(self) -> None:
        self._logs: dict[str, list[HistoryEntry]] = {}
        self._locks = _AddressLocks()

    async def append(self, address: str, entry: HistoryEntry) -> None:
        _check_entry(address, entry)
        async with self._locks.get(address):
            self._logs.setdefault(address, []).append(entry)

    async def read_all(self, address: str) -> list[HistoryEntry]:
        return list(self._logs.get(address, ()))

    async def list_addresses(self) -> set[str]:
        return {address for address, log in self._logs.items() if log}


# ── File backend ─────────────────────────────────────────────────────────────


def address_to_filename(address: str) -> str:
    """Fixed-length, filesystem-safe name for an address log."""
    digest = hashlib.sha256(address.encode("utf-8")).hexdigest()[:32]
    return f"{digest}{LOG_SUFFIX}"


class FileHistoryStore:
    """JSON-Lines log per address under *root*.

    Each line is ``{"address": ..., "photo": ..., "timestamp": ...}``.  The
    file name is a digest of the address, so every line carries the address
    it belongs to.  Blocking file I/O runs in a worker thread so the event
    loop never stalls on disk.

    A crash or full disk can leave a torn final line.  The next append
    starts on a fresh line and readers skip lines that do not decode, so
    one torn write never hides the entries around it.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._locks = _AddressLocks()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError("*", f"cannot create history directory {self.root}: {exc}") from exc
        logger.info("History store opened at %s", self.root)

    def path_for(self, address: str) -> Path:
        return self.root / address_to_filename(address)

    # ── Public API ───────────────────────────────────────────────────────

    async def append(self, address: str, entry: HistoryEntry) -> None:
        _check_entry(address, entry)
        line = json.dumps(entry.to_record(), ensure_ascii=False, sort_keys=True, separators=(",", ":"))
        async with self._locks.get(address):
            try:
                await asyncio.to_thread(self._append_line, self.path_for(address), line)
            except OSError as exc:
                raise StorageError(address, f"append failed: {exc}") from exc
        logger.debug("Appended history entry for %r at %s", address, entry.timestamp.isoformat())

    async def read_all(self, address: str) -> list[HistoryEntry]:
        try:
            records = await asyncio.to_thread(self._read_records, self.path_for(address))
        except OSError as exc:
            raise StorageError(address, f"read failed: {exc}") from exc
        except ValueError as exc:
            raise StorageError(address, f"corrupt history log: {exc}") from exc

        entries: list[HistoryEntry] = []
        for record in records:
            if record.get("address") != address:
                raise StorageError(address, f"log contains a record for {record.get('address')!r}")
            try:
                entries.append(HistoryEntry.from_record(address, record))
            except ValidationError as exc:
                raise StorageError(address, f"corrupt history record: {exc.errors()[0]['msg']}") from exc
        return entries

    async def list_addresses(self) -> set[str]:
        try:
            found = await asyncio.to_thread(self._scan_addresses)
        except OSError as exc:
            raise StorageError("*", f"cannot list history directory: {exc}") from exc
        return set(found)

    # ── Blocking helpers (worker thread) ─────────────────────────────────

    @staticmethod
    def _append_line(path: Path, line: str) -> None:
        data = line.encode("utf-8") + b"\n"
        with path.open("a+b") as handle:
            # a previous append cut short leaves no trailing newline
            if handle.seek(0, os.SEEK_END) > 0:
                handle.seek(-1, os.SEEK_END)
                if handle.read(1) != b"\n":
                    data = b"\n" + data
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())

    @staticmethod
    def _decode_line(raw: bytes) -> dict[str, Any] | None:
        """The record on *raw*, or None when the line is torn or not an object."""
        try:
            record = json.loads(raw.decode("utf-8"))
        except ValueError:
            return None
        return record if isinstance(record, dict) else None

    @classmethod
    def _read_records(cls, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        records: list[dict[str, Any]] = []
        with path.open("rb") as handle:
            for lineno, raw in enumerate(handle, start=1):
                if not raw.strip():
                    continue
                record = cls._decode_line(raw)
                if record is None:
                    logger.warning("Skipping undecodable line %d in %s", lineno, path.name)
                    continue
                records.append(record)
        return records

    def _scan_addresses(self) -> list[str]:
        addresses: list[str] = []
        for path in sorted(self.root.glob(f"*{LOG_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                address = self._first_address(path)
            except (OSError, ValueError):
                address = None
            if address is None:
                logger.warning("Ignoring unreadable history log: %s", path.name)
                continue
            addresses.append(address)
        return addresses

    @classmethod
    def _first_address(cls, path: Path) -> str | None:
        with path.open("rb") as handle:
            for raw in handle:
                if not raw.strip():
                    continue
                record = cls._decode_line(raw)
                if record is None:
                    continue
                address = record.get("address")
                if isinstance(address, str) and path.name == address_to_filename(address):
                    return address
                return None
        return None
