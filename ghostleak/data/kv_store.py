"""
ghostleak/data/kv_store.py
Durable key-value store with change notifications.

Contract shared by every implementation:

    await store.get({"foundItems", "checkedTargets"})  -> {key: value}
    await store.set({"foundItems": [...]})              -> None
    store.changed.connect(callback)                      # callback(StorageChange)

A StorageChange is emitted for every key whose value changed, whether the
write came from this process (writer == store.writer_id) or from another
one. Consumers that mirror a value in memory compare the writer with their
own id to tell the two apart.

Implementations:
  - SQLiteKVStore: the real one, on top of Database; detects writes from
    other processes by polling PRAGMA data_version.
  - MemoryKVStore: same contract, no I/O. Used by tests and by the CLI's
    dry runs.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

from ghostleak.data.db import Database
from ghostleak.errors import StorageError
from ghostleak.utils.async_helpers import create_safe_task
from ghostleak.utils.observer import Signal

logger = logging.getLogger(__name__)

# Logical keys persisted by the core
KEY_ENABLED = "extensionEnabled"
KEY_GIT_ENABLED = "gitCheckEnabled"
KEY_ENV_ENABLED = "envCheckEnabled"
KEY_FOUND_ITEMS = "foundItems"
KEY_CHECKED_TARGETS = "checkedTargets"

ALL_KEYS = (
    KEY_ENABLED,
    KEY_GIT_ENABLED,
    KEY_ENV_ENABLED,
    KEY_FOUND_ITEMS,
    KEY_CHECKED_TARGETS,
)


def new_writer_id() -> str:
    return f"{os.getpid()}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class StorageChange:
    key: str
    old_value: Any
    new_value: Any
    writer: Optional[str] = None


class KVStore(Protocol):
    writer_id: str
    changed: Signal

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]: ...

    async def set(self, mapping: Mapping[str, Any]) -> None: ...


class MemoryKVStore:
    """In-process implementation of the key-value contract."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None, writer_id: Optional[str] = None):
        self.writer_id = writer_id or new_writer_id()
        self.changed = Signal()
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self.write_count = 0

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        # Yield once so callers see the same suspension point a real store has
        await asyncio.sleep(0)
        self.write_count += 1
        self._apply(mapping, self.writer_id)

    def external_set(self, mapping: Mapping[str, Any], writer: str = "external") -> None:
        """Simulate a write made by another process."""
        self._apply(mapping, writer)

    def _apply(self, mapping: Mapping[str, Any], writer: str) -> None:
        changes = []
        for key, value in mapping.items():
            old = self._data.get(key)
            new = copy.deepcopy(value)
            self._data[key] = new
            if old != new:
                changes.append(StorageChange(key, old, copy.deepcopy(new), writer))
        for change in changes:
            self.changed.emit(change)


class SQLiteKVStore:
    """
    Key-value store backed by the kv_state table.

    Keeps a cache of the last values it has seen so that a poll can turn
    "something changed" into per-key StorageChange events.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        writer_id: Optional[str] = None,
        poll_interval: float = 1.0,
    ):
        self.db = db or Database.instance()
        self.writer_id = writer_id or new_writer_id()
        self.poll_interval = poll_interval
        self.changed = Signal()
        self._cache: Dict[str, Any] = {}
        self._data_version: Optional[int] = None
        self._watch_task: Optional[asyncio.Task] = None

    async def init(self) -> None:
        await self.db.init()
        rows = await self.db.read_state()
        self._cache = {key: value for key, value, _ in rows}
        self._data_version = await self.db.data_version()

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        rows = await self.db.read_state(keys)
        # Cache moves only on own writes and in refresh()
        return {key: value for key, value, _ in rows}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        mapping = {k: copy.deepcopy(v) for k, v in mapping.items()}
        await self.db.write_state(mapping, self.writer_id)

        changes = []
        for key, value in mapping.items():
            old = self._cache.get(key)
            self._cache[key] = value
            if old != value:
                changes.append(StorageChange(key, old, copy.deepcopy(value), self.writer_id))
        for change in changes:
            self.changed.emit(change)

    async def refresh(self) -> int:
        """
        Re-read every row and emit a StorageChange for each key that differs
        from the cache. Returns the number of changes emitted.
        """
        rows = await self.db.read_state()
        changes = []
        seen = set()
        for key, value, writer in rows:
            seen.add(key)
            old = self._cache.get(key)
            if old != value:
                changes.append(StorageChange(key, old, copy.deepcopy(value), writer))
            self._cache[key] = value
        for key in set(self._cache) - seen:
            changes.append(StorageChange(key, self._cache.pop(key), None, None))

        for change in changes:
            logger.debug(f"[KVStore] External change to {change.key} by {change.writer}")
            self.changed.emit(change)
        return len(changes)

    async def poll_once(self) -> int:
        version = await self.db.data_version()
        if version == self._data_version:
            return 0
        changed = await self.refresh()
        # Only advanced once the refresh succeeded, so a failed read is retried
        self._data_version = version
        return changed

    async def _watch_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except StorageError as e:
                logger.warning(f"[KVStore] Poll failed, retrying in {self.poll_interval}s: {e}")

    def start_watching(self) -> None:
        if self._watch_task and not self._watch_task.done():
            return
        self._watch_task = create_safe_task(self._watch_loop(), name="kv_watch")
        logger.info(f"[KVStore] Watching for external changes every {self.poll_interval}s")

    async def stop_watching(self) -> None:
        if self._watch_task and not self._watch_task.done():
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
        self._watch_task = None
