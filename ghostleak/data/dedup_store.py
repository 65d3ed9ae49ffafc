"""
ghostleak/data/dedup_store.py
Persisted set of origin keys that have already been probed.

Key design decisions:

  - Membership is the only semantics. The durable copy is a JSON list under
    "checkedTargets"; order means nothing.

  - The in-memory set is the source of truth for dispatch decisions.
    add()/remove()/clear() change it synchronously and then flush the whole
    set, awaited, before returning.

  - External writes (another process, a companion UI) replace the in-memory
    set wholesale. Last writer wins, no merge. Changes carrying our own
    writer id are echoes of flush() and are ignored.

Usage:
    dedup = PersistedDedupSet(store)
    await dedup.load()
    if not dedup.has(key):
        await dedup.add(key)
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Set

from ghostleak.data.kv_store import KEY_CHECKED_TARGETS, KVStore, StorageChange

logger = logging.getLogger(__name__)


class PersistedDedupSet:
    """Durable set of checked origin keys."""

    def __init__(self, store: KVStore, key: str = KEY_CHECKED_TARGETS) -> None:
        self._store = store
        self._key = key
        self._members: Set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Hydrate from durable storage, replacing whatever is in memory."""
        data = await self._store.get([self._key])
        self._replace(data.get(self._key))
        logger.info(f"[DedupSet] Loaded {len(self._members)} checked targets")

    async def flush(self) -> None:
        """Write the full current contents to durable storage."""
        await self._store.set(self.to_storage())

    def to_storage(self) -> dict:
        return {self._key: sorted(self._members)}

    def handle_change(self, change: StorageChange) -> None:
        """Storage change listener; see module docstring for the rules."""
        if change.key != self._key:
            return
        if change.writer is not None and change.writer == self._store.writer_id:
            return
        self._replace(change.new_value)
        logger.info(f"[DedupSet] Replaced from external change ({len(self._members)} targets)")

    def _replace(self, values: Optional[Iterable[str]]) -> None:
        self._members = set(values or [])

    # ------------------------------------------------------------------
    # Set operations
    # ------------------------------------------------------------------

    def has(self, key: str) -> bool:
        return key in self._members

    def add_local(self, key: str) -> None:
        """Insert without flushing. The caller owes a flush()."""
        self._members.add(key)

    def discard_local(self, key: str) -> None:
        self._members.discard(key)

    def discard_all_local(self) -> None:
        self._members.clear()

    async def add(self, key: str) -> None:
        self._members.add(key)
        await self.flush()

    async def remove(self, key: str) -> None:
        self._members.discard(key)
        await self.flush()

    async def clear(self) -> None:
        self._members.clear()
        await self.flush()

    def snapshot(self) -> Set[str]:
        return set(self._members)

    def __contains__(self, key: object) -> bool:
        return key in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(set(self._members))

    def __len__(self) -> int:
        return len(self._members)
