"""
ghostleak/base/context.py
Shared scan state, owned by the dispatcher.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ghostleak.base.settings import RuntimeSettings
from ghostleak.data.dedup_store import PersistedDedupSet
from ghostleak.data.findings_store import FindingStore
from ghostleak.data.kv_store import KVStore, StorageChange
from ghostleak.engine.locks import InFlightLockTable


@dataclass
class ScanContext:
    """Everything a dispatch decision reads or writes. One per process."""
    store: KVStore
    settings: RuntimeSettings
    dedup: PersistedDedupSet
    findings: FindingStore
    locks: InFlightLockTable = field(default_factory=InFlightLockTable)

    @classmethod
    def create(cls, store: KVStore) -> "ScanContext":
        dedup = PersistedDedupSet(store)
        return cls(
            store=store,
            settings=RuntimeSettings(store),
            dedup=dedup,
            findings=FindingStore(store, dedup),
        )

    async def load(self) -> None:
        await self.settings.load()
        await self.dedup.load()
        await self.findings.load()

    def handle_change(self, change: StorageChange) -> None:
        self.settings.handle_change(change)
        self.dedup.handle_change(change)
        self.findings.handle_change(change)

    def attach(self) -> None:
        """Follow the store's change stream."""
        self.store.changed.connect(self.handle_change)

    def detach(self) -> None:
        self.store.changed.disconnect(self.handle_change)
