"""
ghostleak/data/findings_store.py

Ordered, durable list of confirmed exposures.

  - record() appends and persists before returning; the returned Finding
    drives the notification and badge side effects.
  - remove_by_id() and clear_all() also re-open origins in the dedup set, so a
    dismissed finding gets a fresh probe on the next visit. Both lists are
    written in one store.set() call.
  - External writes to "foundItems" replace the in-memory list wholesale.
  - findings_changed fires after every local or external change.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ghostleak.data.dedup_store import PersistedDedupSet
from ghostleak.data.kv_store import KEY_CHECKED_TARGETS, KEY_FOUND_ITEMS, KVStore, StorageChange
from ghostleak.data.models import ExposureKind, Finding
from ghostleak.utils.observer import Signal

logger = logging.getLogger(__name__)


class FindingStore:
    """
    Stores every confirmed exposure in insertion order.
    Emits findings_changed so the badge and API views stay current.
    """

    def __init__(
        self,
        store: KVStore,
        dedup: PersistedDedupSet,
        clock: Callable[[], float] = time.time,
    ):
        self.findings_changed = Signal()
        self._store = store
        self._dedup = dedup
        self._clock = clock
        self._findings: List[Finding] = []
        self._last_id = 0

    # ------------------------------------------------------------------
    # Lifecycle / loading
    # ------------------------------------------------------------------

    async def load(self) -> None:
        data = await self._store.get([KEY_FOUND_ITEMS])
        self._replace(data.get(KEY_FOUND_ITEMS))
        logger.info(f"[FindingStore] Loaded {len(self._findings)} findings")
        self.findings_changed.emit()

    def handle_change(self, change: StorageChange) -> None:
        if change.key != KEY_FOUND_ITEMS:
            return
        if change.writer is not None and change.writer == self._store.writer_id:
            return
        self._replace(change.new_value)
        logger.info(f"[FindingStore] Replaced from external change ({len(self._findings)} findings)")
        self.findings_changed.emit()

    def _replace(self, items: Optional[list]) -> None:
        loaded = []
        for item in items or []:
            try:
                loaded.append(Finding.from_dict(item))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"[FindingStore] Skipping malformed stored finding {item!r}: {e}")
        self._findings = loaded
        if loaded:
            self._last_id = max(self._last_id, max(f.id for f in loaded))

    def _serialize(self) -> list:
        return [f.to_dict() for f in self._findings]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> List[Finding]:
        """Snapshot in insertion order."""
        return list(self._findings)

    def references(self, origin_key: str) -> bool:
        return any(f.target == origin_key for f in self._findings)

    def get(self, finding_id: int) -> Optional[Finding]:
        for f in self._findings:
            if f.id == finding_id:
                return f
        return None

    def __len__(self) -> int:
        return len(self._findings)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        # Millisecond clock, bumped so ids stay unique and increasing
        candidate = int(self._clock() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    async def record(self, origin_key: str, kind: ExposureKind, url: str) -> Finding:
        finding_id = self._next_id()
        stamp = datetime.fromtimestamp(finding_id / 1000, tz=timezone.utc)
        finding = Finding(
            id=finding_id,
            target=origin_key,
            kind=ExposureKind(kind),
            url=url,
            timestamp=stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            secrets=None,
        )
        self._findings.append(finding)
        await self._store.set({KEY_FOUND_ITEMS: self._serialize()})

        logger.info(f"[FindingStore] Recorded {finding.kind.label} exposure at {url}")
        self.findings_changed.emit()
        return finding

    async def remove_by_id(self, finding_id: int) -> bool:
        target = None
        kept = []
        for f in self._findings:
            if target is None and f.id == finding_id:
                target = f.target
                continue
            kept.append(f)
        if target is None:
            return False

        self._findings = kept
        self._dedup.discard_local(target)
        await self._store.set({
            KEY_FOUND_ITEMS: self._serialize(),
            KEY_CHECKED_TARGETS: self._dedup.to_storage(),
        })

        logger.info(f"[FindingStore] Removed finding {finding_id}; {target} may be checked again")
        self.findings_changed.emit()
        return True

    async def clear_all(self) -> None:
        self._findings = []
        self._dedup.discard_all_local()
        await self._store.set({
            KEY_FOUND_ITEMS: [],
            KEY_CHECKED_TARGETS: self._dedup.to_storage(),
        })

        logger.info("[FindingStore] Cleared all findings and checked targets")
        self.findings_changed.emit()
