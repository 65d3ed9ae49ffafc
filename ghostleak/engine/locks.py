"""
ghostleak/engine/locks.py
In-flight lock table.

Marks origin keys whose probe round is running right now. Process-lifetime
only: a restart forgets every lock, and the persisted dedup set (not this
table) is what keeps a key from being probed twice across restarts.

try_acquire() has no await in it. Under a single event loop a check-and-set
cannot be interleaved, so two dispatches for one key can never both win.
"""

from __future__ import annotations

import time
from typing import Dict, List, Tuple


class InFlightLockTable:
    def __init__(self) -> None:
        self._locks: Dict[str, float] = {}

    def try_acquire(self, key: str) -> bool:
        if key in self._locks:
            return False
        self._locks[key] = time.monotonic()
        return True

    def release(self, key: str) -> None:
        self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        return key in self._locks

    def held(self) -> List[Tuple[str, float]]:
        """(key, seconds held) for every lock, oldest first."""
        now = time.monotonic()
        return sorted(((k, now - t) for k, t in self._locks.items()), key=lambda kv: -kv[1])

    def __contains__(self, key: object) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
