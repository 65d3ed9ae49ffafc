"""
ghostleak/base/settings.py
The three runtime toggles: master enabled, git check, env check.

Values live in the durable store, default to True when absent, and follow
external changes live. Every change is applied, echoes of our own writes
included.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ghostleak.data.kv_store import (
    KEY_ENABLED,
    KEY_ENV_ENABLED,
    KEY_GIT_ENABLED,
    KVStore,
    StorageChange,
)
from ghostleak.utils.observer import Signal

logger = logging.getLogger(__name__)

_FIELDS = {
    KEY_ENABLED: "enabled",
    KEY_GIT_ENABLED: "git_enabled",
    KEY_ENV_ENABLED: "env_enabled",
}


@dataclass(frozen=True)
class SettingsSnapshot:
    enabled: bool = True
    git_enabled: bool = True
    env_enabled: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {key: getattr(self, attr) for key, attr in _FIELDS.items()}


def _as_flag(value: Any) -> bool:
    # Absent means on
    return True if value is None else bool(value)


class RuntimeSettings:
    """Process-wide toggles backed by the key-value store."""

    def __init__(self, store: KVStore):
        self._store = store
        self.enabled = True
        self.git_enabled = True
        self.env_enabled = True
        # emitted with (key, new_value)
        self.settings_changed = Signal()

    async def load(self) -> None:
        data = await self._store.get(list(_FIELDS))
        for key, attr in _FIELDS.items():
            setattr(self, attr, _as_flag(data.get(key)))
        logger.info(f"[Settings] Loaded {self.snapshot()}")

    def snapshot(self) -> SettingsSnapshot:
        return SettingsSnapshot(self.enabled, self.git_enabled, self.env_enabled)

    def handle_change(self, change: StorageChange) -> None:
        attr = _FIELDS.get(change.key)
        if attr is None:
            return
        value = _as_flag(change.new_value)
        if getattr(self, attr) == value:
            return
        setattr(self, attr, value)
        logger.info(f"[Settings] {change.key} -> {value}")
        self.settings_changed.emit(change.key, value)

    async def update(
        self,
        enabled: Optional[bool] = None,
        git_enabled: Optional[bool] = None,
        env_enabled: Optional[bool] = None,
    ) -> SettingsSnapshot:
        """Persist the given toggles; None leaves a toggle unchanged."""
        mapping = {}
        for key, value in ((KEY_ENABLED, enabled), (KEY_GIT_ENABLED, git_enabled), (KEY_ENV_ENABLED, env_enabled)):
            if value is not None:
                mapping[key] = bool(value)
        if mapping:
            await self._store.set(mapping)
            # handle_change ignores values already in effect, so the echo is a no-op
            for key, value in mapping.items():
                self.handle_change(StorageChange(key, None, value, self._store.writer_id))
        return self.snapshot()
