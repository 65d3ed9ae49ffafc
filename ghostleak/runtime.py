"""
ghostleak/runtime.py
Wires the pieces together for one process.

    store -> ScanContext(settings, dedup, findings, locks)
          -> CheckDispatcher(context, ProbeClient)
          -> NavigationEventAdapter(dispatcher)
          -> AlertHub(notifier, badge)

initialize() is idempotent: it loads every persisted value, subscribes to
the store's change stream and, for the SQLite store, starts watching for
writes made by other processes.
"""

from __future__ import annotations

import logging
from typing import Optional

from ghostleak.alerts import AlertHub, Notifier, StatusSink
from ghostleak.base.config import GhostleakConfig, get_config
from ghostleak.base.context import ScanContext
from ghostleak.data.db import Database
from ghostleak.data.kv_store import KVStore, SQLiteKVStore
from ghostleak.engine.dispatcher import CheckDispatcher
from ghostleak.ghost.navigation import NavigationEventAdapter
from ghostleak.net.adapter import ProbeClient

logger = logging.getLogger(__name__)


class GhostleakRuntime:
    def __init__(
        self,
        config: Optional[GhostleakConfig] = None,
        store: Optional[KVStore] = None,
        client: Optional[ProbeClient] = None,
        notifier: Optional[Notifier] = None,
        status: Optional[StatusSink] = None,
    ):
        self.config = config or get_config()
        if store is None:
            store = SQLiteKVStore(
                Database(str(self.config.storage.db_path)),
                poll_interval=self.config.watch.poll_interval,
            )
        self.store = store
        self.client = client or ProbeClient(self.config.probe)

        self.context = ScanContext.create(self.store)
        self.dispatcher = CheckDispatcher(self.context, self.client, self.config.probe.timeout_seconds)
        self.adapter = NavigationEventAdapter(self.dispatcher)
        self.alerts = AlertHub(self.context.settings, self.context.findings, notifier, status)
        self._initialized = False

    @property
    def settings(self):
        return self.context.settings

    @property
    def findings(self):
        return self.context.findings

    @property
    def dedup(self):
        return self.context.dedup

    async def initialize(self) -> None:
        if self._initialized:
            return
        if isinstance(self.store, SQLiteKVStore):
            await self.store.init()

        await self.context.load()
        self.context.attach()
        self.alerts.attach(self.dispatcher)

        if isinstance(self.store, SQLiteKVStore):
            self.store.start_watching()

        self._initialized = True
        logger.info(
            f"[Runtime] Ready: {len(self.findings)} findings, "
            f"{len(self.dedup)} checked targets, {self.settings.snapshot()}"
        )

    async def shutdown(self) -> None:
        await self.adapter.drain()
        if isinstance(self.store, SQLiteKVStore):
            await self.store.stop_watching()
            await self.store.db.close()
        await self.client.aclose()
        if self._initialized:
            self.context.detach()
        self._initialized = False
        logger.info("[Runtime] Shut down")

    # Control surface operations

    def get_found_items(self) -> list:
        return [f.to_dict() for f in self.findings.list()]

    async def remove_item(self, item_id: int) -> bool:
        return await self.findings.remove_by_id(item_id)

    async def clear_all(self) -> None:
        await self.findings.clear_all()
