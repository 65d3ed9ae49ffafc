"""
ghostleak/engine/dispatcher.py
The Check Dispatcher.

For one origin: dedup lookup, lock, mark as spent, run the enabled probes,
release the lock. Each origin gets at most one probe round for as long as
the persisted dedup set remembers it.

Per-key states:

    UNKNOWN --accept--> LOCKED --probes settled--> DONE (key stays in dedup set)
       |
       +-- rejected (already checked / already found / in flight): no state change

Suspension points inside dispatch(): the dedup flush, every probe, every
finding write. Nothing between the dedup check and try_acquire() awaits, so
the check-and-lock is atomic for the event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ghostleak.base.context import ScanContext
from ghostleak.data.models import ExposureKind, Finding
from ghostleak.engine.classifier import is_exposed
from ghostleak.engine.targets import origin_key, parse_target
from ghostleak.errors import ProbeError, TargetError
from ghostleak.net.adapter import ProbeClient
from ghostleak.utils.async_helpers import run_with_timeout
from ghostleak.utils.observer import Signal

logger = logging.getLogger(__name__)

# Probe order within one round
PROBE_ORDER = (ExposureKind.GIT_CONFIG, ExposureKind.ENV_FILE)

_LOG_TAGS = {
    ExposureKind.GIT_CONFIG: "[GIT]",
    ExposureKind.ENV_FILE: "[ENV]",
}


class DispatchOutcome(str, Enum):
    PROBED = "probed"
    DISABLED = "disabled"
    ALREADY_CHECKED = "already_checked"
    ALREADY_FOUND = "already_found"
    IN_FLIGHT = "in_flight"


@dataclass
class DispatchResult:
    key: str
    outcome: DispatchOutcome
    probed: List[ExposureKind] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.outcome == DispatchOutcome.PROBED


class CheckDispatcher:
    """
    Decides which origins get probed and runs their probe round.

    finding_recorded is emitted once per new Finding, after it is persisted.
    """

    def __init__(
        self,
        context: ScanContext,
        client: ProbeClient,
        probe_timeout: Optional[float] = None,
    ):
        self.context = context
        self.client = client
        self.probe_timeout = probe_timeout if probe_timeout is not None else client.config.timeout_seconds
        self.finding_recorded = Signal()

    def _enabled(self, kind: ExposureKind) -> bool:
        settings = self.context.settings
        if kind == ExposureKind.GIT_CONFIG:
            return settings.git_enabled
        return settings.env_enabled

    async def dispatch_url(self, url: str) -> Optional[DispatchResult]:
        """Dispatch a raw navigation URL. Malformed and non-http(s) URLs are dropped."""
        try:
            scheme, hostname = parse_target(url)
        except TargetError as e:
            logger.debug(f"[Dispatcher] Dropped {url!r}: {e.message}")
            return None
        return await self.dispatch(scheme, hostname)

    async def dispatch(self, scheme: str, hostname: str) -> DispatchResult:
        ctx = self.context
        key = origin_key(scheme, hostname)

        if not ctx.settings.enabled:
            return DispatchResult(key, DispatchOutcome.DISABLED)
        if ctx.dedup.has(key):
            return DispatchResult(key, DispatchOutcome.ALREADY_CHECKED)
        if ctx.findings.references(key):
            return DispatchResult(key, DispatchOutcome.ALREADY_FOUND)
        if not ctx.locks.try_acquire(key):
            return DispatchResult(key, DispatchOutcome.IN_FLIGHT)

        result = DispatchResult(key, DispatchOutcome.PROBED)
        try:
            # Spent before any network call
            ctx.dedup.add_local(key)
            await ctx.dedup.flush()

            base_url = key
            for kind in PROBE_ORDER:
                # Toggles are read at each decision point, never cached for the round
                if not self._enabled(kind):
                    continue
                result.probed.append(kind)
                finding = await self._probe(kind, base_url, key)
                if finding is not None:
                    result.findings.append(finding)
        finally:
            ctx.locks.release(key)

        return result

    async def _probe(self, kind: ExposureKind, base_url: str, key: str) -> Optional[Finding]:
        url = f"{base_url}{kind.path}"
        logger.info(f"{_LOG_TAGS[kind]} {url}")

        try:
            response = await run_with_timeout(
                self.client.fetch(url, base_url),
                timeout=self.probe_timeout,
                default=None,
                name=f"probe {url}",
            )
        except ProbeError as e:
            logger.debug(f"[Dispatcher] {e}")
            return None

        if response is None or not is_exposed(kind, response.status, response.body):
            return None

        finding = await self.context.findings.record(key, kind, url)
        self.finding_recorded.emit(finding)
        return finding
