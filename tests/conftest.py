"""Pytest configuration for Ghostleak."""
import asyncio
import os
import tempfile
from typing import Dict, List, Optional, Tuple, Union

import httpx
import pytest

from ghostleak.base.config import GhostleakConfig, ProbeConfig, StorageConfig, WatchConfig
from ghostleak.data.kv_store import MemoryKVStore
from ghostleak.net.adapter import ProbeClient
from ghostleak.runtime import GhostleakRuntime


def pytest_configure():
    # Keep tests away from ~/.ghostleak and its log file
    os.environ.setdefault("GHOSTLEAK_DATA_DIR", tempfile.mkdtemp(prefix="ghostleak-test-"))
    os.environ.setdefault("GHOSTLEAK_LOG_FILE", "false")


Route = Union[Tuple[int, str], Exception]


class FakeSite:
    """
    httpx.MockTransport handler serving canned probe responses.

    Unknown URLs answer 404. Setting `gate` to an asyncio.Event holds every
    request until the event is set.
    """

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []
        self.gate: Optional[asyncio.Event] = None

    def serve(self, url: str, status: int, body: str) -> None:
        self.routes[url] = (status, body)

    def fail(self, url: str, exc: Exception) -> None:
        self.routes[url] = exc

    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        status, body = route
        return httpx.Response(status, text=body)


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def probe_config():
    return ProbeConfig(timeout_seconds=2.0)


@pytest.fixture
def probe_client(site, probe_config):
    return ProbeClient(
        probe_config,
        underlying_client=httpx.AsyncClient(transport=httpx.MockTransport(site.handler)),
    )


@pytest.fixture
def store():
    return MemoryKVStore()


@pytest.fixture
def config(tmp_path, probe_config):
    return GhostleakConfig(
        storage=StorageConfig(base_dir=tmp_path),
        probe=probe_config,
        watch=WatchConfig(poll_interval=0.05),
    )


@pytest.fixture
def runtime(config, store, probe_client):
    return GhostleakRuntime(config, store=store, client=probe_client)

