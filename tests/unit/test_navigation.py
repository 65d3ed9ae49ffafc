"""
Tests for the Navigation Event Adapter: which callback shapes dispatch,
which are ignored, and that duplicates are left to the dispatcher.
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from ghostleak.engine.dispatcher import DispatchOutcome
from ghostleak.ghost.navigation import NavigationEventAdapter, navigation_url


class TestNavigationUrl:
    def test_url_change_wins(self):
        assert navigation_url({"url": "https://a.test/x", "status": "complete"}, {"url": "https://b.test"}) == "https://a.test/x"

    def test_complete_status_uses_tab_url(self):
        assert navigation_url({"status": "complete"}, {"url": "https://b.test/"}) == "https://b.test/"

    def test_loading_status_is_ignored(self):
        assert navigation_url({"status": "loading"}, {"url": "https://b.test/"}) is None

    def test_complete_without_tab_url_is_ignored(self):
        assert navigation_url({"status": "complete"}, {}) is None
        assert navigation_url({"status": "complete"}, None) is None


@pytest.fixture
def fake_dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=None)
    return dispatcher


@pytest.mark.asyncio
async def test_on_updated_dispatches_scheme_and_hostname(fake_dispatcher):
    adapter = NavigationEventAdapter(fake_dispatcher)

    task = adapter.on_updated(7, {"url": "https://Shop.test:8443/cart?x=1"}, {"url": "https://Shop.test:8443/cart?x=1"})
    await task

    fake_dispatcher.dispatch.assert_awaited_once_with("https", "shop.test")


@pytest.mark.asyncio
async def test_one_callback_never_dispatches_twice(fake_dispatcher):
    adapter = NavigationEventAdapter(fake_dispatcher)

    adapter.on_updated(1, {"url": "https://a.test/", "status": "complete"}, {"url": "https://a.test/"})
    await adapter.drain()

    assert fake_dispatcher.dispatch.await_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["chrome://extensions", "about:blank", "file:///etc/passwd", "not a url", "https://"])
async def test_non_probeable_urls_are_dropped(fake_dispatcher, url):
    adapter = NavigationEventAdapter(fake_dispatcher)

    assert adapter.on_updated(1, {"url": url}, {"url": url}) is None
    fake_dispatcher.dispatch.assert_not_called()


@pytest.mark.asyncio
async def test_duplicates_are_forwarded_not_filtered(fake_dispatcher):
    adapter = NavigationEventAdapter(fake_dispatcher)

    for tab in range(3):
        adapter.on_updated(tab, {"url": "https://a.test/"}, None)
    await adapter.drain()

    assert fake_dispatcher.dispatch.await_count == 3


@pytest.mark.asyncio
async def test_drain_waits_for_every_pending_dispatch(fake_dispatcher):
    release = asyncio.Event()

    async def slow_dispatch(scheme, hostname):
        await release.wait()

    fake_dispatcher.dispatch = AsyncMock(side_effect=slow_dispatch)
    adapter = NavigationEventAdapter(fake_dispatcher)
    adapter.on_updated(1, {"url": "https://a.test/"}, None)
    adapter.on_updated(2, {"url": "https://b.test/"}, None)
    assert adapter.pending == 2

    release.set()
    await adapter.drain()

    assert adapter.pending == 0


@pytest.mark.asyncio
async def test_end_to_end_with_real_dispatcher(runtime, site):
    await runtime.initialize()

    tasks = [
        runtime.adapter.on_updated(1, {"url": "https://a.test/one"}, {"url": "https://a.test/one"}),
        runtime.adapter.on_updated(1, {"status": "complete"}, {"url": "https://a.test/one"}),
        runtime.adapter.on_updated(2, {"url": "http://a.test/two"}, {"url": "http://a.test/two"}),
    ]
    results = await asyncio.gather(*tasks)

    outcomes = sorted(r.outcome.value for r in results)
    assert outcomes == sorted([
        DispatchOutcome.PROBED.value,
        DispatchOutcome.ALREADY_CHECKED.value,
        DispatchOutcome.PROBED.value,
    ])
    # https and http are separate origins
    assert sorted(runtime.dedup) == ["http://a.test", "https://a.test"]
    assert len(site.requests) == 4
