"""
Tests for the mitmproxy addon that turns document loads into navigation events.
Flows are MagicMocks shaped like mitmproxy's HTTPFlow.
"""
import pytest
from unittest.mock import MagicMock

from ghostleak.ghost.proxy import GhostAddon, GhostInterceptor, is_document_request


def _flow(url="https://shop.test/index.html", method="GET", headers=None, conn_id="conn-1"):
    flow = MagicMock()
    flow.request.method = method
    flow.request.headers = headers if headers is not None else {"Sec-Fetch-Dest": "document"}
    flow.request.pretty_url = url
    flow.client_conn.id = conn_id
    return flow


class TestIsDocumentRequest:
    def test_fetch_metadata_document(self):
        assert is_document_request(_flow().request)

    def test_fetch_metadata_subresource(self):
        assert not is_document_request(_flow(headers={"Sec-Fetch-Dest": "image"}).request)

    def test_accept_header_fallback(self):
        assert is_document_request(_flow(headers={"Accept": "text/html,application/xhtml+xml"}).request)
        assert not is_document_request(_flow(headers={"Accept": "application/json"}).request)

    def test_non_get_is_ignored(self):
        assert not is_document_request(_flow(method="POST").request)


def test_request_emits_url_change():
    adapter = MagicMock()
    addon = GhostAddon(adapter)

    addon.request(_flow())

    adapter.on_updated.assert_called_once_with(
        "conn-1", {"url": "https://shop.test/index.html"}, {"url": "https://shop.test/index.html"}
    )


def test_response_emits_complete_status():
    adapter = MagicMock()
    addon = GhostAddon(adapter)

    addon.response(_flow())

    adapter.on_updated.assert_called_once_with(
        "conn-1", {"status": "complete"}, {"url": "https://shop.test/index.html"}
    )


def test_subresources_are_ignored():
    adapter = MagicMock()
    addon = GhostAddon(adapter)

    addon.request(_flow(headers={"Sec-Fetch-Dest": "script"}))
    addon.response(_flow(headers={"Sec-Fetch-Dest": "script"}))

    adapter.on_updated.assert_not_called()


def test_adapter_failure_never_escapes_the_hook():
    adapter = MagicMock()
    adapter.on_updated.side_effect = RuntimeError("boom")
    addon = GhostAddon(adapter)

    addon.request(_flow())
    addon.response(_flow())


@pytest.mark.asyncio
async def test_document_load_reaches_the_dispatcher(runtime, site):
    await runtime.initialize()
    addon = GhostAddon(runtime.adapter)

    addon.request(_flow("https://shop.test/"))
    addon.response(_flow("https://shop.test/"))
    await runtime.adapter.drain()

    assert runtime.dedup.has("https://shop.test")
    assert site.urls() == ["https://shop.test/.git/config", "https://shop.test/.env"]


def test_interceptor_picks_free_port_when_zero():
    interceptor = GhostInterceptor(MagicMock(), port=0)
    assert interceptor.port > 0
