"""
ghostleak/ghost/proxy.py
The Passive Interceptor.

Sits between the browser and the web as a local mitmproxy instance and turns
top-level document loads into navigation events:

    document request   -> (conn, {"url": url}, {"url": url})
    document response  -> (conn, {"status": "complete"}, {"url": url})

Sub-resource traffic (scripts, images, XHR) is ignored. The proxy never
modifies a flow.
"""

import asyncio
import logging
import socket
from typing import Optional

from mitmproxy import http, options
from mitmproxy.tools.dump import DumpMaster

from ghostleak.ghost.navigation import NavigationEventAdapter, STATUS_COMPLETE

logger = logging.getLogger(__name__)


def is_document_request(request: http.Request) -> bool:
    if request.method != "GET":
        return False
    dest = request.headers.get("Sec-Fetch-Dest")
    if dest is not None:
        return dest.lower() == "document"
    # Older clients without fetch metadata
    accept = request.headers.get("Accept", "")
    return accept.lower().startswith("text/html")


class GhostAddon:
    """
    mitmproxy addon that bridges document loads to the NavigationEventAdapter.
    """
    def __init__(self, adapter: NavigationEventAdapter):
        self.adapter = adapter

    @staticmethod
    def _tab_id(flow: http.HTTPFlow) -> str:
        return flow.client_conn.id

    def request(self, flow: http.HTTPFlow):
        """Document request: the browser is navigating to this URL."""
        try:
            if not is_document_request(flow.request):
                return
            url = flow.request.pretty_url
            logger.debug(f"[Ghost] Navigation: {url}")
            self.adapter.on_updated(self._tab_id(flow), {"url": url}, {"url": url})
        except Exception as e:
            # Hook errors stay out of the browsing path
            logger.error(f"[Ghost] Request processing error: {e}")

    def response(self, flow: http.HTTPFlow):
        """Document response: the load is complete."""
        try:
            if not is_document_request(flow.request):
                return
            url = flow.request.pretty_url
            self.adapter.on_updated(self._tab_id(flow), {"status": STATUS_COMPLETE}, {"url": url})
        except Exception as e:
            logger.error(f"[Ghost] Response processing error: {e}")


class GhostInterceptor:
    """
    Manages the background mitmproxy instance.
    """
    def __init__(self, adapter: NavigationEventAdapter, host: str = "127.0.0.1", port: int = 0):
        """
        Args:
            adapter: Receives the synthesised navigation events
            host: Interface to listen on
            port: Port to listen on. 0 means find a free port dynamically.
        """
        self.adapter = adapter
        self.host = host
        self.port = port if port > 0 else self._find_free_port(host)
        self.master: Optional[DumpMaster] = None
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def _find_free_port(host: str = "127.0.0.1") -> int:
        """Find an available port for the proxy."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            s.listen(1)
            port = s.getsockname()[1]
        return port

    async def start(self):
        """
        Starts the proxy as an asyncio task on the running loop.
        """
        opts = options.Options(listen_host=self.host, listen_port=self.port)
        self.master = DumpMaster(opts, with_termlog=False, with_dumper=False)
        self.master.addons.add(GhostAddon(self.adapter))

        logger.info(f"[*] Ghost proxy active on {self.host}:{self.port}")
        self._task = asyncio.create_task(self._run_master())

    async def _run_master(self):
        try:
            await self.master.run()
        except Exception as e:
            logger.error(f"[Ghost] Proxy error: {e}")

    async def wait(self):
        if self._task:
            await self._task

    def stop(self):
        """Shutdown the proxy gracefully."""
        if self.master:
            self.master.shutdown()
        if self._task and not self._task.done():
            self._task.cancel()
        logger.info("[*] Ghost proxy stopped.")
