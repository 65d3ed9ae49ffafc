"""
ghostleak/net/adapter.py
Outbound HTTP adapter for exposure probes.

This is the single choke point for traffic Ghostleak itself originates. Every
probe is a plain GET with a fixed header set; no value is derived from the
user's browsing session and no cookie jar is carried between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from ghostleak.base.config import ProbeConfig, get_config
from ghostleak.errors import ErrorCode, ProbeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResponse:
    status: int
    body: str


def probe_headers(base_url: str, user_agent: str) -> Dict[str, str]:
    """Fixed headers sent with every probe."""
    return {
        "Origin": base_url,
        "X-Forwarded-For": "127.0.0.1",
        "Cookie": "PHPSESSID=TEST",
        "User-Agent": user_agent,
    }


class ProbeClient:
    """
    Thin wrapper over httpx.AsyncClient.

    fetch() either returns a ProbeResponse or raises ProbeError; callers never
    see raw httpx exceptions.
    """

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        underlying_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or get_config().probe
        self.client = underlying_client or httpx.AsyncClient(
            verify=self.config.verify_tls,
            follow_redirects=self.config.follow_redirects,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )

    async def fetch(self, url: str, base_url: str) -> ProbeResponse:
        headers = probe_headers(base_url, self.config.user_agent)
        # credentials: omit. Nothing a previous probe received may be replayed
        self.client.cookies.clear()
        try:
            response = await self.client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            raise ProbeError(
                ErrorCode.PROBE_TIMEOUT,
                f"Probe timed out: {url}",
                details={"url": url},
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            # InvalidURL and StreamError sit outside the HTTPError hierarchy
            raise ProbeError(
                ErrorCode.PROBE_TRANSPORT_FAILED,
                f"Probe failed: {url}: {e}",
                details={"url": url, "error_type": type(e).__name__},
            ) from e
        return ProbeResponse(status=response.status_code, body=response.text)

    async def aclose(self):
        await self.client.aclose()
