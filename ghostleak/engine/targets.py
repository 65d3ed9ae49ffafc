# ghostleak/engine/targets.py
# Origin keys: the unit of deduplication.
#
# A key is "{scheme}://{hostname}". Port and path are dropped:
# http://a.test:8080/x and http://a.test/y share one key.

from __future__ import annotations

from typing import Tuple
from urllib.parse import urlsplit

from ghostleak.errors import ErrorCode, TargetError

PROBED_SCHEMES = ("http", "https")


def _bracket(hostname: str) -> str:
    # IPv6 literals keep their brackets, as in the URL authority
    if ":" in hostname and not hostname.startswith("["):
        return f"[{hostname}]"
    return hostname


def origin_key(scheme: str, hostname: str) -> str:
    return f"{scheme}://{_bracket(hostname)}"


def normalize_hostname(hostname: str) -> str:
    """
    Canonical host form: IPv6 literals bracketed, internationalized names
    IDNA-encoded ("bücher.de" -> "xn--bcher-kva.de").
    """
    if ":" in hostname:
        return _bracket(hostname)
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise TargetError(ErrorCode.TARGET_INVALID, f"Invalid hostname: {hostname!r}") from e


def parse_target(url: str) -> Tuple[str, str]:
    """
    Split a navigation URL into (scheme, hostname).

    Raises TargetError for unparsable URLs, URLs without a host, and any
    scheme other than http/https.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except (ValueError, AttributeError) as e:
        raise TargetError(ErrorCode.TARGET_INVALID, f"Unparsable URL: {url!r}") from e

    scheme = parts.scheme.lower()
    if scheme not in PROBED_SCHEMES:
        raise TargetError(
            ErrorCode.TARGET_UNSUPPORTED_SCHEME,
            f"Scheme {scheme!r} is not probed",
            details={"url": url},
        )
    if not hostname:
        raise TargetError(ErrorCode.TARGET_INVALID, f"URL has no host: {url!r}")
    return scheme, normalize_hostname(hostname)
