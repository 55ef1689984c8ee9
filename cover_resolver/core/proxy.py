"""Image proxy — fetch remote images server-side for cross-origin display."""

from __future__ import annotations

import ipaddress
import re
import socket
from dataclasses import dataclass, field
from typing import Callable, Mapping
from urllib.parse import urlsplit

import httpx
from loguru import logger

from cover_resolver.errors import ProxyInvalidUrl, ProxyUpstreamFailed
from cover_resolver.http import BROWSER_USER_AGENT

IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"
DEFAULT_CACHE_CONTROL = "public, max-age=604800"

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Expose-Headers": "*",
    "Access-Control-Max-Age": "86400",
}

MAX_REDIRECTS = 5

_IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp")
_BLOCKED_HOSTNAMES = frozenset({"localhost", "localhost.localdomain"})

# Decimal, octal or hex label; hosts made only of these are IPv4 shorthand
_NUMERIC_LABEL = re.compile(r"^(0x[0-9a-f]*|[0-9]+)$")


def resolve_addresses(host: str) -> list[str]:
    """Addresses the system resolver returns for ``host``, or ``[]`` if it fails."""
    try:
        infos = socket.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    except (OSError, UnicodeError):
        return []
    return sorted({str(info[4][0]) for info in infos})


@dataclass
class ProxiedImage:
    """Upstream body plus the headers to serve it with."""

    content: bytes
    content_type: str
    headers: dict[str, str] = field(default_factory=dict)


class ImageProxy:
    """Stateless fetcher; the only thing shared across calls is the HTTP client.

    Targets are restricted to public http(s) hosts (and to ``allowed_hosts``
    when that list is non-empty) and bodies are capped at ``max_bytes``.
    Redirects are followed by hand, and every hop is validated before it is
    requested.

    ``signed_hosts`` maps a host (matching subdomains too) to query
    parameters added server-side, so credential-bearing media URLs can be
    handed to callers without their credentials.
    """

    def __init__(
        self,
        client: httpx.Client,
        allowed_hosts: list[str] | None = None,
        max_bytes: int = 10 * 1024 * 1024,
        signed_hosts: Mapping[str, Mapping[str, str]] | None = None,
        resolve_host: Callable[[str], list[str]] = resolve_addresses,
    ) -> None:
        self._client = client
        self._allowed_hosts = frozenset(h.lower() for h in (allowed_hosts or []))
        self._max_bytes = max_bytes
        self._signed_hosts = {h.lower(): dict(p) for h, p in (signed_hosts or {}).items()}
        self._resolve_host = resolve_host

    def validate_url(self, target_url: str | None) -> str:
        """Return the URL if it may be proxied, else raise ``ProxyInvalidUrl``."""
        if not target_url or not target_url.strip():
            raise ProxyInvalidUrl("Missing url parameter")
        url = target_url.strip()
        try:
            parts = urlsplit(url)
            host = (parts.hostname or "").lower().rstrip(".")
            if parts.port == 0:
                raise ValueError("port 0")
        except ValueError:
            raise ProxyInvalidUrl("Malformed url") from None

        if parts.scheme not in ("http", "https"):
            raise ProxyInvalidUrl("Only http and https urls can be proxied")
        if not host:
            raise ProxyInvalidUrl("Url has no host")
        if parts.username or parts.password:
            raise ProxyInvalidUrl("Credentials in url are not allowed")
        if self._allowed_hosts and not self._matches(host, self._allowed_hosts):
            raise ProxyInvalidUrl("Url host is not allowed")
        if host in _BLOCKED_HOSTNAMES or not self._is_public_host(host):
            raise ProxyInvalidUrl("Url host is not public")
        return url

    @staticmethod
    def _matches(host: str, suffixes) -> bool:
        return any(host == h or host.endswith(f".{h}") for h in suffixes)

    def _is_public_host(self, host: str) -> bool:
        """False for any host that is, or resolves to, a non-global address."""
        try:
            return ipaddress.ip_address(host.strip("[]")).is_global
        except ValueError:
            pass
        # 2130706433, 0x7f000001, 127.1 and 0177.0.0.1 all reach loopback
        if all(_NUMERIC_LABEL.match(label) for label in host.split(".")):
            return False
        for address in self._resolve_host(host):
            try:
                addr = ipaddress.ip_address(address.split("%", 1)[0])
            except ValueError:
                return False
            if not addr.is_global:
                return False
        return True

    def _sign(self, url: str) -> str:
        host = (urlsplit(url).hostname or "").lower()
        for signed_host, params in self._signed_hosts.items():
            if self._matches(host, (signed_host,)):
                return str(httpx.URL(url).copy_merge_params(params))
        return url

    def fetch(self, target_url: str | None) -> ProxiedImage:
        """Fetch ``target_url`` and return its bytes with permissive headers."""
        url = self.validate_url(target_url)
        try:
            content, content_type = self._fetch_following(url)
        except httpx.TimeoutException:
            logger.warning(f"Proxy upstream timed out for {url}")
            raise ProxyUpstreamFailed("Upstream timed out") from None
        except httpx.HTTPError as e:
            logger.warning(f"Proxy upstream failed for {url}: {type(e).__name__}")
            raise ProxyUpstreamFailed("Upstream request failed") from None

        headers = dict(CORS_HEADERS)
        headers["Content-Type"] = content_type
        if content_type.startswith("image/") or urlsplit(url).path.lower().endswith(_IMAGE_SUFFIXES):
            headers["Cache-Control"] = IMAGE_CACHE_CONTROL
        else:
            headers["Cache-Control"] = DEFAULT_CACHE_CONTROL
        return ProxiedImage(content=content, content_type=content_type, headers=headers)

    def _fetch_following(self, url: str) -> tuple[bytes, str]:
        hop = url
        for _ in range(MAX_REDIRECTS + 1):
            request = self._client.build_request(
                "GET", self._sign(hop), headers={"User-Agent": BROWSER_USER_AGENT}
            )
            resp = self._client.send(request, stream=True, follow_redirects=False)
            try:
                if resp.next_request is not None:
                    hop = self.validate_url(str(resp.next_request.url))
                    logger.debug(f"Proxy following redirect for {url}")
                    continue
                if resp.status_code >= 400:
                    logger.warning(f"Proxy upstream returned HTTP {resp.status_code} for {url}")
                    raise ProxyUpstreamFailed(f"Upstream returned HTTP {resp.status_code}")
                content = self._read_capped(resp)
                return content, resp.headers.get("content-type", "application/octet-stream")
            finally:
                resp.close()
        logger.warning(f"Proxy gave up after {MAX_REDIRECTS} redirects for {url}")
        raise ProxyUpstreamFailed("Too many redirects")

    def _read_capped(self, resp: httpx.Response) -> bytes:
        declared = resp.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._max_bytes:
            raise ProxyUpstreamFailed("Upstream body too large")
        chunks: list[bytes] = []
        total = 0
        for chunk in resp.iter_bytes():
            total += len(chunk)
            if total > self._max_bytes:
                raise ProxyUpstreamFailed("Upstream body too large")
            chunks.append(chunk)
        return b"".join(chunks)

    @staticmethod
    def preflight_headers() -> dict[str, str]:
        return dict(CORS_HEADERS)
