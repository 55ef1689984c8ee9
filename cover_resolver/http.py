"""Shared outbound HTTP client construction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from cover_resolver.config import Config

# Some image hosts refuse non-browser agents
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

SERVICE_USER_AGENT = f"cover-resolver/0.1 httpx/{httpx.__version__}"


def build_http_client(config: Config, **kwargs: Any) -> httpx.Client:
    """Create an httpx Client with the configured timeout and optional proxy.

    One client is built per provider at startup and shared by every request.
    """
    kwargs.setdefault("timeout", httpx.Timeout(config.http_timeout))
    kwargs.setdefault("headers", {"User-Agent": SERVICE_USER_AGENT})
    kwargs.setdefault("follow_redirects", True)
    proxy = config.outbound_proxy_url
    if proxy:
        kwargs.setdefault("proxy", proxy)
    return httpx.Client(**kwargs)
