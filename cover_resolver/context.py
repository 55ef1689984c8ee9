"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from cover_resolver.core.platforms import PlatformNormalizer
from cover_resolver.core.proxy import ImageProxy
from cover_resolver.core.resolver import CoverResolver
from cover_resolver.data.cover_cache import CoverCache
from cover_resolver.errors import ConfigurationError
from cover_resolver.http import build_http_client
from cover_resolver.models.cover import ProviderId
from cover_resolver.scrapers.screenscraper import MEDIA_HOST, ScreenScraperProvider
from cover_resolver.scrapers.thegamesdb import TheGamesDBProvider
from cover_resolver.scrapers.wikipedia import WikipediaProvider

if TYPE_CHECKING:
    from cover_resolver.config import Config
    from cover_resolver.scrapers.base import CoverProvider


@dataclass
class AppContext:
    """
    Central service container.

    Built once per process; request handlers receive it through the Flask
    app instead of constructing clients at each call site.
    """

    config: Config
    normalizer: PlatformNormalizer
    cache: CoverCache
    resolver: CoverResolver
    proxy: ImageProxy
    clients: list[httpx.Client] = field(default_factory=list)

    def close(self) -> None:
        """Close every outbound HTTP client."""
        for client in self.clients:
            client.close()
        self.clients.clear()


def _build_provider(provider_id: ProviderId, config: Config, client: httpx.Client) -> CoverProvider:
    if provider_id is ProviderId.SCREENSCRAPER:
        ss = config.screenscraper_config
        return ScreenScraperProvider(
            client,
            dev_id=ss.get("dev_id", ""),
            dev_password=ss.get("dev_password", ""),
            username=ss.get("username", ""),
            password=ss.get("password", ""),
            software_name=ss.get("software_name", "cover-resolver"),
            regions=ss.get("regions"),
        )
    if provider_id is ProviderId.THEGAMESDB:
        if not config.thegamesdb_api_key:
            logger.warning("TheGamesDB API key not configured; it will be skipped")
        return TheGamesDBProvider(client, api_key=config.thegamesdb_api_key)
    return WikipediaProvider(client, language=config.wikipedia_language)


def create_context(config: Config) -> AppContext:
    """Wire all services and return an AppContext.

    Raises ``ConfigurationError`` when the provider order names an unknown
    provider or a required credential set is missing.
    """
    try:
        priority = [ProviderId(name) for name in config.provider_order]
    except ValueError as e:
        raise ConfigurationError(f"Invalid provider order: {e}") from None
    if not priority:
        raise ConfigurationError("Provider order is empty")

    normalizer = PlatformNormalizer()
    cache = CoverCache(config.cache_dir)

    clients: list[httpx.Client] = []
    providers: list[CoverProvider] = []
    try:
        for provider_id in priority:
            client = build_http_client(config)
            clients.append(client)
            providers.append(_build_provider(provider_id, config, client))

        # The proxy walks redirects itself so each hop is validated first
        proxy_client = build_http_client(
            config,
            timeout=httpx.Timeout(config.proxy_timeout),
            follow_redirects=False,
        )
        clients.append(proxy_client)
    except ConfigurationError:
        for client in clients:
            client.close()
        raise

    resolver = CoverResolver(
        normalizer,
        cache,
        providers,
        priority=priority,
        ttl=config.cache_ttl,
        negative_ttl=config.negative_ttl,
        retries=config.retries,
    )
    signed_hosts = {
        MEDIA_HOST: p.credential_params() for p in providers if isinstance(p, ScreenScraperProvider)
    }
    proxy = ImageProxy(
        proxy_client,
        allowed_hosts=config.proxy_allowed_hosts,
        max_bytes=config.proxy_max_bytes,
        signed_hosts=signed_hosts,
    )
    logger.info(f"Cover providers: {', '.join(p.value for p in priority)}")
    return AppContext(
        config=config,
        normalizer=normalizer,
        cache=cache,
        resolver=resolver,
        proxy=proxy,
        clients=clients,
    )
