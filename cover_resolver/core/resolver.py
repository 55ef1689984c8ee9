"""Cover resolver — ordered provider fallback with read-through caching."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from cover_resolver.errors import MissingParameter, UnsupportedPlatform, UnsupportedProvider
from cover_resolver.models.cover import (
    AttemptOutcome,
    CoverQuery,
    ProviderAttempt,
    ProviderError,
    ProviderId,
    ProviderResult,
    Resolution,
    ResolutionStatus,
)

if TYPE_CHECKING:
    from cover_resolver.core.platforms import PlatformNormalizer
    from cover_resolver.data.cover_cache import CoverCache
    from cover_resolver.scrapers.base import CoverProvider


class CoverResolver:
    """Resolve a cover by asking providers one at a time until one succeeds.

    Providers are called sequentially, never in parallel.  The winner is
    always the first success in priority order.
    """

    def __init__(
        self,
        normalizer: PlatformNormalizer,
        cache: CoverCache,
        providers: Iterable[CoverProvider] = (),
        priority: Iterable[ProviderId | str] | None = None,
        ttl: float = 7 * 24 * 60 * 60,
        negative_ttl: float = 0,
        retries: int = 0,
    ) -> None:
        self._normalizer = normalizer
        self._cache = cache
        self._providers: dict[ProviderId, CoverProvider] = {}
        for provider in providers:
            self.register_provider(provider)
        self._priority = [ProviderId(p) for p in priority] if priority is not None else list(ProviderId)
        self._ttl = ttl
        self._negative_ttl = negative_ttl
        self._retries = max(0, retries)

    def register_provider(self, provider: CoverProvider) -> None:
        """Register a cover provider."""
        self._providers[provider.provider_id] = provider

    @property
    def providers(self) -> dict[ProviderId, CoverProvider]:
        return dict(self._providers)

    @property
    def priority(self) -> list[ProviderId]:
        return list(self._priority)

    def build_query(self, title: str | None, core: str | None, source: str | None = None) -> CoverQuery:
        """Validate raw request fields into a ``CoverQuery``.

        Raises ``MissingParameter``, ``UnsupportedProvider`` or
        ``UnsupportedPlatform``; all of them before any network call.
        """
        title = (title or "").strip()
        core = (core or "").strip()
        if not title:
            raise MissingParameter("Missing required parameter: title")
        if not core:
            raise MissingParameter("Missing required parameter: core")

        forced: ProviderId | None = None
        if source:
            try:
                forced = ProviderId(source.strip().lower())
            except ValueError:
                raise UnsupportedProvider(f"Unknown cover source: '{source}'") from None

        canonical = self._normalizer.require_supported(core)
        if forced is not None and not self._normalizer.supports(canonical, forced):
            raise UnsupportedPlatform(f"{forced.value} does not support platform '{core}'")
        return CoverQuery(title=title, platform_core=canonical, forced_source=forced)

    def resolve(
        self,
        query: CoverQuery,
        cancel_event: threading.Event | None = None,
    ) -> Resolution:
        """Run the fallback chain for ``query``.

        Raises ``UnsupportedPlatform`` when no provider in the chain maps the
        query's core; every other outcome is a ``Resolution``.
        """
        order = [query.forced_source] if query.forced_source else self._priority
        if not any(self._normalizer.supports(query.platform_core, pid) for pid in order):
            raise UnsupportedPlatform(f"Unsupported platform: '{query.platform_core}'")

        key = query.cache_key
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Cover cache hit for {key}")
            status = ResolutionStatus.NOT_FOUND if cached.is_negative else ResolutionStatus.RESOLVED
            return Resolution(query=query, status=status, result=cached.result, from_cache=True)

        attempts: list[ProviderAttempt] = []

        for provider_id in order:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Cover resolution cancelled for '{query.title}'")
                return Resolution(query=query, status=ResolutionStatus.CANCELLED, attempts=attempts)

            provider = self._providers.get(provider_id)
            if provider is None or not provider.is_configured:
                logger.debug(f"Skipping {provider_id.value}: not configured")
                attempts.append(ProviderAttempt(provider_id, AttemptOutcome.UNCONFIGURED))
                continue

            try:
                platform_id = self._normalizer.normalize(query.platform_core, provider_id)
            except UnsupportedPlatform:
                logger.debug(f"Skipping {provider_id.value}: no mapping for {query.platform_core}")
                attempts.append(ProviderAttempt(provider_id, AttemptOutcome.UNSUPPORTED))
                continue

            outcome = self._lookup(provider, query, platform_id, cancel_event)
            if isinstance(outcome, ProviderResult):
                attempts.append(ProviderAttempt(provider_id, AttemptOutcome.SUCCESS))
                self._cache.put(key, outcome, self._ttl)
                logger.info(f"Resolved cover for '{query.title}' ({query.platform_core}) via {provider_id.value}")
                return Resolution(
                    query=query,
                    status=ResolutionStatus.RESOLVED,
                    result=outcome,
                    attempts=attempts,
                )

            attempts.append(
                ProviderAttempt(provider_id, AttemptOutcome.FAILED, outcome.kind, outcome.message)
            )
            logger.info(
                f"{provider.display_name} gave no cover for '{query.title}' "
                f"({outcome.kind.value}), falling back"
            )

        logger.info(f"No cover found for '{query.title}' ({query.platform_core})")
        self._cache.put(key, None, self._negative_ttl)
        return Resolution(query=query, status=ResolutionStatus.NOT_FOUND, attempts=attempts)

    def _lookup(
        self,
        provider: CoverProvider,
        query: CoverQuery,
        platform_id: int | str,
        cancel_event: threading.Event | None,
    ) -> ProviderResult | ProviderError:
        """Call one provider, retrying transient failures up to ``retries`` times."""
        outcome = provider.lookup_cover(query.title, query.platform_core, platform_id)
        for _ in range(self._retries):
            if not isinstance(outcome, ProviderError) or not outcome.is_transient:
                break
            if cancel_event is not None and cancel_event.is_set():
                break
            logger.debug(f"Retrying {provider.display_name} after {outcome.kind.value}")
            outcome = provider.lookup_cover(query.title, query.platform_core, platform_id)
        return outcome
