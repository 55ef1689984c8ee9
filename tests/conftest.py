"""Shared fixtures: scripted providers, a fake clock, mock HTTP clients."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from cover_resolver.config import Config, reset_config
from cover_resolver.core.platforms import PlatformNormalizer
from cover_resolver.core.proxy import ImageProxy
from cover_resolver.core.resolver import CoverResolver
from cover_resolver.context import AppContext
from cover_resolver.data.cover_cache import CoverCache
from cover_resolver.models.cover import (
    ErrorKind,
    LookupOutcome,
    ProviderError,
    ProviderId,
    ProviderResult,
)
from cover_resolver.scrapers.base import CoverProvider


def _refuse(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def public_dns(host: str) -> list[str]:
    """Resolve every name to one public address, keeping tests off the network."""
    return ["93.184.216.34"]


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedProvider(CoverProvider):
    """Provider returning queued outcomes; the last one repeats."""

    def __init__(
        self,
        provider_id: ProviderId,
        *outcomes: LookupOutcome,
        configured: bool = True,
    ) -> None:
        super().__init__(mock_client(_refuse))
        self._id = provider_id
        self._outcomes = list(outcomes) or [ProviderError(ErrorKind.NOT_FOUND, "no match")]
        self._configured = configured
        self.calls: list[tuple[str, str, int | str]] = []

    @property
    def provider_id(self) -> ProviderId:
        return self._id

    @property
    def display_name(self) -> str:
        return f"Scripted {self._id.value}"

    @property
    def is_configured(self) -> bool:
        return self._configured

    def script(self, *outcomes: LookupOutcome) -> None:
        self._outcomes = list(outcomes)

    def lookup_cover(self, title: str, platform_core: str, platform_id: int | str) -> LookupOutcome:
        self.calls.append((title, platform_core, platform_id))
        if len(self._outcomes) > 1:
            return self._outcomes.pop(0)
        return self._outcomes[0]


def found(provider_id: ProviderId, url: str, title: str = "") -> ProviderResult:
    return ProviderResult(provider_id=provider_id, image_url=url, title=title)


def not_found() -> ProviderError:
    return ProviderError(ErrorKind.NOT_FOUND, "no match")


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def normalizer() -> PlatformNormalizer:
    return PlatformNormalizer()


@pytest.fixture
def cache(clock: FakeClock) -> CoverCache:
    return CoverCache(clock=clock)


@pytest.fixture
def providers() -> dict[ProviderId, ScriptedProvider]:
    return {pid: ScriptedProvider(pid) for pid in ProviderId}


@pytest.fixture
def resolver(
    normalizer: PlatformNormalizer,
    cache: CoverCache,
    providers: dict[ProviderId, ScriptedProvider],
) -> CoverResolver:
    return CoverResolver(
        normalizer,
        cache,
        providers.values(),
        ttl=7 * 24 * 60 * 60,
        negative_ttl=60,
    )


@pytest.fixture
def app_context(
    tmp_path: Path,
    normalizer: PlatformNormalizer,
    cache: CoverCache,
    resolver: CoverResolver,
) -> AppContext:
    config = Config(tmp_path / "config.json", environ={})
    proxy = ImageProxy(mock_client(_refuse), resolve_host=public_dns)
    return AppContext(
        config=config,
        normalizer=normalizer,
        cache=cache,
        resolver=resolver,
        proxy=proxy,
    )
