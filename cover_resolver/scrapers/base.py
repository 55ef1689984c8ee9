"""Abstract base class for cover art providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from cover_resolver.logger import redact_params
from cover_resolver.models.cover import ErrorKind, LookupOutcome, ProviderError, ProviderId

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CoverProvider(ABC):
    """Uniform interface for one external cover art source.

    ``lookup_cover`` never raises for expected failures: no match, quota,
    outage and bad payloads all come back as ``ProviderError`` values.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    @property
    @abstractmethod
    def provider_id(self) -> ProviderId:
        """Unique identifier for this provider."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name (e.g. 'ScreenScraper')."""
        ...

    @property
    def is_configured(self) -> bool:
        """Whether optional credentials are present.  Unconfigured providers are skipped."""
        return True

    @abstractmethod
    def lookup_cover(self, title: str, platform_core: str, platform_id: int | str) -> LookupOutcome:
        """Find a cover for ``title`` on the provider's ``platform_id``."""
        ...

    # ── HTTP helpers ──

    def _classify_status(self, status_code: int) -> ErrorKind | None:
        """Map an HTTP status to an error kind, or ``None`` for success."""
        if status_code == 429:
            return ErrorKind.RATE_LIMITED
        if status_code == 404:
            return ErrorKind.NOT_FOUND
        if status_code >= 500:
            return ErrorKind.UNAVAILABLE
        if status_code >= 400:
            return ErrorKind.MALFORMED
        return None

    def _get_json(
        self,
        url: str,
        params: dict[str, Any],
        schema: type[SchemaT],
    ) -> SchemaT | ProviderError:
        """GET ``url`` and validate the JSON body against ``schema``."""
        name = self.display_name
        try:
            resp = self._client.get(url, params=params)
        except httpx.TimeoutException:
            logger.warning(f"{name} request timed out: {url}")
            return ProviderError(ErrorKind.TIMEOUT, f"{name} request timed out")
        except httpx.HTTPError as e:
            logger.warning(f"{name} request failed: {type(e).__name__}")
            return ProviderError(ErrorKind.UNAVAILABLE, f"{name} is unreachable")

        kind = self._classify_status(resp.status_code)
        if kind is not None:
            logger.warning(
                f"{name} returned HTTP {resp.status_code} for {url} {redact_params(params)}"
            )
            return ProviderError(kind, f"{name} returned HTTP {resp.status_code}")

        try:
            return schema.model_validate(resp.json())
        except ValueError as e:
            # ValidationError subclasses ValueError, as does a JSON decode error
            reason = "schema mismatch" if isinstance(e, ValidationError) else "invalid JSON"
            logger.warning(f"{name} response rejected ({reason}): {url}")
            return ProviderError(ErrorKind.MALFORMED, f"{name} response failed validation")
