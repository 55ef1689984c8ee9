"""Cover resolution models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ProviderId(StrEnum):
    """Cover art sources, in default priority order."""

    SCREENSCRAPER = "screenscraper"
    THEGAMESDB = "thegamesdb"
    WIKIPEDIA = "wikipedia"


class ErrorKind(StrEnum):
    """Why a provider lookup did not produce a cover."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"


class ResolutionStatus(StrEnum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


class AttemptOutcome(StrEnum):
    """What happened to one provider during a resolution."""

    SUCCESS = "success"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"  # no platform mapping for this provider
    UNCONFIGURED = "unconfigured"  # optional credentials absent


@dataclass(frozen=True)
class CoverQuery:
    """One resolution request.  ``platform_core`` is the canonical core id."""

    title: str
    platform_core: str
    forced_source: ProviderId | None = None

    @property
    def cache_key(self) -> str:
        source = self.forced_source.value if self.forced_source else "*"
        title = " ".join(self.title.split()).casefold()
        return f"{source}:{self.platform_core}:{title}"


@dataclass(frozen=True)
class ProviderResult:
    """A usable cover found by one provider.  ``image_url`` is never empty."""

    provider_id: ProviderId
    image_url: str
    title: str = ""
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.image_url or not self.image_url.strip():
            raise ValueError("ProviderResult requires a non-empty image_url")

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id.value,
            "image_url": self.image_url,
            "title": self.title,
            "raw_metadata": self.raw_metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderResult:
        return cls(
            provider_id=ProviderId(data["provider_id"]),
            image_url=data["image_url"],
            title=data.get("title", ""),
            raw_metadata=data.get("raw_metadata") or {},
        )


@dataclass(frozen=True)
class ProviderError:
    """Expected lookup failure, returned as a value rather than raised."""

    kind: ErrorKind
    message: str = ""

    @property
    def is_transient(self) -> bool:
        """Timeouts and outages may succeed on a later attempt."""
        return self.kind in (ErrorKind.TIMEOUT, ErrorKind.UNAVAILABLE)


LookupOutcome = ProviderResult | ProviderError


@dataclass(frozen=True)
class ProviderAttempt:
    """Trace of a single provider step in the fallback chain."""

    provider_id: ProviderId
    outcome: AttemptOutcome
    kind: ErrorKind | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "provider": self.provider_id.value,
            "outcome": self.outcome.value,
        }
        if self.kind is not None:
            data["kind"] = self.kind.value
        if self.message:
            data["message"] = self.message
        return data


@dataclass
class Resolution:
    """Terminal state of the orchestrator for one query."""

    query: CoverQuery
    status: ResolutionStatus
    result: ProviderResult | None = None
    from_cache: bool = False
    attempts: list[ProviderAttempt] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED and self.result is not None
