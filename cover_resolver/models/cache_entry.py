"""Cache entry model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cover_resolver.models.cover import ProviderResult


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cached resolution.

    ``result`` is ``None`` for a negative entry (every provider came up empty).
    Timestamps are epoch seconds from the cache's clock.
    """

    key: str
    result: ProviderResult | None
    created_at: float
    expires_at: float

    @property
    def is_negative(self) -> bool:
        return self.result is None

    def is_live(self, now: float) -> bool:
        return now < self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "result": self.result.to_dict() if self.result else None,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        raw = data.get("result")
        return cls(
            key=data["key"],
            result=ProviderResult.from_dict(raw) if raw else None,
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
        )
