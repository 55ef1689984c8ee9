"""TheGamesDB provider — catalog search, then the game's image set."""

from __future__ import annotations

import httpx
from loguru import logger

from cover_resolver.models.cover import (
    ErrorKind,
    LookupOutcome,
    ProviderError,
    ProviderId,
    ProviderResult,
)
from cover_resolver.scrapers.base import CoverProvider
from cover_resolver.scrapers.schemas import (
    TGDBGamesResponse,
    TGDBImage,
    TGDBImagesResponse,
)

_API_BASE = "https://api.thegamesdb.net"

# (type, side) in order of preference; side None matches any side
_IMAGE_PREFERENCE: tuple[tuple[str, str | None], ...] = (
    ("boxart", "front"),
    ("boxart", None),
    ("screenshot", None),
    ("clearlogo", None),
)


class TheGamesDBProvider(CoverProvider):
    """TheGamesDB cover provider.  Optional: without an API key it is skipped."""

    def __init__(self, client: httpx.Client, api_key: str = "") -> None:
        super().__init__(client)
        self._api_key = api_key

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.THEGAMESDB

    @property
    def display_name(self) -> str:
        return "TheGamesDB"

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _classify_status(self, status_code: int) -> ErrorKind | None:
        # 403 is returned once the monthly allowance is spent
        if status_code == 403:
            return ErrorKind.RATE_LIMITED
        return super()._classify_status(status_code)

    def lookup_cover(self, title: str, platform_core: str, platform_id: int | str) -> LookupOutcome:
        if not self.is_configured:
            return ProviderError(ErrorKind.UNAVAILABLE, "TheGamesDB API key not configured")

        search = self._get_json(
            f"{_API_BASE}/v1.1/Games/ByGameName",
            {
                "apikey": self._api_key,
                "name": title,
                "filter[platform]": str(platform_id),
            },
            TGDBGamesResponse,
        )
        if isinstance(search, ProviderError):
            return search
        if search.code != 200:
            return ProviderError(ErrorKind.UNAVAILABLE, f"TheGamesDB status: {search.status}")
        if not search.data.games:
            return ProviderError(ErrorKind.NOT_FOUND, f"No TheGamesDB match for '{title}'")

        # Ranking is TheGamesDB's; the first hit is taken as is
        game = search.data.games[0]
        logger.debug(f"TheGamesDB selected game {game.id} ('{game.game_title}') for '{title}'")

        images = self._get_json(
            f"{_API_BASE}/v1/Games/Images",
            {
                "apikey": self._api_key,
                "games_id": str(game.id),
                "filter[type]": "boxart,screenshot,clearlogo",
            },
            TGDBImagesResponse,
        )
        if isinstance(images, ProviderError):
            return images
        if images.code != 200:
            return ProviderError(ErrorKind.UNAVAILABLE, f"TheGamesDB status: {images.status}")

        image = self._pick_image(images.data.images.get(str(game.id), []))
        if image is None:
            return ProviderError(ErrorKind.NOT_FOUND, f"TheGamesDB game {game.id} has no images")

        return ProviderResult(
            provider_id=self.provider_id,
            image_url=self._image_url(images.data.base_url.original, image.filename),
            title=game.game_title or title,
            raw_metadata={
                "game_id": game.id,
                "platform_id": platform_id,
                "platform": platform_core,
                "image_type": image.type,
                "side": image.side,
                "release_date": game.release_date,
                "remaining_monthly_allowance": search.remaining_monthly_allowance,
            },
        )

    @staticmethod
    def _pick_image(images: list[TGDBImage]) -> TGDBImage | None:
        usable = [img for img in images if img.filename]
        for kind, side in _IMAGE_PREFERENCE:
            for img in usable:
                if img.type == kind and (side is None or img.side == side):
                    return img
        return None

    @staticmethod
    def _image_url(base_url: str, filename: str) -> str:
        if filename.startswith(("http://", "https://")):
            return filename
        return f"{base_url.rstrip('/')}/{filename.lstrip('/')}"
