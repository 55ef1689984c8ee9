"""ScreenScraper provider — uses ScreenScraper.fr API for box art."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from loguru import logger

from cover_resolver.errors import ConfigurationError
from cover_resolver.models.cover import (
    ErrorKind,
    LookupOutcome,
    ProviderError,
    ProviderId,
    ProviderResult,
)
from cover_resolver.scrapers.base import CoverProvider
from cover_resolver.scrapers.schemas import SSGame, SSInfoResponse, SSMedia, SSSearchResponse

_API_BASE = "https://api.screenscraper.fr/api2"

# Media URLs are served from subdomains of this host
MEDIA_HOST = "screenscraper.fr"

# Query parameters that authenticate a request; media URLs echo them back
CREDENTIAL_PARAMS = ("devid", "devpassword", "ssid", "sspassword")

_FRONT_BOX = "box-2D"
_GENERIC_COVERS = ("support-2D", "mixrbv2", "mixrbv1")

# ScreenScraper reports quota problems with its own status codes
_QUOTA_STATUSES = frozenset({429, 430, 431})
_CLOSED_STATUSES = frozenset({401, 403, 423})


def _simplify(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def strip_credentials(url: str) -> str:
    """Drop credential query parameters so the URL is safe to hand to callers."""
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k.lower() not in CREDENTIAL_PARAMS
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


class ScreenScraperProvider(CoverProvider):
    """ScreenScraper.fr cover provider (two-step: search, then game info)."""

    def __init__(
        self,
        client: httpx.Client,
        dev_id: str,
        dev_password: str,
        username: str,
        password: str,
        software_name: str = "cover-resolver",
        regions: list[str] | None = None,
    ) -> None:
        missing = [
            label
            for label, value in (
                ("dev_id", dev_id),
                ("dev_password", dev_password),
                ("username", username),
                ("password", password),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"ScreenScraper credentials missing: {', '.join(missing)}"
            )
        super().__init__(client)
        self._dev_id = dev_id
        self._dev_password = dev_password
        self._username = username
        self._password = password
        self._software_name = software_name
        self._regions = [r.lower() for r in (regions or ["eu", "us", "wor", "jp"])]

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.SCREENSCRAPER

    @property
    def display_name(self) -> str:
        return "ScreenScraper"

    def _classify_status(self, status_code: int) -> ErrorKind | None:
        if status_code in _QUOTA_STATUSES:
            return ErrorKind.RATE_LIMITED
        if status_code in _CLOSED_STATUSES:
            return ErrorKind.UNAVAILABLE
        return super()._classify_status(status_code)

    def credential_params(self) -> dict[str, str]:
        """Parameters the image proxy adds back when fetching media URLs."""
        return {
            "devid": self._dev_id,
            "devpassword": self._dev_password,
            "ssid": self._username,
            "sspassword": self._password,
        }

    def _build_params(self, **extra: Any) -> dict[str, str]:
        """Build common API parameters."""
        params: dict[str, str] = {
            "devid": self._dev_id,
            "devpassword": self._dev_password,
            "softname": self._software_name,
            "ssid": self._username,
            "sspassword": self._password,
            "output": "json",
        }
        params.update({k: str(v) for k, v in extra.items()})
        return params

    def lookup_cover(self, title: str, platform_core: str, platform_id: int | str) -> LookupOutcome:
        candidates = self._search(title, platform_id)
        if isinstance(candidates, ProviderError):
            return candidates
        if not candidates:
            return ProviderError(ErrorKind.NOT_FOUND, f"No ScreenScraper match for '{title}'")

        match = self._closest_match(title, candidates)
        logger.debug(f"ScreenScraper selected game {match.id} for '{title}'")

        game = self._game_info(match.id, platform_id)
        if isinstance(game, ProviderError):
            return game

        media = self._pick_cover(game.medias)
        if media is None:
            return ProviderError(
                ErrorKind.NOT_FOUND, f"ScreenScraper game {game.id} has no cover art"
            )

        return ProviderResult(
            provider_id=self.provider_id,
            image_url=strip_credentials(media.url),
            title=game.name(self._regions) or title,
            raw_metadata={
                "game_id": game.id,
                "system_id": platform_id,
                "platform": platform_core,
                "media_type": media.type,
                "region": media.region,
                "format": media.format,
            },
        )

    def _search(self, title: str, platform_id: int | str) -> list[SSGame] | ProviderError:
        """Search ScreenScraper by game name."""
        params = self._build_params(recherche=title, systemeid=platform_id)
        data = self._get_json(f"{_API_BASE}/jeuRecherche.php", params, SSSearchResponse)
        if isinstance(data, ProviderError):
            return data
        return data.response.jeux

    def _game_info(self, game_id: str, platform_id: int | str) -> SSGame | ProviderError:
        """Fetch the full media set for one game."""
        params = self._build_params(gameid=game_id, systemeid=platform_id)
        data = self._get_json(f"{_API_BASE}/jeuInfos.php", params, SSInfoResponse)
        if isinstance(data, ProviderError):
            return data
        return data.response.jeu

    def _closest_match(self, title: str, games: list[SSGame]) -> SSGame:
        """Exact title first, then containment either way, else the first hit."""
        wanted = _simplify(title)
        names = [(g, {_simplify(n.text) for n in g.noms if n.text}) for g in games]
        for game, simplified in names:
            if wanted in simplified:
                return game
        for game, simplified in names:
            if any(wanted in s or s in wanted for s in simplified if s):
                return game
        return games[0]

    def _pick_cover(self, medias: list[SSMedia]) -> SSMedia | None:
        """Front box art > any box art > generic cover, preferring configured regions."""
        usable = [m for m in medias if m.url]
        tiers = (
            [m for m in usable if m.type == _FRONT_BOX],
            [m for m in usable if m.type.startswith("box-")],
            [m for m in usable if m.type in _GENERIC_COVERS],
        )
        for tier in tiers:
            if tier:
                return self._by_region(tier)
        return None

    def _by_region(self, medias: list[SSMedia]) -> SSMedia:
        for region in self._regions:
            for media in medias:
                if media.region.lower() == region:
                    return media
        return medias[0]
