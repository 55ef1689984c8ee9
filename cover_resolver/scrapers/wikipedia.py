"""Wikipedia provider — last-resort page image lookup.

The image found here is whatever the article shows in its info box (or the
first suitable file on the page), so it is not guaranteed to be box art.
Results are tagged ``confidence: low`` in their metadata.
"""

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
from cover_resolver.scrapers.schemas import WikiPage, WikiPagesResponse, WikiSearchResponse

_THUMB_SIZE = 1000
_MAX_FILE_CANDIDATES = 5
_FILE_HINTS = ("cover", "box", "artwork")
_PHOTO_EXTENSIONS = (".jpg", ".jpeg", ".png")


class WikipediaProvider(CoverProvider):
    """MediaWiki action API client for article images."""

    def __init__(self, client: httpx.Client, language: str = "en") -> None:
        super().__init__(client)
        self._api_url = f"https://{language}.wikipedia.org/w/api.php"

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.WIKIPEDIA

    @property
    def display_name(self) -> str:
        return "Wikipedia"

    def lookup_cover(self, title: str, platform_core: str, platform_id: int | str) -> LookupOutcome:
        page_title = self._search(title, str(platform_id))
        if isinstance(page_title, ProviderError):
            return page_title

        page = self._page(page_title)
        if isinstance(page, ProviderError):
            return page

        if page.thumbnail and page.thumbnail.source:
            image_url = page.thumbnail.source
            image_source = "infobox"
        else:
            found = self._first_content_image(page)
            if isinstance(found, ProviderError):
                return found
            image_url = found
            image_source = "content"

        logger.debug(f"Wikipedia image for '{title}' from '{page.title}' ({image_source})")
        return ProviderResult(
            provider_id=self.provider_id,
            image_url=image_url,
            title=page.title,
            raw_metadata={
                "page_id": page.pageid,
                "page_url": page.fullurl,
                "platform": platform_core,
                "image_source": image_source,
                "confidence": "low",
            },
        )

    def _params(self, **extra: str | int) -> dict[str, str | int]:
        return {"action": "query", "format": "json", "formatversion": 2, **extra}

    def _search(self, title: str, platform_name: str) -> str | ProviderError:
        """Return the title of the most relevant article."""
        data = self._get_json(
            self._api_url,
            self._params(
                list="search",
                srsearch=f"{title} {platform_name} video game",
                srlimit=5,
            ),
            WikiSearchResponse,
        )
        if isinstance(data, ProviderError):
            return data
        if not data.query.search:
            return ProviderError(ErrorKind.NOT_FOUND, f"No Wikipedia article for '{title}'")
        return data.query.search[0].title

    def _page(self, page_title: str) -> WikiPage | ProviderError:
        data = self._get_json(
            self._api_url,
            self._params(
                titles=page_title,
                prop="pageimages|info|images",
                piprop="thumbnail|name",
                pithumbsize=_THUMB_SIZE,
                inprop="url",
                imlimit=50,
            ),
            WikiPagesResponse,
        )
        if isinstance(data, ProviderError):
            return data
        pages = [p for p in data.query.pages if not p.missing]
        if not pages:
            return ProviderError(ErrorKind.NOT_FOUND, f"Wikipedia page '{page_title}' not found")
        return pages[0]

    def _first_content_image(self, page: WikiPage) -> str | ProviderError:
        """Resolve the first cover-like file referenced by the article."""
        files = [ref.title for ref in page.images if self._looks_like_cover(ref.title)]
        if not files:
            return ProviderError(ErrorKind.NOT_FOUND, f"No images on Wikipedia page '{page.title}'")
        files = files[:_MAX_FILE_CANDIDATES]

        data = self._get_json(
            self._api_url,
            self._params(titles="|".join(files), prop="imageinfo", iiprop="url|size"),
            WikiPagesResponse,
        )
        if isinstance(data, ProviderError):
            return data

        # imageinfo pages come back in title order, not page order
        urls = {
            p.title: p.imageinfo[0].url
            for p in data.query.pages
            if p.imageinfo and p.imageinfo[0].url
        }
        for name in files:
            if name in urls:
                return urls[name]
        return ProviderError(ErrorKind.NOT_FOUND, f"No usable image on '{page.title}'")

    @staticmethod
    def _looks_like_cover(file_title: str) -> bool:
        lower = file_title.lower()
        if not lower.endswith(_PHOTO_EXTENSIONS):
            return False
        return any(hint in lower for hint in _FILE_HINTS) or lower.endswith((".jpg", ".jpeg"))
