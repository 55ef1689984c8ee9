"""Upstream response schemas (Pydantic v2).

Each provider validates the decoded JSON against these models right after the
call, before reading any field.  Unknown keys are ignored; missing optional
structures default to empty so "no match" and "bad payload" stay distinct.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── ScreenScraper (api2) ──


class SSText(_Schema):
    region: str = ""
    langue: str = ""
    text: str = ""


class SSMedia(_Schema):
    type: str = ""
    url: str = ""
    region: str = ""
    format: str = ""
    parent: str = ""


class SSGame(_Schema):
    id: str = ""
    noms: list[SSText] = Field(default_factory=list)
    medias: list[SSMedia] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("noms", mode="before")
    @classmethod
    def _noms_list(cls, value: Any) -> Any:
        # Single-name games come back as a bare object
        if isinstance(value, dict):
            return [value]
        return value

    def name(self, regions: list[str]) -> str:
        by_region = {n.region: n.text for n in self.noms if n.text}
        for region in (*regions, "ss"):
            if region in by_region:
                return by_region[region]
        return next(iter(by_region.values()), "")


class SSSearchBody(_Schema):
    jeux: list[SSGame] = Field(default_factory=list)

    @field_validator("jeux", mode="before")
    @classmethod
    def _drop_empty(cls, value: Any) -> Any:
        # An empty search returns ``[{}]``
        if isinstance(value, list):
            return [g for g in value if isinstance(g, dict) and g.get("id")]
        return value


class SSSearchResponse(_Schema):
    response: SSSearchBody


class SSInfoBody(_Schema):
    jeu: SSGame


class SSInfoResponse(_Schema):
    response: SSInfoBody


# ── TheGamesDB (v1) ──


class TGDBGame(_Schema):
    id: int
    game_title: str = ""
    platform: int | None = None
    release_date: str | None = None


class TGDBGamesData(_Schema):
    count: int = 0
    games: list[TGDBGame] = Field(default_factory=list)


class TGDBGamesResponse(_Schema):
    code: int
    status: str
    data: TGDBGamesData = Field(default_factory=TGDBGamesData)
    remaining_monthly_allowance: int | None = None


class TGDBImage(_Schema):
    id: int | None = None
    type: str = ""
    side: str | None = None
    filename: str = ""
    resolution: str | None = None


class TGDBBaseUrl(_Schema):
    original: str = "https://cdn.thegamesdb.net/images/original/"
    large: str | None = None
    medium: str | None = None


class TGDBImagesData(_Schema):
    base_url: TGDBBaseUrl = Field(default_factory=TGDBBaseUrl)
    images: dict[str, list[TGDBImage]] = Field(default_factory=dict)

    @field_validator("images", mode="before")
    @classmethod
    def _empty_images(cls, value: Any) -> Any:
        # No images is serialised as an empty list instead of an object
        if value == []:
            return {}
        return value


class TGDBImagesResponse(_Schema):
    code: int
    status: str
    data: TGDBImagesData = Field(default_factory=TGDBImagesData)


# ── Wikipedia (action API, formatversion=2) ──


class WikiSearchHit(_Schema):
    title: str
    pageid: int | None = None


class WikiSearchQuery(_Schema):
    search: list[WikiSearchHit] = Field(default_factory=list)


class WikiSearchResponse(_Schema):
    query: WikiSearchQuery = Field(default_factory=WikiSearchQuery)


class WikiThumbnail(_Schema):
    source: str
    width: int | None = None
    height: int | None = None


class WikiImageRef(_Schema):
    title: str


class WikiImageInfo(_Schema):
    url: str = ""
    width: int | None = None
    height: int | None = None


class WikiPage(_Schema):
    title: str = ""
    pageid: int | None = None
    missing: bool = False
    fullurl: str = ""
    thumbnail: WikiThumbnail | None = None
    pageimage: str | None = None
    images: list[WikiImageRef] = Field(default_factory=list)
    imageinfo: list[WikiImageInfo] = Field(default_factory=list)


class WikiPagesQuery(_Schema):
    pages: list[WikiPage] = Field(default_factory=list)


class WikiPagesResponse(_Schema):
    query: WikiPagesQuery = Field(default_factory=WikiPagesQuery)
