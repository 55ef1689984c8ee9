"""Tests for the platform normalizer."""

from __future__ import annotations

import pytest

from cover_resolver.core.platforms import PlatformNormalizer
from cover_resolver.errors import UnsupportedPlatform
from cover_resolver.models.cover import ProviderId


class TestPlatformNormalizer:
    def test_every_core_maps_to_some_provider(self, normalizer: PlatformNormalizer) -> None:
        assert normalizer.cores
        for core in normalizer.cores:
            assert normalizer.providers_for(core), core

    @pytest.mark.parametrize(
        ("core", "provider", "expected"),
        [
            ("nes", ProviderId.SCREENSCRAPER, 3),
            ("snes", ProviderId.SCREENSCRAPER, 4),
            ("gba", ProviderId.THEGAMESDB, 5),
            ("nes", ProviderId.THEGAMESDB, 7),
            ("gba", ProviderId.WIKIPEDIA, "Game Boy Advance"),
        ],
    )
    def test_known_mappings(
        self, normalizer: PlatformNormalizer, core: str, provider: ProviderId, expected: object
    ) -> None:
        assert normalizer.normalize(core, provider) == expected

    def test_aliases_and_case(self, normalizer: PlatformNormalizer) -> None:
        assert normalizer.canonical(" SegaMD ") == "genesis"
        assert normalizer.normalize("megadrive", ProviderId.THEGAMESDB) == 18
        assert normalizer.require_supported("PlayStation") == "psx"

    def test_unknown_core_rejected(self, normalizer: PlatformNormalizer) -> None:
        with pytest.raises(UnsupportedPlatform):
            normalizer.require_supported("zzz")
        with pytest.raises(UnsupportedPlatform):
            normalizer.normalize("zzz", ProviderId.SCREENSCRAPER)

    def test_missing_pair_does_not_affect_other_providers(self) -> None:
        normalizer = PlatformNormalizer(
            {
                ProviderId.SCREENSCRAPER: {"snes": 4},
                ProviderId.THEGAMESDB: {"snes": 6, "pico8": 9999},
            }
        )
        assert not normalizer.supports("pico8", ProviderId.SCREENSCRAPER)
        assert normalizer.normalize("pico8", ProviderId.THEGAMESDB) == 9999
        assert normalizer.providers_for("pico8") == [ProviderId.THEGAMESDB]

    def test_tables_are_read_only(self, normalizer: PlatformNormalizer) -> None:
        table = normalizer.table(ProviderId.SCREENSCRAPER)
        with pytest.raises(TypeError):
            table["nes"] = 999  # type: ignore[index]
