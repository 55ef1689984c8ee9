"""Platform normalizer — maps internal cores to each provider's platform key."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from cover_resolver.errors import UnsupportedPlatform
from cover_resolver.models.cover import ProviderId

# Alternate spellings accepted for a core (emulator core names, slugs)
_ALIASES: dict[str, str] = {
    "famicom": "nes",
    "nintendo": "nes",
    "sfc": "snes",
    "super-nintendo": "snes",
    "nintendo-64": "n64",
    "gameboy": "gb",
    "gameboy-color": "gbc",
    "gameboy-advance": "gba",
    "nintendo-ds": "nds",
    "ds": "nds",
    "gamecube": "gc",
    "ngc": "gc",
    "segamd": "genesis",
    "megadrive": "genesis",
    "sega-genesis": "genesis",
    "sega-mega-drive": "genesis",
    "sega-cd": "segacd",
    "segasaturn": "saturn",
    "sega-saturn": "saturn",
    "segams": "mastersystem",
    "segagg": "gamegear",
    "sega32x": "32x",
    "playstation": "psx",
    "ps1": "psx",
    "playstation-portable": "psp",
    "mame": "arcade",
    "pce": "tg16",
    "pcengine": "tg16",
    "vb": "virtualboy",
    "ws": "wonderswan",
    "wsc": "wonderswancolor",
}

# ScreenScraper "systemeid" values
_SCREENSCRAPER: dict[str, int] = {
    "nes": 3,
    "snes": 4,
    "n64": 14,
    "gb": 9,
    "gbc": 10,
    "gba": 12,
    "nds": 15,
    "3ds": 17,
    "gc": 13,
    "wii": 16,
    "switch": 225,
    "virtualboy": 11,
    "genesis": 1,
    "mastersystem": 2,
    "gamegear": 21,
    "segacd": 20,
    "32x": 19,
    "saturn": 22,
    "dreamcast": 23,
    "psx": 57,
    "ps2": 58,
    "psp": 61,
    "arcade": 75,
    "atari2600": 26,
    "atari7800": 41,
    "lynx": 28,
    "jaguar": 27,
    "tg16": 31,
    "wonderswan": 45,
    "wonderswancolor": 46,
    "ngp": 25,
    "ngpc": 82,
}

# TheGamesDB platform ids
_THEGAMESDB: dict[str, int] = {
    "nes": 7,
    "snes": 6,
    "n64": 3,
    "gb": 4,
    "gbc": 41,
    "gba": 5,
    "nds": 8,
    "3ds": 4912,
    "gc": 2,
    "wii": 9,
    "switch": 4971,
    "virtualboy": 4918,
    "genesis": 18,
    "mastersystem": 35,
    "gamegear": 20,
    "segacd": 21,
    "32x": 33,
    "saturn": 17,
    "dreamcast": 16,
    "psx": 10,
    "ps2": 11,
    "psp": 13,
    "arcade": 23,
    "atari2600": 22,
    "atari7800": 27,
    "lynx": 4924,
    "jaguar": 28,
    "tg16": 34,
    "wonderswan": 4925,
    "wonderswancolor": 4926,
    "ngp": 4922,
    "ngpc": 4923,
}

# Wikipedia has no platform ids; the platform name narrows the page search
_WIKIPEDIA: dict[str, str] = {
    "nes": "Nintendo Entertainment System",
    "snes": "Super Nintendo Entertainment System",
    "n64": "Nintendo 64",
    "gb": "Game Boy",
    "gbc": "Game Boy Color",
    "gba": "Game Boy Advance",
    "nds": "Nintendo DS",
    "3ds": "Nintendo 3DS",
    "gc": "GameCube",
    "wii": "Wii",
    "switch": "Nintendo Switch",
    "virtualboy": "Virtual Boy",
    "genesis": "Sega Genesis",
    "mastersystem": "Master System",
    "gamegear": "Game Gear",
    "segacd": "Sega CD",
    "32x": "32X",
    "saturn": "Sega Saturn",
    "dreamcast": "Dreamcast",
    "psx": "PlayStation",
    "ps2": "PlayStation 2",
    "psp": "PlayStation Portable",
    "arcade": "arcade",
    "atari2600": "Atari 2600",
    "atari7800": "Atari 7800",
    "lynx": "Atari Lynx",
    "jaguar": "Atari Jaguar",
    "tg16": "TurboGrafx-16",
    "wonderswan": "WonderSwan",
    "wonderswancolor": "WonderSwan Color",
    "ngp": "Neo Geo Pocket",
    "ngpc": "Neo Geo Pocket Color",
}

DEFAULT_MAPPINGS: dict[ProviderId, dict[str, int | str]] = {
    ProviderId.SCREENSCRAPER: _SCREENSCRAPER,
    ProviderId.THEGAMESDB: _THEGAMESDB,
    ProviderId.WIKIPEDIA: _WIKIPEDIA,
}


class PlatformNormalizer:
    """Read-only core → provider platform tables, built once at startup."""

    def __init__(
        self,
        mappings: Mapping[ProviderId, Mapping[str, int | str]] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        source = DEFAULT_MAPPINGS if mappings is None else mappings
        self._tables: Mapping[ProviderId, Mapping[str, int | str]] = MappingProxyType(
            {pid: MappingProxyType(dict(table)) for pid, table in source.items()}
        )
        self._aliases = MappingProxyType(dict(_ALIASES if aliases is None else aliases))

    def canonical(self, core: str) -> str:
        """Lower-case a core and resolve aliases.  Does not check support."""
        key = core.strip().lower()
        return self._aliases.get(key, key)

    def normalize(self, core: str, provider_id: ProviderId) -> int | str:
        """Return the provider's platform key for ``core``.

        Raises ``UnsupportedPlatform`` when the (core, provider) pair has no
        mapping.  Callers check this before any request to that provider.
        """
        table = self._tables.get(provider_id, {})
        key = self.canonical(core)
        if key not in table:
            raise UnsupportedPlatform(f"No {provider_id.value} mapping for platform '{core}'")
        return table[key]

    def supports(self, core: str, provider_id: ProviderId) -> bool:
        return self.canonical(core) in self._tables.get(provider_id, {})

    def providers_for(self, core: str) -> list[ProviderId]:
        key = self.canonical(core)
        return [pid for pid, table in self._tables.items() if key in table]

    def require_supported(self, core: str) -> str:
        """Return the canonical core, or raise if no provider maps it."""
        if not self.providers_for(core):
            raise UnsupportedPlatform(f"Unsupported platform: '{core}'")
        return self.canonical(core)

    @property
    def cores(self) -> list[str]:
        """All cores mapped by at least one provider, sorted."""
        found: set[str] = set()
        for table in self._tables.values():
            found.update(table)
        return sorted(found)

    def table(self, provider_id: ProviderId) -> Mapping[str, int | str]:
        return self._tables.get(provider_id, MappingProxyType({}))
