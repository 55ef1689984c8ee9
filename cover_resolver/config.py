"""Service configuration — defaults, optional JSON file, environment overrides."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

_instance: "Config | None" = None

# Environment variable → dot-separated config key
_ENV_KEYS: dict[str, str] = {
    "SCREENSCRAPER_DEV_ID": "screenscraper.dev_id",
    "SCREENSCRAPER_DEV_PASSWORD": "screenscraper.dev_password",
    "SCREENSCRAPER_USER": "screenscraper.username",
    "SCREENSCRAPER_PASSWORD": "screenscraper.password",
    "SCREENSCRAPER_SOFTNAME": "screenscraper.software_name",
    "TGDB_API_KEY": "thegamesdb.api_key",
    "COVER_PROVIDER_ORDER": "resolver.provider_order",
    "COVER_PROVIDER_RETRIES": "resolver.retries",
    "COVER_CACHE_TTL": "cache.ttl",
    "COVER_NEGATIVE_TTL": "cache.negative_ttl",
    "COVER_CACHE_DIR": "cache.dir",
    "COVER_HTTP_TIMEOUT": "http.timeout",
    "COVER_HTTP_PROXY_HOST": "http.proxy_host",
    "COVER_HTTP_PROXY_PORT": "http.proxy_port",
    "COVER_HTTP_PROXY_PROTOCOL": "http.proxy_protocol",
    "COVER_PROXY_ALLOWED_HOSTS": "proxy.allowed_hosts",
    "COVER_PROXY_MAX_BYTES": "proxy.max_bytes",
    "COVER_LOG_DIR": "log_dir",
}

_DAY = 24 * 60 * 60


def get_config() -> Config:
    """Module-level factory — single global Config instance."""
    global _instance
    if _instance is None:
        path = os.environ.get("COVER_RESOLVER_CONFIG")
        _instance = Config(Path(path) if path else None)
    return _instance


def reset_config() -> None:
    """Reset the global config instance (for testing)."""
    global _instance
    _instance = None


class Config:
    """Layered configuration: defaults < JSON file < environment."""

    _DEFAULTS: dict[str, Any] = {
        "log_dir": "",
        "screenscraper": {
            "dev_id": "",
            "dev_password": "",
            "username": "",
            "password": "",
            "software_name": "cover-resolver",
            "regions": ["eu", "us", "wor", "jp"],
        },
        "thegamesdb": {
            "api_key": "",
        },
        "wikipedia": {
            "language": "en",
        },
        "resolver": {
            "provider_order": ["screenscraper", "thegamesdb", "wikipedia"],
            "retries": 0,
        },
        "cache": {
            "ttl": 7 * _DAY,
            "negative_ttl": 5 * 60,
            "dir": "",
        },
        "http": {
            "timeout": 15.0,
            "proxy_protocol": "http",
            "proxy_host": "",
            "proxy_port": "",
        },
        "proxy": {
            "allowed_hosts": [],
            "max_bytes": 10 * 1024 * 1024,
            "timeout": 20.0,
        },
    }

    def __init__(
        self,
        config_path: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> None:
        self._data: dict[str, Any] = {}
        self._path = config_path
        self._environ = os.environ if environ is None else environ
        self._load()

    def _load(self) -> None:
        """Load defaults, merge the JSON file, then apply the environment."""
        self._data = json.loads(json.dumps(self._DEFAULTS))  # deep copy defaults
        if self._path and self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as f:
                    user_data = json.load(f)
                self._deep_merge(self._data, user_data)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Failed to load config file {self._path}, using defaults: {e}")

        for env_name, key in _ENV_KEYS.items():
            raw = self._environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                self.set(key, self._coerce(raw, self.get(key)))
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_name}")

    def _deep_merge(self, base: dict, override: dict) -> None:
        """Recursively merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    @staticmethod
    def _coerce(raw: str, default: Any) -> Any:
        """Convert an environment string to the type of the default value."""
        if isinstance(default, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        if isinstance(default, list):
            return [part.strip() for part in raw.split(",") if part.strip()]
        return raw

    # ── Generic access ──

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-separated key path."""
        parts = key.split(".")
        node = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a config value by dot-separated key path (in memory only)."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value

    # ── Typed properties ──

    @property
    def screenscraper_config(self) -> dict[str, Any]:
        return self._data.get("screenscraper", {})

    @property
    def thegamesdb_api_key(self) -> str:
        return self.get("thegamesdb.api_key", "") or ""

    @property
    def wikipedia_language(self) -> str:
        return self.get("wikipedia.language", "en") or "en"

    @property
    def provider_order(self) -> list[str]:
        return list(self.get("resolver.provider_order", []))

    @property
    def retries(self) -> int:
        return max(0, int(self.get("resolver.retries", 0)))

    @property
    def cache_ttl(self) -> float:
        return float(self.get("cache.ttl", 7 * _DAY))

    @property
    def negative_ttl(self) -> float:
        return float(self.get("cache.negative_ttl", 0))

    @property
    def cache_dir(self) -> Path | None:
        raw = self.get("cache.dir", "")
        return Path(raw) if raw else None

    @property
    def log_dir(self) -> Path | None:
        raw = self.get("log_dir", "")
        return Path(raw) if raw else None

    @property
    def http_timeout(self) -> float:
        return float(self.get("http.timeout", 15.0))

    @property
    def outbound_proxy_url(self) -> str:
        """Assemble the outbound proxy URL from protocol/host/port fields."""
        host = self.get("http.proxy_host", "")
        if not host:
            return ""
        proto = self.get("http.proxy_protocol", "http") or "http"
        port = self.get("http.proxy_port", "")
        return f"{proto}://{host}:{port}" if port else f"{proto}://{host}"

    @property
    def proxy_allowed_hosts(self) -> list[str]:
        return [h.lower() for h in self.get("proxy.allowed_hosts", [])]

    @property
    def proxy_max_bytes(self) -> int:
        return int(self.get("proxy.max_bytes", 10 * 1024 * 1024))

    @property
    def proxy_timeout(self) -> float:
        return float(self.get("proxy.timeout", 20.0))
