"""Tests for the Config system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cover_resolver.config import Config, get_config, reset_config


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(tmp_path / "config.json", environ={})


class TestConfig:
    def test_default_values(self, config: Config) -> None:
        assert config.provider_order == ["screenscraper", "thegamesdb", "wikipedia"]
        assert config.cache_ttl == 7 * 24 * 60 * 60
        assert 0 < config.negative_ttl < config.cache_ttl
        assert config.cache_dir is None

    def test_credentials_have_no_default(self, config: Config) -> None:
        assert config.screenscraper_config["dev_id"] == ""
        assert config.screenscraper_config["password"] == ""
        assert config.thegamesdb_api_key == ""

    def test_set_and_get(self, config: Config) -> None:
        config.set("cache.dir", "/some/path")
        assert config.cache_dir == Path("/some/path")
        assert config.get("cache.missing", "fallback") == "fallback"

    def test_file_overrides_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"cache": {"ttl": 3600}}), encoding="utf-8")
        config = Config(path, environ={})
        assert config.cache_ttl == 3600
        # Sibling keys keep their defaults
        assert config.negative_ttl == 300

    def test_broken_file_falls_back_to_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        config = Config(path, environ={})
        assert config.cache_ttl == 7 * 24 * 60 * 60

    def test_environment_wins_over_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"thegamesdb": {"api_key": "from-file"}}), encoding="utf-8")
        config = Config(path, environ={"TGDB_API_KEY": "from-env"})
        assert config.thegamesdb_api_key == "from-env"

    def test_environment_values_are_coerced(self, config: Config, tmp_path: Path) -> None:
        config = Config(
            tmp_path / "config.json",
            environ={
                "COVER_PROVIDER_ORDER": "thegamesdb, wikipedia",
                "COVER_CACHE_TTL": "120",
                "COVER_HTTP_TIMEOUT": "2.5",
                "COVER_PROXY_ALLOWED_HOSTS": "cdn.thegamesdb.net,Upload.Wikimedia.org",
            },
        )
        assert config.provider_order == ["thegamesdb", "wikipedia"]
        assert config.cache_ttl == 120
        assert config.http_timeout == 2.5
        assert config.proxy_allowed_hosts == ["cdn.thegamesdb.net", "upload.wikimedia.org"]

    def test_invalid_environment_value_ignored(self, tmp_path: Path) -> None:
        config = Config(tmp_path / "config.json", environ={"COVER_CACHE_TTL": "soon"})
        assert config.cache_ttl == 7 * 24 * 60 * 60

    def test_outbound_proxy_url(self, config: Config) -> None:
        assert config.outbound_proxy_url == ""
        config.set("http.proxy_host", "10.0.0.2")
        config.set("http.proxy_port", "3128")
        assert config.outbound_proxy_url == "http://10.0.0.2:3128"

    def test_get_config_singleton(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COVER_RESOLVER_CONFIG", raising=False)
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
