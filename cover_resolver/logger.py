"""Loguru-based logging setup."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Mapping

from loguru import logger

# Query parameters that carry credentials for the upstream providers
_SECRET_PARAMS = frozenset(
    {"devid", "devpassword", "ssid", "sspassword", "apikey", "api_key", "password"}
)


def setup_logger(log_dir: Path | None = None, level: str = "INFO") -> None:
    """Configure loguru with console + rotating file output."""
    logger.remove()

    # Console
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level:<7}</level> | {message}",
        colorize=True,
    )

    # File
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "cover-resolver.log"),
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level:<7} | {name}:{line} | {message}",
            rotation="5 MB",
            retention="7 days",
            encoding="utf-8",
        )


def redact_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of request params safe to log."""
    return {
        k: ("REDACTED" if k.lower() in _SECRET_PARAMS and v else v)
        for k, v in params.items()
    }
