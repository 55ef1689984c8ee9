"""Service entry point — wires services and runs the HTTP server."""

from __future__ import annotations

import os
import sys

from dotenv import load_dotenv
from flask import Flask
from loguru import logger

from cover_resolver.api import create_app
from cover_resolver.config import get_config
from cover_resolver.context import create_context
from cover_resolver.errors import ConfigurationError
from cover_resolver.logger import setup_logger


def build_app() -> Flask:
    """Load configuration, wire services and return the Flask app."""
    load_dotenv()
    config = get_config()

    # Logger
    setup_logger(config.log_dir)

    ctx = create_context(config)
    return create_app(ctx)


def main() -> int:
    """Application entry point."""
    try:
        app = build_app()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    port = int(os.getenv("FLASK_RUN_PORT", 5000))
    debug_mode = os.getenv("FLASK_DEBUG", "False").lower() == "true"
    app.run(host=os.getenv("FLASK_RUN_HOST", "127.0.0.1"), port=port, debug=debug_mode)
    return 0


if __name__ == "__main__":
    sys.exit(main())
