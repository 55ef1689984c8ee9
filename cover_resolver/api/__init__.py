"""Flask application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask, Response, current_app, jsonify
from loguru import logger
from werkzeug.exceptions import HTTPException

from cover_resolver.errors import CoverResolverError, InternalError

if TYPE_CHECKING:
    from cover_resolver.context import AppContext

_EXTENSION_KEY = "cover_resolver"


def get_context() -> AppContext:
    """The AppContext attached to the running Flask app."""
    return current_app.extensions[_EXTENSION_KEY]


def create_app(ctx: AppContext) -> Flask:
    """Create the Flask app serving the resolve and proxy endpoints."""
    from cover_resolver.api.routes import api_bp

    app = Flask(__name__)
    app.extensions[_EXTENSION_KEY] = ctx
    app.register_blueprint(api_bp)

    @app.after_request
    def _allow_any_origin(response: Response) -> Response:
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        return response

    @app.errorhandler(CoverResolverError)
    def _cover_error(e: CoverResolverError):
        logger.info(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), e.status

    @app.errorhandler(Exception)
    def _unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error while serving request")
        err = InternalError()
        return jsonify(err.to_dict()), err.status

    return app
