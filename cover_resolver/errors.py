"""Caller-facing errors.

Provider failures are not here: they are ``ProviderError`` values handled by
the fallback chain.  These exceptions only reach the caller when the input is
bad, the chain is exhausted, or the proxy cannot serve a request.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Required settings (usually credentials) are missing or invalid."""


class CoverResolverError(Exception):
    """Base for errors that are reported to API callers."""

    code = "InternalError"
    status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.code, "message": self.message}


class MissingParameter(CoverResolverError):
    code = "MissingParameter"
    status = 400


class UnsupportedPlatform(CoverResolverError):
    code = "UnsupportedPlatform"
    status = 400


class UnsupportedProvider(CoverResolverError):
    code = "UnsupportedProvider"
    status = 400


class NoResultFound(CoverResolverError):
    code = "NoResultFound"
    status = 404


class ProxyInvalidUrl(CoverResolverError):
    code = "ProxyInvalidUrl"
    status = 400


class ProxyUpstreamFailed(CoverResolverError):
    code = "ProxyUpstreamFailed"
    status = 502


class InternalError(CoverResolverError):
    """Unexpected fault; the message is always generic."""

    def __init__(self) -> None:
        super().__init__("An internal error occurred")
