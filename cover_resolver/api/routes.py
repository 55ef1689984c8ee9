"""HTTP routes: cover resolution, image proxy, status listings."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from cover_resolver.api import get_context
from cover_resolver.errors import NoResultFound
from cover_resolver.models.cover import ProviderId

api_bp = Blueprint("api", __name__)

RESOLVE_CACHE_CONTROL = "public, max-age=604800"


@api_bp.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"})


@api_bp.route("/api/covers", methods=["GET"])
def resolve_cover():
    """Resolve a cover: ``?title=<game>&core=<platform>[&source=<provider>]``.

    Flask does not report client disconnects to a synchronous handler, so no
    cancel event is passed here.  The work is bounded by the per-call HTTP
    timeout on each provider client (``http.timeout``) times the number of
    providers and retries.  Callers embedding the resolver elsewhere can pass
    a ``threading.Event`` to ``CoverResolver.resolve``.
    """
    ctx = get_context()
    query = ctx.resolver.build_query(
        request.args.get("title"),
        request.args.get("core"),
        request.args.get("source"),
    )
    resolution = ctx.resolver.resolve(query)
    attempts = [a.to_dict() for a in resolution.attempts]

    if not resolution.resolved:
        err = NoResultFound(f"No cover found for '{query.title}' ({query.platform_core})")
        body = err.to_dict()
        body["attempts"] = attempts
        return jsonify(body), err.status

    result = resolution.result
    response = jsonify(
        {
            "success": True,
            "coverUrl": result.image_url,
            "providerId": result.provider_id.value,
            "title": result.title,
            "rawMetadata": result.raw_metadata,
            "cached": resolution.from_cache,
            "attempts": attempts,
        }
    )
    response.headers["Cache-Control"] = RESOLVE_CACHE_CONTROL
    return response


@api_bp.route("/api/covers/cached", methods=["GET"])
def cached_covers():
    ctx = get_context()
    covers = [
        {
            "key": entry.key,
            "coverUrl": entry.result.image_url,
            "providerId": entry.result.provider_id.value,
            "title": entry.result.title,
            "createdAt": entry.created_at,
            "expiresAt": entry.expires_at,
        }
        for entry in ctx.cache.entries()
        if entry.result is not None
    ]
    return jsonify({"success": True, "covers": covers})


@api_bp.route("/api/proxy", methods=["GET", "OPTIONS"])
def proxy_image():
    ctx = get_context()
    if request.method == "OPTIONS":
        return Response(status=204, headers=ctx.proxy.preflight_headers())

    image = ctx.proxy.fetch(request.args.get("url"))
    return Response(image.content, status=200, headers=image.headers)


@api_bp.route("/api/providers", methods=["GET"])
def provider_status():
    """Which providers are wired and whether their credentials are present."""
    ctx = get_context()
    registered = ctx.resolver.providers
    providers = []
    for provider_id in ctx.resolver.priority:
        provider = registered.get(provider_id)
        providers.append(
            {
                "id": provider_id.value,
                "name": provider.display_name if provider else provider_id.value,
                "configured": bool(provider and provider.is_configured),
                "platforms": len(ctx.normalizer.table(provider_id)),
            }
        )
    return jsonify({"success": True, "providers": providers})


@api_bp.route("/api/platforms", methods=["GET"])
def platforms():
    ctx = get_context()
    listing = [
        {
            "core": core,
            "providers": {
                pid.value: ctx.normalizer.table(pid)[core]
                for pid in ProviderId
                if core in ctx.normalizer.table(pid)
            },
        }
        for core in ctx.normalizer.cores
    ]
    return jsonify({"success": True, "platforms": listing})
