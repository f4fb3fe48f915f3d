from __future__ import annotations

import dataclasses
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from billing_mcp.domain.exceptions import InvalidKeyError
from billing_mcp.infrastructure.cache import TTLCache

logger = logging.getLogger(__name__)


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body; anything else counts as an empty body."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def register_routes(mcp: FastMCP, cache: TTLCache) -> None:
    """Register plain HTTP endpoints next to the MCP transport. Called once during server setup."""

    @mcp.custom_route("/healthz", methods=["GET"])
    async def healthz(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @mcp.custom_route("/api/cache", methods=["GET"])
    async def cache_stats(request: Request) -> JSONResponse:
        """Diagnostic view of the server cache."""
        return JSONResponse({"success": True, "stats": dataclasses.asdict(cache.stats())})

    @mcp.custom_route("/api/cache/invalidate", methods=["POST"])
    async def invalidate(request: Request) -> JSONResponse:
        """Drop {"key": ...} from the cache, or clear it entirely when no key is sent."""
        body = await _read_body(request)
        key = body.get("key")

        if not key:
            cache.clear()
            return JSONResponse({"success": True, "message": "All cache cleared"})

        try:
            deleted = cache.delete(key)
        except InvalidKeyError as exc:
            return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

        if deleted:
            logger.info("Cache key %r invalidated via HTTP", key)
            return JSONResponse({"success": True, "message": f'Cache key "{key}" invalidated'})
        return JSONResponse(
            {"success": False, "message": f'Cache key "{key}" not found'},
            status_code=404,
        )
