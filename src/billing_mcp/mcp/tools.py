from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

import httpx
from mcp import types
from mcp.server.fastmcp import FastMCP

from billing_mcp.application.billing_service import BillingService
from billing_mcp.domain.exceptions import ApiError, InvalidKeyError, ValidationError
from billing_mcp.infrastructure.cache import TTLCache

logger = logging.getLogger(__name__)

_RESULT_URI = "mcp://billing-mcp/result"


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _result_json(payload: dict[str, Any]) -> list[types.EmbeddedResource]:
    return _as_resource(json.dumps(payload, default=str, ensure_ascii=False))


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(exc, (ValidationError, InvalidKeyError)):
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, ApiError):
        if exc.status_code == 401:
            return _as_resource(_error_json("Zoho authorization failed. Check the access token."))
        if exc.status_code == 404:
            return _as_resource(_error_json("Resource not found."))
        if exc.status_code == 429:
            return _as_resource(_error_json("Zoho rate limit reached. Please try again later."))
        if exc.status_code >= 500:
            return _as_resource(
                _error_json(f"Upstream API error ({exc.status_code}). Please try again later.")
            )
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, httpx.TimeoutException):
        return _as_resource(_error_json("Request timed out. Please try again."))
    if isinstance(exc, ValueError):
        return _as_resource(_error_json(str(exc)))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def register_tools(mcp: FastMCP, billing_svc: BillingService, cache: TTLCache) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def get_projects(status: str | None = None) -> list[types.EmbeddedResource]:
        """List Zoho Books projects.

        Args:
            status: Optional status filter, e.g. "active" (case-insensitive).
        """
        try:
            projects, from_cache = await billing_svc.get_projects(status=status)
            return _result_json(
                {
                    "projects": [dataclasses.asdict(p) for p in projects],
                    "count": len(projects),
                    "fromCache": from_cache,
                }
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_invoices(project_id: str | None = None) -> list[types.EmbeddedResource]:
        """List invoices with billed/unbilled amounts.

        Args:
            project_id: Optional Zoho project ID; only that project's invoices are returned.
        """
        try:
            invoices, from_cache = await billing_svc.get_invoices(project_id=project_id)
            return _result_json(
                {
                    "invoices": [dataclasses.asdict(i) for i in invoices],
                    "count": len(invoices),
                    "fromCache": from_cache,
                }
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_billing_summary() -> list[types.EmbeddedResource]:
        """Per-project invoiced, billed and unbilled totals."""
        try:
            rows, from_cache = await billing_svc.get_billing_summary()
            return _result_json(
                {
                    "projects": [dataclasses.asdict(r) for r in rows],
                    "totals": {
                        "invoiced": sum(r.invoiced_amount for r in rows),
                        "billed": sum(r.billed_amount for r in rows),
                        "unbilled": sum(r.unbilled_amount for r in rows),
                    },
                    "fromCache": from_cache,
                }
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_financial_metrics(
        start_date: str, end_date: str
    ) -> list[types.EmbeddedResource]:
        """Revenue, profit, cash flow and balance figures for a date range.

        Args:
            start_date: First day of the range, YYYY-MM-DD.
            end_date: Last day of the range, YYYY-MM-DD.
        """
        try:
            metrics, from_cache = await billing_svc.get_financial_metrics(start_date, end_date)
            return _result_json(
                {
                    "startDate": start_date,
                    "endDate": end_date,
                    "metrics": dataclasses.asdict(metrics),
                    "fromCache": from_cache,
                }
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_cache_stats() -> list[types.EmbeddedResource]:
        """Number and names of live server cache entries."""
        return _result_json({"stats": dataclasses.asdict(cache.stats())})

    @mcp.tool()
    async def invalidate_cache(key: str | None = None) -> list[types.EmbeddedResource]:
        """Drop one server cache entry, or everything when no key is given.

        Args:
            key: Cache key to drop, e.g. "projects_all". Omit to clear the whole cache.
        """
        try:
            if key is None:
                cache.clear()
                return _result_json({"success": True, "message": "All cache cleared"})
            if cache.delete(key):
                return _result_json({"success": True, "message": f'Cache key "{key}" invalidated'})
            return _result_json({"success": False, "message": f'Cache key "{key}" not found'})
        except Exception as exc:
            return _handle_exception(exc)
