from __future__ import annotations

import httpx
from mcp.server.fastmcp import FastMCP

from billing_mcp.application.billing_service import BillingService
from billing_mcp.infrastructure.cache import TTLCache
from billing_mcp.infrastructure.settings import Settings, load_settings
from billing_mcp.infrastructure.zoho_client import DEFAULT_TIMEOUT, ZohoClient
from billing_mcp.mcp.routes import register_routes
from billing_mcp.mcp.tools import register_tools


def create_mcp_app(settings: Settings | None = None) -> FastMCP:
    """Create and configure the FastMCP application with all services wired.

    The TTLCache built here is the single shared instance for the process.
    """
    settings = settings if settings is not None else load_settings()

    cache = TTLCache(
        default_ttl=settings.cache_default_ttl,
        sweep_interval=settings.cache_sweep_interval,
        single_flight=settings.cache_single_flight,
    )
    http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
    zoho_client = ZohoClient(
        cache=cache,
        http_client=http_client,
        access_token=settings.zoho_access_token,
        organization_id=settings.zoho_organization_id,
        api_base=settings.zoho_api_base,
    )

    billing_svc = BillingService(zoho_client)

    mcp = FastMCP("Billing MCP", stateless_http=True)
    register_tools(mcp, billing_svc, cache)
    register_routes(mcp, cache)
    return mcp
