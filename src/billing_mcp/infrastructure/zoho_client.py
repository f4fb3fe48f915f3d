from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from billing_mcp.domain.exceptions import ApiError
from billing_mcp.infrastructure.cache import TTLCache
from billing_mcp.infrastructure.headers import make_headers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0  # seconds
PAGE_SIZE = 200  # Zoho's maximum per_page

# TTL values per resource (in seconds)
TTL_PROJECTS = 900
TTL_INVOICES = 900
TTL_FINANCIAL = 3600  # Reports are expensive and change slowly

KEY_PROJECTS = "projects_all"
KEY_INVOICES = "invoices_all"


def financial_cache_key(start_date: str, end_date: str) -> str:
    return f"financial_metrics_{start_date}_{end_date}"


class ZohoClient:
    """HTTP client for the Zoho Books v3 API.

    Every public method goes through the shared TTLCache and returns
    (data, from_cache) so callers can tell fresh data from cached data.
    """

    def __init__(
        self,
        cache: TTLCache,
        http_client: httpx.AsyncClient,
        access_token: str,
        organization_id: str,
        api_base: str,
    ) -> None:
        self._cache = cache
        self._http = http_client
        self._access_token = access_token
        self._organization_id = organization_id
        self._base_url = f"{api_base.rstrip('/')}/books/v3"

    async def get_projects(self) -> tuple[list[dict[str, Any]], bool]:
        """All projects, paged 200 at a time: cache TTL 900 s."""
        return await self._cache.get_or_set(KEY_PROJECTS, self._fetch_projects, ttl=TTL_PROJECTS)

    async def get_invoices(self) -> tuple[list[dict[str, Any]], bool]:
        """All invoices, following page_context.has_more_page: cache TTL 900 s."""
        return await self._cache.get_or_set(KEY_INVOICES, self._fetch_invoices, ttl=TTL_INVOICES)

    async def get_financial_reports(
        self, start_date: str, end_date: str
    ) -> tuple[dict[str, dict[str, Any] | None], bool]:
        """Profit & loss, cash flow and balance sheet for a date range: cache TTL 3600 s.

        The three reports are fetched concurrently. A report that fails is
        logged and returned as None; the others are still used. When all
        three fail the first error is raised and nothing is cached.
        """

        async def produce() -> dict[str, dict[str, Any] | None]:
            names = ("profit_and_loss", "cash_flow", "balance_sheet")
            results = await asyncio.gather(
                self._request("reports/profitandloss", {"from_date": start_date, "to_date": end_date}),
                self._request("reports/cashflow", {"from_date": start_date, "to_date": end_date}),
                self._request("reports/balancesheet", {"date": end_date}),
                return_exceptions=True,
            )
            reports: dict[str, dict[str, Any] | None] = {}
            for name, result in zip(names, results):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    logger.warning("Zoho report %s failed: %s", name, result)
                    reports[name] = None
                else:
                    reports[name] = result
            if all(r is None for r in reports.values()):
                # Nothing usable; fail instead of caching an all-zero result
                raise next(r for r in results if isinstance(r, Exception))
            return reports

        return await self._cache.get_or_set(
            financial_cache_key(start_date, end_date), produce, ttl=TTL_FINANCIAL
        )

    async def _fetch_projects(self) -> list[dict[str, Any]]:
        projects: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._request("projects", {"page": page, "per_page": PAGE_SIZE})
            batch: list[dict[str, Any]] = data.get("projects") or []
            projects.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        logger.info("Fetched %d projects from Zoho", len(projects))
        return projects

    async def _fetch_invoices(self) -> list[dict[str, Any]]:
        invoices: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._request("invoices", {"page": page, "per_page": PAGE_SIZE})
            batch: list[dict[str, Any]] = data.get("invoices") or []
            invoices.extend(batch)
            has_more = (data.get("page_context") or {}).get("has_more_page", False)
            if not has_more or not batch:
                break
            page += 1
        logger.info("Fetched %d invoices from Zoho", len(invoices))
        return invoices

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """Internal GET helper.

        1. Add organization_id to the query.
        2. Call httpx with make_headers() (the client carries DEFAULT_TIMEOUT).
        3. Raise ApiError on non-2xx status.
        """
        url = f"{self._base_url}/{endpoint}"
        query = {**params, "organization_id": self._organization_id}
        logger.debug("Zoho API: %s %s", endpoint, params)
        response = await self._http.get(url, params=query, headers=make_headers(self._access_token))
        self._raise_for_status(response)
        data: dict[str, Any] = response.json()
        return data

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise ApiError for non-2xx responses."""
        if response.status_code == 401:
            raise ApiError(401, "Zoho rejected the access token (401)")
        if response.status_code == 404:
            raise ApiError(404, f"Resource not found (404): {response.url}")
        if response.status_code >= 400:
            raise ApiError(response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
