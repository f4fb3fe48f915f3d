from __future__ import annotations

from datetime import date

from billing_mcp.domain.entities import FinancialMetrics, Invoice, Project, ProjectBilling
from billing_mcp.domain.exceptions import ValidationError
from billing_mcp.domain.services import (
    extract_financial_metrics,
    split_invoice_amount,
    summarize_billing,
)
from billing_mcp.infrastructure.zoho_client import ZohoClient


class BillingService:
    """Maps cached Zoho data onto dashboard entities.

    Every method returns (result, from_cache) so the outer layer can report
    whether the data was served from the server cache.
    """

    def __init__(self, client: ZohoClient) -> None:
        self._client = client

    async def get_projects(self, status: str | None = None) -> tuple[list[Project], bool]:
        """Return all projects, optionally filtered by status (case-insensitive)."""
        raw, from_cache = await self._client.get_projects()
        projects = [self._map_project(p) for p in raw]
        if status:
            wanted = status.lower()
            projects = [p for p in projects if p.status.lower() == wanted]
        return projects, from_cache

    async def get_invoices(self, project_id: str | None = None) -> tuple[list[Invoice], bool]:
        """Return all invoices, optionally only those of one project."""
        raw, from_cache = await self._client.get_invoices()
        invoices = [self._map_invoice(i) for i in raw]
        if project_id:
            invoices = [i for i in invoices if i.project_id == project_id]
        return invoices, from_cache

    async def get_billing_summary(self) -> tuple[list[ProjectBilling], bool]:
        """Per-project invoice totals. from_cache only when both inputs were cached."""
        projects, projects_cached = await self.get_projects()
        invoices, invoices_cached = await self.get_invoices()
        return summarize_billing(projects, invoices), projects_cached and invoices_cached

    async def get_financial_metrics(
        self, start_date: str, end_date: str
    ) -> tuple[FinancialMetrics, bool]:
        """Headline metrics for [start_date, end_date], both given as YYYY-MM-DD."""
        start = _parse_date(start_date, "start_date")
        end = _parse_date(end_date, "end_date")
        if start > end:
            raise ValidationError("start_date must not be after end_date")
        reports, from_cache = await self._client.get_financial_reports(
            start.isoformat(), end.isoformat()
        )
        metrics = extract_financial_metrics(
            reports.get("profit_and_loss"),
            reports.get("cash_flow"),
            reports.get("balance_sheet"),
        )
        return metrics, from_cache

    def _map_project(self, raw: dict) -> Project:  # type: ignore[type-arg]
        """Map a raw Zoho project; Zoho sometimes sends "name" instead of "project_name"."""
        return Project(
            project_id=str(raw.get("project_id", "")),
            project_name=raw.get("project_name") or raw.get("name") or "",
            status=raw.get("status") or "active",
            customer_id=str(raw.get("customer_id") or ""),
            customer_name=raw.get("customer_name") or "",
            description=raw.get("description") or "",
            start_date=raw.get("start_date") or "",
            end_date=raw.get("end_date") or "",
            budget_amount=float(raw.get("budget_amount") or 0.0),
            rate_per_hour=float(raw.get("rate_per_hour") or 0.0),
        )

    def _map_invoice(self, raw: dict) -> Invoice:  # type: ignore[type-arg]
        total = float(raw.get("total") or 0.0)
        status = raw.get("status") or "unknown"
        billed, unbilled = split_invoice_amount(total, status)
        return Invoice(
            invoice_id=str(raw.get("invoice_id", "")),
            project_id=str(raw.get("project_id") or ""),
            invoice_number=raw.get("invoice_number") or "",
            date=raw.get("date") or "",
            amount=total,
            status=status,
            billed_amount=billed,
            unbilled_amount=unbilled,
        )


def _parse_date(value: str, field_name: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}, expected YYYY-MM-DD")
