"""Shared pytest fixtures for the billing MCP server test suite."""
from __future__ import annotations

import pytest


@pytest.fixture
def sample_project_raw() -> dict:  # type: ignore[type-arg]
    """Sample raw project entry matching the Zoho Books /projects response schema."""
    return {
        "project_id": "460000000044001",
        "project_name": "Harbor Bridge Retrofit",
        "customer_id": "460000000026049",
        "customer_name": "Bay Area Transit",
        "description": "Seismic retrofit design",
        "status": "active",
        "billing_type": "based_on_task_hours",
        "rate": "",
        "budget_type": "total_project_cost",
        "budget_amount": 120000.0,
        "rate_per_hour": 185.0,
        "start_date": "2026-01-05",
        "end_date": "",
    }


@pytest.fixture
def sample_invoice_raw() -> dict:  # type: ignore[type-arg]
    """Sample raw invoice entry matching the Zoho Books /invoices response schema."""
    return {
        "invoice_id": "460000000051001",
        "project_id": "460000000044001",
        "invoice_number": "INV-000112",
        "customer_name": "Bay Area Transit",
        "date": "2026-02-28",
        "due_date": "2026-03-30",
        "status": "sent",
        "total": 18500.0,
        "balance": 18500.0,
        "currency_code": "USD",
    }
