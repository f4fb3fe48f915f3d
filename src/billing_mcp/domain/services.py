from __future__ import annotations

from typing import Any

from billing_mcp.domain.entities import FinancialMetrics, Invoice, Project, ProjectBilling


def split_invoice_amount(total: float, status: str) -> tuple[float, float]:
    """Return (billed, unbilled) for an invoice total.

    Only "paid" invoices count as billed; every other status, including
    unknown ones, leaves the whole total unbilled.
    """
    if status == "paid":
        return total, 0.0
    return 0.0, total


def summarize_billing(projects: list[Project], invoices: list[Invoice]) -> list[ProjectBilling]:
    """Aggregate invoice totals per project.

    Every project appears once, with zero totals when it has no invoices.
    Invoices pointing at unknown projects are ignored. Sorted by project name.
    """
    rows: dict[str, ProjectBilling] = {
        p.project_id: ProjectBilling(
            project_id=p.project_id,
            project_name=p.project_name,
            customer_name=p.customer_name,
            invoice_count=0,
            invoiced_amount=0.0,
            billed_amount=0.0,
            unbilled_amount=0.0,
        )
        for p in projects
    }
    for inv in invoices:
        row = rows.get(inv.project_id)
        if row is None:
            continue
        row.invoice_count += 1
        row.invoiced_amount += inv.amount
        row.billed_amount += inv.billed_amount
        row.unbilled_amount += inv.unbilled_amount
    return sorted(rows.values(), key=lambda r: r.project_name.lower())


def _section(value: Any) -> dict[str, Any]:
    """Nested report blocks are only trusted when they are objects."""
    return value if isinstance(value, dict) else {}


def _amount(value: Any) -> float:
    """Report sections arrive either as a bare number or as {"total": n}."""
    if isinstance(value, dict):
        value = value.get("total")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def extract_financial_metrics(
    profit_and_loss: dict[str, Any] | None,
    cash_flow: dict[str, Any] | None,
    balance_sheet: dict[str, Any] | None,
) -> FinancialMetrics:
    """Derive headline metrics from the three Zoho reports.

    A report that failed to load is passed as None and contributes zeros.
    """
    pl = _section(profit_and_loss)
    cf = _section(cash_flow)
    bs = _section(balance_sheet)

    revenue = _amount(pl.get("revenue")) or _amount(pl.get("income"))
    expenses = _amount(pl.get("expenses")) or _amount(pl.get("cost_of_goods_sold"))
    operating_expenses = _amount(pl.get("operating_expenses"))

    gross_profit = revenue - expenses
    operating_income = gross_profit - operating_expenses

    assets = _section(bs.get("current_assets"))
    liabilities = _section(bs.get("current_liabilities"))

    return FinancialMetrics(
        revenue=revenue,
        expenses=expenses,
        gross_profit=gross_profit,
        net_profit=operating_income,
        operating_income=operating_income,
        cash_flow=_amount(cf.get("net_cash_flow")),
        accounts_receivable=_amount(assets.get("accounts_receivable")),
        accounts_payable=_amount(liabilities.get("accounts_payable")),
        cash_balance=_amount(assets.get("cash_and_bank")),
    )
