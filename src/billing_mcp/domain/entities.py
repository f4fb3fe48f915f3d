from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Project:
    """A Zoho Books project as shown on the billing dashboard."""

    project_id: str
    project_name: str
    status: str  # e.g. "active", "inactive"
    customer_id: str
    customer_name: str
    description: str = ""
    start_date: str = ""  # YYYY-MM-DD, empty when unknown
    end_date: str = ""
    budget_amount: float = 0.0
    rate_per_hour: float = 0.0


@dataclass
class Invoice:
    """A Zoho Books invoice with its total split into billed and unbilled parts."""

    invoice_id: str
    project_id: str
    invoice_number: str
    date: str
    amount: float
    status: str  # "paid", "sent", "viewed", "draft", ...
    billed_amount: float  # amount when paid, else 0
    unbilled_amount: float  # amount when not yet paid, else 0


@dataclass
class ProjectBilling:
    """Per-project invoice totals."""

    project_id: str
    project_name: str
    customer_name: str
    invoice_count: int
    invoiced_amount: float
    billed_amount: float
    unbilled_amount: float


@dataclass
class FinancialMetrics:
    """Headline figures derived from the profit & loss, cash flow and balance sheet reports."""

    revenue: float
    expenses: float
    gross_profit: float
    net_profit: float
    operating_income: float
    cash_flow: float
    accounts_receivable: float
    accounts_payable: float
    cash_balance: float


@dataclass
class CacheStats:
    """Snapshot of the live entries held by the server cache."""

    size: int
    keys: list[str] = field(default_factory=list)
