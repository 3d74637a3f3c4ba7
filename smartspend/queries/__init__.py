"""Read-side ledger views."""

from smartspend.queries.ledger import (
    LedgerQueryEngine,
    budget_remaining,
    category_breakdown,
    filter_by_category,
    query_transactions,
    safe_daily_spend,
    scope_to_workspace,
    search,
    sort_by,
    spending_percentage,
    summarize_budget,
    total_spent,
)

__all__ = [
    "LedgerQueryEngine",
    "budget_remaining",
    "category_breakdown",
    "filter_by_category",
    "query_transactions",
    "safe_daily_spend",
    "scope_to_workspace",
    "search",
    "sort_by",
    "spending_percentage",
    "summarize_budget",
    "total_spent",
]
