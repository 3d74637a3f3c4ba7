"""
Ledger Query Engine

DESIGN DECISION: Queries are PURE.
Every view (transaction table, category chart, budget card) is recomputed
from the current snapshot on demand. Nothing derived is cached or stored,
so a view can never disagree with the ledger it was computed from.

The module-level functions take and return plain sequences of Expense.
LedgerQueryEngine is a thin facade that pulls the store's snapshot and
chains them.
"""

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from smartspend.models.ledger import (
    AppState,
    BudgetSummary,
    Category,
    CategoryTotal,
    Expense,
    SortDirection,
    SortKey,
    TransactionQuery,
    Workspace,
)
from smartspend.state.store import StateStore
from smartspend.validation.validator import parse_category_filter

# The dashboard spreads the remaining budget over a nominal month
SAFE_SPEND_DAYS = 30
CENTS = Decimal("0.01")


# =============================================================================
# FILTERS
# =============================================================================

def scope_to_workspace(expenses: Iterable[Expense], workspace_id: str) -> list[Expense]:
    return [e for e in expenses if e.workspace_id == workspace_id]


def search(expenses: Iterable[Expense], term: Optional[str]) -> list[Expense]:
    """Case-insensitive substring match on description or owner name."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(expenses)
    return [
        e for e in expenses
        if needle in e.description.lower() or needle in e.owner_name.lower()
    ]


def filter_by_category(
    expenses: Iterable[Expense],
    category: Union[Category, str, None],
) -> list[Expense]:
    """Keep one category. None or "All" keeps everything."""
    wanted = parse_category_filter(category)
    if wanted is None:
        return list(expenses)
    return [e for e in expenses if e.category == wanted]


# =============================================================================
# SORTING
# =============================================================================

_SORT_FIELDS = {
    SortKey.DATE: lambda e: e.date.isoformat(),
    SortKey.AMOUNT: lambda e: e.amount,
    SortKey.DESCRIPTION: lambda e: e.description,
    SortKey.CATEGORY: lambda e: e.category.value,
    SortKey.OWNER_NAME: lambda e: e.owner_name,
}


def sort_by(
    expenses: Iterable[Expense],
    key: Union[SortKey, str] = SortKey.DATE,
    direction: Union[SortDirection, str] = SortDirection.DESC,
) -> list[Expense]:
    """
    Stable sort on one field.

    Ties keep their input order in both directions; `reverse=True` on
    `sorted` preserves stability, unlike reversing an ascending result.
    """
    field = _SORT_FIELDS[SortKey(key)]
    return sorted(
        expenses,
        key=field,
        reverse=SortDirection(direction) == SortDirection.DESC,
    )


# =============================================================================
# AGGREGATES
# =============================================================================

def total_spent(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), Decimal("0"))


def budget_remaining(budget_limit: Decimal, spent: Decimal) -> Decimal:
    """May be negative; over budget is a displayed state, not an error."""
    return budget_limit - spent


def spending_percentage(budget_limit: Decimal, spent: Decimal) -> float:
    # budget_limit is kept positive by every transition that sets it
    return float(Decimal(100) * spent / budget_limit)


def safe_daily_spend(remaining: Decimal) -> Decimal:
    return (remaining / SAFE_SPEND_DAYS).quantize(CENTS, rounding=ROUND_HALF_UP)


def category_breakdown(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """
    Sum per category, largest first.

    Categories tie-break by first appearance in `expenses`.
    """
    totals: dict[Category, Decimal] = defaultdict(lambda: Decimal("0"))
    for expense in expenses:
        totals[expense.category] += expense.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=category, total=total) for category, total in ranked]


def summarize_budget(workspace: Workspace, expenses: Iterable[Expense]) -> BudgetSummary:
    scoped = scope_to_workspace(expenses, workspace.id)
    spent = total_spent(scoped)
    remaining = budget_remaining(workspace.budget_limit, spent)

    return BudgetSummary(
        workspace_id=workspace.id,
        currency_symbol=workspace.currency_symbol,
        budget_limit=workspace.budget_limit,
        total_spent=spent,
        budget_remaining=remaining,
        spending_percentage=spending_percentage(workspace.budget_limit, spent),
        safe_daily_spend=safe_daily_spend(remaining),
        expense_count=len(scoped),
    )


def query_transactions(state: AppState, query: TransactionQuery) -> list[Expense]:
    """Scope, search, filter and sort in the order the transaction table does."""
    workspace_id = query.workspace_id or state.current_workspace.id
    expenses = scope_to_workspace(state.expenses, workspace_id)
    expenses = search(expenses, query.search_term)
    expenses = filter_by_category(expenses, query.category)
    return sort_by(expenses, query.sort_key, query.sort_direction)


# =============================================================================
# FACADE
# =============================================================================

class LedgerQueryEngine:
    """
    Read-side views over the store's current snapshot.

    GUARANTEES:
    - Reads the snapshot fresh on every call
    - Never mutates state
    - Unknown workspace ids yield empty views, not errors
    """

    def __init__(self, store: StateStore):
        self._store = store

    def _workspace(self, workspace_id: Optional[str]) -> Optional[Workspace]:
        state = self._store.state
        if workspace_id is None:
            return state.current_workspace
        return state.find_workspace(workspace_id)

    def transactions(self, query: Optional[TransactionQuery] = None) -> list[Expense]:
        return query_transactions(self._store.state, query or TransactionQuery())

    def workspace_expenses(self, workspace_id: Optional[str] = None) -> list[Expense]:
        workspace = self._workspace(workspace_id)
        if workspace is None:
            return []
        return scope_to_workspace(self._store.state.expenses, workspace.id)

    def category_breakdown(self, workspace_id: Optional[str] = None) -> list[CategoryTotal]:
        return category_breakdown(self.workspace_expenses(workspace_id))

    def budget_summary(self, workspace_id: Optional[str] = None) -> Optional[BudgetSummary]:
        workspace = self._workspace(workspace_id)
        if workspace is None:
            return None
        return summarize_budget(workspace, self._store.state.expenses)
