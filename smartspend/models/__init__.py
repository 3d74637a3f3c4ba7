"""
Data Models Package

This package contains all Pydantic models used in the SmartSpend system.
All state flowing through the engine must conform to these schemas.
"""

from smartspend.models.ledger import (
    ALL_CATEGORIES,
    MAX_AMOUNT,
    AppState,
    BudgetSummary,
    Category,
    CategoryTotal,
    Expense,
    ExpenseDraft,
    Role,
    SortDirection,
    SortKey,
    TransactionQuery,
    User,
    View,
    Workspace,
    WorkspaceMember,
)
from smartspend.models.outcome import OutcomeCode, TransitionOutcome
from smartspend.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ALL_CATEGORIES",
    "MAX_AMOUNT",
    "AppState",
    "BudgetSummary",
    "Category",
    "CategoryTotal",
    "Expense",
    "ExpenseDraft",
    "Role",
    "SortDirection",
    "SortKey",
    "TransactionQuery",
    "User",
    "View",
    "Workspace",
    "WorkspaceMember",
    # Outcomes
    "OutcomeCode",
    "TransitionOutcome",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
