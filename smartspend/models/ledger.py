"""
Core Data Models for SmartSpend

These models define the canonical ledger state and the derived views
computed from it. They are designed to:
1. Be immutable - every transition builds a new snapshot
2. Validate invariants when state is loaded from storage
3. Serialize deterministically for whole-state persistence

DESIGN DECISION: The aggregate (AppState) is a frozen pydantic model whose
collections are tuples. Handlers never mutate a snapshot in place; they
derive a new one with model_copy(update=...). A rejected transition simply
keeps the previous snapshot.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: A fixed set keeps aggregation by category reliable.
    The text-generation collaborator must map its answers onto this set.
    """
    HOUSING = "Housing"
    TRANSPORTATION = "Transportation"
    FOOD = "Food & Dining"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    OTHER = "Other"


class Role(str, Enum):
    """
    System-wide role.

    Workspace membership is a separate, per-workspace grant; an Admin is not
    implicitly a member of every workspace.
    """
    ADMIN = "Admin"
    MEMBER = "Member"


class View(str, Enum):
    """Which screen the presentation layer should show."""
    DASHBOARD = "dashboard"
    TRANSACTIONS = "transactions"
    WORKSPACE = "workspace"
    SETTINGS = "settings"


class SortKey(str, Enum):
    """Expense fields the transaction list can be sorted by."""
    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    CATEGORY = "category"
    OWNER_NAME = "owner_name"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


ALL_CATEGORIES = "All"

# Keeps budget arithmetic inside the default 28-digit decimal context
MAX_AMOUNT = Decimal("999999999999.99")

PositiveAmount = Annotated[Decimal, Field(gt=0, le=MAX_AMOUNT)]


# =============================================================================
# DIRECTORY
# =============================================================================

class User(BaseModel):
    """
    A user in the global directory.

    The secret is stored as a bcrypt hash only. A pending credential reset
    is represented by the SHA-256 hash of its token plus an expiry.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password_hash: str = Field(..., repr=False)
    avatar_ref: str
    role: Role = Role.MEMBER
    theme_color: Optional[str] = None

    reset_token_hash: Optional[str] = Field(default=None, repr=False)
    reset_token_expires_at: Optional[dt.datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# =============================================================================
# WORKSPACES
# =============================================================================

class WorkspaceMember(BaseModel):
    """
    One roster entry.

    Carries a denormalized copy of the user's display fields so a roster
    can be shown without a directory lookup. Kept in sync by the profile
    cascade.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    avatar_ref: str

    @classmethod
    def from_user(cls, user: User) -> "WorkspaceMember":
        return cls(user_id=user.id, name=user.name, avatar_ref=user.avatar_ref)


class Workspace(BaseModel):
    """
    An isolated budget/currency/member scope.

    CRITICAL: The roster is never empty. The last member cannot be removed.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    currency_symbol: str = Field(..., min_length=1, max_length=8)
    budget_limit: PositiveAmount
    members: tuple[WorkspaceMember, ...] = Field(..., min_length=1)

    @property
    def member_ids(self) -> frozenset[str]:
        return frozenset(member.user_id for member in self.members)

    def has_member(self, user_id: str) -> bool:
        return any(member.user_id == user_id for member in self.members)


# =============================================================================
# LEDGER
# =============================================================================

class Expense(BaseModel):
    """
    A single expense recorded in a workspace.

    Immutable except for owner_name/owner_avatar_ref, which mirror the
    owner's current profile. The owner reference survives deletion of the
    owner from the directory.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    amount: PositiveAmount
    description: str = Field(..., min_length=1, max_length=200)
    category: Category = Category.OTHER
    date: dt.date
    owner_user_id: str
    owner_name: str
    owner_avatar_ref: str
    workspace_id: str


class ExpenseDraft(BaseModel):
    """
    An expense being composed before it is submitted.

    All fields are optional because a draft may be partially filled by the
    text-generation collaborator.
    """
    model_config = ConfigDict(frozen=True)

    description: str = ""
    amount: Optional[Decimal] = None
    category: Category = Category.OTHER
    date: Optional[dt.date] = None


# =============================================================================
# AGGREGATE
# =============================================================================

class AppState(BaseModel):
    """
    The full aggregate: one consistent snapshot of everything.

    Exactly one workspace is current; at most one user is active.
    Validation here runs whenever a snapshot is loaded from storage, so a
    corrupt blob is rejected rather than silently used.
    """
    model_config = ConfigDict(frozen=True)

    workspaces: tuple[Workspace, ...] = Field(..., min_length=1)
    users: tuple[User, ...] = ()
    current_workspace_id: str
    expenses: tuple[Expense, ...] = ()
    active_user_id: Optional[str] = None
    active_view: View = View.DASHBOARD
    master_secret_hash: Optional[str] = Field(default=None, repr=False)

    @model_validator(mode='after')
    def validate_references(self) -> 'AppState':
        """Validate cross-record invariants."""
        workspace_ids = [w.id for w in self.workspaces]
        if len(set(workspace_ids)) != len(workspace_ids):
            raise ValueError("Workspace ids must be unique")

        if self.current_workspace_id not in workspace_ids:
            raise ValueError(
                f"Current workspace {self.current_workspace_id} does not exist"
            )

        user_ids = [u.id for u in self.users]
        if len(set(user_ids)) != len(user_ids):
            raise ValueError("User ids must be unique")

        emails = [u.email.lower() for u in self.users]
        if len(set(emails)) != len(emails):
            raise ValueError("User emails must be unique (case-insensitive)")

        if self.active_user_id is not None and self.active_user_id not in user_ids:
            raise ValueError(f"Active user {self.active_user_id} does not exist")

        return self

    # -- lookups --------------------------------------------------------------

    def find_user(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        return next((u for u in self.users if u.id == user_id), None)

    def find_user_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self.users if u.email.lower() == email), None)

    def find_workspace(self, workspace_id: str) -> Optional[Workspace]:
        return next((w for w in self.workspaces if w.id == workspace_id), None)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    @property
    def active_user(self) -> Optional[User]:
        return self.find_user(self.active_user_id)

    @property
    def current_workspace(self) -> Workspace:
        """The current workspace, falling back to the first one."""
        return self.find_workspace(self.current_workspace_id) or self.workspaces[0]

    @property
    def default_workspace(self) -> Workspace:
        """The first workspace; new registrations join it."""
        return self.workspaces[0]


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionQuery(BaseModel):
    """
    Filter and sort parameters for the transaction list.

    Defaults match the transaction table: everything in the workspace,
    newest first.
    """
    model_config = ConfigDict(frozen=True)

    workspace_id: Optional[str] = Field(
        default=None,
        description="Workspace to scope to; None means the current workspace"
    )
    search_term: str = ""
    category: str = Field(
        default=ALL_CATEGORIES,
        description="A Category value, or 'All'"
    )
    sort_key: SortKey = SortKey.DATE
    sort_direction: SortDirection = SortDirection.DESC


class CategoryTotal(BaseModel):
    """Sum of expense amounts in one category."""
    model_config = ConfigDict(frozen=True)

    category: Category
    total: Decimal


class BudgetSummary(BaseModel):
    """
    Budget metrics for one workspace.

    budget_remaining may be negative; over budget is a valid, displayed
    state, not an error.
    """
    model_config = ConfigDict(frozen=True)

    workspace_id: str
    currency_symbol: str
    budget_limit: Decimal
    total_spent: Decimal
    budget_remaining: Decimal
    spending_percentage: float
    safe_daily_spend: Decimal
    expense_count: int = Field(ge=0)

    @property
    def over_budget(self) -> bool:
        return self.budget_remaining < 0
