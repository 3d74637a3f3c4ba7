"""
Transition Intents

Each mutation of the aggregate is described by one of these tagged
variants. The StateStore dispatches on `kind`; nothing else may change
state.

Raw user input (amounts, categories, colours) is carried as given and
validated by the handler, so a malformed value becomes a ValidationError
outcome rather than an exception at construction time.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, TypeAdapter

from smartspend.models.ledger import Category, View

RawAmount = Optional[Union[Decimal, int, float, str]]


class _Intent(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# DIRECTORY
# =============================================================================

class RegisterUser(_Intent):
    kind: Literal["register_user"] = "register_user"
    name: str
    email: str
    secret: SecretStr
    confirm_secret: Optional[SecretStr] = None


class Authenticate(_Intent):
    """`identifier` is a user id or an email address."""
    kind: Literal["authenticate"] = "authenticate"
    identifier: str
    secret: SecretStr


class Logout(_Intent):
    kind: Literal["logout"] = "logout"


class UpdateOwnProfile(_Intent):
    """Fields left as None keep their current value."""
    kind: Literal["update_own_profile"] = "update_own_profile"
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_ref: Optional[str] = None


class UpdateOwnTheme(_Intent):
    kind: Literal["update_own_theme"] = "update_own_theme"
    color: str


class DeleteUser(_Intent):
    kind: Literal["delete_user"] = "delete_user"
    target_user_id: str


class IssueCredentialReset(_Intent):
    kind: Literal["issue_credential_reset"] = "issue_credential_reset"
    target_user_id: str
    master_secret: SecretStr


class ResetCredential(_Intent):
    kind: Literal["reset_credential"] = "reset_credential"
    identifier: str
    token: SecretStr
    new_secret: SecretStr


# =============================================================================
# WORKSPACES
# =============================================================================

class CreateWorkspace(_Intent):
    kind: Literal["create_workspace"] = "create_workspace"
    name: str
    currency_symbol: str
    budget_limit: RawAmount


class SwitchWorkspace(_Intent):
    kind: Literal["switch_workspace"] = "switch_workspace"
    workspace_id: str


class ToggleWorkspaceMembership(_Intent):
    kind: Literal["toggle_workspace_membership"] = "toggle_workspace_membership"
    workspace_id: str
    user_id: str


class UpdateWorkspaceSettings(_Intent):
    """Fields left as None keep their current value."""
    kind: Literal["update_workspace_settings"] = "update_workspace_settings"
    workspace_id: str
    currency_symbol: Optional[str] = None
    budget_limit: RawAmount = None
    name: Optional[str] = None


class SetActiveView(_Intent):
    kind: Literal["set_active_view"] = "set_active_view"
    view: View


# =============================================================================
# LEDGER
# =============================================================================

class AddExpense(_Intent):
    """`workspace_id` defaults to the current workspace; `date` to today."""
    kind: Literal["add_expense"] = "add_expense"
    description: Optional[str] = None
    amount: RawAmount = None
    category: Union[Category, str] = Category.OTHER
    date: Optional[dt.date] = None
    workspace_id: Optional[str] = None


class DeleteExpense(_Intent):
    kind: Literal["delete_expense"] = "delete_expense"
    expense_id: str


class DeleteExpenses(_Intent):
    kind: Literal["delete_expenses"] = "delete_expenses"
    expense_ids: tuple[str, ...]


Transition = Annotated[
    Union[
        RegisterUser,
        Authenticate,
        Logout,
        UpdateOwnProfile,
        UpdateOwnTheme,
        DeleteUser,
        IssueCredentialReset,
        ResetCredential,
        CreateWorkspace,
        SwitchWorkspace,
        ToggleWorkspaceMembership,
        UpdateWorkspaceSettings,
        SetActiveView,
        AddExpense,
        DeleteExpense,
        DeleteExpenses,
    ],
    Field(discriminator="kind"),
]

_transition_adapter: TypeAdapter[Transition] = TypeAdapter(Transition)


def parse_transition(data: dict) -> Transition:
    """Build a transition from a plain dict such as a UI form payload."""
    return _transition_adapter.validate_python(data)
