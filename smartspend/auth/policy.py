"""
Authorization Module

Pure predicates over the current snapshot. They answer role and membership
questions and never change state.

DESIGN DECISION: System role (Admin/Member) and workspace membership are
two independent axes. Admin grants directory management and workspace
governance; membership grants access to a workspace's ledger. Neither
implies the other.

Every mutating transition asks one of these before it reduces state and
rejects with PermissionDenied if the answer is no.
"""

from typing import Optional

from smartspend.auth.passwords import SecretHasher
from smartspend.models.ledger import Expense, Role, User, Workspace


def require_admin(user: Optional[User]) -> bool:
    """True iff the user holds the Admin system role."""
    return user is not None and user.role == Role.ADMIN


def is_member(user: Optional[User], workspace: Workspace) -> bool:
    """True iff the user is on the workspace's roster."""
    return user is not None and workspace.has_member(user.id)


def can_access_workspace(user: Optional[User], workspace: Workspace) -> bool:
    """Members may open their workspaces; admins may open any."""
    return require_admin(user) or is_member(user, workspace)


def can_add_expense(user: Optional[User], workspace: Workspace) -> bool:
    return is_member(user, workspace)


def can_modify_expense(
    user: Optional[User],
    workspace: Workspace,
    expense: Expense,
) -> bool:
    """
    Collaborative model: any member of the workspace may modify any of its
    transactions. Who recorded the expense does not matter.
    """
    return expense.workspace_id == workspace.id and is_member(user, workspace)


def can_edit_profile(actor: Optional[User], target_user_id: str) -> bool:
    """Users edit only their own profile."""
    return actor is not None and actor.id == target_user_id


def reveal_secret(
    candidate_master_secret: Optional[str],
    stored_master_secret_hash: Optional[str],
    hasher: SecretHasher,
) -> bool:
    """
    Exact match of a presented master secret against the stored hash.

    A match only authorizes issuing a credential reset. No stored user
    secret is ever disclosed.
    """
    if not candidate_master_secret or not stored_master_secret_hash:
        return False
    return hasher.verify(candidate_master_secret, stored_master_secret_hash)
