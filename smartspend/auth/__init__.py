"""Authorization and credentials package."""

from smartspend.auth.passwords import SecretHasher
from smartspend.auth.policy import (
    can_access_workspace,
    can_add_expense,
    can_edit_profile,
    can_modify_expense,
    is_member,
    require_admin,
    reveal_secret,
)

__all__ = [
    "SecretHasher",
    "can_access_workspace",
    "can_add_expense",
    "can_edit_profile",
    "can_modify_expense",
    "is_member",
    "require_admin",
    "reveal_secret",
]
