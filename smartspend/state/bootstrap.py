"""
Default state for a first run.

Used when the storage backend holds no snapshot: one Admin user, one
workspace with a seeded budget and currency, nobody signed in.
"""

from typing import Optional

from smartspend.auth.passwords import SecretHasher
from smartspend.config.settings import AppSettings
from smartspend.models.ledger import (
    AppState,
    Role,
    User,
    View,
    Workspace,
    WorkspaceMember,
)
from smartspend.state.reducers import default_avatar_ref

BOOTSTRAP_ADMIN_ID = "u1"
BOOTSTRAP_WORKSPACE_ID = "w1"


def build_default_state(
    settings: AppSettings,
    hasher: Optional[SecretHasher] = None,
) -> AppState:
    hasher = hasher or SecretHasher(rounds=settings.password_hash_rounds)

    admin = User(
        id=BOOTSTRAP_ADMIN_ID,
        name=settings.bootstrap_admin_name,
        email=settings.bootstrap_admin_email,
        password_hash=hasher.hash(settings.bootstrap_admin_password.get_secret_value()),
        avatar_ref=default_avatar_ref("admin"),
        role=Role.ADMIN,
        theme_color=settings.default_theme_color,
    )

    workspace = Workspace(
        id=BOOTSTRAP_WORKSPACE_ID,
        name=settings.default_workspace_name,
        currency_symbol=settings.default_currency_symbol,
        budget_limit=settings.default_budget_limit,
        members=(WorkspaceMember.from_user(admin),),
    )

    master_secret_hash = None
    if settings.master_secret is not None:
        master_secret_hash = hasher.hash(settings.master_secret.get_secret_value())

    return AppState(
        workspaces=(workspace,),
        users=(admin,),
        current_workspace_id=workspace.id,
        expenses=(),
        active_user_id=None,
        active_view=View.DASHBOARD,
        master_secret_hash=master_secret_hash,
    )
