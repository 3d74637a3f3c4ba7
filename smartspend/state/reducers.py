"""
Transition Handlers

Each handler takes the current snapshot and one intent and returns the
next snapshot plus a small dict of transition-specific details. Handlers
are pure with respect to the snapshot: they consult the authorization
predicates, validate input, and build new records with model_copy.

CRITICAL: A handler either returns a complete, valid snapshot or raises a
LedgerError before building anything. There is no partial application;
the caller keeps the previous snapshot on any error.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from smartspend.auth import policy
from smartspend.auth.passwords import SecretHasher
from smartspend.errors import (
    DuplicateEmail,
    InvalidCredentials,
    LastMemberProtection,
    NotFound,
    PermissionDenied,
    SelfDeletionForbidden,
    ValidationError,
)
from smartspend.models.ledger import (
    AppState,
    Expense,
    Role,
    User,
    Workspace,
    WorkspaceMember,
)
from smartspend.state import transitions as t
from smartspend.sync.profile import ProfileSyncService
from smartspend.validation.ids import IdGenerator
from smartspend.validation.validator import (
    normalize_email,
    parse_category,
    parse_positive_amount,
    require_text,
    validate_description,
    validate_secret,
    validate_theme_color,
)

Reduction = tuple[AppState, dict]

DEFAULT_THEME_COLOR = "#2563eb"
MAX_CURRENCY_LENGTH = 8
MAX_AVATAR_LENGTH = 500


def default_avatar_ref(email: str) -> str:
    return f"https://picsum.photos/seed/{email}/120"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LedgerReducer:
    """
    Dispatches intents to their handler.

    The actor for every transition is the snapshot's active user; the
    engine serves one actor at a time.
    """

    def __init__(
        self,
        hasher: Optional[SecretHasher] = None,
        ids: Optional[IdGenerator] = None,
        profile_sync: Optional[ProfileSyncService] = None,
        clock: Callable[[], datetime] = utc_now,
        default_theme_color: str = DEFAULT_THEME_COLOR,
        reset_token_ttl: timedelta = timedelta(minutes=30),
    ):
        self._hasher = hasher or SecretHasher()
        self._ids = ids or IdGenerator()
        self._profile_sync = profile_sync or ProfileSyncService()
        self._clock = clock
        self._default_theme_color = default_theme_color
        self._reset_token_ttl = reset_token_ttl

        self._handlers: dict[str, Callable[[AppState, t.Transition], Reduction]] = {
            "register_user": self._register_user,
            "authenticate": self._authenticate,
            "logout": self._logout,
            "update_own_profile": self._update_own_profile,
            "update_own_theme": self._update_own_theme,
            "delete_user": self._delete_user,
            "issue_credential_reset": self._issue_credential_reset,
            "reset_credential": self._reset_credential,
            "create_workspace": self._create_workspace,
            "switch_workspace": self._switch_workspace,
            "toggle_workspace_membership": self._toggle_workspace_membership,
            "update_workspace_settings": self._update_workspace_settings,
            "set_active_view": self._set_active_view,
            "add_expense": self._add_expense,
            "delete_expense": self._delete_expense,
            "delete_expenses": self._delete_expenses,
        }

    def reduce(self, state: AppState, intent: t.Transition) -> Reduction:
        handler = self._handlers.get(intent.kind)
        if handler is None:
            raise ValidationError(f"Unsupported transition: {intent.kind}")
        return handler(state, intent)

    # -------------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _workspace_or_raise(state: AppState, workspace_id: str) -> Workspace:
        workspace = state.find_workspace(workspace_id)
        if workspace is None:
            raise NotFound(f"Workspace {workspace_id} does not exist")
        return workspace

    @staticmethod
    def _user_or_raise(state: AppState, user_id: str) -> User:
        user = state.find_user(user_id)
        if user is None:
            raise NotFound(f"User {user_id} does not exist")
        return user

    @staticmethod
    def _admin_or_raise(state: AppState, action: str) -> User:
        actor = state.active_user
        if not policy.require_admin(actor):
            raise PermissionDenied(f"Only admins can {action}")
        return actor

    @staticmethod
    def _resolve_identifier(state: AppState, identifier: str) -> Optional[User]:
        identifier = (identifier or "").strip()
        return state.find_user(identifier) or state.find_user_by_email(identifier)

    @staticmethod
    def _replace_workspace(state: AppState, workspace: Workspace) -> AppState:
        workspaces = tuple(
            workspace if w.id == workspace.id else w for w in state.workspaces
        )
        return state.model_copy(update={"workspaces": workspaces})

    @staticmethod
    def _replace_user(state: AppState, user: User) -> AppState:
        users = tuple(user if u.id == user.id else u for u in state.users)
        return state.model_copy(update={"users": users})

    # -------------------------------------------------------------------------
    # Directory
    # -------------------------------------------------------------------------

    def _register_user(self, state: AppState, intent: t.RegisterUser) -> Reduction:
        name = require_text(intent.name, "Name")
        email = normalize_email(intent.email)

        if state.find_user_by_email(email) is not None:
            raise DuplicateEmail("This email is already registered.")

        secret = validate_secret(intent.secret.get_secret_value())
        if (
            intent.confirm_secret is not None
            and intent.confirm_secret.get_secret_value() != secret
        ):
            raise ValidationError("Passwords do not match.")

        user = User(
            id=self._ids.new_user_id(),
            name=name,
            email=email,
            password_hash=self._hasher.hash(secret),
            avatar_ref=default_avatar_ref(email),
            role=Role.MEMBER,
            theme_color=self._default_theme_color,
        )

        default_workspace = state.default_workspace
        joined = default_workspace.model_copy(update={
            "members": default_workspace.members + (WorkspaceMember.from_user(user),),
        })

        state = self._replace_workspace(state, joined)
        state = state.model_copy(update={
            "users": state.users + (user,),
            "active_user_id": user.id,
        })
        return state, {"entity_type": "user", "entity_id": user.id}

    def _authenticate(self, state: AppState, intent: t.Authenticate) -> Reduction:
        user = self._resolve_identifier(state, intent.identifier)
        if user is None or not self._hasher.verify(
            intent.secret.get_secret_value(), user.password_hash
        ):
            raise InvalidCredentials("Incorrect email or password.")

        state = state.model_copy(update={"active_user_id": user.id})
        return state, {"entity_type": "user", "entity_id": user.id}

    def _logout(self, state: AppState, intent: t.Logout) -> Reduction:
        previous = state.active_user_id
        return state.model_copy(update={"active_user_id": None}), {
            "entity_type": "user",
            "entity_id": previous,
        }

    def _update_own_profile(self, state: AppState, intent: t.UpdateOwnProfile) -> Reduction:
        actor = state.active_user
        if actor is None or not policy.can_edit_profile(actor, actor.id):
            raise PermissionDenied("Sign in to edit your profile.")

        changes = {}
        if intent.name is not None:
            changes["name"] = require_text(intent.name, "Name")
        if intent.email is not None:
            email = normalize_email(intent.email)
            holder = state.find_user_by_email(email)
            if holder is not None and holder.id != actor.id:
                raise DuplicateEmail("This email is already registered.")
            changes["email"] = email
        if intent.avatar_ref is not None:
            changes["avatar_ref"] = require_text(
                intent.avatar_ref, "Avatar", MAX_AVATAR_LENGTH
            )

        # Validated so an edited field can never break the stored snapshot
        updated = User.model_validate({**actor.model_dump(), **changes})
        state = self._profile_sync.cascade_profile_edit(state, updated)
        return state, {
            "entity_type": "user",
            "entity_id": actor.id,
            "changed_fields": sorted(changes),
        }

    def _update_own_theme(self, state: AppState, intent: t.UpdateOwnTheme) -> Reduction:
        actor = state.active_user
        if actor is None:
            return state, {"skipped": True}

        color = validate_theme_color(intent.color)
        state = self._replace_user(state, actor.model_copy(update={"theme_color": color}))
        return state, {"entity_type": "user", "entity_id": actor.id, "theme_color": color}

    def _delete_user(self, state: AppState, intent: t.DeleteUser) -> Reduction:
        # Checked before the role so the answer is the same for everyone
        if intent.target_user_id == state.active_user_id:
            raise SelfDeletionForbidden("You cannot delete your own active profile.")

        self._admin_or_raise(state, "delete users")
        target = self._user_or_raise(state, intent.target_user_id)

        for workspace in state.workspaces:
            if workspace.has_member(target.id) and len(workspace.members) == 1:
                raise LastMemberProtection(
                    f"{target.name} is the only member of '{workspace.name}'. "
                    "Add another member before deleting this user."
                )

        workspaces = tuple(
            w.model_copy(update={
                "members": tuple(m for m in w.members if m.user_id != target.id),
            })
            if w.has_member(target.id)
            else w
            for w in state.workspaces
        )

        state = state.model_copy(update={
            "users": tuple(u for u in state.users if u.id != target.id),
            "workspaces": workspaces,
            "active_user_id": (
                None if state.active_user_id == target.id else state.active_user_id
            ),
        })
        return state, {"entity_type": "user", "entity_id": target.id}

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    def _issue_credential_reset(
        self,
        state: AppState,
        intent: t.IssueCredentialReset,
    ) -> Reduction:
        self._admin_or_raise(state, "issue credential resets")
        if not policy.reveal_secret(
            intent.master_secret.get_secret_value(),
            state.master_secret_hash,
            self._hasher,
        ):
            raise PermissionDenied("Invalid master secret. Access denied.")

        target = self._user_or_raise(state, intent.target_user_id)

        token = self._hasher.new_reset_token()
        expires_at = self._clock() + self._reset_token_ttl
        state = self._replace_user(state, target.model_copy(update={
            "reset_token_hash": self._hasher.digest_token(token),
            "reset_token_expires_at": expires_at,
        }))
        return state, {
            "entity_type": "user",
            "entity_id": target.id,
            "reset_token": token,
            "expires_at": expires_at.isoformat(),
        }

    def _reset_credential(self, state: AppState, intent: t.ResetCredential) -> Reduction:
        user = self._resolve_identifier(state, intent.identifier)
        invalid = InvalidCredentials("Reset token is invalid or has expired.")

        if user is None or user.reset_token_hash is None:
            raise invalid
        if user.reset_token_expires_at is None or user.reset_token_expires_at <= self._clock():
            raise invalid
        if not self._hasher.verify_token(
            intent.token.get_secret_value(), user.reset_token_hash
        ):
            raise invalid

        new_hash = self._hasher.hash(intent.new_secret.get_secret_value())
        state = self._replace_user(state, user.model_copy(update={
            "password_hash": new_hash,
            "reset_token_hash": None,
            "reset_token_expires_at": None,
        }))
        return state, {"entity_type": "user", "entity_id": user.id}

    # -------------------------------------------------------------------------
    # Workspaces
    # -------------------------------------------------------------------------

    def _create_workspace(self, state: AppState, intent: t.CreateWorkspace) -> Reduction:
        actor = self._admin_or_raise(state, "create workspaces")

        workspace = Workspace(
            id=self._ids.new_workspace_id(),
            name=require_text(intent.name, "Workspace name"),
            currency_symbol=require_text(
                intent.currency_symbol, "Currency", MAX_CURRENCY_LENGTH
            ),
            budget_limit=parse_positive_amount(intent.budget_limit, "Budget"),
            members=(WorkspaceMember.from_user(actor),),
        )

        state = state.model_copy(update={"workspaces": state.workspaces + (workspace,)})
        return state, {"entity_type": "workspace", "entity_id": workspace.id}

    def _switch_workspace(self, state: AppState, intent: t.SwitchWorkspace) -> Reduction:
        workspace = self._workspace_or_raise(state, intent.workspace_id)
        if not policy.can_access_workspace(state.active_user, workspace):
            raise PermissionDenied(f"You are not a member of '{workspace.name}'.")

        state = state.model_copy(update={"current_workspace_id": workspace.id})
        return state, {"entity_type": "workspace", "entity_id": workspace.id}

    def _toggle_workspace_membership(
        self,
        state: AppState,
        intent: t.ToggleWorkspaceMembership,
    ) -> Reduction:
        self._admin_or_raise(state, "manage workspace members")
        workspace = self._workspace_or_raise(state, intent.workspace_id)

        if workspace.has_member(intent.user_id):
            if len(workspace.members) == 1:
                raise LastMemberProtection(
                    "A workspace requires at least one participating member."
                )
            members = tuple(m for m in workspace.members if m.user_id != intent.user_id)
            is_member_now = False
        else:
            user = self._user_or_raise(state, intent.user_id)
            members = workspace.members + (WorkspaceMember.from_user(user),)
            is_member_now = True

        state = self._replace_workspace(
            state, workspace.model_copy(update={"members": members})
        )
        return state, {
            "entity_type": "workspace",
            "entity_id": workspace.id,
            "user_id": intent.user_id,
            "is_member": is_member_now,
        }

    def _update_workspace_settings(
        self,
        state: AppState,
        intent: t.UpdateWorkspaceSettings,
    ) -> Reduction:
        self._admin_or_raise(state, "change workspace settings")
        workspace = self._workspace_or_raise(state, intent.workspace_id)

        changes = {}
        if intent.currency_symbol is not None:
            changes["currency_symbol"] = require_text(
                intent.currency_symbol, "Currency", MAX_CURRENCY_LENGTH
            )
        if intent.budget_limit is not None:
            changes["budget_limit"] = parse_positive_amount(intent.budget_limit, "Budget")
        if intent.name is not None:
            changes["name"] = require_text(intent.name, "Workspace name")

        state = self._replace_workspace(
            state, Workspace.model_validate({**workspace.model_dump(), **changes})
        )
        return state, {
            "entity_type": "workspace",
            "entity_id": workspace.id,
            "changed_fields": sorted(changes),
        }

    def _set_active_view(self, state: AppState, intent: t.SetActiveView) -> Reduction:
        return state.model_copy(update={"active_view": intent.view}), {
            "view": intent.view.value,
        }

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def _add_expense(self, state: AppState, intent: t.AddExpense) -> Reduction:
        actor = state.active_user
        if actor is None:
            raise PermissionDenied("Sign in to record expenses.")

        workspace = (
            self._workspace_or_raise(state, intent.workspace_id)
            if intent.workspace_id is not None
            else state.current_workspace
        )
        if not policy.can_add_expense(actor, workspace):
            raise PermissionDenied(
                "Permission Error: You are not a registered member of this workspace."
            )

        expense = Expense(
            id=self._ids.new_expense_id(),
            amount=parse_positive_amount(intent.amount),
            description=validate_description(intent.description),
            category=parse_category(intent.category),
            date=intent.date or self._clock().date(),
            owner_user_id=actor.id,
            owner_name=actor.name,
            owner_avatar_ref=actor.avatar_ref,
            workspace_id=workspace.id,
        )

        # Newest first is the natural order; views always sort explicitly
        state = state.model_copy(update={"expenses": (expense,) + state.expenses})
        return state, {"entity_type": "expense", "entity_id": expense.id}

    def _authorize_deletion(self, state: AppState, expense: Expense) -> None:
        workspace = self._workspace_or_raise(state, expense.workspace_id)
        if not policy.can_modify_expense(state.active_user, workspace, expense):
            raise PermissionDenied(
                "Permission Error: You are not a registered member of this workspace."
            )

    def _delete_expense(self, state: AppState, intent: t.DeleteExpense) -> Reduction:
        expense = state.find_expense(intent.expense_id)
        if expense is None:
            # Already gone; removal by id is idempotent
            return state, {"entity_type": "expense", "entity_id": intent.expense_id}

        self._authorize_deletion(state, expense)

        state = state.model_copy(update={
            "expenses": tuple(e for e in state.expenses if e.id != expense.id),
        })
        return state, {"entity_type": "expense", "entity_id": expense.id}

    def _delete_expenses(self, state: AppState, intent: t.DeleteExpenses) -> Reduction:
        requested = set(intent.expense_ids)
        targets = [e for e in state.expenses if e.id in requested]

        # All-or-nothing: one unauthorized target rejects the whole batch
        for expense in targets:
            self._authorize_deletion(state, expense)

        doomed = {e.id for e in targets}
        state = state.model_copy(update={
            "expenses": tuple(e for e in state.expenses if e.id not in doomed),
        })
        return state, {
            "entity_type": "expense",
            "deleted_ids": sorted(doomed),
            "requested": len(requested),
        }
