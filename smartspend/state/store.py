"""
State Store

Owns the single source-of-truth snapshot. Every mutation goes through
`apply`, which:
1. Reduces the current snapshot with the intent (authorization included)
2. Swaps in the new snapshot as one reference assignment
3. Saves the complete snapshot to storage
4. Audits the outcome

DESIGN DECISION: Nothing raises past this boundary for a rejected
transition. LedgerErrors become a TransitionOutcome with success=False
and the previous snapshot, untouched.
"""

from datetime import timedelta
from typing import Callable, Optional, Union
from uuid import UUID

from pydantic import ValidationError as SchemaValidationError

from smartspend.audit import AuditLogger
from smartspend.auth.passwords import SecretHasher
from smartspend.config import get_settings
from smartspend.errors import LedgerError
from smartspend.models.ledger import AppState, Category, User, View, Workspace
from smartspend.models.outcome import OutcomeCode, TransitionOutcome
from smartspend.services.storage import StateStorageInterface, StorageError
from smartspend.state import transitions as t
from smartspend.state.bootstrap import build_default_state
from smartspend.state.reducers import LedgerReducer
from smartspend.state.transitions import RawAmount

# Detail keys that are returned to the caller but never written to the audit log
SENSITIVE_DETAIL_KEYS = frozenset({"reset_token"})


class StateStore:
    """
    Holds the current AppState and applies transitions to it.

    Load-on-init: the snapshot comes from storage, or from `bootstrap`
    when storage is empty (the bootstrapped snapshot is saved right away).
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        reducer: Optional[LedgerReducer] = None,
        audit_logger: Optional[AuditLogger] = None,
        bootstrap: Optional[Callable[[], AppState]] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._reducer = reducer or self._default_reducer()

        loaded = storage.load()
        if loaded is None:
            bootstrap = bootstrap or self._default_bootstrap
            self._state = bootstrap()
            self._persist("bootstrap", None)
        else:
            self._state = loaded

        self._audit_logger.log_state_loaded(
            bootstrapped=loaded is None,
            user_count=len(self._state.users),
            workspace_count=len(self._state.workspaces),
            expense_count=len(self._state.expenses),
        )

    @staticmethod
    def _default_reducer() -> LedgerReducer:
        app = get_settings().app
        return LedgerReducer(
            hasher=SecretHasher(rounds=app.password_hash_rounds),
            default_theme_color=app.default_theme_color,
            reset_token_ttl=timedelta(minutes=app.reset_token_ttl_minutes),
        )

    @staticmethod
    def _default_bootstrap() -> AppState:
        app = get_settings().app
        return build_default_state(app, SecretHasher(rounds=app.password_hash_rounds))

    # -------------------------------------------------------------------------
    # Snapshot access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> AppState:
        """The current snapshot. Treat it as read-only; it is frozen anyway."""
        return self._state

    @property
    def active_user(self) -> Optional[User]:
        return self._state.active_user

    @property
    def current_workspace(self) -> Workspace:
        return self._state.current_workspace

    @property
    def is_admin(self) -> bool:
        user = self._state.active_user
        return user is not None and user.is_admin

    # -------------------------------------------------------------------------
    # Core transition
    # -------------------------------------------------------------------------

    def apply(
        self,
        intent: t.Transition,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionOutcome:
        """Apply one transition and report what happened."""
        previous = self._state
        actor_id = previous.active_user_id

        try:
            new_state, detail = self._reducer.reduce(previous, intent)
        except LedgerError as e:
            return self._reject(intent.kind, actor_id, e.code, e.message, correlation_id)
        except SchemaValidationError as e:
            # A record built by the handler failed its own field constraints
            message = "; ".join(err["msg"] for err in e.errors()) or str(e)
            return self._reject(
                intent.kind, actor_id, OutcomeCode.VALIDATION_ERROR, message, correlation_id
            )

        persisted = True
        if new_state is not previous:
            self._state = new_state
            persisted = self._persist(intent.kind, correlation_id)

        audit_details = {
            k: v for k, v in detail.items()
            if k not in SENSITIVE_DETAIL_KEYS and k not in ("entity_type", "entity_id")
        }
        self._audit_logger.log_transition_applied(
            transition=intent.kind,
            actor_id=actor_id,
            entity_type=detail.get("entity_type"),
            entity_id=detail.get("entity_id"),
            details=audit_details,
            correlation_id=correlation_id,
        )

        return TransitionOutcome(
            transition=intent.kind,
            success=True,
            state=new_state,
            persisted=persisted,
            detail=detail,
        )

    def _reject(
        self,
        transition: str,
        actor_id: Optional[str],
        code: OutcomeCode,
        message: str,
        correlation_id: Optional[UUID],
    ) -> TransitionOutcome:
        self._audit_logger.log_transition_rejected(
            transition=transition,
            actor_id=actor_id,
            error_code=code.value,
            error_message=message,
            correlation_id=correlation_id,
        )
        return TransitionOutcome(
            transition=transition,
            success=False,
            state=self._state,
            error_code=code,
            error_message=message,
        )

    def _persist(self, transition: str, correlation_id: Optional[UUID]) -> bool:
        """
        Save the whole snapshot.

        A failed save keeps the new snapshot in memory; the next successful
        save writes everything again.
        """
        try:
            self._storage.save(self._state)
        except StorageError as e:
            self._audit_logger.log_save_failed(transition, str(e), correlation_id)
            return False
        self._audit_logger.log_state_saved(transition, correlation_id)
        return True

    def _submit(self, intent_cls: type, **fields) -> TransitionOutcome:
        """Build an intent from raw arguments and apply it."""
        correlation_id = fields.pop("correlation_id", None)
        try:
            intent = intent_cls(**fields)
        except SchemaValidationError as e:
            message = "; ".join(err["msg"] for err in e.errors()) or str(e)
            return self._reject(
                intent_cls.model_fields["kind"].default,
                self._state.active_user_id,
                OutcomeCode.VALIDATION_ERROR,
                message,
                correlation_id,
            )
        return self.apply(intent, correlation_id=correlation_id)

    # -------------------------------------------------------------------------
    # Directory
    # -------------------------------------------------------------------------

    def register_user(
        self,
        name: str,
        email: str,
        secret: str,
        confirm_secret: Optional[str] = None,
    ) -> TransitionOutcome:
        return self._submit(
            t.RegisterUser,
            name=name, email=email, secret=secret, confirm_secret=confirm_secret,
        )

    def authenticate(self, identifier: str, secret: str) -> TransitionOutcome:
        return self._submit(t.Authenticate, identifier=identifier, secret=secret)

    def logout(self) -> TransitionOutcome:
        return self._submit(t.Logout)

    def update_own_profile(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        avatar_ref: Optional[str] = None,
    ) -> TransitionOutcome:
        return self._submit(
            t.UpdateOwnProfile, name=name, email=email, avatar_ref=avatar_ref,
        )

    def update_own_theme(self, color: str) -> TransitionOutcome:
        return self._submit(t.UpdateOwnTheme, color=color)

    def delete_user(self, target_user_id: str) -> TransitionOutcome:
        return self._submit(t.DeleteUser, target_user_id=target_user_id)

    def issue_credential_reset(
        self,
        target_user_id: str,
        master_secret: str,
    ) -> TransitionOutcome:
        return self._submit(
            t.IssueCredentialReset,
            target_user_id=target_user_id, master_secret=master_secret,
        )

    def reset_credential(
        self,
        identifier: str,
        token: str,
        new_secret: str,
    ) -> TransitionOutcome:
        return self._submit(
            t.ResetCredential,
            identifier=identifier, token=token, new_secret=new_secret,
        )

    # -------------------------------------------------------------------------
    # Workspaces
    # -------------------------------------------------------------------------

    def create_workspace(
        self,
        name: str,
        currency_symbol: str,
        budget_limit: RawAmount,
    ) -> TransitionOutcome:
        return self._submit(
            t.CreateWorkspace,
            name=name, currency_symbol=currency_symbol, budget_limit=budget_limit,
        )

    def switch_workspace(self, workspace_id: str) -> TransitionOutcome:
        return self._submit(t.SwitchWorkspace, workspace_id=workspace_id)

    def toggle_workspace_membership(self, workspace_id: str, user_id: str) -> TransitionOutcome:
        return self._submit(
            t.ToggleWorkspaceMembership, workspace_id=workspace_id, user_id=user_id,
        )

    def update_workspace_settings(
        self,
        workspace_id: str,
        currency_symbol: Optional[str] = None,
        budget_limit: RawAmount = None,
        name: Optional[str] = None,
    ) -> TransitionOutcome:
        return self._submit(
            t.UpdateWorkspaceSettings,
            workspace_id=workspace_id,
            currency_symbol=currency_symbol,
            budget_limit=budget_limit,
            name=name,
        )

    def set_active_view(self, view: Union[View, str]) -> TransitionOutcome:
        return self._submit(t.SetActiveView, view=view)

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def add_expense(
        self,
        description: Optional[str],
        amount: RawAmount,
        category: Union[Category, str] = Category.OTHER,
        date=None,
        workspace_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransitionOutcome:
        return self._submit(
            t.AddExpense,
            description=description,
            amount=amount,
            category=category,
            date=date,
            workspace_id=workspace_id,
            correlation_id=correlation_id,
        )

    def delete_expense(self, expense_id: str) -> TransitionOutcome:
        return self._submit(t.DeleteExpense, expense_id=expense_id)

    def delete_expenses(self, expense_ids: list[str]) -> TransitionOutcome:
        return self._submit(t.DeleteExpenses, expense_ids=tuple(expense_ids))
