"""
Tests for the StateStore and its transitions.

Every rejected transition must leave the snapshot exactly as it was; every
accepted one must leave a snapshot that satisfies all ledger invariants.
"""

from datetime import date
from decimal import Decimal

import pytest

from smartspend.models.audit import AuditEventType
from smartspend.models.ledger import MAX_AMOUNT, Category, Role, View
from smartspend.models.outcome import OutcomeCode
from smartspend.services.storage import InMemoryStateStorage, StorageError

from conftest import ADMIN_EMAIL, ADMIN_SECRET, MASTER_SECRET, make_store


def register(store, name, email, secret="pw"):
    outcome = store.register_user(name, email, secret, secret)
    assert outcome.success, outcome.error_message
    return outcome.detail["entity_id"]


def sign_in_admin(store):
    assert store.authenticate(ADMIN_EMAIL, ADMIN_SECRET).success


def assert_invariants(state):
    user_ids = {u.id for u in state.users}
    assert state.find_workspace(state.current_workspace_id) is not None
    for workspace in state.workspaces:
        assert len(workspace.members) >= 1
        assert workspace.member_ids <= user_ids
    emails = [u.email.lower() for u in state.users]
    assert len(emails) == len(set(emails))
    workspace_ids = {w.id for w in state.workspaces}
    for expense in state.expenses:
        assert expense.workspace_id in workspace_ids
        assert expense.amount > 0
        assert expense.description


class TestBootstrap:
    """Tests for load-on-init."""

    def test_empty_storage_bootstraps_and_saves(self, store, storage):
        """Test first run creates the default admin and workspace and saves them."""
        state = store.state
        assert [u.id for u in state.users] == ["u1"]
        assert state.users[0].role == Role.ADMIN
        assert [w.id for w in state.workspaces] == ["w1"]
        assert state.current_workspace.name == "Main Workspace"
        assert state.current_workspace.currency_symbol == "$"
        assert state.current_workspace.budget_limit == Decimal("5000")
        assert state.active_user_id is None
        assert state.active_view == View.DASHBOARD
        assert storage.save_count == 1

    def test_secrets_are_never_stored_in_plaintext(self, store, storage):
        """Test secrets are hashed in the snapshot and the stored blob."""
        assert store.state.users[0].password_hash != ADMIN_SECRET
        assert store.state.master_secret_hash != MASTER_SECRET
        assert MASTER_SECRET not in storage.blob

    def test_existing_snapshot_is_loaded_not_bootstrapped(self, store, storage, clock):
        """Test a stored snapshot is loaded as-is."""
        sign_in_admin(store)
        store.logout()
        reloaded = make_store(storage=InMemoryStateStorage(storage.blob), clock=clock)
        assert reloaded.state == store.state

    def test_bootstrap_is_audited(self, audit_storage, store):
        """Test bootstrapping writes an audit event."""
        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.STATE_BOOTSTRAPPED in types


class TestRegistrationAndLogin:
    """Tests for register_user, authenticate and logout."""

    def test_register_creates_member_and_signs_in(self, store):
        """Test registration creates a signed-in member of the default workspace."""
        user_id = register(store, "Bob", "bob@example.com")
        state = store.state
        bob = state.find_user(user_id)
        assert bob.role == Role.MEMBER
        assert state.active_user_id == user_id
        assert state.default_workspace.has_member(user_id)
        assert bob.password_hash != "pw"
        assert_invariants(state)

    def test_register_then_authenticate(self, store):
        """Test a registered user can sign back in."""
        user_id = register(store, "Bob", "bob@example.com", secret="s3cret")
        store.logout()
        outcome = store.authenticate("bob@example.com", "s3cret")
        assert outcome.success
        assert outcome.state.active_user_id == user_id

    def test_duplicate_email_is_case_insensitive(self, store):
        """Test emails clash regardless of case."""
        before = store.state
        outcome = store.register_user("Imposter", "ADMIN@SmartSpend.com", "pw", "pw")
        assert outcome.error_code == OutcomeCode.DUPLICATE_EMAIL
        assert store.state is before
        assert outcome.state is before

    def test_mismatched_confirmation_rejected(self, store):
        """Test a confirmation that differs from the secret is rejected."""
        outcome = store.register_user("Bob", "bob@example.com", "pw", "other")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert store.state.find_user_by_email("bob@example.com") is None

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@b"])
    def test_malformed_email_rejected(self, store, email):
        """Test malformed emails are rejected."""
        outcome = store.register_user("Bob", email, "pw", "pw")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR

    def test_authenticate_by_email_or_id(self, store):
        """Test sign-in accepts an email or a user id."""
        assert store.authenticate("admin@smartspend.com", ADMIN_SECRET).success
        store.logout()
        assert store.authenticate("u1", ADMIN_SECRET).success
        assert store.state.active_user_id == "u1"

    def test_wrong_secret_and_unknown_user_look_the_same(self, store):
        """Test failed sign-ins do not reveal whether the user exists."""
        wrong = store.authenticate(ADMIN_EMAIL, "nope")
        unknown = store.authenticate("ghost@example.com", "nope")
        assert wrong.error_code == OutcomeCode.INVALID_CREDENTIALS
        assert unknown.error_code == OutcomeCode.INVALID_CREDENTIALS
        assert wrong.error_message == unknown.error_message
        assert store.state.active_user_id is None

    def test_logout_clears_active_user(self, admin_store):
        """Test logout clears the active user."""
        outcome = admin_store.logout()
        assert outcome.success
        assert admin_store.state.active_user_id is None


class TestExpenses:
    """Tests for add_expense, delete_expense and delete_expenses."""

    def test_add_expense_denormalizes_owner(self, admin_store, clock):
        """Test a new expense copies the owner's display fields."""
        outcome = admin_store.add_expense("Groceries", "42.50", Category.FOOD)
        assert outcome.success
        expense = admin_store.state.expenses[0]
        admin = admin_store.active_user
        assert expense.amount == Decimal("42.50")
        assert expense.owner_user_id == admin.id
        assert expense.owner_name == admin.name
        assert expense.owner_avatar_ref == admin.avatar_ref
        assert expense.workspace_id == "w1"
        assert expense.date == clock().date()

    def test_new_expenses_are_prepended(self, admin_store):
        """Test expenses are stored newest first."""
        admin_store.add_expense("First", 10)
        admin_store.add_expense("Second", 20)
        assert [e.description for e in admin_store.state.expenses] == ["Second", "First"]

    def test_explicit_date_and_category_value(self, admin_store):
        """Test an explicit date and a category display value are accepted."""
        outcome = admin_store.add_expense(
            "Rent", 1200, "Housing", date=date(2024, 1, 1)
        )
        assert outcome.success
        expense = admin_store.state.expenses[0]
        assert expense.category == Category.HOUSING
        assert expense.date == date(2024, 1, 1)

    @pytest.mark.parametrize("amount", [0, -5, "abc", None, "NaN", float("inf")])
    def test_non_positive_or_non_numeric_amount_rejected(self, admin_store, amount):
        """Test invalid amounts are rejected without touching state."""
        before = admin_store.state
        outcome = admin_store.add_expense("Coffee", amount)
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert admin_store.state is before

    @pytest.mark.parametrize("amount", ["1" + "0" * 28, "1000000000000", "1e30"])
    def test_amount_above_cap_rejected(self, admin_store, amount):
        """Test amounts past the cap are rejected without touching state."""
        before = admin_store.state
        outcome = admin_store.add_expense("Yacht", amount)
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert admin_store.state is before

    def test_amount_at_cap_accepted(self, admin_store):
        """Test the largest allowed amount is accepted."""
        assert admin_store.add_expense("Yacht", MAX_AMOUNT).success

    @pytest.mark.parametrize("description", ["", "   ", None])
    def test_empty_description_rejected(self, admin_store, description):
        """Test blank descriptions are rejected."""
        outcome = admin_store.add_expense(description, 5)
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR

    def test_unknown_category_rejected(self, admin_store):
        """Test categories outside the fixed set are rejected."""
        outcome = admin_store.add_expense("Coffee", 5, "Snacks")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR

    def test_add_requires_sign_in(self, store):
        """Test adding an expense requires a signed-in user."""
        outcome = store.add_expense("Coffee", 5)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_add_requires_membership(self, admin_store):
        """Test adding an expense requires workspace membership."""
        workspace_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        bob_id = register(admin_store, "Bob", "bob@example.com")
        assert admin_store.state.active_user_id == bob_id

        outcome = admin_store.add_expense("Taxi", 30, workspace_id=workspace_id)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED
        assert outcome.error_message.startswith("Permission Error")

    def test_successful_add_is_saved(self, admin_store, storage):
        """Test an accepted expense is saved."""
        saves = storage.save_count
        admin_store.add_expense("Coffee", 5)
        assert storage.save_count == saves + 1

    def test_delete_unknown_id_is_idempotent(self, admin_store, storage):
        """Test deleting a missing expense succeeds without a save."""
        before = admin_store.state
        saves = storage.save_count
        outcome = admin_store.delete_expense("e-missing")
        assert outcome.success
        assert admin_store.state is before
        assert storage.save_count == saves

    def test_any_member_may_delete_any_workspace_expense(self, admin_store):
        """Test members can delete each other's expenses."""
        admin_store.add_expense("Shared dinner", 80)
        expense_id = admin_store.state.expenses[0].id
        register(admin_store, "Bob", "bob@example.com")

        outcome = admin_store.delete_expense(expense_id)
        assert outcome.success
        assert admin_store.state.find_expense(expense_id) is None

    def test_non_member_cannot_delete(self, admin_store):
        """Test non-members cannot delete workspace expenses."""
        workspace_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        admin_store.add_expense("Hotel", 300, workspace_id=workspace_id)
        expense_id = admin_store.state.expenses[0].id
        register(admin_store, "Bob", "bob@example.com")

        outcome = admin_store.delete_expense(expense_id)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED
        assert admin_store.state.find_expense(expense_id) is not None

    def test_bulk_delete_is_all_or_nothing(self, admin_store):
        """Test one unauthorized id rejects the whole bulk delete."""
        trip_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        admin_store.add_expense("Coffee", 5)
        own_id = admin_store.state.expenses[0].id
        admin_store.add_expense("Hotel", 300, workspace_id=trip_id)
        foreign_id = admin_store.state.expenses[0].id
        register(admin_store, "Bob", "bob@example.com")

        before = admin_store.state
        outcome = admin_store.delete_expenses([own_id, foreign_id])
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED
        assert admin_store.state is before

        outcome = admin_store.delete_expenses([own_id, "e-missing"])
        assert outcome.success
        assert outcome.detail["deleted_ids"] == [own_id]
        assert admin_store.state.find_expense(own_id) is None


class TestDirectoryManagement:
    """Tests for delete_user and profile edits."""

    def test_self_deletion_forbidden(self, admin_store):
        """Test a user cannot delete their own active profile."""
        outcome = admin_store.delete_user("u1")
        assert outcome.error_code == OutcomeCode.SELF_DELETION_FORBIDDEN

    def test_self_deletion_reported_before_role(self, store):
        """Test self-deletion is reported before the admin check."""
        bob_id = register(store, "Bob", "bob@example.com")
        outcome = store.delete_user(bob_id)
        assert outcome.error_code == OutcomeCode.SELF_DELETION_FORBIDDEN

    def test_member_cannot_delete_others(self, store):
        """Test members cannot delete users."""
        register(store, "Bob", "bob@example.com")
        outcome = store.delete_user("u1")
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_admin_deletes_user_from_directory_and_rosters(self, store):
        """Test deleting a user removes them everywhere but keeps their expenses."""
        bob_id = register(store, "Bob", "bob@example.com")
        store.add_expense("Lunch", 12)
        sign_in_admin(store)

        outcome = store.delete_user(bob_id)
        assert outcome.success
        state = store.state
        assert state.find_user(bob_id) is None
        assert all(not w.has_member(bob_id) for w in state.workspaces)
        # Expenses keep the former owner's reference and display name
        assert state.expenses[0].owner_user_id == bob_id
        assert state.expenses[0].owner_name == "Bob"
        assert_invariants(state)

    def test_deleting_sole_member_of_a_workspace_rejected(self, admin_store):
        """Test a workspace's only member cannot be deleted."""
        trip_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        bob_id = register(admin_store, "Bob", "bob@example.com")
        sign_in_admin(admin_store)
        admin_store.toggle_workspace_membership(trip_id, bob_id)
        admin_store.toggle_workspace_membership(trip_id, "u1")
        assert admin_store.state.find_workspace(trip_id).member_ids == {bob_id}

        before = admin_store.state
        outcome = admin_store.delete_user(bob_id)
        assert outcome.error_code == OutcomeCode.LAST_MEMBER_PROTECTION
        assert admin_store.state is before

    def test_delete_unknown_user(self, admin_store):
        """Test deleting a missing user reports NotFound."""
        outcome = admin_store.delete_user("u-ghost")
        assert outcome.error_code == OutcomeCode.NOT_FOUND

    def test_profile_edit_cascades(self, store):
        """Test a profile edit updates expenses and rosters."""
        bob_id = register(store, "Bob", "bob@example.com")
        store.add_expense("Lunch", 12)

        outcome = store.update_own_profile(name="Robert", avatar_ref="https://img/robert.png")
        assert outcome.success
        state = store.state
        assert state.find_user(bob_id).name == "Robert"
        assert all(
            e.owner_name == "Robert" and e.owner_avatar_ref == "https://img/robert.png"
            for e in state.expenses if e.owner_user_id == bob_id
        )
        member = next(m for m in state.default_workspace.members if m.user_id == bob_id)
        assert member.name == "Robert"

    def test_profile_edit_cannot_take_another_email(self, store):
        """Test a profile edit cannot take another user's email."""
        register(store, "Bob", "bob@example.com")
        outcome = store.update_own_profile(email="Admin@smartspend.com")
        assert outcome.error_code == OutcomeCode.DUPLICATE_EMAIL

    def test_profile_edit_survives_reload(self, store, storage, clock):
        """Test an edited profile is saved in a snapshot that loads again."""
        bob_id = register(store, "Bob", "bob@example.com")
        assert store.update_own_profile(email="robert@example.com").success

        reloaded = make_store(storage=storage, clock=clock)
        assert reloaded.state == store.state
        assert reloaded.state.find_user(bob_id).email == "robert@example.com"

    def test_overlong_profile_email_rejected(self, store, storage, clock):
        """Test an email past 254 characters is rejected and the store still reloads."""
        register(store, "Bob", "bob@example.com")
        before = store.state

        outcome = store.update_own_profile(email="a" * 260 + "@example.com")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert store.state is before

        reloaded = make_store(storage=storage, clock=clock)
        assert reloaded.state == before

    def test_overlong_registration_email_rejected(self, store):
        """Test registration applies the same email length limit."""
        outcome = store.register_user("Bob", "b" * 250 + "@example.com", "pw", "pw")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR

    def test_profile_edit_requires_sign_in(self, store):
        """Test profile edits require a signed-in user."""
        outcome = store.update_own_profile(name="Nobody")
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_theme_update(self, admin_store):
        """Test theme colours are validated and stored."""
        assert admin_store.update_own_theme("#ff0000").success
        assert admin_store.active_user.theme_color == "#ff0000"
        outcome = admin_store.update_own_theme("red")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR

    def test_theme_update_signed_out_is_a_no_op(self, store, storage):
        """Test a signed-out theme update changes nothing."""
        before = store.state
        saves = storage.save_count
        outcome = store.update_own_theme("#ff0000")
        assert outcome.success
        assert store.state is before
        assert storage.save_count == saves


class TestWorkspaces:
    """Tests for workspace governance and navigation."""

    def test_create_workspace_admin_only(self, store):
        """Test only admins create workspaces."""
        register(store, "Bob", "bob@example.com")
        outcome = store.create_workspace("Trip", "€", 800)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_creator_is_sole_member(self, admin_store):
        """Test a new workspace starts with its creator as the only member."""
        trip_id = admin_store.create_workspace("Trip", "€", "800").detail["entity_id"]
        trip = admin_store.state.find_workspace(trip_id)
        assert trip.member_ids == {"u1"}
        assert trip.budget_limit == Decimal("800")

    def test_toggle_membership_adds_and_removes(self, store):
        """Test toggling membership removes and re-adds a user."""
        bob_id = register(store, "Bob", "bob@example.com")
        sign_in_admin(store)

        assert store.toggle_workspace_membership("w1", bob_id).detail["is_member"] is False
        assert not store.state.find_workspace("w1").has_member(bob_id)
        assert store.toggle_workspace_membership("w1", bob_id).detail["is_member"] is True
        assert store.state.find_workspace("w1").has_member(bob_id)

    def test_toggle_last_member_rejected(self, admin_store):
        """Test the last member cannot be toggled out."""
        outcome = admin_store.toggle_workspace_membership("w1", "u1")
        assert outcome.error_code == OutcomeCode.LAST_MEMBER_PROTECTION
        assert admin_store.state.find_workspace("w1").member_ids == {"u1"}

    def test_toggle_requires_admin(self, store):
        """Test only admins manage membership."""
        bob_id = register(store, "Bob", "bob@example.com")
        outcome = store.toggle_workspace_membership("w1", bob_id)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_toggle_unknown_user_or_workspace(self, admin_store):
        """Test toggling with unknown ids reports NotFound."""
        assert (
            admin_store.toggle_workspace_membership("w1", "u-ghost").error_code
            == OutcomeCode.NOT_FOUND
        )
        assert (
            admin_store.toggle_workspace_membership("w-ghost", "u1").error_code
            == OutcomeCode.NOT_FOUND
        )

    def test_update_settings_validates_budget(self, admin_store):
        """Test workspace settings validate the budget."""
        assert admin_store.update_workspace_settings("w1", budget_limit=0).error_code == (
            OutcomeCode.VALIDATION_ERROR
        )
        outcome = admin_store.update_workspace_settings(
            "w1", currency_symbol="€", budget_limit="1200.50"
        )
        assert outcome.success
        workspace = admin_store.state.find_workspace("w1")
        assert workspace.currency_symbol == "€"
        assert workspace.budget_limit == Decimal("1200.50")

    def test_update_settings_rejects_budget_above_cap(self, admin_store):
        """Test a budget past the amount cap is rejected."""
        outcome = admin_store.update_workspace_settings("w1", budget_limit="1e30")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert admin_store.state.find_workspace("w1").budget_limit == Decimal("5000")

    def test_update_settings_requires_admin(self, store):
        """Test only admins change workspace settings."""
        register(store, "Bob", "bob@example.com")
        outcome = store.update_workspace_settings("w1", budget_limit=10)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_switch_workspace_requires_membership(self, admin_store):
        """Test members can only switch to their own workspaces."""
        trip_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        register(admin_store, "Bob", "bob@example.com")
        outcome = admin_store.switch_workspace(trip_id)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED
        assert admin_store.state.current_workspace_id == "w1"

    def test_admin_may_switch_to_any_workspace(self, admin_store):
        """Test admins can switch to any workspace."""
        trip_id = admin_store.create_workspace("Trip", "€", 800).detail["entity_id"]
        assert admin_store.switch_workspace(trip_id).success
        assert admin_store.current_workspace.id == trip_id

    def test_switch_unknown_workspace(self, admin_store):
        """Test switching to a missing workspace reports NotFound."""
        outcome = admin_store.switch_workspace("w-ghost")
        assert outcome.error_code == OutcomeCode.NOT_FOUND

    def test_set_active_view(self, store):
        """Test the active view accepts only known views."""
        assert store.set_active_view("transactions").success
        assert store.state.active_view == View.TRANSACTIONS
        outcome = store.set_active_view("nowhere")
        assert outcome.error_code == OutcomeCode.VALIDATION_ERROR
        assert store.state.active_view == View.TRANSACTIONS


class TestCredentialReset:
    """Tests for the master-secret gated credential reset."""

    def test_reset_flow(self, store):
        """Test an issued reset token replaces the user's secret."""
        bob_id = register(store, "Bob", "bob@example.com", secret="old")
        sign_in_admin(store)

        issued = store.issue_credential_reset(bob_id, MASTER_SECRET)
        assert issued.success
        token = issued.detail["reset_token"]
        assert store.state.find_user(bob_id).reset_token_hash != token

        store.logout()
        assert store.reset_credential("bob@example.com", token, "new").success
        assert store.authenticate("bob@example.com", "new").success
        assert store.authenticate("bob@example.com", "old").rejected

    def test_token_is_single_use(self, store):
        """Test a reset token works only once."""
        bob_id = register(store, "Bob", "bob@example.com")
        sign_in_admin(store)
        token = store.issue_credential_reset(bob_id, MASTER_SECRET).detail["reset_token"]

        assert store.reset_credential(bob_id, token, "first").success
        outcome = store.reset_credential(bob_id, token, "second")
        assert outcome.error_code == OutcomeCode.INVALID_CREDENTIALS

    def test_expired_token_rejected(self, store, clock):
        """Test an expired reset token is rejected."""
        bob_id = register(store, "Bob", "bob@example.com")
        sign_in_admin(store)
        token = store.issue_credential_reset(bob_id, MASTER_SECRET).detail["reset_token"]

        clock.advance(minutes=31)
        outcome = store.reset_credential(bob_id, token, "late")
        assert outcome.error_code == OutcomeCode.INVALID_CREDENTIALS

    def test_wrong_master_secret_denied(self, admin_store):
        """Test a wrong master secret issues no token."""
        outcome = admin_store.issue_credential_reset("u1", "guess")
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED
        assert admin_store.state.find_user("u1").reset_token_hash is None

    def test_member_cannot_issue_reset(self, store):
        """Test only admins issue reset tokens."""
        register(store, "Bob", "bob@example.com")
        outcome = store.issue_credential_reset("u1", MASTER_SECRET)
        assert outcome.error_code == OutcomeCode.PERMISSION_DENIED

    def test_token_never_reaches_audit_or_storage(self, store, storage, audit_storage):
        """Test the reset token is kept out of storage and the audit trail."""
        bob_id = register(store, "Bob", "bob@example.com")
        sign_in_admin(store)
        token = store.issue_credential_reset(bob_id, MASTER_SECRET).detail["reset_token"]

        assert token not in storage.blob
        for event in audit_storage.events:
            assert token not in event.model_dump_json()


class TestPersistenceAndAudit:
    """Tests for save-after-transition and audit trail."""

    def test_save_failure_keeps_new_snapshot(self, clock, audit_storage):
        """Test a failed save keeps the new snapshot and the next save heals it."""
        class FlakyStorage(InMemoryStateStorage):
            fail = False

            def save(self, state):
                if self.fail:
                    raise StorageError("disk full")
                super().save(state)

        storage = FlakyStorage()
        store = make_store(storage=storage, clock=clock, audit_storage=audit_storage)
        sign_in_admin(store)
        storage.fail = True

        outcome = store.add_expense("Coffee", 5)
        assert outcome.success
        assert outcome.persisted is False
        assert store.state.expenses[0].description == "Coffee"
        assert audit_storage.events[-2].event_type == AuditEventType.SAVE_FAILED

        storage.fail = False
        assert store.add_expense("Tea", 4).persisted
        assert len(storage.load().expenses) == 2

    def test_rejections_are_audited(self, store, audit_storage):
        """Test rejected transitions are audited with their code."""
        store.add_expense("Coffee", 5)
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.TRANSITION_REJECTED
        assert event.error_code == OutcomeCode.PERMISSION_DENIED.value

    def test_applied_transitions_are_audited(self, admin_store, audit_storage):
        """Test applied transitions are audited with actor and entity."""
        admin_store.add_expense("Coffee", 5)
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.actor_id == "u1"
        assert event.entity_id == admin_store.state.expenses[0].id

    def test_invariants_hold_after_a_busy_session(self, store):
        """Test invariants hold after a mixed sequence of transitions."""
        bob_id = register(store, "Bob", "bob@example.com")
        store.add_expense("Lunch", 12)
        sign_in_admin(store)
        trip_id = store.create_workspace("Trip", "€", 800).detail["entity_id"]
        store.toggle_workspace_membership(trip_id, bob_id)
        store.add_expense("Hotel", 300, workspace_id=trip_id)
        store.delete_user(bob_id)
        store.update_workspace_settings(trip_id, budget_limit=900)
        assert_invariants(store.state)
