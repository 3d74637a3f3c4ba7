"""
Shared builders for SmartSpend tests.

No real API calls and no disk access: stores run on in-memory storage,
bcrypt runs at its minimum work factor, ids are sequential and the clock
is fixed.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from smartspend.audit import AuditLogger
from smartspend.auth.passwords import SecretHasher
from smartspend.config.settings import AppSettings
from smartspend.models.ledger import Category, Expense
from smartspend.services.storage import InMemoryAuditStorage, InMemoryStateStorage
from smartspend.state import LedgerReducer, StateStore, build_default_state
from smartspend.validation.ids import SequentialIdGenerator

ADMIN_EMAIL = "admin@smartspend.com"
ADMIN_SECRET = "admin"
MASTER_SECRET = "master-key"

HASHER = SecretHasher(rounds=4)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_app_settings(**overrides) -> AppSettings:
    values = {
        "bootstrap_admin_email": ADMIN_EMAIL,
        "bootstrap_admin_password": ADMIN_SECRET,
        "master_secret": MASTER_SECRET,
        "password_hash_rounds": 4,
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)


def make_store(storage=None, clock=None, audit_storage=None) -> StateStore:
    storage = storage if storage is not None else InMemoryStateStorage()
    reducer = LedgerReducer(
        hasher=HASHER,
        ids=SequentialIdGenerator(),
        clock=clock or FixedClock(),
    )
    return StateStore(
        storage,
        reducer=reducer,
        audit_logger=AuditLogger(audit_storage),
        bootstrap=lambda: build_default_state(make_app_settings(), HASHER),
    )


def make_expense(
    expense_id: str,
    amount: str,
    category: Category = Category.OTHER,
    description: str = "Expense",
    owner_name: str = "Alice",
    workspace_id: str = "w1",
    day: int = 1,
) -> Expense:
    return Expense(
        id=expense_id,
        amount=Decimal(amount),
        description=description,
        category=category,
        date=date(2024, 3, day),
        owner_user_id="u-alice",
        owner_name=owner_name,
        owner_avatar_ref="https://picsum.photos/seed/alice/120",
        workspace_id=workspace_id,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def storage() -> InMemoryStateStorage:
    return InMemoryStateStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def store(storage, clock, audit_storage) -> StateStore:
    return make_store(storage=storage, clock=clock, audit_storage=audit_storage)


@pytest.fixture
def admin_store(store) -> StateStore:
    """A store with the bootstrap admin signed in."""
    assert store.authenticate(ADMIN_EMAIL, ADMIN_SECRET).success
    return store
