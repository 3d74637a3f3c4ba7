"""Snapshot state, transitions and the store that applies them."""

from smartspend.state.bootstrap import (
    BOOTSTRAP_ADMIN_ID,
    BOOTSTRAP_WORKSPACE_ID,
    build_default_state,
)
from smartspend.state.reducers import LedgerReducer, default_avatar_ref
from smartspend.state.store import StateStore
from smartspend.state.transitions import Transition, parse_transition

__all__ = [
    "BOOTSTRAP_ADMIN_ID",
    "BOOTSTRAP_WORKSPACE_ID",
    "LedgerReducer",
    "StateStore",
    "Transition",
    "build_default_state",
    "default_avatar_ref",
    "parse_transition",
]
