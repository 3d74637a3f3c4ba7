"""
Transition Outcome Models

Every mutating operation reports a typed outcome instead of raising past
the StateStore boundary. The caller decides how to surface it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from smartspend.models.ledger import AppState


class OutcomeCode(str, Enum):
    """Why a transition was rejected."""
    VALIDATION_ERROR = "validation_error"
    PERMISSION_DENIED = "permission_denied"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    SELF_DELETION_FORBIDDEN = "self_deletion_forbidden"
    LAST_MEMBER_PROTECTION = "last_member_protection"
    NOT_FOUND = "not_found"


class TransitionOutcome(BaseModel):
    """
    Result of applying one transition.

    On success `state` is the new snapshot. On rejection `state` is the
    prior snapshot, untouched, and `error_code` says why.
    """
    model_config = ConfigDict(frozen=True)

    transition: str = Field(
        ...,
        description="Kind of transition that was attempted"
    )
    success: bool
    state: AppState
    error_code: Optional[OutcomeCode] = None
    error_message: Optional[str] = None

    # Set when the snapshot changed but could not be written to storage
    persisted: bool = True

    # Transition-specific results (created ids, issued reset token, ...)
    detail: dict[str, Any] = Field(default_factory=dict)

    completed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def rejected(self) -> bool:
        return not self.success
