"""
Ledger Error Taxonomy

Transition handlers raise these. StateStore.apply catches them and turns
them into a rejected TransitionOutcome, so none of them escape the store.
"""

from smartspend.models.outcome import OutcomeCode


class LedgerError(Exception):
    """Base exception for rejected ledger transitions."""

    code: OutcomeCode = OutcomeCode.VALIDATION_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed input: empty description, non-positive amount or budget."""
    code = OutcomeCode.VALIDATION_ERROR


class PermissionDenied(LedgerError):
    """The authorization predicate for the operation failed."""
    code = OutcomeCode.PERMISSION_DENIED


class DuplicateEmail(LedgerError):
    """Another user already holds this email (case-insensitive)."""
    code = OutcomeCode.DUPLICATE_EMAIL


class InvalidCredentials(LedgerError):
    """Unknown user, wrong secret, or invalid reset token."""
    code = OutcomeCode.INVALID_CREDENTIALS


class SelfDeletionForbidden(LedgerError):
    """The active user tried to delete their own account."""
    code = OutcomeCode.SELF_DELETION_FORBIDDEN


class LastMemberProtection(LedgerError):
    """The operation would leave a workspace without members."""
    code = OutcomeCode.LAST_MEMBER_PROTECTION


class NotFound(LedgerError):
    """A referenced id does not exist."""
    code = OutcomeCode.NOT_FOUND
