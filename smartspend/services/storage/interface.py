"""
Abstract Storage Interface

DESIGN DECISION: The engine treats storage as an opaque blob store.
It saves the complete snapshot after every successful transition and
loads it once at startup. This allows us to:
1. Swap backends (local file, Google Sheets, memory) without touching logic
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from any storage medium

The interface is intentionally tiny - whole-state read and write, no
incremental updates. Concurrent writers from separate processes are not
merged: the last save wins.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError as SchemaValidationError

from smartspend.models.audit import AuditEvent
from smartspend.models.ledger import AppState


class StateStorageInterface(ABC):
    """
    Abstract interface for snapshot persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load(self) -> Optional[AppState]:
        """
        Load the last saved snapshot.

        Returns:
            The snapshot, or None if nothing has been saved yet

        Raises:
            CorruptStateError: If stored data cannot be parsed
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, state: AppState) -> None:
        """
        Replace the stored snapshot with `state`.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


def serialize_state(state: AppState) -> str:
    """
    Serialize a snapshot to JSON.

    Output is deterministic for a given snapshot, so loading and saving
    again without a transition in between writes identical bytes.
    """
    return state.model_dump_json(indent=2)


def deserialize_state(blob: str) -> AppState:
    """Parse a JSON snapshot, enforcing every AppState invariant."""
    try:
        return AppState.model_validate_json(blob)
    except SchemaValidationError as e:
        raise CorruptStateError(f"Stored state is invalid: {e}") from e


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptStateError(StorageError):
    """Stored snapshot exists but cannot be parsed or violates invariants."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
