"""
In-memory storage backends.

The snapshot is still kept serialized, so tests exercise exactly the same
encode/decode path as the durable backends.
"""

from typing import Optional

from smartspend.models.audit import AuditEvent
from smartspend.models.ledger import AppState
from smartspend.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    deserialize_state,
    serialize_state,
)


class InMemoryStateStorage(StateStorageInterface):
    """Holds the serialized snapshot in a string."""

    def __init__(self, blob: Optional[str] = None):
        self.blob = blob
        self.save_count = 0

    def load(self) -> Optional[AppState]:
        if self.blob is None:
            return None
        return deserialize_state(self.blob)

    def save(self, state: AppState) -> None:
        self.blob = serialize_state(state)
        self.save_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
