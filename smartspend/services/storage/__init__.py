"""
Storage Services Package

Provides abstract interfaces and concrete implementations for snapshot
and audit storage. Local file is the default backend; Google Sheets and
in-memory backends implement the same interfaces.
"""

from smartspend.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    StateStorageInterface,
    StorageError,
    deserialize_state,
    serialize_state,
)
from smartspend.services.storage.local_file import LocalFileStateStorage
from smartspend.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryStateStorage,
)
from smartspend.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "StateStorageInterface",
    # Serialization
    "deserialize_state",
    "serialize_state",
    # Exceptions
    "ConnectionError",
    "CorruptStateError",
    "StorageError",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "LocalFileStateStorage",
]
