"""Services package."""

from smartspend.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStateStorage,
    InMemoryAuditStorage,
    InMemoryStateStorage,
    LocalFileStateStorage,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "CorruptStateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStateStorage",
    "InMemoryAuditStorage",
    "InMemoryStateStorage",
    "LocalFileStateStorage",
    "StateStorageInterface",
    "StorageError",
]
