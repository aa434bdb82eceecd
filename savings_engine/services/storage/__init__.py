"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Two backends ship today: in-memory and Google Sheets.
"""

from savings_engine.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryFetchError,
    EntryStoreInterface,
    NotFoundError,
    ProfileStoreInterface,
    StorageError,
)
from savings_engine.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntryStore,
    InMemoryProfileStore,
)
from savings_engine.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStore,
    GoogleSheetsProfileStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntryStoreInterface",
    "ProfileStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "EntryFetchError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntryStore",
    "InMemoryProfileStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntryStore",
    "GoogleSheetsProfileStore",
]
