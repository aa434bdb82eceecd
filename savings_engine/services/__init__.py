"""Services package."""

from savings_engine.services.recommendations import (
    RecommendationError,
    RecommendationSourceInterface,
    StaticRecommendationSource,
)
from savings_engine.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryFetchError,
    EntryStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStore,
    GoogleSheetsProfileStore,
    InMemoryAuditStorage,
    InMemoryEntryStore,
    InMemoryProfileStore,
    NotFoundError,
    ProfileStoreInterface,
    StorageError,
)

__all__ = [
    # Recommendations
    "RecommendationError",
    "RecommendationSourceInterface",
    "StaticRecommendationSource",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "EntryFetchError",
    "EntryStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntryStore",
    "GoogleSheetsProfileStore",
    "InMemoryAuditStorage",
    "InMemoryEntryStore",
    "InMemoryProfileStore",
    "NotFoundError",
    "ProfileStoreInterface",
    "StorageError",
]
