"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to a storage backend directly.
It reads and writes through these interfaces, so:
1. Google Sheets can be swapped for a real database later
2. Tests run against in-memory stores
3. Business logic stays decoupled from storage implementation

Entries are stored generically: a name, an amount and a few hints. The
category an entry belongs to is derived on read (or stored as an explicit
tag on newer rows) and is never a storage concern.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from savings_engine.models.audit import AuditEvent
from savings_engine.models.dashboard import PotentialSavingsRecord
from savings_engine.models.entry import EntryDraft, EntryUpdate, FinancialEntry


class EntryStoreInterface(ABC):
    """
    Abstract interface for the generic financial entry store.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def list_entries(self, user_id: str) -> list[FinancialEntry]:
        """
        List every entry belonging to a user, in creation order.

        Rows whose amount no longer parses are still returned (with
        amount=None) so the classifier can report them.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def create_entry(self, user_id: str, draft: EntryDraft) -> FinancialEntry:
        """
        Persist a new entry.

        Returns:
            The stored entry with its assigned id and timestamps
        """
        pass

    @abstractmethod
    async def update_entry(self, entry_id: UUID, partial: EntryUpdate) -> FinancialEntry:
        """
        Apply the explicitly set fields of `partial` to an entry.

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID) -> None:
        """
        Delete an entry by ID.

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        pass


class ProfileStoreInterface(ABC):
    """
    Per-user persisted values.

    Only the potential savings record lives here today.
    """

    @abstractmethod
    async def get_potential_savings(self, user_id: str) -> Optional[PotentialSavingsRecord]:
        """Return the stored record, or None if none was generated yet."""
        pass

    @abstractmethod
    async def put_potential_savings_if_absent(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        """
        Store `record` only when the user has no record yet.

        Returns:
            Whichever record is stored after the call. When another writer
            got there first, that earlier record is returned unchanged.
        """
        pass

    @abstractmethod
    async def replace_potential_savings(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        """Overwrite the user's record unconditionally."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class EntryFetchError(StorageError):
    """
    The entry list could not be loaded.

    Distinct from an empty list: a user with no entries gets an onboarding
    nudge, a user whose entries could not be read gets this error.
    """

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(f"Could not load entries for {user_id}: {message}")
