"""
In-Memory Storage Implementation

Used by tests and by deployments that set STORAGE_BACKEND=memory.
Nothing survives a restart.
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Optional
from uuid import UUID

from savings_engine.models.audit import AuditEvent
from savings_engine.models.dashboard import PotentialSavingsRecord
from savings_engine.models.entry import EntryDraft, EntryUpdate, FinancialEntry
from savings_engine.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntryStoreInterface,
    NotFoundError,
    ProfileStoreInterface,
)


class InMemoryEntryStore(EntryStoreInterface):
    """Entries kept in a dict, keyed by id, in insertion order."""

    def __init__(self, entries: Optional[list[FinancialEntry]] = None):
        self._entries: dict[UUID, FinancialEntry] = {}
        self.load(entries or [])

    def load(self, entries: list[FinancialEntry]) -> None:
        """Add already-stored rows as they are, e.g. from a snapshot."""
        for entry in entries:
            self._entries[entry.id] = entry

    async def list_entries(self, user_id: str) -> list[FinancialEntry]:
        return [e for e in self._entries.values() if e.user_id == user_id]

    async def create_entry(self, user_id: str, draft: EntryDraft) -> FinancialEntry:
        entry = FinancialEntry(user_id=user_id, **dict(draft))
        self._entries[entry.id] = entry
        return entry

    async def update_entry(self, entry_id: UUID, partial: EntryUpdate) -> FinancialEntry:
        current = self._entries.get(entry_id)
        if current is None:
            raise NotFoundError(f"Entry not found: {entry_id}")
        changes = partial.changes()
        changes["updated_at"] = datetime.utcnow()
        updated = current.model_copy(update=changes)
        self._entries[entry_id] = updated
        return updated

    async def delete_entry(self, entry_id: UUID) -> None:
        if self._entries.pop(entry_id, None) is None:
            raise NotFoundError(f"Entry not found: {entry_id}")


class InMemoryProfileStore(ProfileStoreInterface):
    """Potential savings records keyed by user id."""

    def __init__(self):
        self._records: dict[str, PotentialSavingsRecord] = {}
        self._lock = asyncio.Lock()

    async def get_potential_savings(self, user_id: str) -> Optional[PotentialSavingsRecord]:
        return self._records.get(user_id)

    async def put_potential_savings_if_absent(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        async with self._lock:
            existing = self._records.get(record.user_id)
            if existing is not None:
                return existing
            self._records[record.user_id] = record
            return record

    async def replace_potential_savings(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        async with self._lock:
            self._records[record.user_id] = record
            return record


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._seen: set[UUID] = set()

    async def append_event(self, event: AuditEvent) -> bool:
        if event.event_id in self._seen:
            raise DuplicateError(f"Audit event already stored: {event.event_id}")
        self._seen.add(event.event_id)
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
