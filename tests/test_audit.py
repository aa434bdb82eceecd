"""Tests for the audit logger."""

from uuid import uuid4

import pytest

from savings_engine.audit import AuditLogger, create_correlation_id
from savings_engine.models.audit import AuditEventBuilder, AuditEventType
from savings_engine.services.storage import AuditStorageInterface, StorageError


class BrokenAuditStorage(AuditStorageInterface):
    async def append_event(self, event):
        raise StorageError("sheet quota exceeded")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_local_only(self):
        """Without storage, logging always succeeds."""
        logger = AuditLogger()
        await logger.log_entry_deleted(entry_id=uuid4())

    @pytest.mark.asyncio
    async def test_persists_to_storage(self, audit_storage):
        """Events are appended to the configured storage."""
        logger = AuditLogger(audit_storage)
        correlation_id = create_correlation_id()

        await logger.log_dashboard_built(
            user_id="u", status="complete", entry_count=2, skipped_count=0,
            correlation_id=correlation_id,
        )

        [event] = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert event.event_type == AuditEventType.DASHBOARD_BUILT

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        """A failing audit backend never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.system_error("KeyError", "boom")
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_error_helpers(self, audit_storage):
        """Error helpers record the right event types."""
        logger = AuditLogger(audit_storage)
        await logger.log_error("ValueError", "bad value")
        await logger.log_external_service_error("recommendations", "timeout")

        types = [e.event_type for e in audit_storage.events]
        assert types == [AuditEventType.SYSTEM_ERROR, AuditEventType.EXTERNAL_SERVICE_ERROR]
