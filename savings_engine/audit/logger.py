"""
Audit Logger

DESIGN DECISION: Every change to a user's entries and every derived figure
that gets persisted is logged. The dashboard read path also logs entries it
had to leave out of the totals, so a wrong-looking number can be traced back
to the row that caused it.

The audit logger:
- Is async so it can sit next to storage calls
- Never breaks the main flow when persisting an event fails
- Supports correlation IDs to tie one dashboard build or one write together
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from savings_engine.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from savings_engine.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (always)
    2. An AuditStorageInterface backend (when one is configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("savings_engine.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_created(
        self,
        user_id: str,
        entry_id: UUID,
        raw_name: str,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_created(
            user_id=user_id,
            entry_id=entry_id,
            raw_name=raw_name,
            category=category,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_entry_updated(
        self,
        user_id: str,
        entry_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_updated(
            user_id=user_id,
            entry_id=entry_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    async def log_entry_rejected(
        self,
        user_id: str,
        raw_name: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a draft that failed validation and was not written."""
        await self.log(AuditEventBuilder.entry_rejected(
            user_id=user_id,
            raw_name=raw_name,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_entry_migrated(
        self,
        user_id: str,
        entry_id: UUID,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_migrated(
            user_id=user_id,
            entry_id=entry_id,
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_malformed_entry(
        self,
        user_id: str,
        entry_id: UUID,
        raw_name: str,
        reasons: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.malformed_entry_skipped(
            user_id=user_id,
            entry_id=entry_id,
            raw_name=raw_name,
            reasons=reasons,
            correlation_id=correlation_id,
        ))

    async def log_duplicate_superseded(
        self,
        user_id: str,
        entry_id: UUID,
        kept_entry_id: UUID,
        display_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.duplicate_entry_superseded(
            user_id=user_id,
            entry_id=entry_id,
            kept_entry_id=kept_entry_id,
            display_name=display_name,
            correlation_id=correlation_id,
        ))

    async def log_potential_savings(
        self,
        user_id: str,
        percent: str,
        version: int,
        regenerated: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a newly stored potential savings figure."""
        await self.log(AuditEventBuilder.potential_savings_generated(
            user_id=user_id,
            percent=percent,
            version=version,
            regenerated=regenerated,
            correlation_id=correlation_id,
        ))

    async def log_dashboard_built(
        self,
        user_id: str,
        status: str,
        entry_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.dashboard_built(
            user_id=user_id,
            status=status,
            entry_count=entry_count,
            skipped_count=skipped_count,
            correlation_id=correlation_id,
        ))

    async def log_entry_fetch_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entry_fetch_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of one dashboard build or one entry write
    and pass it through all subsequent operations.
    """
    return uuid4()
