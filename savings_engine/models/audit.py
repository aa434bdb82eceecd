"""
Audit Models for the Savings Engine

Every write to a user's entries, every generated potential-savings figure and
every dashboard build is logged. This gives:
1. Traceability of what changed a user's numbers
2. Visibility into malformed rows that were left out of totals
3. A record of store failures, separate from "no data yet"

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Entry lifecycle
    ENTRY_CREATED = "entry_created"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_REJECTED = "entry_rejected"
    ENTRY_MIGRATED = "entry_migrated"

    # Classification
    MALFORMED_ENTRY_SKIPPED = "malformed_entry_skipped"
    DUPLICATE_ENTRY_SUPERSEDED = "duplicate_entry_superseded"

    # Savings
    POTENTIAL_SAVINGS_GENERATED = "potential_savings_generated"
    POTENTIAL_SAVINGS_REGENERATED = "potential_savings_regenerated"

    # Dashboard
    DASHBOARD_BUILT = "dashboard_built"
    ENTRY_FETCH_FAILED = "entry_fetch_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    user_id: Optional[str] = Field(
        default=None,
        description="User whose data the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'dashboard', 'profile')"
    )
    entity_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one dashboard build)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_created(user_id, entry_id, ...)
        event = AuditEventBuilder.dashboard_built(user_id, ...)
    """

    @staticmethod
    def entry_created(
        user_id: str,
        entry_id: UUID,
        raw_name: str,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            user_id=user_id,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry added: {raw_name or 'Income'} - ₹{amount}",
            details={
                "raw_name": raw_name,
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_updated(
        user_id: str,
        entry_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_UPDATED,
            user_id=user_id,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry updated: {', '.join(sorted(changed_fields)) or 'no fields'}",
            details={"changed_fields": sorted(changed_fields)},
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description="Entry deleted",
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        user_id: str,
        raw_name: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"Entry rejected with {len(issues)} issues: {raw_name or 'Income'}",
            details={"raw_name": raw_name, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def entry_migrated(
        user_id: str,
        entry_id: UUID,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_MIGRATED,
            user_id=user_id,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Legacy entry tagged as {category}",
            details={"category": category},
        )

    @staticmethod
    def malformed_entry_skipped(
        user_id: str,
        entry_id: UUID,
        raw_name: str,
        reasons: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_ENTRY_SKIPPED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry left out of totals: {raw_name or 'Income'}",
            details={"raw_name": raw_name, "reasons": reasons},
        )

    @staticmethod
    def duplicate_entry_superseded(
        user_id: str,
        entry_id: UUID,
        kept_entry_id: UUID,
        display_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_ENTRY_SUPERSEDED,
            user_id=user_id,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Duplicate '{display_name}' entry superseded by a larger one",
            details={
                "display_name": display_name,
                "kept_entry_id": str(kept_entry_id),
            },
        )

    @staticmethod
    def potential_savings_generated(
        user_id: str,
        percent: str,
        version: int,
        regenerated: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.POTENTIAL_SAVINGS_REGENERATED
            if regenerated
            else AuditEventType.POTENTIAL_SAVINGS_GENERATED
        )
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="profile",
            correlation_id=correlation_id,
            description=f"Potential savings set to {percent}% (v{version})",
            details={"potential_savings_percent": percent, "version": version},
        )

    @staticmethod
    def dashboard_built(
        user_id: str,
        status: str,
        entry_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DASHBOARD_BUILT,
            user_id=user_id,
            entity_type="dashboard",
            correlation_id=correlation_id,
            description=f"Dashboard built from {entry_count} entries ({status})",
            details={
                "onboarding_status": status,
                "entry_count": entry_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def entry_fetch_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_FETCH_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="dashboard",
            correlation_id=correlation_id,
            description="Could not load entries; dashboard not built",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
