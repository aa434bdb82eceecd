"""
Main Orchestrator for the Savings Engine

This module ties the storage seam to the pure engine and defines the
end-to-end flows for:
1. Entry writes (validate -> tag -> store -> audit)
2. Dashboard reads (fetch -> classify -> aggregate -> savings ->
   completeness -> breakdown)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Store failures are translated here, once; engine functions never raise
  for bad data
- A failed entry fetch is an error, never an empty dashboard
- The potential savings figure is written at most once per user unless
  explicitly regenerated
- Every step is audited
"""

import asyncio
import random
from collections import defaultdict
from typing import Optional
from uuid import UUID

import structlog

from savings_engine.audit import AuditLogger, create_correlation_id
from savings_engine.config import EngineSettings, StorageBackend, get_settings
from savings_engine.engine.aggregator import aggregate
from savings_engine.engine.breakdown import attach_saving_estimates, rank_categories
from savings_engine.engine.classifier import classify_entries, legacy_tag, tag_draft
from savings_engine.engine.completeness import onboarding_state_for
from savings_engine.engine.savings import compute_savings
from savings_engine.models.dashboard import (
    Category,
    Dashboard,
    EstimateKey,
    MonthlyMetrics,
    PotentialSavingsRecord,
    SavingEstimate,
    SavingsProjection,
    SkippedEntry,
)
from savings_engine.models.entry import (
    ClassificationResult,
    EntryDraft,
    EntryUpdate,
    FinancialEntry,
    ValidationResult,
)
from savings_engine.services.recommendations import RecommendationSourceInterface
from savings_engine.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    EntryFetchError,
    EntryStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntryStore,
    GoogleSheetsProfileStore,
    InMemoryAuditStorage,
    InMemoryEntryStore,
    InMemoryProfileStore,
    ProfileStoreInterface,
)
from savings_engine.validation.validator import EntryValidationError, EntryValidator


logger = structlog.get_logger(__name__)


class EntryFlow:
    """
    Orchestrates writes to a user's entries.

    Every new entry is validated and tagged with an explicit kind before it
    is stored. Untagged rows from before tagging existed are handled by
    migrate_legacy_entries.
    """

    def __init__(
        self,
        entry_store: EntryStoreInterface,
        validator: Optional[EntryValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._entry_store = entry_store
        self._validator = validator or EntryValidator()
        self._audit_logger = audit_logger

    async def create_entry(
        self,
        user_id: str,
        draft: EntryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[FinancialEntry, ValidationResult]:
        """
        Validate, tag and store a new entry.

        Returns:
            (stored_entry, validation_result) so warnings can be shown

        Raises:
            EntryValidationError: If the draft has blocking issues
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._entry_store.list_entries(user_id)
        validation = self._validator.validate(draft, existing)

        if validation.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_entry_rejected(
                    user_id=user_id,
                    raw_name=draft.raw_name,
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=correlation_id,
                )
            raise EntryValidationError(validation)

        entry = await self._entry_store.create_entry(user_id, tag_draft(draft))

        if self._audit_logger:
            await self._audit_logger.log_entry_created(
                user_id=user_id,
                entry_id=entry.id,
                raw_name=entry.raw_name,
                category=entry.kind.category if entry.kind else "",
                amount=str(entry.amount),
                correlation_id=correlation_id,
            )

        return entry, validation

    async def update_entry(
        self,
        entry_id: UUID,
        partial: EntryUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> FinancialEntry:
        """
        Apply a partial update.

        Renaming an entry (or changing its hint) without supplying a new
        kind re-derives the kind from the new name.
        """
        correlation_id = correlation_id or create_correlation_id()

        entry = await self._entry_store.update_entry(entry_id, partial)
        changed = set(partial.model_fields_set)

        if partial.touches_classification:
            kind = legacy_tag(entry.model_copy(update={"kind": None}))
            if kind != entry.kind:
                entry = await self._entry_store.update_entry(entry_id, EntryUpdate(kind=kind))
                changed.add("kind")

        if self._audit_logger:
            await self._audit_logger.log_entry_updated(
                user_id=entry.user_id,
                entry_id=entry.id,
                changed_fields=sorted(changed),
                correlation_id=correlation_id,
            )

        return entry

    async def delete_entry(
        self,
        entry_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._entry_store.delete_entry(entry_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_deleted(
                entry_id=entry_id,
                correlation_id=correlation_id or create_correlation_id(),
            )

    async def migrate_legacy_entries(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Tag every untagged entry of a user with its inferred kind.

        Safe to run repeatedly; tagged rows are left alone.

        Returns:
            Number of entries tagged
        """
        correlation_id = correlation_id or create_correlation_id()
        migrated = 0

        for entry in await self._entry_store.list_entries(user_id):
            kind = legacy_tag(entry)
            if kind is None:
                continue
            await self._entry_store.update_entry(entry.id, EntryUpdate(kind=kind))
            migrated += 1
            if self._audit_logger:
                await self._audit_logger.log_entry_migrated(
                    user_id=user_id,
                    entry_id=entry.id,
                    category=kind.category,
                    correlation_id=correlation_id,
                )

        logger.info("legacy_entries_migrated", user_id=user_id, count=migrated)
        return migrated


class DashboardService:
    """
    Builds the home screen dashboard for one user.

    Flow:
    1. Fetch entries (a failure raises EntryFetchError)
    2. Classify and aggregate
    3. Resolve the potential savings record under a per-user lock
    4. Derive the onboarding state
    5. Rank categories and attach saving estimates
    """

    def __init__(
        self,
        entry_store: EntryStoreInterface,
        profile_store: ProfileStoreInterface,
        recommendation_source: Optional[RecommendationSourceInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self._entry_store = entry_store
        self._profile_store = profile_store
        self._recommendation_source = recommendation_source
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().engine
        self._rng = rng
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_dashboard(
        self,
        user_id: str,
        show_all_categories: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Dashboard:
        """
        Build the dashboard from the user's current entries.

        Raises:
            EntryFetchError: If the entry store could not be read
        """
        correlation_id = correlation_id or create_correlation_id()
        rule = self._settings.annual_frequency_rule

        result = await self._load_classified(user_id, correlation_id)
        metrics = aggregate(result, rule)
        savings = await self._resolve_savings(user_id, metrics, correlation_id)
        completeness = onboarding_state_for(metrics)

        ranked = rank_categories(result, rule)
        visible = ranked if show_all_categories else ranked[:self._settings.category_limit]
        estimates = await self._fetch_estimates(user_id, visible, correlation_id)

        dashboard = Dashboard(
            user_id=user_id,
            metrics=metrics,
            savings=savings,
            completeness=completeness,
            categories=attach_saving_estimates(visible, estimates),
            total_categories=len(ranked),
            skipped_entries=[
                SkippedEntry(
                    entry_id=str(item.id),
                    raw_name=item.entry.raw_name,
                    reasons=item.issues,
                )
                for item in result.malformed
            ],
        )

        if self._audit_logger:
            await self._audit_logger.log_dashboard_built(
                user_id=user_id,
                status=completeness.status.value,
                entry_count=result.total_count,
                skipped_count=len(result.malformed),
                correlation_id=correlation_id,
            )

        return dashboard

    async def regenerate_potential_savings(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[PotentialSavingsRecord]:
        """
        Roll a fresh potential savings figure and replace the stored one.

        Returns:
            The new record, or None when there is no income or no outflow
            to base it on (the stored record is then left untouched)
        """
        correlation_id = correlation_id or create_correlation_id()
        s = self._settings

        result = await self._load_classified(user_id, correlation_id)
        metrics = aggregate(result, s.annual_frequency_rule)
        projection = compute_savings(metrics, None, self._rng, s.uplift_min, s.uplift_max)
        if projection.has_no_data:
            return None

        async with self._locks[user_id]:
            existing = await self._profile_store.get_potential_savings(user_id)
            record = PotentialSavingsRecord(
                user_id=user_id,
                potential_savings_percent=projection.potential_savings_percent,
                version=existing.version + 1 if existing else 1,
            )
            record = await self._profile_store.replace_potential_savings(record)

        if self._audit_logger:
            await self._audit_logger.log_potential_savings(
                user_id=user_id,
                percent=str(record.potential_savings_percent),
                version=record.version,
                regenerated=True,
                correlation_id=correlation_id,
            )
        return record

    async def _load_classified(
        self,
        user_id: str,
        correlation_id: UUID,
    ) -> ClassificationResult:
        try:
            entries = await self._entry_store.list_entries(user_id)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_entry_fetch_failed(
                    user_id=user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            if isinstance(e, EntryFetchError):
                raise
            raise EntryFetchError(user_id, str(e)) from e

        result = classify_entries(entries, self._settings.annual_frequency_rule)
        await self._audit_classification(user_id, result, correlation_id)
        return result

    async def _audit_classification(
        self,
        user_id: str,
        result: ClassificationResult,
        correlation_id: UUID,
    ) -> None:
        if not self._audit_logger:
            return

        for item in result.malformed:
            await self._audit_logger.log_malformed_entry(
                user_id=user_id,
                entry_id=item.id,
                raw_name=item.entry.raw_name,
                reasons=item.issues,
                correlation_id=correlation_id,
            )

        for item in result.superseded:
            winner = next(
                kept for kept in result.entries
                if kept.category == item.category
                and kept.normalized_display_name == item.normalized_display_name
            )
            await self._audit_logger.log_duplicate_superseded(
                user_id=user_id,
                entry_id=item.id,
                kept_entry_id=winner.id,
                display_name=item.normalized_display_name,
                correlation_id=correlation_id,
            )

    async def _resolve_savings(
        self,
        user_id: str,
        metrics: MonthlyMetrics,
        correlation_id: UUID,
    ) -> SavingsProjection:
        """
        Compute savings, persisting a newly generated potential percent.

        The read and the if-absent write happen under the user's lock, so
        concurrent first builds in this process roll one value. The
        if-absent write covers writers in other processes.
        """
        s = self._settings

        async with self._locks[user_id]:
            persisted = await self._profile_store.get_potential_savings(user_id)
            projection = compute_savings(
                metrics, persisted, self._rng, s.uplift_min, s.uplift_max
            )
            if not projection.potential_generated:
                return projection

            record = PotentialSavingsRecord(
                user_id=user_id,
                potential_savings_percent=projection.potential_savings_percent,
            )
            stored = await self._profile_store.put_potential_savings_if_absent(record)

        if stored != record:
            # Another writer got there first; show its value.
            return compute_savings(metrics, stored)

        if self._audit_logger:
            await self._audit_logger.log_potential_savings(
                user_id=user_id,
                percent=str(stored.potential_savings_percent),
                version=stored.version,
                correlation_id=correlation_id,
            )
        return projection

    async def _fetch_estimates(
        self,
        user_id: str,
        rows: list[Category],
        correlation_id: UUID,
    ) -> dict[EstimateKey, SavingEstimate]:
        """Estimates for the visible rows; any failure leaves them analysing."""
        if self._recommendation_source is None or not rows:
            return {}
        try:
            return await self._recommendation_source.get_category_savings(user_id, rows)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="recommendations",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            else:
                logger.warning("recommendation_source_failed", error=str(e))
            return {}


def create_app_components(
    recommendation_source: Optional[RecommendationSourceInterface] = None,
) -> tuple[EntryFlow, DashboardService]:
    """
    Factory function to create all application components.

    The storage backend comes from STORAGE_BACKEND. In-memory stores are
    only used when they are selected; a Google Sheets backend that cannot
    be configured raises instead of serving empty data.

    Returns:
        (entry_flow, dashboard_service)

    Raises:
        ConnectionError: If Google Sheets is selected but not configured
    """
    settings = get_settings()
    app = settings.app

    entry_store: EntryStoreInterface
    profile_store: ProfileStoreInterface
    audit_storage: Optional[AuditStorageInterface] = None

    if app.storage_backend is StorageBackend.GOOGLE_SHEETS:
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
        except Exception as e:
            logger.error("storage_not_configured", backend=app.storage_backend.value, error=str(e))
            raise ConnectionError(f"Google Sheets storage is selected but not configured: {e}") from e
        entry_store = GoogleSheetsEntryStore(sheets_client)
        profile_store = GoogleSheetsProfileStore(sheets_client)
        if app.persist_audit_events:
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
    else:
        entry_store = InMemoryEntryStore()
        profile_store = InMemoryProfileStore()
        if app.persist_audit_events:
            audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)

    entry_flow = EntryFlow(
        entry_store=entry_store,
        validator=EntryValidator(settings.engine),
        audit_logger=audit_logger,
    )
    dashboard_service = DashboardService(
        entry_store=entry_store,
        profile_store=profile_store,
        recommendation_source=recommendation_source,
        audit_logger=audit_logger,
        settings=settings.engine,
    )
    return entry_flow, dashboard_service
