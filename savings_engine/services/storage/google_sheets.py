"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the persistent backend because:
1. Users (and support) can inspect entries directly in a sheet
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions; the if-absent write is a read-then-append guarded by
  the orchestrator's per-user lock
- Limited query capabilities (we filter in Python)

Rows are parsed leniently. A row whose amount, frequency, id or timestamps no
longer parse is still returned so the classifier can count or report it
instead of it vanishing. A row that cannot be read at all fails the whole
list with StorageError.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import NAMESPACE_URL, UUID, uuid5

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from savings_engine.config import GoogleSheetsSettings, get_settings
from savings_engine.models.audit import AuditEvent, AuditEventType, AuditSeverity
from savings_engine.models.dashboard import PotentialSavingsRecord
from savings_engine.models.entry import (
    ENTRY_KIND_ADAPTER,
    EntryDraft,
    EntryMetadata,
    EntryUpdate,
    FinancialEntry,
    Frequency,
    TypeHint,
)
from savings_engine.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    EntryStoreInterface,
    NotFoundError,
    ProfileStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


ENTRY_COLUMNS = [
    "id",
    "user_id",
    "raw_name",
    "amount",
    "frequency",
    "is_primary",
    "type_hint",
    "kind_json",
    "metadata_json",
    "created_at",
    "updated_at",
]

PROFILE_COLUMNS = [
    "user_id",
    "potential_savings_percent",
    "generated_at",
    "version",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# gspread is synchronous; every call below blocks the event loop while it runs.
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _row_id(text: str) -> UUID:
    """
    Entry id from the id cell.

    Hand-edited ids that are not UUIDs map to a stable uuid5 so the row
    can still be listed, updated and deleted.
    """
    try:
        return UUID(text)
    except ValueError:
        return uuid5(NAMESPACE_URL, f"savings-engine:entry:{text}")


def _id_text(row: list, index: int) -> str:
    """The id cell, or a position-based stand-in when it was left blank."""
    return _cell(row, 0) or f"row-{index}"


def _timestamp(text: str, entry_id: str, column: str) -> Optional[datetime]:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("unreadable_timestamp", entry_id=entry_id, column=column, value=text)
        return None


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @sheets_retry
    def connect(self) -> gspread.Client:
        """Authenticate with the service account credentials."""
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet by title, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_entries_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.entries_sheet_name, ENTRY_COLUMNS)

    def get_profiles_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.profiles_sheet_name, PROFILE_COLUMNS, rows=200)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


# =============================================================================
# ENTRIES
# =============================================================================

class GoogleSheetsEntryStore(EntryStoreInterface):
    """
    One entry per row. The explicit kind tag and loan metadata are
    JSON-serialized into their own columns.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _entry_to_row(self, entry: FinancialEntry) -> list:
        return [
            str(entry.id),
            entry.user_id,
            entry.raw_name,
            str(entry.amount) if entry.amount is not None else "",
            entry.frequency.value,
            str(entry.is_primary),
            entry.type_hint.value if entry.type_hint else "",
            entry.kind.model_dump_json() if entry.kind else "",
            entry.metadata.model_dump_json(exclude_none=True) if entry.metadata else "",
            entry.created_at.isoformat(),
            entry.updated_at.isoformat(),
        ]

    def _row_to_entry(self, row: list, index: int) -> FinancialEntry:
        """
        Convert a row to a FinancialEntry.

        Nothing but the user_id is required. Everything else degrades: a
        non-UUID id maps to a stable derived id, an unknown frequency reads
        as monthly, a bad hint, tag or timestamp reads as absent, and an
        unparseable amount reads as None.
        """
        entry_id = _id_text(row, index)

        frequency_text = _cell(row, 4, Frequency.MONTHLY.value).strip().lower()
        try:
            frequency = Frequency(frequency_text)
        except ValueError:
            logger.warning("unknown_frequency", entry_id=entry_id, value=frequency_text)
            frequency = Frequency.MONTHLY

        type_hint = None
        hint_text = _cell(row, 6).strip().lower()
        if hint_text:
            try:
                type_hint = TypeHint(hint_text)
            except ValueError:
                logger.warning("unknown_type_hint", entry_id=entry_id, value=hint_text)

        kind = None
        kind_json = _cell(row, 7)
        if kind_json:
            try:
                kind = ENTRY_KIND_ADAPTER.validate_json(kind_json)
            except ValidationError:
                logger.warning("unreadable_entry_kind", entry_id=entry_id)

        metadata = None
        metadata_json = _cell(row, 8)
        if metadata_json:
            try:
                metadata = EntryMetadata.model_validate_json(metadata_json)
            except ValidationError:
                logger.warning("unreadable_entry_metadata", entry_id=entry_id)

        created_at = _timestamp(_cell(row, 9), entry_id, "created_at")
        updated_at = _timestamp(_cell(row, 10), entry_id, "updated_at") or created_at
        timestamps = {}
        if created_at:
            timestamps["created_at"] = created_at
        if updated_at:
            timestamps["updated_at"] = updated_at

        return FinancialEntry(
            id=_row_id(entry_id),
            user_id=_cell(row, 1),
            raw_name=_cell(row, 2),
            amount=_cell(row, 3) or None,
            frequency=frequency,
            is_primary=_cell(row, 5).lower() == "true",
            type_hint=type_hint,
            kind=kind,
            metadata=metadata,
            **timestamps,
        )

    def _find_row(self, rows: list[list], entry_id: UUID) -> Optional[int]:
        """1-based sheet row index of an entry (row 1 is the header)."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and _row_id(_id_text(row, idx)) == entry_id:
                return idx
        return None

    @sheets_retry
    async def list_entries(self, user_id: str) -> list[FinancialEntry]:
        try:
            sheet = self._client.get_entries_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to list entries: {e}")

        entries = []
        for idx, row in enumerate(all_rows, start=2):
            if _cell(row, 1) != user_id:
                continue
            if not _cell(row, 0):
                logger.warning("entry_row_without_id", row=idx)
            try:
                entries.append(self._row_to_entry(row, idx))
            except ValidationError as e:
                logger.error("unreadable_entry_row", row=idx, error=str(e))
                raise StorageError(f"Unreadable entry row {idx}: {e}")
        return entries

    @sheets_retry
    async def create_entry(self, user_id: str, draft: EntryDraft) -> FinancialEntry:
        entry = FinancialEntry(user_id=user_id, **dict(draft))
        try:
            sheet = self._client.get_entries_sheet()
            sheet.append_row(self._entry_to_row(entry), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save entry: {e}")
        return entry

    async def update_entry(self, entry_id: UUID, partial: EntryUpdate) -> FinancialEntry:
        try:
            sheet = self._client.get_entries_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, entry_id)
            if idx is None:
                raise NotFoundError(f"Entry not found: {entry_id}")

            current = self._row_to_entry(all_rows[idx - 1], idx)
            changes = partial.changes()
            changes["updated_at"] = datetime.utcnow()
            updated = current.model_copy(update=changes)

            sheet.update(
                range_name=f"A{idx}",
                values=[self._entry_to_row(updated)],
                value_input_option="RAW",
            )
            return updated
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update entry: {e}")

    async def delete_entry(self, entry_id: UUID) -> None:
        try:
            sheet = self._client.get_entries_sheet()
            idx = self._find_row(sheet.get_all_values(), entry_id)
            if idx is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            sheet.delete_rows(idx)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete entry: {e}")


# =============================================================================
# PROFILES
# =============================================================================

class GoogleSheetsProfileStore(ProfileStoreInterface):
    """One row per user holding the persisted potential savings record."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: PotentialSavingsRecord) -> list:
        return [
            record.user_id,
            str(record.potential_savings_percent),
            record.generated_at.isoformat(),
            str(record.version),
        ]

    def _row_to_record(self, row: list) -> PotentialSavingsRecord:
        return PotentialSavingsRecord(
            user_id=_cell(row, 0),
            potential_savings_percent=Decimal(_cell(row, 1)),
            generated_at=datetime.fromisoformat(_cell(row, 2)),
            version=int(_cell(row, 3, "1")),
        )

    def _find(self, rows: list[list], user_id: str) -> tuple[Optional[int], Optional[PotentialSavingsRecord]]:
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == user_id:
                return idx, self._row_to_record(row)
        return None, None

    @sheets_retry
    async def get_potential_savings(self, user_id: str) -> Optional[PotentialSavingsRecord]:
        try:
            sheet = self._client.get_profiles_sheet()
            _, record = self._find(sheet.get_all_values(), user_id)
            return record
        except Exception as e:
            raise StorageError(f"Failed to read profile: {e}")

    async def put_potential_savings_if_absent(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        try:
            sheet = self._client.get_profiles_sheet()
            _, existing = self._find(sheet.get_all_values(), record.user_id)
            if existing is not None:
                return existing
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return record
        except Exception as e:
            raise StorageError(f"Failed to store potential savings: {e}")

    async def replace_potential_savings(
        self,
        record: PotentialSavingsRecord,
    ) -> PotentialSavingsRecord:
        try:
            sheet = self._client.get_profiles_sheet()
            idx, _ = self._find(sheet.get_all_values(), record.user_id)
            if idx is None:
                sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}",
                    values=[self._record_to_row(record)],
                    value_input_option="RAW",
                )
            return record
        except Exception as e:
            raise StorageError(f"Failed to replace potential savings: {e}")


# =============================================================================
# AUDIT
# =============================================================================

class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            user_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            correlation_id=UUID(_cell(row, 7)) if _cell(row, 7) else None,
            description=_cell(row, 8),
            details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ValidationError):
                logger.warning("unreadable_audit_row", event_id=row[0])
        return events

    @sheets_retry
    async def append_event(self, event: AuditEvent) -> bool:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
