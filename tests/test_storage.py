"""
Tests for the storage backends.

Google Sheets is exercised against an in-process fake worksheet; no
network calls are made.
"""

import asyncio
import json
from decimal import Decimal
from uuid import uuid4

import pytest

from savings_engine.models.audit import AuditEventBuilder
from savings_engine.models.dashboard import PotentialSavingsRecord
from savings_engine.models.entry import (
    EntryDraft,
    EntryUpdate,
    ExpenseKind,
    Frequency,
    LoanKind,
    TypeHint,
)
from savings_engine.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsEntryStore,
    GoogleSheetsProfileStore,
    InMemoryAuditStorage,
    InMemoryEntryStore,
    InMemoryProfileStore,
    NotFoundError,
)
from savings_engine.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    ENTRY_COLUMNS,
    PROFILE_COLUMNS,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def update(self, range_name=None, values=None, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.entries = FakeWorksheet(ENTRY_COLUMNS)
        self.profiles = FakeWorksheet(PROFILE_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_entries_sheet(self):
        return self.entries

    def get_profiles_sheet(self):
        return self.profiles

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


class TestInMemoryEntryStore:

    @pytest.mark.asyncio
    async def test_create_and_list(self, entry_store):
        """Created entries come back for their user only."""
        draft = EntryDraft(raw_name="Salary", amount=Decimal("50000"), is_primary=True)
        created = await entry_store.create_entry("u1", draft)
        await entry_store.create_entry("u2", draft)

        listed = await entry_store.list_entries("u1")
        assert [e.id for e in listed] == [created.id]
        assert listed[0].is_primary is True

    @pytest.mark.asyncio
    async def test_update_applies_only_set_fields(self, entry_store):
        """Partial updates leave other fields alone."""
        created = await entry_store.create_entry(
            "u1", EntryDraft(raw_name="Expense: Food", amount=Decimal("100"))
        )
        updated = await entry_store.update_entry(created.id, EntryUpdate(amount=Decimal("250")))
        assert updated.amount == Decimal("250")
        assert updated.raw_name == "Expense: Food"
        assert updated.updated_at >= created.updated_at

    @pytest.mark.asyncio
    async def test_missing_entry(self, entry_store):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await entry_store.update_entry(uuid4(), EntryUpdate(amount=Decimal("1")))
        with pytest.raises(NotFoundError):
            await entry_store.delete_entry(uuid4())


class TestInMemoryProfileStore:

    @pytest.mark.asyncio
    async def test_put_if_absent_keeps_first(self, profile_store):
        """The first record wins; later ones get it back."""
        first = PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("10.0"))
        second = PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("20.0"))

        assert await profile_store.put_potential_savings_if_absent(first) == first
        assert await profile_store.put_potential_savings_if_absent(second) == first
        assert await profile_store.get_potential_savings("u") == first

    @pytest.mark.asyncio
    async def test_concurrent_put_if_absent(self, profile_store):
        """Simultaneous writers all see a single stored value."""
        records = [
            PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal(str(i)))
            for i in range(10)
        ]
        results = await asyncio.gather(
            *(profile_store.put_potential_savings_if_absent(r) for r in records)
        )
        assert len({r.potential_savings_percent for r in results}) == 1

    @pytest.mark.asyncio
    async def test_replace(self, profile_store):
        """Replace overwrites unconditionally."""
        await profile_store.put_potential_savings_if_absent(
            PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("10.0"))
        )
        new = PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("12.0"), version=2)
        await profile_store.replace_potential_savings(new)
        assert (await profile_store.get_potential_savings("u")).version == 2


class TestInMemoryAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_query(self, audit_storage):
        """Events can be fetched by correlation id."""
        correlation_id = uuid4()
        event = AuditEventBuilder.entry_deleted(entry_id=uuid4(), correlation_id=correlation_id)
        assert await audit_storage.append_event(event) is True
        assert await audit_storage.get_events_by_correlation_id(correlation_id) == [event]
        assert await audit_storage.get_recent_events(limit=1) == [event]

    @pytest.mark.asyncio
    async def test_append_only(self, audit_storage):
        """The same event cannot be stored twice."""
        event = AuditEventBuilder.entry_deleted(entry_id=uuid4())
        await audit_storage.append_event(event)
        with pytest.raises(DuplicateError):
            await audit_storage.append_event(event)


class TestGoogleSheetsEntryStore:
    """Tests for the Google Sheets entry store."""

    @pytest.mark.asyncio
    async def test_round_trip_with_kind(self, sheets_client):
        """Tagged loan entries survive the row format."""
        store = GoogleSheetsEntryStore(sheets_client)
        draft = EntryDraft(
            raw_name="Expense: Home Loan EMI",
            amount=Decimal("25000"),
            type_hint=TypeHint.LOAN,
            kind=LoanKind(loan_kind="home", interest_rate=Decimal("8.4")),
        )
        created = await store.create_entry("u1", draft)

        [loaded] = await store.list_entries("u1")
        assert loaded.id == created.id
        assert loaded.amount == Decimal("25000")
        assert loaded.type_hint == TypeHint.LOAN
        assert loaded.kind == draft.kind

    @pytest.mark.asyncio
    async def test_lenient_rows(self, sheets_client):
        """Bad cells degrade instead of dropping the row."""
        entry_id = str(uuid4())
        sheets_client.entries.rows.append([
            entry_id, "u1", "Salary", "12k", "Fortnightly", "TRUE", "bonus", "{not json", "",
            "2024-01-01T00:00:00", "",
        ])

        [loaded] = await GoogleSheetsEntryStore(sheets_client).list_entries("u1")
        assert str(loaded.id) == entry_id
        assert loaded.amount is None
        assert loaded.frequency == Frequency.MONTHLY
        assert loaded.is_primary is True
        assert loaded.type_hint is None
        assert loaded.kind is None

    @pytest.mark.asyncio
    async def test_hand_edited_rows_still_listed(self, sheets_client):
        """Long names, non-UUID ids, blank ids and bad timestamps keep their amounts."""
        long_name = "Expense: " + "x" * 200
        sheets_client.entries.rows.extend([
            [str(uuid4()), "u1", long_name, "9000", "monthly"],
            ["not-a-uuid", "u1", "Salary", "50000", "monthly", "", "", "", "", "yesterday", ""],
            ["", "u1", "Expense: Rent", "15000"],
        ])
        store = GoogleSheetsEntryStore(sheets_client)

        entries = await store.list_entries("u1")

        assert len(entries) == 3
        by_name = {e.raw_name: e for e in entries}
        assert by_name[long_name].amount == Decimal("9000")
        assert by_name["Salary"].amount == Decimal("50000")
        assert by_name["Expense: Rent"].amount == Decimal("15000")
        assert [e.id for e in await store.list_entries("u1")] == [e.id for e in entries]

    @pytest.mark.asyncio
    async def test_non_uuid_row_can_be_updated(self, sheets_client):
        """A row listed under a derived id can be written back through that id."""
        sheets_client.entries.rows.append(["not-a-uuid", "u1", "Salary", "50000"])
        store = GoogleSheetsEntryStore(sheets_client)
        [loaded] = await store.list_entries("u1")

        updated = await store.update_entry(loaded.id, EntryUpdate(amount=Decimal("55000")))

        [reloaded] = await store.list_entries("u1")
        assert updated.id == loaded.id
        assert reloaded.id == loaded.id
        assert reloaded.amount == Decimal("55000")

    @pytest.mark.asyncio
    async def test_legacy_short_row(self, sheets_client):
        """Rows written before the newer columns existed still load."""
        sheets_client.entries.rows.append([str(uuid4()), "u1", "Expense: Rent", "15,000"])
        [loaded] = await GoogleSheetsEntryStore(sheets_client).list_entries("u1")
        assert loaded.amount == Decimal("15000")
        assert loaded.is_legacy is True

    @pytest.mark.asyncio
    async def test_update_and_delete(self, sheets_client):
        """Updates rewrite the row in place; deletes remove it."""
        store = GoogleSheetsEntryStore(sheets_client)
        created = await store.create_entry(
            "u1", EntryDraft(raw_name="Expense: Food", amount=Decimal("100"))
        )

        kind = ExpenseKind(expense_category="Food")
        updated = await store.update_entry(created.id, EntryUpdate(kind=kind))
        assert updated.kind == kind
        assert json.loads(sheets_client.entries.rows[1][7])["expense_category"] == "Food"

        await store.delete_entry(created.id)
        assert await store.list_entries("u1") == []

        with pytest.raises(NotFoundError):
            await store.delete_entry(created.id)


class TestGoogleSheetsProfileStore:

    @pytest.mark.asyncio
    async def test_put_if_absent_and_replace(self, sheets_client):
        """Only the first record is kept until replaced."""
        store = GoogleSheetsProfileStore(sheets_client)
        first = PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("71.3"))
        second = PotentialSavingsRecord(user_id="u", potential_savings_percent=Decimal("79.9"))

        stored = await store.put_potential_savings_if_absent(first)
        again = await store.put_potential_savings_if_absent(second)
        assert stored.potential_savings_percent == again.potential_savings_percent == Decimal("71.3")

        await store.replace_potential_savings(second.model_copy(update={"version": 2}))
        loaded = await store.get_potential_savings("u")
        assert loaded.potential_savings_percent == Decimal("79.9")
        assert loaded.version == 2
        assert len(sheets_client.profiles.rows) == 2

    @pytest.mark.asyncio
    async def test_absent(self, sheets_client):
        """No row, no record."""
        assert await GoogleSheetsProfileStore(sheets_client).get_potential_savings("u") is None


class TestGoogleSheetsAuditStorage:

    @pytest.mark.asyncio
    async def test_append_and_read(self, sheets_client):
        """Events round-trip through the audit sheet."""
        storage = GoogleSheetsAuditStorage(sheets_client)
        correlation_id = uuid4()
        event = AuditEventBuilder.dashboard_built(
            user_id="u", status="complete", entry_count=3, skipped_count=0,
            correlation_id=correlation_id,
        )
        await storage.append_event(event)

        [loaded] = await storage.get_events_by_correlation_id(correlation_id)
        assert loaded.event_id == event.event_id
        assert loaded.user_id == "u"
        assert loaded.details["entry_count"] == 3
