"""Shared fixtures: entry builders and in-memory services."""

import random
from decimal import Decimal

import pytest

from savings_engine.config import EngineSettings
from savings_engine.models.entry import FinancialEntry, Frequency
from savings_engine.services.storage import (
    InMemoryAuditStorage,
    InMemoryEntryStore,
    InMemoryProfileStore,
)


USER_ID = "user-1"


def make_entry(raw_name="", amount="0", user_id=USER_ID, **kwargs) -> FinancialEntry:
    """Stored entry as the store would hand it back."""
    return FinancialEntry(user_id=user_id, raw_name=raw_name, amount=amount, **kwargs)


@pytest.fixture
def engine_settings():
    return EngineSettings(
        category_limit=3,
        uplift_min=1.0,
        uplift_max=10.0,
        max_entry_amount=10000000.0,
    )


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def entry_store():
    return InMemoryEntryStore()


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def salary_food_gold():
    """Salary 50000 / Food 10000 / Gold SIP 5000."""
    return [
        make_entry("Salary", "50000", is_primary=True),
        make_entry("Expense: Food", "10000"),
        make_entry("Expense: Gold SIP", "5000"),
    ]


@pytest.fixture
def annual_bonus():
    return make_entry("Bonus", Decimal("120000"), frequency=Frequency.ANNUAL)
