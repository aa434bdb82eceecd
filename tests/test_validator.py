"""Tests for the two-stage entry validator."""

from decimal import Decimal

import pytest

from conftest import make_entry
from savings_engine.config import EngineSettings, FrequencyRule
from savings_engine.models.entry import (
    EntryDraft,
    EntryMetadata,
    Frequency,
    IncomeKind,
    TypeHint,
)
from savings_engine.validation.validator import EntryValidationError, EntryValidator


@pytest.fixture
def validator(engine_settings):
    return EntryValidator(engine_settings)


def issue_types(result):
    return {issue.issue_type for issue in result.issues}


class TestSchemaStage:

    def test_valid_draft(self, validator):
        """A normal expense draft passes cleanly."""
        result = validator.validate(EntryDraft(raw_name="Expense: Food", amount=Decimal("8000")))
        assert result.is_valid is True
        assert result.issues == []
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_unparseable_stored_amount(self, validator):
        """A stored row with a bad amount fails stage 1 and skips stage 2."""
        entry = make_entry("Salary", "abc", frequency=Frequency.ANNUAL)
        result = validator.validate(entry)
        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert result.entry_id == entry.id
        assert issue_types(result) == {"unparseable"}

    def test_negative_stored_amount(self, validator):
        """Negative stored amounts are errors."""
        result = validator.validate(make_entry("Expense: Food", "-5"))
        assert result.has_errors is True
        assert "negative" in issue_types(result)

    def test_missing_name_is_warning(self, validator):
        """An empty name is allowed but flagged."""
        result = validator.validate(EntryDraft(raw_name="", amount=Decimal("10")))
        assert result.is_valid is True
        assert "counted as Income" in result.warnings[0]


class TestSemanticStage:

    def test_huge_amount(self, validator):
        """Very large amounts are flagged, not rejected."""
        result = validator.validate(EntryDraft(raw_name="Salary", amount=Decimal("50000000")))
        assert result.is_valid is True
        assert "suspicious_value" in issue_types(result)

    def test_annual_counted_as_monthly(self, validator):
        """Under the default rule annual entries get a warning."""
        draft = EntryDraft(raw_name="Bonus", amount=Decimal("1"), frequency=Frequency.ANNUAL)
        assert "frequency_ignored" in issue_types(validator.validate(draft))

    def test_annual_divided_no_warning(self):
        """Divide-by-12 handles annual entries, so no warning."""
        validator = EntryValidator(EngineSettings(annual_frequency_rule=FrequencyRule.DIVIDE_BY_12))
        draft = EntryDraft(raw_name="Bonus", amount=Decimal("1"), frequency=Frequency.ANNUAL)
        assert validator.validate(draft).issues == []

    def test_loan_hint_without_prefix(self, validator):
        """A loan hint on an income-shaped name is pointed out."""
        draft = EntryDraft(raw_name="Bike", amount=Decimal("1"), type_hint=TypeHint.LOAN)
        assert "inconsistent" in issue_types(validator.validate(draft))

    def test_high_interest_rate(self, validator):
        """Rates above the usual range are flagged."""
        draft = EntryDraft(
            raw_name="Expense: Card EMI",
            amount=Decimal("1000"),
            metadata=EntryMetadata(interest_rate=Decimal("42")),
        )
        result = validator.validate(draft)
        assert any(i.field == "interest_rate" for i in result.issues)

    def test_income_tag_on_expense_blocks(self, validator):
        """An 'Expense:' draft tagged as Income is rejected."""
        draft = EntryDraft(raw_name="Expense: Rent", amount=Decimal("1"), kind=IncomeKind())
        result = validator.validate(draft)
        assert result.has_errors is True
        assert result.is_valid is False
        assert "must be fixed" in validator.get_user_friendly_summary(result)

    def test_salary_alias_duplicate(self, validator):
        """Adding a second salary alias warns that only one counts."""
        existing = [make_entry("Salary", "40000")]
        draft = EntryDraft(raw_name="Monthly Income", amount=Decimal("45000"))
        result = validator.validate(draft, existing)
        assert "potential_duplicate" in issue_types(result)

    def test_other_names_not_duplicates(self, validator):
        """Only salary aliases collapse."""
        existing = [make_entry("Expense: Food", "100")]
        draft = EntryDraft(raw_name="Expense: Food", amount=Decimal("100"))
        assert validator.validate(draft, existing).issues == []

    def test_stored_entry_not_its_own_duplicate(self, validator):
        """Re-validating a stored salary against its own list is clean."""
        salary = make_entry("Salary", "40000")
        assert validator.validate(salary, [salary]).issues == []


class TestEntryValidationError:

    def test_carries_result(self, validator):
        """The error exposes the result and names the problem."""
        result = validator.validate(make_entry("Salary", "x"))
        error = EntryValidationError(result)
        assert error.result is result
        assert "could not be parsed" in str(error)
