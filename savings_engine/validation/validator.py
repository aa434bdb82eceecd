"""
Two-Stage Entry Validation

STAGE 1 - SCHEMA VALIDATION:
- Amount parses and is not negative
- Name is present

STAGE 2 - SEMANTIC VALIDATION:
- Implausibly large amounts
- Annual entries that will be counted as monthly
- Loan hints that the classifier will ignore
- Interest rates outside the usual range
- Salary entries that will merge with an existing one
- "Expense:" names tagged as Income (blocking)

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER fixes anything. Errors block a write; warnings
are returned for the caller to show.
"""

from decimal import Decimal
from typing import Optional, Union

from savings_engine.config import EngineSettings, FrequencyRule, get_settings
from savings_engine.engine.classifier import (
    SALARY_DISPLAY_NAME,
    classify,
    strip_expense_prefix,
)
from savings_engine.models.entry import (
    EntryDraft,
    FinancialEntry,
    Frequency,
    TypeHint,
    ValidationIssue,
    ValidationResult,
)
from savings_engine.validation.rules import NEGATIVE_AMOUNT, amount_issues


HIGH_INTEREST_RATE = Decimal("36")

EntryLike = Union[EntryDraft, FinancialEntry]


class EntryValidator:
    """
    Validates entries through a two-stage pipeline.

    Works on both EntryDraft (before a write) and FinancialEntry (rows read
    back from storage).
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine

    def _validate_schema(self, entry: EntryLike) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        for reason in amount_issues(entry.amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative" if reason == NEGATIVE_AMOUNT else "unparseable",
                message=f"The {reason}",
                severity="error",
                suggested_fix="Enter the amount as a positive number",
            ))

        has_prefix, name = strip_expense_prefix(entry.raw_name)
        if not name and entry.kind is None:
            issues.append(ValidationIssue(
                field="raw_name",
                issue_type="missing",
                message=(
                    "Entry has no name and will show as 'Expense'"
                    if has_prefix
                    else "Entry has no name and will be counted as Income"
                ),
                severity="warning",
                suggested_fix="Give the entry a name",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        entry: EntryLike,
        existing: list[FinancialEntry],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_amount = Decimal(str(self._settings.max_entry_amount))
        if entry.amount is not None and entry.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (₹{entry.amount:,.2f}) seems unusually high for a monthly figure",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if (
            entry.frequency is Frequency.ANNUAL
            and self._settings.annual_frequency_rule is FrequencyRule.AS_ENTERED
        ):
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="frequency_ignored",
                message="Annual amounts are counted as monthly figures",
                severity="warning",
                suggested_fix="Enter the monthly amount instead",
            ))

        has_prefix, _ = strip_expense_prefix(entry.raw_name)
        if has_prefix and entry.kind is not None and entry.kind.category == "income":
            issues.append(ValidationIssue(
                field="kind",
                issue_type="inconsistent",
                message="An 'Expense:' entry cannot be tagged as Income",
                severity="error",
                suggested_fix="Remove the prefix or choose an outflow category",
            ))

        if entry.type_hint is TypeHint.LOAN and not has_prefix and entry.kind is None:
            issues.append(ValidationIssue(
                field="type_hint",
                issue_type="inconsistent",
                message="Loan hint only applies to expense entries; this entry counts as Income",
                severity="warning",
                suggested_fix="Prefix the name with 'Expense:'",
            ))

        rate = self._interest_rate(entry)
        if rate is not None and rate > HIGH_INTEREST_RATE:
            issues.append(ValidationIssue(
                field="interest_rate",
                issue_type="suspicious_value",
                message=f"Interest rate ({rate}%) seems unusually high",
                severity="warning",
                suggested_fix="Please verify the annual interest rate",
            ))

        issues.extend(self._check_salary_merge(entry, existing))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _interest_rate(self, entry: EntryLike) -> Optional[Decimal]:
        kind_rate = getattr(entry.kind, "interest_rate", None)
        if kind_rate is not None:
            return kind_rate
        if entry.metadata is not None:
            return entry.metadata.interest_rate
        return None

    def _check_salary_merge(
        self,
        entry: EntryLike,
        existing: list[FinancialEntry],
    ) -> list[ValidationIssue]:
        """Warn when a salary alias will collapse into an existing entry."""
        if not existing:
            return []

        candidate = classify(self._as_entry(entry, existing[0].user_id))
        if candidate.normalized_display_name != SALARY_DISPLAY_NAME:
            return []

        for other in existing:
            if getattr(entry, "id", None) == other.id:
                continue
            classified = classify(other)
            if (
                classified.category == candidate.category
                and classified.normalized_display_name == SALARY_DISPLAY_NAME
            ):
                return [ValidationIssue(
                    field="raw_name",
                    issue_type="potential_duplicate",
                    message=(
                        f"'{other.raw_name}' already exists; only the larger "
                        "salary entry will be counted"
                    ),
                    severity="warning",
                    suggested_fix="Edit the existing entry instead",
                )]
        return []

    def _as_entry(self, entry: EntryLike, user_id: str) -> FinancialEntry:
        if isinstance(entry, FinancialEntry):
            return entry
        return FinancialEntry(user_id=user_id, **dict(entry))

    def validate(
        self,
        entry: EntryLike,
        existing: Optional[list[FinancialEntry]] = None,
    ) -> ValidationResult:
        """
        Run the full two-stage pipeline.

        Args:
            entry: Draft or stored entry to validate
            existing: The user's other entries, for duplicate checks
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(entry)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(entry, existing or [])
            all_issues.extend(semantic_issues)

        return ValidationResult(
            entry_id=getattr(entry, "id", None),
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=[issue.message for issue in all_issues if issue.severity == "warning"],
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One-paragraph summary suitable for showing next to the form."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if result.has_errors:
            lines.append(f"{result.error_count} problem(s) must be fixed:")
            lines.extend(
                f"- {issue.message}" for issue in result.issues if issue.severity == "error"
            )
        if result.warnings:
            lines.append("Please double-check:")
            lines.extend(f"- {warning}" for warning in result.warnings)
        return "\n".join(lines)


class EntryValidationError(Exception):
    """A draft failed validation and was not written."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Entry rejected: {messages}")
