"""
Entry Classifier

Turns a stored FinancialEntry into a ClassifiedEntry: one of Income,
Expense, Investment or Loan plus a display name.

Rules, first match wins:
0. An explicit `kind` tag decides the category, except that an Income tag
   on an "Expense:" name is ignored.
1. No "Expense:" prefix (case-insensitive) means Income.
2. Prefixed entries with type_hint="loan" are Loans. Otherwise the stripped
   name is searched for investment keywords, then loan keywords. No match
   leaves the entry an Expense.
3. "Salary", "Monthly Income" and "Monthly Salary" display as "Salary".
   When several of them exist in one category, only the largest counts.

DESIGN DECISION: Rules 1-2 only run for rows without a tag. New entries
are tagged when created (tag_draft) and legacy rows are tagged once by the
migration (legacy_tag), so string matching is not the steady-state path.

Investment keywords are checked before loan keywords. "Gold Loan" is an
Investment and any name containing "emi" (e.g. "Premium") is a Loan.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from savings_engine.config import FrequencyRule
from savings_engine.engine.aggregator import to_monthly
from savings_engine.models.entry import (
    ClassificationResult,
    ClassificationSource,
    ClassifiedEntry,
    EntryCategory,
    EntryDraft,
    EntryKind,
    EntryMetadata,
    ExpenseKind,
    FinancialEntry,
    IncomeKind,
    InvestmentKind,
    LoanKind,
    TypeHint,
)
from savings_engine.validation.rules import amount_issues


logger = structlog.get_logger(__name__)


EXPENSE_PREFIX = "expense:"

INVESTMENT_KEYWORDS = (
    "stock",
    "mutual",
    "sip",
    "investment",
    "crypto",
    "gold",
    "fd",
    "deposit",
    "bond",
)

LOAN_KEYWORDS = ("loan", "emi")

SALARY_ALIASES = frozenset({"salary", "monthly income", "monthly salary"})
SALARY_DISPLAY_NAME = "Salary"

FALLBACK_DISPLAY_NAMES = {
    EntryCategory.INCOME: "Income",
    EntryCategory.EXPENSE: "Expense",
    EntryCategory.INVESTMENT: "Investment",
    EntryCategory.LOAN: "Loan",
}

KIND_LABEL_MAX = 100


# =============================================================================
# NAME HANDLING
# =============================================================================

def strip_expense_prefix(raw_name: Optional[str]) -> tuple[bool, str]:
    """
    Split off the "Expense:" prefix.

    Returns (had_prefix, remaining_name).
    """
    name = (raw_name or "").strip()
    if name.lower().startswith(EXPENSE_PREFIX):
        return True, name[len(EXPENSE_PREFIX):].strip()
    return False, name


def normalize_display_name(name: str, category: EntryCategory) -> str:
    """Collapse whitespace, map salary aliases, fall back to the category name."""
    collapsed = " ".join(name.split())
    if not collapsed:
        return FALLBACK_DISPLAY_NAMES[category]
    if collapsed.lower() in SALARY_ALIASES:
        return SALARY_DISPLAY_NAME
    return collapsed


def _kind_label(kind: EntryKind) -> str:
    if isinstance(kind, ExpenseKind):
        return kind.expense_category
    if isinstance(kind, InvestmentKind):
        return kind.investment_kind
    if isinstance(kind, LoanKind):
        return kind.loan_kind
    return ""


# =============================================================================
# CATEGORY INFERENCE (untagged rows)
# =============================================================================

def infer_category(
    name: str,
    has_expense_prefix: bool,
    type_hint: Optional[TypeHint] = None,
) -> tuple[EntryCategory, ClassificationSource]:
    """Apply the prefix, hint and keyword rules to an untagged entry."""
    if not has_expense_prefix:
        return EntryCategory.INCOME, ClassificationSource.INFERRED

    if type_hint is TypeHint.LOAN:
        return EntryCategory.LOAN, ClassificationSource.TYPE_HINT

    lowered = name.lower()
    if any(keyword in lowered for keyword in INVESTMENT_KEYWORDS):
        return EntryCategory.INVESTMENT, ClassificationSource.INFERRED
    if any(keyword in lowered for keyword in LOAN_KEYWORDS):
        return EntryCategory.LOAN, ClassificationSource.INFERRED
    return EntryCategory.EXPENSE, ClassificationSource.INFERRED


def build_kind(
    category: EntryCategory,
    display_name: str,
    metadata: Optional[EntryMetadata] = None,
) -> EntryKind:
    """Explicit tag for an inferred category."""
    label = display_name[:KIND_LABEL_MAX]
    if category is EntryCategory.INCOME:
        return IncomeKind()
    if category is EntryCategory.EXPENSE:
        return ExpenseKind(expense_category=label)
    if category is EntryCategory.INVESTMENT:
        return InvestmentKind(investment_kind=label)

    meta = metadata or EntryMetadata()
    return LoanKind(
        loan_kind=(meta.loan_type or label)[:KIND_LABEL_MAX],
        principal=meta.principal,
        interest_rate=meta.interest_rate,
    )


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify(entry: FinancialEntry) -> ClassifiedEntry:
    """Classify a single entry. Never raises for bad data."""
    has_prefix, stripped = strip_expense_prefix(entry.raw_name)

    if entry.kind is not None and not (has_prefix and isinstance(entry.kind, IncomeKind)):
        category = EntryCategory(entry.kind.category)
        source = ClassificationSource.EXPLICIT_TAG
        name = stripped or _kind_label(entry.kind)
    else:
        category, source = infer_category(stripped, has_prefix, entry.type_hint)
        name = stripped

    issues = amount_issues(entry.amount)
    return ClassifiedEntry(
        entry=entry,
        category=category,
        normalized_display_name=normalize_display_name(name, category),
        source=source,
        is_malformed=bool(issues),
        issues=issues,
    )


def classify_entries(
    entries: Iterable[FinancialEntry],
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> ClassificationResult:
    """
    Classify a user's entry list.

    Every input entry ends up in exactly one of result.entries,
    result.superseded or result.malformed. Salary aliases within a category
    merge to the one with the larger monthly amount; on a tie the earlier
    entry is kept.
    """
    result = ClassificationResult()
    salary_slots: dict[EntryCategory, int] = {}

    for entry in entries:
        classified = classify(entry)

        if classified.is_malformed:
            logger.warning(
                "malformed_entry",
                entry_id=str(entry.id),
                raw_name=entry.raw_name,
                reasons=classified.issues,
            )
            result.malformed.append(classified)
            continue

        if classified.normalized_display_name != SALARY_DISPLAY_NAME:
            result.entries.append(classified)
            continue

        slot = salary_slots.get(classified.category)
        if slot is None:
            salary_slots[classified.category] = len(result.entries)
            result.entries.append(classified)
            continue

        current = result.entries[slot]
        if _monthly(classified, rule) > _monthly(current, rule):
            result.entries[slot] = classified
            winner, loser = classified, current
        else:
            winner, loser = current, classified
        result.superseded.append(loser)
        logger.info(
            "duplicate_entry_superseded",
            entry_id=str(loser.id),
            kept_entry_id=str(winner.id),
            display_name=SALARY_DISPLAY_NAME,
        )

    return result


def _monthly(classified: ClassifiedEntry, rule: FrequencyRule) -> Decimal:
    return to_monthly(classified.amount, classified.frequency, rule)


# =============================================================================
# TAGGING
# =============================================================================

def tag_draft(draft: EntryDraft) -> EntryDraft:
    """Attach an explicit kind to a draft that was submitted without one."""
    if draft.kind is not None:
        return draft
    has_prefix, stripped = strip_expense_prefix(draft.raw_name)
    category, _ = infer_category(stripped, has_prefix, draft.type_hint)
    kind = build_kind(category, normalize_display_name(stripped, category), draft.metadata)
    return draft.model_copy(update={"kind": kind})


def legacy_tag(entry: FinancialEntry) -> Optional[EntryKind]:
    """
    Tag to write back for an untagged row, or None if it already has one.
    """
    if entry.kind is not None:
        return None
    classified = classify(entry)
    return build_kind(
        classified.category,
        classified.normalized_display_name,
        entry.metadata,
    )
