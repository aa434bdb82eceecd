"""
Engine package.

Pure, synchronous transforms from entries to dashboard figures:
classifier -> aggregator -> savings / completeness -> breakdown.
"""

from savings_engine.engine.aggregator import aggregate, effective_amount, to_monthly
from savings_engine.engine.breakdown import (
    attach_saving_estimates,
    build_category_breakdown,
    icon_for,
    rank_categories,
)
from savings_engine.engine.classifier import (
    classify,
    classify_entries,
    legacy_tag,
    normalize_display_name,
    strip_expense_prefix,
    tag_draft,
)
from savings_engine.engine.completeness import derive_onboarding_state, onboarding_state_for
from savings_engine.engine.savings import compute_savings, generate_potential_percent, round_percent

__all__ = [
    "aggregate",
    "attach_saving_estimates",
    "build_category_breakdown",
    "classify",
    "classify_entries",
    "compute_savings",
    "derive_onboarding_state",
    "effective_amount",
    "generate_potential_percent",
    "icon_for",
    "legacy_tag",
    "normalize_display_name",
    "onboarding_state_for",
    "rank_categories",
    "round_percent",
    "strip_expense_prefix",
    "tag_draft",
    "to_monthly",
]
