"""
Category Breakdown

Groups outflow entries (expenses, investments, loans) by display name and
ranks them by monthly amount. The dashboard shows the first few rows; the
caller owns the "view all" toggle.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from savings_engine.config import FrequencyRule
from savings_engine.engine.aggregator import counted_entries, effective_amount
from savings_engine.engine.savings import percent_of
from savings_engine.models.dashboard import Category, EstimateKey, SavingEstimate, SavingStatus
from savings_engine.models.entry import ClassificationResult, ClassifiedEntry, EntryCategory


# First matching keyword wins; "credit card" must precede "car".
ICON_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("food", "dining", "restaurant", "grocer"), "restaurant"),
    (("credit card",), "card"),
    (("transport", "car", "fuel", "petrol", "travel"), "car"),
    (("shopping",), "cart"),
    (("utilit", "electric", "water", "internet"), "receipt"),
    (("entertain", "movie"), "game-controller"),
    (("health", "medical"), "medical"),
    (("education", "school", "tuition"), "school"),
    (("stock",), "trending-up"),
    (("mutual",), "pie-chart"),
    (("crypto",), "logo-bitcoin"),
    (("real estate", "home", "house", "rent"), "home"),
    (("gold",), "star"),
    (("fixed deposit", "fd"), "lock-closed"),
    (("ppf",), "shield"),
    (("personal",), "person"),
    (("business",), "briefcase"),
)

DEFAULT_ICONS = {
    EntryCategory.EXPENSE: "wallet",
    EntryCategory.INVESTMENT: "trending-up",
    EntryCategory.LOAN: "cash",
}


def icon_for(label: str, category: EntryCategory) -> str:
    lowered = label.lower()
    for keywords, icon in ICON_RULES:
        if any(keyword in lowered for keyword in keywords):
            return icon
    return DEFAULT_ICONS.get(category, "wallet")


def rank_categories(
    classified: Union[ClassificationResult, Iterable[ClassifiedEntry]],
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> list[Category]:
    """
    Every outflow group with a positive amount, largest first.

    Ties are broken by label so the order is stable across reads.
    """
    groups: dict[tuple[EntryCategory, str], tuple[str, Decimal]] = {}
    for item in counted_entries(classified):
        if not item.category.is_outflow:
            continue
        key = (item.category, item.normalized_display_name.lower())
        label, amount = groups.get(key, (item.normalized_display_name, Decimal("0")))
        groups[key] = (label, amount + effective_amount(item, rule))

    total_outflow = sum((amount for _, amount in groups.values()), Decimal("0"))

    rows = [
        Category(
            label=label,
            icon=icon_for(label, category),
            category=category,
            amount=amount,
            percentage=percent_of(amount, total_outflow),
        )
        for (category, _), (label, amount) in groups.items()
        if amount > 0
    ]
    rows.sort(key=lambda row: (-row.amount, row.label.lower()))
    return rows


def attach_saving_estimates(
    rows: list[Category],
    estimates: Optional[dict[EstimateKey, SavingEstimate]] = None,
) -> list[Category]:
    """
    Copy each row with its estimate; rows without one stay analysing.

    Estimates are keyed by `Category.key`, so an Expense and an Investment
    sharing a label never share an estimate.
    """
    estimates = estimates or {}
    attached = []
    for row in rows:
        estimate = estimates.get(row.key)
        if estimate is None:
            attached.append(row.model_copy(update={
                "saving_estimate": None,
                "saving_status": SavingStatus.ANALYSING,
            }))
        else:
            attached.append(row.model_copy(update={
                "saving_estimate": estimate,
                "saving_status": SavingStatus.AVAILABLE,
            }))
    return attached


def build_category_breakdown(
    classified: Union[ClassificationResult, Iterable[ClassifiedEntry]],
    limit: int = 3,
    estimates: Optional[dict[EstimateKey, SavingEstimate]] = None,
    show_all: bool = False,
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> list[Category]:
    """Top `limit` spending categories, or all of them when show_all is set."""
    rows = rank_categories(classified, rule)
    if not show_all:
        rows = rows[:limit]
    return attach_saving_estimates(rows, estimates)
