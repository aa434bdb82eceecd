"""
Aggregator

Sums classified entries into MonthlyMetrics. Malformed entries never count.

Annual entries follow one configured rule (ENGINE_ANNUAL_FREQUENCY_RULE):
kept as entered, or divided by 12.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from savings_engine.config import FrequencyRule
from savings_engine.models.dashboard import MonthlyMetrics
from savings_engine.models.entry import (
    ClassificationResult,
    ClassifiedEntry,
    EntryCategory,
    Frequency,
)


MONTHS_PER_YEAR = Decimal("12")
CENT = Decimal("0.01")


def to_monthly(
    amount: Decimal,
    frequency: Frequency,
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> Decimal:
    """Bring an amount to its monthly figure under `rule`."""
    if frequency is Frequency.ANNUAL and rule is FrequencyRule.DIVIDE_BY_12:
        return (amount / MONTHS_PER_YEAR).quantize(CENT, rounding=ROUND_HALF_UP)
    return amount


def effective_amount(
    classified: ClassifiedEntry,
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> Decimal:
    """Monthly amount an entry contributes to totals (0 when malformed)."""
    return to_monthly(classified.amount, classified.frequency, rule)


def counted_entries(
    classified: Union[ClassificationResult, Iterable[ClassifiedEntry]],
) -> list[ClassifiedEntry]:
    """The well-formed entries of a result or a plain list."""
    items = classified.entries if isinstance(classified, ClassificationResult) else classified
    return [item for item in items if not item.is_malformed]


def aggregate(
    classified: Union[ClassificationResult, Iterable[ClassifiedEntry]],
    rule: FrequencyRule = FrequencyRule.AS_ENTERED,
) -> MonthlyMetrics:
    """Monthly totals per category."""
    totals = {category: Decimal("0") for category in EntryCategory}
    for item in counted_entries(classified):
        totals[item.category] += effective_amount(item, rule)

    return MonthlyMetrics(
        monthly_income=totals[EntryCategory.INCOME],
        monthly_expenses=totals[EntryCategory.EXPENSE],
        monthly_investments=totals[EntryCategory.INVESTMENT],
        monthly_loans=totals[EntryCategory.LOAN],
    )
