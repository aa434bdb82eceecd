"""
Savings Calculator

current_savings = income - outflow, not clamped; a negative figure means
the user spends more than they earn.

The potential savings percent is the current percent plus a random uplift
(1.0 to 10.0 points by default). It is rolled once per user and persisted;
after that the stored value is returned as-is. With no income or no
outflow there is nothing to project, so nothing is rolled.
"""

import random
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from savings_engine.models.dashboard import (
    MonthlyMetrics,
    PotentialSavingsRecord,
    SavingsProjection,
)


ONE_DECIMAL = Decimal("0.1")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round_percent(value: Decimal) -> Decimal:
    """Round to one decimal place, halves away from zero."""
    return value.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole as a percentage; 0 when whole is not positive."""
    if whole <= 0:
        return Decimal("0.0")
    return round_percent(part / whole * HUNDRED)


def generate_potential_percent(
    current_percent: Decimal,
    rng: Optional[random.Random] = None,
    uplift_min: float = 1.0,
    uplift_max: float = 10.0,
) -> Decimal:
    """Current percent plus a uniform uplift, rounded to one decimal."""
    uplift = (rng or random).uniform(uplift_min, uplift_max)
    return round_percent(current_percent + Decimal(str(uplift)))


def compute_savings(
    metrics: MonthlyMetrics,
    persisted: Optional[PotentialSavingsRecord] = None,
    rng: Optional[random.Random] = None,
    uplift_min: float = 1.0,
    uplift_max: float = 10.0,
) -> SavingsProjection:
    """
    Build the SavingsProjection for one set of monthly metrics.

    When `persisted` is None and there is data, a new potential percent is
    generated and `potential_generated` is set; the caller must store it.
    """
    income = metrics.monthly_income
    outflow = metrics.total_outflow
    current = income - outflow
    current_percent = percent_of(current, income)

    if income <= 0 or outflow <= 0:
        return SavingsProjection(
            current_savings=current,
            current_savings_percent=current_percent,
            has_no_data=True,
        )

    if persisted is None:
        potential = generate_potential_percent(current_percent, rng, uplift_min, uplift_max)
    else:
        potential = persisted.potential_savings_percent

    additional = (income * potential / HUNDRED - current).quantize(CENT, rounding=ROUND_HALF_UP)

    return SavingsProjection(
        current_savings=current,
        current_savings_percent=current_percent,
        potential_savings_percent=potential,
        additional_savings_amount=additional,
        savings_percent_diff=round_percent(potential - current_percent),
        potential_generated=persisted is None,
    )
