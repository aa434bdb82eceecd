"""
Row-level checks shared by the validator and the classifier.

These never raise. They return human-readable reasons, empty when the
value is usable.
"""

from decimal import Decimal
from typing import Optional


UNPARSEABLE_AMOUNT = "amount could not be parsed"
NEGATIVE_AMOUNT = "amount is negative"


def amount_issues(amount: Optional[Decimal]) -> list[str]:
    """Reasons an amount cannot be counted towards totals."""
    if amount is None:
        return [UNPARSEABLE_AMOUNT]
    if amount < 0:
        return [NEGATIVE_AMOUNT]
    return []
