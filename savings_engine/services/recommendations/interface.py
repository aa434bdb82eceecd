"""
Recommendation Source Interface

Per-category saving estimates come from outside the engine (a
recommendation service, an advisor, a rules table). The dashboard only
passes them through; a category without an estimate shows as "analysing".

Estimates are keyed by (category, lowercased label). The breakdown can list
the same label under two categories ("Gold" as an expense and as an
investment), and each gets its own estimate.
"""

from abc import ABC, abstractmethod
from typing import Optional

from savings_engine.models.dashboard import (
    Category,
    EstimateKey,
    SavingEstimate,
    estimate_key,
)


class RecommendationError(Exception):
    """The recommendation source could not produce estimates."""
    pass


class RecommendationSourceInterface(ABC):
    """Anything that can suggest how much a user could save per category."""

    @abstractmethod
    async def get_category_savings(
        self,
        user_id: str,
        rows: list[Category],
    ) -> dict[EstimateKey, SavingEstimate]:
        """
        Return estimates keyed by each row's `Category.key`.

        Rows without an estimate are simply absent from the result.

        Raises:
            RecommendationError: If the source is unavailable
        """
        pass


class StaticRecommendationSource(RecommendationSourceInterface):
    """
    Estimates from a fixed table keyed by (category, label).

    Useful for demos and tests; also the shape a rules-based source takes.
    """

    def __init__(self, estimates: Optional[dict[EstimateKey, SavingEstimate]] = None):
        self._estimates = {
            estimate_key(category, label): estimate
            for (category, label), estimate in (estimates or {}).items()
        }

    async def get_category_savings(
        self,
        user_id: str,
        rows: list[Category],
    ) -> dict[EstimateKey, SavingEstimate]:
        return {
            row.key: self._estimates[row.key]
            for row in rows
            if row.key in self._estimates
        }
