"""
Dashboard Models

Everything the engine derives from a user's entries: monthly totals, the
savings projection, the onboarding state and the category breakdown.

DESIGN DECISION: Apart from PotentialSavingsRecord, nothing in this module
is stored. Metrics are recomputed on every read so they can never go stale.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from savings_engine.models.entry import EntryCategory


# =============================================================================
# ENUMS
# =============================================================================

class OnboardingStatus(str, Enum):
    """Which pieces of setup data are still missing."""
    MISSING_INCOME = "missing_income"
    MISSING_SPENDING = "missing_spending"
    MISSING_BOTH = "missing_both"
    COMPLETE = "complete"


class NudgeKind(str, Enum):
    """What the dashboard shows in the savings slot."""
    SETUP_PROMPT = "setup_prompt"          # ask for the missing data
    SAVINGS_SUMMARY = "savings_summary"    # render the SavingsProjection


class SavingStatus(str, Enum):
    """State of a category's saving estimate."""
    AVAILABLE = "available"
    ANALYSING = "analysing"


# Saving estimates are looked up by (category, lowercased label); the same
# label can appear once per category.
EstimateKey = tuple[EntryCategory, str]


def estimate_key(category: EntryCategory, label: str) -> EstimateKey:
    return (category, label.strip().lower())


# =============================================================================
# METRICS & SAVINGS
# =============================================================================

class MonthlyMetrics(BaseModel):
    """Monthly totals per category."""

    monthly_income: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_expenses: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_investments: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_loans: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def total_outflow(self) -> Decimal:
        """Expenses + investments + loans."""
        return self.monthly_expenses + self.monthly_investments + self.monthly_loans

    @property
    def has_income(self) -> bool:
        return self.monthly_income > 0

    @property
    def has_spending(self) -> bool:
        return self.total_outflow > 0


class PotentialSavingsRecord(BaseModel):
    """
    The persisted potential savings target for one user.

    Generated once, then returned unchanged until an explicit
    regeneration bumps the version.
    """

    user_id: str = Field(..., min_length=1)
    potential_savings_percent: Decimal
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = Field(default=1, ge=1)


class SavingsProjection(BaseModel):
    """
    Current savings rate plus the potential savings target.

    When has_no_data is True the potential figures are None: there is no
    income or no outflow to base them on.
    """

    current_savings: Decimal
    current_savings_percent: Decimal
    potential_savings_percent: Optional[Decimal] = None
    additional_savings_amount: Optional[Decimal] = None
    savings_percent_diff: Optional[Decimal] = None
    has_no_data: bool = False
    potential_generated: bool = Field(
        default=False,
        description="True when the potential percent was rolled during this computation"
    )


# =============================================================================
# ONBOARDING
# =============================================================================

class OnboardingState(BaseModel):
    """Which setup step to resume and which nudge to show."""

    status: OnboardingStatus
    resume_step: Optional[int] = Field(
        default=None,
        ge=0,
        description="Setup wizard step to open; None when complete"
    )
    missing_data: list[str] = Field(default_factory=list)
    nudge: NudgeKind
    completion_percentage: int = Field(default=0, ge=0, le=100)

    @property
    def is_complete(self) -> bool:
        return self.status is OnboardingStatus.COMPLETE


# =============================================================================
# CATEGORY BREAKDOWN
# =============================================================================

class SavingEstimate(BaseModel):
    """Per-category saving figure supplied by a recommendation source."""

    amount: Decimal = Field(..., ge=0, description="Monthly saving in INR")
    percentage: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Saving as a percentage of the category's spend"
    )
    source: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Which recommendation produced the figure"
    )


class Category(BaseModel):
    """One row of the top spending categories list."""

    label: str = Field(..., min_length=1)
    icon: str
    category: EntryCategory
    amount: Decimal = Field(..., ge=0)
    percentage: Decimal = Field(
        ...,
        ge=0,
        description="Share of total outflow"
    )
    saving_estimate: Optional[SavingEstimate] = None
    saving_status: SavingStatus = SavingStatus.ANALYSING

    @property
    def key(self) -> EstimateKey:
        return estimate_key(self.category, self.label)


# =============================================================================
# DASHBOARD
# =============================================================================

class SkippedEntry(BaseModel):
    """A malformed entry left out of the totals."""

    entry_id: str
    raw_name: str
    reasons: list[str] = Field(default_factory=list)


class Dashboard(BaseModel):
    """Everything the home screen needs, built in one pass."""

    user_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    metrics: MonthlyMetrics
    savings: SavingsProjection
    completeness: OnboardingState
    categories: list[Category] = Field(default_factory=list)
    total_categories: int = Field(
        default=0,
        ge=0,
        description="Rows available behind the 'view all' toggle"
    )
    skipped_entries: list[SkippedEntry] = Field(default_factory=list)

    @property
    def has_more_categories(self) -> bool:
        return self.total_categories > len(self.categories)
