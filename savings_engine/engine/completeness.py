"""
Onboarding Completeness

A pure function of (has_income, has_spending). Nothing is stored, so a user
who deletes their entries drops back to the matching setup step.
"""

from savings_engine.models.dashboard import (
    MonthlyMetrics,
    NudgeKind,
    OnboardingState,
    OnboardingStatus,
)


INCOME_STEP = 0
SPENDING_STEP = 1

MISSING_INCOME_LABEL = "Monthly Income"
MISSING_SPENDING_LABEL = "Spending Categories"


def derive_onboarding_state(has_income: bool, has_spending: bool) -> OnboardingState:
    missing = []
    if not has_income:
        missing.append(MISSING_INCOME_LABEL)
    if not has_spending:
        missing.append(MISSING_SPENDING_LABEL)

    if has_income and has_spending:
        return OnboardingState(
            status=OnboardingStatus.COMPLETE,
            resume_step=None,
            missing_data=[],
            nudge=NudgeKind.SAVINGS_SUMMARY,
            completion_percentage=100,
        )

    if not has_income:
        status = OnboardingStatus.MISSING_INCOME if has_spending else OnboardingStatus.MISSING_BOTH
        step = INCOME_STEP
    else:
        status = OnboardingStatus.MISSING_SPENDING
        step = SPENDING_STEP

    return OnboardingState(
        status=status,
        resume_step=step,
        missing_data=missing,
        nudge=NudgeKind.SETUP_PROMPT,
        completion_percentage=50 if len(missing) == 1 else 0,
    )


def onboarding_state_for(metrics: MonthlyMetrics) -> OnboardingState:
    """Onboarding state for a set of monthly metrics."""
    return derive_onboarding_state(metrics.has_income, metrics.has_spending)
