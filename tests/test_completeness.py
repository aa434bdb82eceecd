"""Tests for the onboarding completeness state."""

from decimal import Decimal

import pytest

from savings_engine.engine.completeness import derive_onboarding_state, onboarding_state_for
from savings_engine.models.dashboard import MonthlyMetrics, NudgeKind, OnboardingStatus


class TestDeriveOnboardingState:

    @pytest.mark.parametrize("has_income,has_spending,status,step,completion", [
        (False, False, OnboardingStatus.MISSING_BOTH, 0, 0),
        (False, True, OnboardingStatus.MISSING_INCOME, 0, 50),
        (True, False, OnboardingStatus.MISSING_SPENDING, 1, 50),
    ])
    def test_incomplete_states(self, has_income, has_spending, status, step, completion):
        """Each missing combination maps to a state, step and nudge."""
        state = derive_onboarding_state(has_income, has_spending)
        assert state.status == status
        assert state.resume_step == step
        assert state.completion_percentage == completion
        assert state.nudge == NudgeKind.SETUP_PROMPT
        assert state.is_complete is False

    def test_complete(self):
        """With both pieces the savings summary replaces the nudge."""
        state = derive_onboarding_state(True, True)
        assert state.status == OnboardingStatus.COMPLETE
        assert state.resume_step is None
        assert state.missing_data == []
        assert state.nudge == NudgeKind.SAVINGS_SUMMARY
        assert state.completion_percentage == 100

    def test_missing_data_labels(self):
        """Labels name what the user still has to enter."""
        state = derive_onboarding_state(False, False)
        assert state.missing_data == ["Monthly Income", "Spending Categories"]

    def test_regresses_when_spending_removed(self):
        """State follows the data; there is no memory of being complete."""
        complete = onboarding_state_for(
            MonthlyMetrics(monthly_income=Decimal("1"), monthly_expenses=Decimal("1"))
        )
        regressed = onboarding_state_for(MonthlyMetrics(monthly_income=Decimal("1")))
        assert complete.is_complete is True
        assert regressed.status == OnboardingStatus.MISSING_SPENDING

    def test_investments_count_as_spending(self):
        """Any outflow satisfies the spending step."""
        state = onboarding_state_for(
            MonthlyMetrics(monthly_income=Decimal("1"), monthly_investments=Decimal("1"))
        )
        assert state.is_complete is True
