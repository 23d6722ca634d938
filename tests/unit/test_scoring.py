"""
Unit tests for the pillar scoring engine.

Histories are built with exact figures so each pillar formula can be
checked against hand-computed values.
"""

import math
from datetime import date

import pytest

from twinscore.engine.scoring import (
    calculate_all_scores,
    calculate_debt_trajectory,
    calculate_financial_resilience,
    calculate_growth_momentum,
    calculate_income_stability,
    calculate_overall_score,
    calculate_spending_discipline,
    monthly_dti,
)
from twinscore.errors import MonthSequenceError
from twinscore.models.enums import Pillar
from twinscore.models.scores import PILLAR_WEIGHTS, PillarScores
from tests.conftest import make_history, make_month, make_transaction


class TestWeights:
    def test_weights_sum_to_one(self):
        assert math.fsum(PILLAR_WEIGHTS.values()) == pytest.approx(1.0)

    def test_every_pillar_weighted(self):
        assert set(PILLAR_WEIGHTS) == set(Pillar)


class TestEmptyHistory:
    @pytest.mark.parametrize(
        "scorer",
        [
            calculate_income_stability,
            calculate_spending_discipline,
            calculate_debt_trajectory,
            calculate_financial_resilience,
        ],
    )
    def test_pillar_empty_is_zero(self, scorer):
        assert scorer([]) == 0.0

    def test_growth_empty_is_zero(self):
        assert calculate_growth_momentum([], []) == 0.0

    def test_all_scores_empty_is_zero(self):
        assert calculate_all_scores([], []) == PillarScores()


class TestIncomeStability:
    def test_income_stability_formula(self):
        months = make_history(
            2,
            total_deposits=[4000, 6000],
            income_source_count=1,
            has_payroll_deposit=[True, False],
        )
        # CV 0.2 -> 80, one source -> +5, payroll in 50% of months -> no bonus
        assert calculate_income_stability(months) == pytest.approx(85.0)

    def test_income_stability_flat_single_source(self):
        months = make_history(
            4, total_deposits=3000, income_source_count=1, has_payroll_deposit=False
        )
        # CV 0 -> 100, one source -> +5, clamped
        assert calculate_income_stability(months) == 100.0

    def test_income_stability_clamped_to_100(self, steady_months):
        # 100 + 10 (two sources) + 15 (payroll) clamps to 100
        assert calculate_income_stability(steady_months) == 100.0

    def test_income_stability_zero_income_floors_at_zero(self):
        months = make_history(
            3, total_deposits=0, income_source_count=0, has_payroll_deposit=False
        )
        assert calculate_income_stability(months) == 0.0


class TestSpendingDiscipline:
    def test_spending_discipline_essential_share(self):
        months = make_history(
            2, total_spending=1000, savings_transfers=0, subscription_count=3
        )
        # 60% essential * 60 = 36
        assert calculate_spending_discipline(months) == pytest.approx(36.0)

    def test_spending_discipline_savings_bonus(self):
        months = make_history(2, total_spending=1000, savings_transfers=[0, 50])
        assert calculate_spending_discipline(months) == pytest.approx(56.0)

    def test_spending_discipline_overdraft_penalty(self):
        months = make_history(
            2, total_spending=1000, savings_transfers=0, end_balance=[-100, 500]
        )
        assert calculate_spending_discipline(months) == pytest.approx(31.0)

    def test_spending_discipline_subscription_penalty(self):
        months = make_history(
            2, total_spending=1000, savings_transfers=0, subscription_count=10
        )
        # two subscriptions over the allowance cost 2 points each
        assert calculate_spending_discipline(months) == pytest.approx(32.0)

    def test_spending_discipline_improving_trend_bonus(self):
        months = make_history(
            4,
            total_spending=1000,
            essential_spending=[400, 400, 600, 600],
            savings_transfers=0,
        )
        # 50% essential overall -> 30, later half better -> +10
        assert calculate_spending_discipline(months) == pytest.approx(40.0)

    def test_spending_discipline_no_trend_bonus_under_four_months(self):
        months = make_history(
            2, total_spending=1000, essential_spending=[400, 600], savings_transfers=0
        )
        assert calculate_spending_discipline(months) == pytest.approx(30.0)


class TestDebtTrajectory:
    def test_monthly_dti_zero_income_is_one(self):
        assert monthly_dti([make_month(total_deposits=0, debt_payments=0)]) == [1.0]

    def test_debt_trajectory_flat(self):
        months = make_history(4, total_deposits=5000, debt_payments=1000)
        assert calculate_debt_trajectory(months) == pytest.approx(80.0)

    def test_debt_trajectory_rising_penalised(self):
        months = make_history(4, total_deposits=5000, debt_payments=[500, 1000, 1500, 2000])
        # avg DTI 0.25 -> 75, rising -> -20
        assert calculate_debt_trajectory(months) == pytest.approx(55.0)

    def test_debt_trajectory_falling_rewarded(self):
        months = make_history(4, total_deposits=5000, debt_payments=[2000, 1500, 1000, 500])
        assert calculate_debt_trajectory(months) == pytest.approx(95.0)

    def test_debt_trajectory_high_dti_penalty(self):
        months = make_history(4, total_deposits=5000, debt_payments=2500)
        # avg DTI 0.5 -> 50, above 43% -> -15
        assert calculate_debt_trajectory(months) == pytest.approx(35.0)


class TestFinancialResilience:
    def test_resilience_full_coverage(self):
        months = make_history(3, total_spending=2000, end_balance=6000)
        # 3 months coverage -> 60, buffer 20, consistency 10
        assert calculate_financial_resilience(months) == pytest.approx(90.0)

    def test_resilience_recovery_bonus(self):
        months = make_history(3, total_spending=[1000, 3000, 1000], end_balance=6000)
        assert calculate_financial_resilience(months) == pytest.approx(100.0)

    def test_resilience_negative_balance(self):
        months = make_history(2, total_spending=1000, end_balance=[-500, 1000])
        assert calculate_financial_resilience(months) == 0.0


class TestGrowthMomentum:
    def test_growth_savings_rate(self):
        months = make_history(3, total_deposits=5000, total_spending=4000)
        # 20% savings rate -> 12
        assert calculate_growth_momentum(months, []) == pytest.approx(12.0)

    def test_growth_investment_bonus(self):
        months = make_history(3, total_deposits=5000, total_spending=4000)
        transactions = [
            make_transaction(-500.0, date(2024, 1, 5), merchant_name="Vanguard",
                             category="investment")
        ]
        assert calculate_growth_momentum(months, transactions) == pytest.approx(27.0)

    def test_growth_income_growth_bonus_capped(self):
        months = make_history(3, total_deposits=[4000, 5000, 6000], total_spending=4000)
        # savings rate 0.2 -> 12, normalized growth 0.2 -> capped at 20
        assert calculate_growth_momentum(months, []) == pytest.approx(32.0)

    def test_growth_negative_savings_rate_floors(self):
        months = make_history(3, total_deposits=1000, total_spending=2000)
        assert calculate_growth_momentum(months, []) == 0.0


class TestOverallScore:
    def test_overall_weighted_sum(self):
        pillars = {
            Pillar.INCOME_STABILITY: 80.0,
            Pillar.SPENDING_DISCIPLINE: 60.0,
            Pillar.DEBT_TRAJECTORY: 40.0,
            Pillar.FINANCIAL_RESILIENCE: 20.0,
            Pillar.GROWTH_MOMENTUM: 0.0,
        }
        assert calculate_overall_score(pillars) == pytest.approx(44.0)

    def test_overall_all_max(self):
        assert calculate_overall_score({p: 100.0 for p in Pillar}) == pytest.approx(100.0)

    def test_all_scores_overall_matches_pillars(self, steady_months):
        scores = calculate_all_scores(steady_months, [])
        expected = sum(scores.pillar(p) * w for p, w in PILLAR_WEIGHTS.items())
        assert scores.overall == pytest.approx(expected, abs=0.01)

    def test_all_scores_order_independent(self, steady_months):
        shuffled = list(reversed(steady_months))
        assert calculate_all_scores(shuffled, []) == calculate_all_scores(steady_months, [])

    def test_all_scores_duplicate_months_rejected(self):
        with pytest.raises(MonthSequenceError):
            calculate_all_scores([make_month("2024-01"), make_month("2024-01")], [])

    def test_all_scores_deterministic(self, steady_months):
        assert calculate_all_scores(steady_months, []) == calculate_all_scores(steady_months, [])
