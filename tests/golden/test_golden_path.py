"""
Golden Path (End-to-End) Tests for the twinscore analysis pipeline.

These tests run the complete TwinAnalyzer over fixed transaction histories
and validate every stage of the report: aggregation, patterns, scores,
findings, explanations and the on-demand what-if simulations.
"""

import pytest

from twinscore.engine.detection.red_flags import READINESS_VERDICTS
from twinscore.engine.pipeline import TwinAnalyzer, analyze_transactions
from twinscore.engine.scoring import calculate_all_scores
from twinscore.engine.simulation.forward import PRESET_SCENARIOS, simulate_forward
from twinscore.engine.simulation.stress_test import run_stress_test
from twinscore.engine.stats import round_half_up
from twinscore.models.enums import (
    AnomalySeverity,
    ImpactSeverity,
    Pillar,
    RiskLevel,
    ScoreMethod,
)
from twinscore.models.scores import PILLAR_WEIGHTS
from twinscore.models.simulation import StressTestInput
from tests.conftest import make_transaction_history

# Per month: 1400 rent + 120 utilities + 350 loan + 300 savings
# + 26.48 subscriptions + 320 groceries + 180 dining + 240 shopping
MONTHLY_SPENDING = 2936.48
MONTHLY_NET = 5000.0 - MONTHLY_SPENDING


# ============================================================================
# Scenario 1: Transactions -> Report
# ============================================================================


def test_golden_full_analysis_report():
    """
    Golden path: a six-month salaried history analysed end to end.

    Verifies:
    - Aggregates carry the exact monthly totals and running balance
    - Patterns pick out the employer as primary income
    - Scores are bounded and combine by the pillar weights
    - Every pillar is explained
    """
    transactions = make_transaction_history(6)
    report = TwinAnalyzer().analyze(transactions)

    assert report.transaction_count == 66
    assert [m.month for m in report.months] == [
        "2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06",
    ]

    january = report.months[0]
    assert january.total_deposits == pytest.approx(5000.0)
    assert january.total_spending == pytest.approx(MONTHLY_SPENDING)
    assert january.debt_payments == pytest.approx(350.0)
    assert january.savings_transfers == pytest.approx(300.0)
    assert january.income_source_count == 1
    assert january.subscription_count == 2
    assert january.has_payroll_deposit is True
    assert report.months[-1].end_balance == pytest.approx(6 * MONTHLY_NET)
    assert all(m.overdraft_count == 0 for m in report.months)

    assert report.patterns.primary_income_source == "Acme Corp"
    assert report.patterns.months_analysed == 6
    assert "Netflix" in report.patterns.recurring_charges
    assert report.patterns.unusual_spikes == []

    scores = report.scores
    for pillar in Pillar:
        assert 0.0 <= scores.pillar(pillar) <= 100.0
    weighted = sum(scores.pillar(p) * w for p, w in PILLAR_WEIGHTS.items())
    assert scores.overall == pytest.approx(weighted, abs=0.01)
    assert scores == calculate_all_scores(report.months, transactions)

    assert [e.pillar_key for e in report.explainability.pillars] == list(Pillar)
    assert all(e.reasons for e in report.explainability.pillars)


def test_golden_steady_history_findings():
    """
    Golden path: a flat salaried history with a fixed loan payment.

    Verifies:
    - Recurring outflows (rent, loan, savings, streaming) read as subscription bloat
    - Identical loan payments read as minimum-only payments
    - One employer reads as a single income source
    - The Navient payments are picked up as the student loan
    """
    report = analyze_transactions(make_transaction_history(6))

    (anomaly,) = report.anomalies.anomalies
    assert anomaly.title == "Subscription Bloat"
    assert anomaly.severity == AnomalySeverity.ALERT
    assert report.anomalies.health_score == 85

    flags = report.red_flags
    assert [f.id for f in flags.flags] == ["minimum_only_payments", "single_income"]
    assert (flags.red_count, flags.yellow_count, flags.green_count) == (1, 1, 0)
    assert flags.loan_readiness_verdict == READINESS_VERDICTS["concerns"]

    shield = report.loan_shield
    assert shield.debt_analysis.estimated_student_loan_payment == 350.0
    assert shield.debt_analysis.debt_to_income_ratio == pytest.approx(0.07)
    assert shield.risk_level == RiskLevel.LOW
    assert shield.runway_without_income == 4


def test_golden_analysis_is_deterministic():
    """
    Golden path: two runs over the same batch differ only in generated_at.
    """
    transactions = make_transaction_history(6, side_income=800.0)
    analyzer = TwinAnalyzer()

    first = analyzer.analyze(transactions).model_dump(exclude={"generated_at"})
    second = TwinAnalyzer().analyze(transactions).model_dump(exclude={"generated_at"})

    assert first == second


def test_golden_side_income_adds_source():
    report = analyze_transactions(make_transaction_history(3, side_income=800.0))

    assert all(m.income_source_count == 2 for m in report.months)
    assert report.months[0].total_deposits == pytest.approx(5800.0)
    assert report.patterns.primary_income_source == "Acme Corp"


def test_golden_empty_batch():
    report = TwinAnalyzer().analyze([])

    assert report.transaction_count == 0
    assert report.months == []
    assert report.patterns.primary_income_source == "Unknown"
    assert report.red_flags.flags == []
    assert report.anomalies.anomalies == []
    assert len(report.explainability.pillars) == len(Pillar)


# ============================================================================
# Scenario 2: Report -> Stress Test
# ============================================================================


def test_golden_stress_test_through_analyzer():
    """
    Golden path: the analyzer's stress test matches the standalone engine
    on the report's own months and scores.
    """
    transactions = make_transaction_history(6)
    analyzer = TwinAnalyzer()
    report = analyzer.analyze(transactions)
    stress_input = StressTestInput(scenario_id="job_loss_6_months")

    result = analyzer.stress_test(report, transactions, stress_input)
    expected = run_stress_test(report.scores, report.months, stress_input, transactions)

    assert result == expected
    assert result.method == ScoreMethod.RECOMPUTE
    assert result.is_approximation is False
    assert result.scenario_label
    assert result.recommendations
    # 12381 saved against 2936 of monthly spend
    assert result.months_of_runway == 4
    assert result.impact_severity == ImpactSeverity.MODERATE


def test_golden_stress_preview_is_approximation():
    transactions = make_transaction_history(6)
    analyzer = TwinAnalyzer()
    report = analyzer.analyze(transactions)

    result = analyzer.stress_test(
        report,
        transactions,
        StressTestInput(scenario_id="income_25_cut", method=ScoreMethod.PREVIEW),
    )

    assert result.is_approximation is True
    assert result.adjusted_scores.spending_discipline == round_half_up(
        report.scores.spending_discipline
    )


# ============================================================================
# Scenario 3: Report -> Forward Simulation
# ============================================================================


def test_golden_forward_simulation_through_analyzer():
    """
    Golden path: projecting the analysed months forward with a preset.
    """
    transactions = make_transaction_history(6)
    analyzer = TwinAnalyzer()
    report = analyzer.analyze(transactions)
    modifiers = [PRESET_SCENARIOS[0]]

    result = analyzer.simulate(report, transactions, modifiers)

    assert result == simulate_forward(report.months, transactions, modifiers)
    assert result.months_projected == 12
    assert result.projected_months[0].month == "2024-07"
    assert result.projected_months[-1].month == "2025-06"
    assert result.current_scores == report.scores
    assert result.metrics.projected_net_worth > result.metrics.current_net_worth


def test_golden_forward_horizon_from_environment(monkeypatch):
    monkeypatch.setenv("TWINSCORE_FORWARD_MONTHS_DEFAULT", "6")
    transactions = make_transaction_history(6)
    analyzer = TwinAnalyzer()
    report = analyzer.analyze(transactions)

    result = analyzer.simulate(report, transactions)

    assert result.months_projected == 6
