"""
Stress Test Engine ("what-if" runway analysis).

Applies one shock (income reduction, expense increase and/or one-time
emergency expense) to the average month and reports how many months the
current balance lasts.

Adjusted scores come from one of two methods:
- RECOMPUTE (default): append synthetic months for the stress horizon to the
  history and re-run the pillar scoring engine, each pillar capped at its
  current value
- PREVIEW: direct formulaic penalties on the current scores, flagged as an
  approximation

Example usage:
    >>> result = run_stress_test(
    ...     scores, months, StressTestInput(scenario_id="income_50_cut"),
    ...     transactions=transactions,
    ... )
    >>> result.months_of_runway, result.impact_severity
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from twinscore.config import Settings, get_settings
from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.formatting import money
from twinscore.engine.scoring import calculate_all_scores, calculate_overall_score
from twinscore.engine.simulation.projection import (
    HistoricalProfile,
    shift_month,
    synthesize_month,
)
from twinscore.engine.stats import clamp, mean, round_half_up
from twinscore.errors import UnknownScenarioError
from twinscore.models.enums import ImpactSeverity, Pillar, ScoreMethod
from twinscore.models.scores import PILLAR_WEIGHTS, PillarScores
from twinscore.models.simulation import (
    RunwayBreakdown,
    StressScenario,
    StressTestInput,
    StressTestResult,
)
from twinscore.models.taxonomy import Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

UNLIMITED_RUNWAY = 999
JOB_LOSS_SCENARIO = "job_loss_6_months"
CUSTOM_SCENARIO = "custom"

BUILT_IN_SCENARIOS: list[StressScenario] = [
    StressScenario(
        id="lose_primary_income",
        label="Lose Primary Income Source",
        description="What if you lost your largest income source entirely?",
        income_reduction=0.65,
    ),
    StressScenario(
        id="income_50_cut",
        label="50% Income Reduction",
        description="What if your total income dropped by half?",
        income_reduction=0.5,
    ),
    StressScenario(
        id="income_25_cut",
        label="25% Income Reduction",
        description="What if your income decreased by 25%?",
        income_reduction=0.25,
    ),
    StressScenario(
        id="expense_spike_30",
        label="30% Expense Increase",
        description="What if your monthly expenses jumped 30% (inflation, rent hike, etc.)?",
        expense_increase=0.3,
    ),
    StressScenario(
        id="medical_emergency",
        label="Medical Emergency ($5,000)",
        description="What if you had a sudden $5,000 medical bill?",
        emergency_expense=5000,
    ),
    StressScenario(
        id="car_repair",
        label="Major Car Repair ($3,000)",
        description="What if you needed a $3,000 car repair?",
        emergency_expense=3000,
    ),
    StressScenario(
        id=JOB_LOSS_SCENARIO,
        label="Job Loss (6 months unemployed)",
        description="What if you lost your job and it took 6 months to find a new one?",
        income_reduction=1.0,
    ),
    StressScenario(
        id=CUSTOM_SCENARIO,
        label="Custom Scenario",
        description="Define your own income reduction, expense increase, or emergency expense.",
    ),
]

SCENARIOS_BY_ID: dict[str, StressScenario] = {s.id: s for s in BUILT_IN_SCENARIOS}


def resolve_scenario(stress_input: StressTestInput) -> StressScenario:
    """
    Look up the scenario a request refers to.

    The custom scenario takes its parameters from the request percentages.

    Raises:
        UnknownScenarioError: If the id is not a built-in scenario
    """
    scenario = SCENARIOS_BY_ID.get(stress_input.scenario_id)
    if scenario is None:
        logger.error("unknown_stress_scenario", scenario_id=stress_input.scenario_id)
        raise UnknownScenarioError(stress_input.scenario_id)

    if scenario.id == CUSTOM_SCENARIO:
        return scenario.model_copy(
            update={
                "income_reduction": stress_input.income_reduction_percent / 100,
                "expense_increase": stress_input.expense_increase_percent / 100,
                "emergency_expense": stress_input.emergency_expense,
            }
        )
    return scenario


@dataclass(frozen=True)
class RunwayEstimate:
    """Current and shocked monthly figures with the resulting runway."""

    avg_income: float
    avg_expenses: float
    simulated_income: float
    simulated_expenses: float
    effective_savings: float
    months_of_runway: int

    @property
    def current_surplus(self) -> float:
        return self.avg_income - self.avg_expenses

    @property
    def simulated_surplus(self) -> float:
        return self.simulated_income - self.simulated_expenses

    def breakdown(self) -> RunwayBreakdown:
        return RunwayBreakdown(
            current_monthly_income=round_half_up(self.avg_income),
            simulated_monthly_income=round_half_up(self.simulated_income),
            current_monthly_expenses=round_half_up(self.avg_expenses),
            simulated_monthly_expenses=round_half_up(self.simulated_expenses),
            current_monthly_surplus=round_half_up(self.current_surplus),
            simulated_monthly_surplus=round_half_up(self.simulated_surplus),
            estimated_savings=round_half_up(self.effective_savings),
        )


def estimate_runway(
    months: Sequence[MonthlyAggregate], scenario: StressScenario
) -> RunwayEstimate:
    """
    Months until savings run out under the scenario.

    A non-negative simulated surplus never exhausts savings and returns
    UNLIMITED_RUNWAY. Job loss is further capped by how long savings cover
    the full simulated expenses.
    """
    avg_income = mean([m.total_deposits for m in months])
    avg_expenses = mean([m.total_spending for m in months])
    latest_balance = months[-1].end_balance if months else 0.0

    simulated_income = avg_income * (1 - scenario.income_reduction)
    simulated_expenses = avg_expenses * (1 + scenario.expense_increase)
    simulated_surplus = simulated_income - simulated_expenses
    effective_savings = max(max(latest_balance, 0) - scenario.emergency_expense, 0)

    if simulated_surplus >= 0:
        runway = UNLIMITED_RUNWAY
    else:
        runway = max(0, math.floor(effective_savings / abs(simulated_surplus)))

    if scenario.id == JOB_LOSS_SCENARIO:
        if effective_savings <= 0:
            runway = 0
        elif simulated_expenses > 0:
            runway = min(runway, math.floor(effective_savings / simulated_expenses))

    return RunwayEstimate(
        avg_income=avg_income,
        avg_expenses=avg_expenses,
        simulated_income=simulated_income,
        simulated_expenses=simulated_expenses,
        effective_savings=effective_savings,
        months_of_runway=runway,
    )


def impact_severity_for(runway: int) -> ImpactSeverity:
    if runway >= 6:
        return ImpactSeverity.LOW
    if runway >= 3:
        return ImpactSeverity.MODERATE
    if runway >= 1:
        return ImpactSeverity.HIGH
    return ImpactSeverity.CRITICAL


def build_stress_months(
    profile: HistoricalProfile, scenario: StressScenario, horizon: int
) -> list[MonthlyAggregate]:
    """
    Synthetic months living under the scenario for the whole horizon.

    Income and spending are held flat at the shocked averages, the emergency
    expense lands in the first month and the balance carries on from the
    latest historical balance.
    """
    income = max(0.0, profile.avg_income * (1 - scenario.income_reduction))
    spending = profile.avg_spending * (1 + scenario.expense_increase)
    has_income = round_half_up(income) > 0
    sources = int(round_half_up(profile.avg_sources)) if has_income else 0

    balance = profile.latest_balance
    synthetic = []
    for i in range(1, horizon + 1):
        month_spending = spending + (scenario.emergency_expense if i == 1 else 0)
        balance += income - month_spending
        synthetic.append(
            synthesize_month(
                month=shift_month(profile.last_month, i),
                total_deposits=round_half_up(income),
                total_spending=round_half_up(month_spending),
                debt_payments=round_half_up(profile.avg_debt),
                savings_transfers=round_half_up(profile.avg_savings),
                end_balance=round_half_up(balance),
                essential_ratio=profile.essential_ratio,
                income_source_count=sources,
                subscription_count=int(round_half_up(profile.avg_subscriptions)),
                has_payroll_deposit=profile.has_payroll and has_income,
            )
        )
    return synthetic


def recompute_scores(
    current: PillarScores,
    months: Sequence[MonthlyAggregate],
    stress_months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction] = (),
    taxonomy: Optional[Taxonomy] = None,
) -> PillarScores:
    """
    Re-score the history followed by the stress months.

    Historical volatility and trends stay in the scored window. Each pillar
    is capped at its current value and the overall is recombined from the
    capped pillars.
    """
    stressed = calculate_all_scores([*months, *stress_months], transactions, taxonomy)
    pillars = {
        pillar: min(current.pillar(pillar), stressed.pillar(pillar)) for pillar in Pillar
    }
    return PillarScores(
        **{p.value: v for p, v in pillars.items()},
        overall=calculate_overall_score(pillars),
    )


def _adjusted_resilience(base: float, runway: int, scenario: StressScenario) -> float:
    adjusted = base
    if runway < 1:
        adjusted -= 40
    elif runway < 3:
        adjusted -= 25
    elif runway < 6:
        adjusted -= 10

    if scenario.income_reduction >= 0.5:
        adjusted -= 15
    if scenario.emergency_expense > 0:
        adjusted -= min(scenario.emergency_expense / 500, 15)

    return clamp(round_half_up(adjusted), 0, 100)


def preview_scores(scores: PillarScores, scenario: StressScenario, runway: int) -> PillarScores:
    """Formulaic penalties on the current scores; no re-scoring."""
    if runway < 3:
        growth_penalty = 20
    elif runway < 6:
        growth_penalty = 10
    else:
        growth_penalty = 0

    pillars = {
        Pillar.INCOME_STABILITY: clamp(
            round_half_up(scores.income_stability * (1 - scenario.income_reduction * 0.8)), 0, 100
        ),
        Pillar.SPENDING_DISCIPLINE: clamp(
            round_half_up(scores.spending_discipline - scenario.expense_increase * 30), 0, 100
        ),
        Pillar.DEBT_TRAJECTORY: clamp(
            round_half_up(scores.debt_trajectory - (15 if scenario.income_reduction > 0.3 else 0)),
            0,
            100,
        ),
        Pillar.FINANCIAL_RESILIENCE: _adjusted_resilience(
            scores.financial_resilience, runway, scenario
        ),
        Pillar.GROWTH_MOMENTUM: clamp(
            round_half_up(scores.growth_momentum - growth_penalty), 0, 100
        ),
    }
    overall = clamp(
        round_half_up(sum(pillars[p] * weight for p, weight in PILLAR_WEIGHTS.items())), 0, 100
    )
    return PillarScores(**{p.value: v for p, v in pillars.items()}, overall=overall)


def generate_recommendations(
    runway: int,
    scenario: StressScenario,
    scores: PillarScores,
    avg_income: float,
    avg_expenses: float,
) -> list[str]:
    recommendations: list[str] = []

    if runway < 3:
        recommendations.append(
            "Build an emergency fund covering at least 3 months of expenses; this is "
            "your top priority."
        )

    if scenario.income_reduction > 0:
        if scores.income_stability < 60:
            recommendations.append(
                "Diversify your income streams. Relying on a single source makes you "
                "vulnerable to disruptions."
            )
        recommendations.append(
            "Identify non-essential expenses you could cut immediately if income "
            'dropped; have a "financial fire drill" plan.'
        )

    if scenario.expense_increase > 0:
        recommendations.append(
            "Review recurring subscriptions and discretionary spending for quick wins."
        )
        if avg_expenses > avg_income * 0.8:
            recommendations.append(
                "Your expense-to-income ratio is already tight. Even small spending "
                "increases could push you into deficit."
            )

    if scenario.emergency_expense > 0:
        if scores.financial_resilience < 50:
            recommendations.append(
                f"A {money(scenario.emergency_expense)} emergency would significantly "
                "impact your finances. Consider high-yield savings or a dedicated "
                "emergency fund."
            )
        recommendations.append(
            "Look into insurance options to protect against unexpected large expenses."
        )

    if 6 <= runway < 12:
        recommendations.append(
            "You have a reasonable buffer, but pushing it to 6-12 months would give you "
            "much more breathing room."
        )

    if runway >= 12:
        recommendations.append(
            "Your financial cushion is solid. Consider whether excess savings could be "
            "working harder in investments."
        )

    if not recommendations:
        recommendations.append(
            "Your current financial position handles this scenario well. Keep building "
            "your resilience."
        )

    return recommendations


class StressTester:
    """
    Runs single-scenario stress tests.

    Attributes:
        taxonomy: Category sets passed to the scoring engine on recompute
        settings: Supplies the stress horizon and runway display cap
    """

    def __init__(
        self,
        taxonomy: Optional[Taxonomy] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.taxonomy = taxonomy
        self.logger = structlog.get_logger()

    def run(
        self,
        scores: PillarScores,
        months: Sequence[MonthlyAggregate],
        stress_input: StressTestInput,
        transactions: Sequence[EnrichedTransaction] = (),
    ) -> StressTestResult:
        """
        Run one stress scenario.

        Args:
            scores: Current pillar scores of the history
            months: Historical monthly aggregates
            stress_input: Scenario request
            transactions: Enriched transactions, re-used when re-scoring

        Returns:
            StressTestResult

        Raises:
            UnknownScenarioError: If the scenario id is not built in
        """
        months = ensure_month_sequence(months)
        scenario = resolve_scenario(stress_input)
        estimate = estimate_runway(months, scenario)
        runway = estimate.months_of_runway

        if stress_input.method == ScoreMethod.PREVIEW:
            adjusted_scores = preview_scores(scores, scenario, runway)
        elif months:
            synthetic = build_stress_months(
                HistoricalProfile.from_months(months),
                scenario,
                self.settings.stress_horizon_months,
            )
            adjusted_scores = recompute_scores(
                scores, months, synthetic, transactions, self.taxonomy
            )
        else:
            adjusted_scores = PillarScores()

        result = StressTestResult(
            scenario_id=scenario.id,
            scenario_label=stress_input.custom_label or scenario.label,
            months_of_runway=min(runway, self.settings.runway_display_cap),
            adjusted_resilience=adjusted_scores.financial_resilience,
            impact_severity=impact_severity_for(runway),
            adjusted_scores=adjusted_scores,
            breakdown=estimate.breakdown(),
            recommendations=generate_recommendations(
                runway, scenario, scores, estimate.avg_income, estimate.avg_expenses
            ),
            method=stress_input.method,
            is_approximation=stress_input.method == ScoreMethod.PREVIEW,
        )

        self.logger.info(
            "stress_test_completed",
            scenario_id=scenario.id,
            method=stress_input.method.value,
            months_of_runway=result.months_of_runway,
            impact_severity=result.impact_severity.value,
            adjusted_overall=adjusted_scores.overall,
        )
        return result


def run_stress_test(
    scores: PillarScores,
    months: Sequence[MonthlyAggregate],
    stress_input: StressTestInput,
    transactions: Sequence[EnrichedTransaction] = (),
    taxonomy: Optional[Taxonomy] = None,
) -> StressTestResult:
    """Run one stress scenario with default settings."""
    return StressTester(taxonomy=taxonomy).run(scores, months, stress_input, transactions)
