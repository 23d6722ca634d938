"""
Forward Simulator ("time machine").

Projects the user's finances N months ahead under a combination of
ScenarioModifiers, then re-scores the synthetic months with the full pillar
scoring engine so projected scores are genuinely recomputed.

Projection per month i (1-based):
- income: (avg + slope*i) * (1 + pct/100), scaled by (s-1)/s when an income
  stream is lost and s > 1 sources, floored at 0
- spending: avg + expense change - extra savings - cancelled subscriptions
  * per-subscription cost, plus the one-time expense in month 1, floored at 0
- balance: carried on from the latest historical balance

Example usage:
    >>> result = simulate_forward(months, transactions, [PRESET_SCENARIOS[1]])
    >>> result.delta(Pillar.FINANCIAL_RESILIENCE)
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from twinscore.config import Settings, get_settings
from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.scoring import calculate_all_scores
from twinscore.engine.simulation.projection import (
    HistoricalProfile,
    shift_month,
    synthesize_month,
)
from twinscore.engine.stats import mean, round_half_up
from twinscore.models.enums import Pillar
from twinscore.models.scores import PillarScores
from twinscore.models.simulation import (
    ForwardMetrics,
    ForwardSimulationResult,
    ProjectedMonth,
    ScenarioModifier,
)
from twinscore.models.taxonomy import Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

SUBSCRIPTION_SHARE_OF_DISCRETIONARY = 0.15
DEFAULT_SUBSCRIPTION_COST = 12
DEBT_HORIZON_MONTHS = 36

# (minimum projected overall score, approval probability), highest first
LOAN_APPROVAL_TIERS = (
    (80, 0.92),
    (70, 0.78),
    (60, 0.55),
    (50, 0.35),
    (40, 0.18),
)
LOAN_APPROVAL_FLOOR = 0.05

PRESET_SCENARIOS: list[ScenarioModifier] = [
    ScenarioModifier(
        label="Keep Living Like This",
        description="Project your current habits forward with no changes.",
    ),
    ScenarioModifier(
        label="+$200/month to savings",
        description="Redirect $200 each month into savings instead of spending.",
        extra_monthly_savings=200,
        monthly_expense_change=-200,
    ),
    ScenarioModifier(
        label="Cancel Netflix + DoorDash",
        description="Drop unnecessary streaming and food delivery subscriptions.",
        monthly_expense_change=-45,
        subscriptions_cancelled=2,
    ),
    ScenarioModifier(
        label="Pay extra $300 toward debt",
        description="Accelerate debt payoff with an extra $300/month.",
        extra_monthly_debt_payment=300,
    ),
    ScenarioModifier(
        label="Lose one income stream",
        description="Simulate losing your smallest income source.",
        lose_income_stream=True,
    ),
    ScenarioModifier(
        label="Switch to salaried job",
        description="Replace volatile gig income with a steady paycheck.",
        switch_to_salaried=True,
    ),
    ScenarioModifier(
        label="Raise income 15%",
        description="Get a raise, new client, or side hustle boost.",
        income_change_percent=15,
    ),
    ScenarioModifier(
        label="Emergency expense $2,000",
        description="Hit with an unexpected $2,000 bill (medical, car, etc.).",
        one_time_expense=2000,
    ),
]


@dataclass(frozen=True)
class Projection:
    """
    Projected months plus the unrounded figures the metrics need.

    Attributes:
        months: Projected months, rounded to whole dollars
        final_balance: Unrounded balance after the last month
        overdraft_events: Months whose unrounded balance ended negative
        total_debt_paid: Debt payments summed over the horizon
    """

    months: list[ProjectedMonth]
    final_balance: float
    overdraft_events: int
    total_debt_paid: float


def loan_approval_probability(overall: float) -> float:
    for floor, probability in LOAN_APPROVAL_TIERS:
        if overall >= floor:
            return probability
    return LOAN_APPROVAL_FLOOR


def subscription_cost(profile: HistoricalProfile) -> float:
    """Estimated monthly cost of one subscription."""
    if profile.avg_subscriptions > 0:
        share = profile.avg_discretionary * SUBSCRIPTION_SHARE_OF_DISCRETIONARY
        return share / profile.avg_subscriptions
    return DEFAULT_SUBSCRIPTION_COST


class ForwardSimulator:
    """
    Multi-modifier forward projection with full re-scoring.

    Attributes:
        taxonomy: Category sets passed to the scoring engine
        settings: Supplies the default projection horizon
    """

    def __init__(
        self,
        taxonomy: Optional[Taxonomy] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.taxonomy = taxonomy
        self.logger = structlog.get_logger()

    def project_months(
        self,
        profile: HistoricalProfile,
        modifier: ScenarioModifier,
        months_forward: int,
    ) -> Projection:
        """Project the month sequence from the historical profile."""
        per_sub_cost = subscription_cost(profile) if modifier.subscriptions_cancelled > 0 else 0.0
        balance = profile.latest_balance
        overdraft_events = 0
        total_debt_paid = 0.0
        projected: list[ProjectedMonth] = []

        for i in range(1, months_forward + 1):
            income = profile.avg_income + profile.income_slope * i
            income *= 1 + modifier.income_change_percent / 100
            if modifier.lose_income_stream and profile.avg_sources > 1:
                income *= (profile.avg_sources - 1) / profile.avg_sources
            # switch_to_salaried keeps the amount; it only affects payroll presence
            income = max(0.0, income)

            spending = (
                profile.avg_spending
                + modifier.monthly_expense_change
                - modifier.extra_monthly_savings
                - modifier.subscriptions_cancelled * per_sub_cost
            )
            if i == 1:
                spending += modifier.one_time_expense
            spending = max(0.0, spending)

            debt = max(0.0, profile.avg_debt + modifier.extra_monthly_debt_payment)
            total_debt_paid += debt
            savings = max(0.0, profile.avg_savings + modifier.extra_monthly_savings)

            net_savings = income - spending
            balance += net_savings
            if balance < 0:
                overdraft_events += 1

            projected.append(
                ProjectedMonth(
                    month=shift_month(profile.last_month, i),
                    total_deposits=round_half_up(income),
                    total_spending=round_half_up(spending),
                    debt_payments=round_half_up(debt),
                    savings_transfers=round_half_up(savings),
                    end_balance=round_half_up(balance),
                    net_savings=round_half_up(net_savings),
                )
            )

        return Projection(
            months=projected,
            final_balance=balance,
            overdraft_events=overdraft_events,
            total_debt_paid=total_debt_paid,
        )

    def synthesize(
        self,
        profile: HistoricalProfile,
        modifier: ScenarioModifier,
        projected: Sequence[ProjectedMonth],
    ) -> list[MonthlyAggregate]:
        """Convert projected months into aggregates for the scoring engine."""
        sources = int(round_half_up(profile.avg_sources))
        if modifier.lose_income_stream:
            sources = max(1, sources - 1)
        subscriptions = int(
            round_half_up(max(0.0, profile.avg_subscriptions - modifier.subscriptions_cancelled))
        )
        has_payroll = modifier.switch_to_salaried or profile.has_payroll

        return [
            synthesize_month(
                month=pm.month,
                total_deposits=pm.total_deposits,
                total_spending=pm.total_spending,
                debt_payments=pm.debt_payments,
                savings_transfers=pm.savings_transfers,
                end_balance=pm.end_balance,
                essential_ratio=profile.essential_ratio,
                income_source_count=sources,
                subscription_count=subscriptions,
                has_payroll_deposit=has_payroll,
            )
            for pm in projected
        ]

    def simulate(
        self,
        months: Sequence[MonthlyAggregate],
        transactions: Sequence[EnrichedTransaction],
        modifiers: Sequence[ScenarioModifier],
        months_forward: Optional[int] = None,
    ) -> ForwardSimulationResult:
        """
        Project and re-score the future under the given modifiers.

        Args:
            months: Historical monthly aggregates
            transactions: Historical enriched transactions
            modifiers: Scenario modifiers, combined additively
            months_forward: Projection horizon (defaults to settings)

        Returns:
            ForwardSimulationResult; an all-zero result for an empty history

        Raises:
            ValueError: If months_forward is less than 1
        """
        if months_forward is None:
            months_forward = self.settings.forward_months_default
        if months_forward < 1:
            raise ValueError(f"months_forward must be at least 1, got {months_forward}")

        months = ensure_month_sequence(months)
        if not months:
            self.logger.info("forward_simulation_skipped", reason="empty_history")
            return ForwardSimulationResult()

        current_scores = calculate_all_scores(months, transactions, self.taxonomy)
        profile = HistoricalProfile.from_months(months)
        combined = ScenarioModifier.combine(list(modifiers))

        projection = self.project_months(profile, combined, months_forward)
        synthetic = self.synthesize(profile, combined, projection.months)
        projected_scores = calculate_all_scores(synthetic, transactions, self.taxonomy)

        score_deltas = {
            pillar.value: round_half_up(
                projected_scores.pillar(pillar) - current_scores.pillar(pillar), 1
            )
            for pillar in Pillar
        }
        score_deltas["overall"] = round_half_up(
            projected_scores.overall - current_scores.overall, 1
        )

        metrics = self.derive_metrics(profile, projection, projected_scores)

        self.logger.info(
            "forward_simulation_completed",
            months_forward=months_forward,
            modifiers=len(modifiers),
            current_overall=current_scores.overall,
            projected_overall=projected_scores.overall,
        )

        return ForwardSimulationResult(
            current_scores=current_scores,
            projected_scores=projected_scores,
            score_deltas=score_deltas,
            projected_months=projection.months,
            metrics=metrics,
            active_modifiers=[m.label for m in modifiers],
            months_projected=months_forward,
        )

    def derive_metrics(
        self,
        profile: HistoricalProfile,
        projection: Projection,
        projected_scores: PillarScores,
    ) -> ForwardMetrics:
        projected = projection.months
        final_balance = projection.final_balance
        avg_projected_expenses = mean([m.total_spending for m in projected])

        projected_runway = (
            max(0, math.floor(final_balance / avg_projected_expenses))
            if avg_projected_expenses > 0
            else 0
        )
        current_runway = (
            max(0, math.floor(profile.savings_cushion / profile.avg_spending))
            if profile.avg_spending > 0
            else 0
        )

        estimated_debt = profile.avg_debt * DEBT_HORIZON_MONTHS
        approval = loan_approval_probability(projected_scores.overall)

        return ForwardMetrics(
            current_net_worth=round_half_up(profile.latest_balance),
            projected_net_worth=round_half_up(final_balance),
            net_worth_change=round_half_up(final_balance - profile.latest_balance),
            current_emergency_runway=current_runway,
            projected_emergency_runway=projected_runway,
            loan_approval_probability=int(round_half_up(approval * 100)),
            overdraft_probability=int(
                round_half_up(projection.overdraft_events / len(projected) * 100)
            ),
            total_saved_or_lost=round_half_up(sum(m.net_savings for m in projected)),
            projected_debt_remaining=round_half_up(
                max(0.0, estimated_debt - projection.total_debt_paid)
            ),
        )


def simulate_forward(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    modifiers: Sequence[ScenarioModifier] = (),
    months_forward: Optional[int] = None,
    taxonomy: Optional[Taxonomy] = None,
) -> ForwardSimulationResult:
    """Run a forward simulation with default settings."""
    return ForwardSimulator(taxonomy=taxonomy).simulate(
        months, transactions, modifiers, months_forward
    )
