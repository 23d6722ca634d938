"""
Pillar scoring engine.

Five independent scorers turn the monthly aggregate sequence into bounded
0-100 scores, and a fixed-weight combiner folds them into the overall
score. Every scorer returns 0 for an empty sequence and clamps its result.

Pillars:
- Income Stability: low variation, several sources, regular payroll
- Spending Discipline: essential share, savings habit, few overdrafts
- Debt Trajectory: low and falling debt-to-income
- Financial Resilience: cash coverage, positive buffer, recovery, stability
- Growth Momentum: savings rate, income growth, investment activity
"""

from typing import Optional, Sequence

import structlog

from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.stats import (
    clamp,
    coefficient_of_variation,
    linear_regression_slope,
    mean,
    round_half_up,
    safe_ratio,
    standard_deviation,
)
from twinscore.models.enums import Pillar
from twinscore.models.scores import PILLAR_WEIGHTS, PillarScores
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

# Income stability
SOURCE_BONUS_PER_SOURCE = 5
SOURCE_BONUS_CAP = 20
PAYROLL_FRACTION_THRESHOLD = 0.75
PAYROLL_BONUS = 15
ZERO_INCOME_PENALTY = 8

# Spending discipline
ESSENTIAL_RATIO_WEIGHT = 60
SAVINGS_BONUS = 20
OVERDRAFT_PENALTY = 5
SUBSCRIPTION_ALLOWANCE = 8
SUBSCRIPTION_PENALTY = 2
DISCIPLINE_TREND_BONUS = 10
TREND_MIN_MONTHS = 4

# Debt trajectory
DTI_SLOPE_TOLERANCE = 0.001
DTI_TREND_BONUS = 20
HIGH_DTI_THRESHOLD = 0.43
HIGH_DTI_PENALTY = 15

# Financial resilience
COVERAGE_POINTS_PER_MONTH = 20
COVERAGE_CAP = 60
BUFFER_BONUS = 20
HIGH_SPEND_MULTIPLIER = 1.2
RECOVERY_BONUS = 10
CONSISTENCY_WEIGHT = 10

# Growth momentum
SAVINGS_RATE_WEIGHT = 60
GROWTH_BONUS_CAP = 20
INVESTMENT_BONUS = 15


def monthly_dti(months: Sequence[MonthlyAggregate]) -> list[float]:
    """Debt payments over deposits per month; 1.0 for a month with no income."""
    return [safe_ratio(m.debt_payments, m.total_deposits, default=1.0) for m in months]


def essential_ratio(month: MonthlyAggregate) -> float:
    return safe_ratio(month.essential_spending, month.total_spending)


def discipline_improving(months: Sequence[MonthlyAggregate]) -> bool:
    """True when the later half's essential ratio beats the earlier half's."""
    if len(months) < TREND_MIN_MONTHS:
        return False
    mid = len(months) // 2
    first = mean([essential_ratio(m) for m in months[:mid]])
    second = mean([essential_ratio(m) for m in months[mid:]])
    return second > first


def has_recovery(months: Sequence[MonthlyAggregate]) -> bool:
    """True when a high-spend month is immediately followed by a below-average one."""
    avg = mean([m.total_spending for m in months])
    return any(
        current.total_spending > avg * HIGH_SPEND_MULTIPLIER
        and following.total_spending < avg
        for current, following in zip(months, months[1:])
    )


def balance_consistency(months: Sequence[MonthlyAggregate]) -> float:
    balances = [m.end_balance for m in months]
    balance_mean = mean(balances)
    if balance_mean == 0:
        return 0.0
    return clamp(1 - standard_deviation(balances) / abs(balance_mean), 0, 1)


def months_of_coverage(months: Sequence[MonthlyAggregate]) -> float:
    """Lowest end balance (floored at zero) over average monthly spending."""
    if not months:
        return 0.0
    avg_expenses = mean([m.total_spending for m in months])
    min_balance = min(m.end_balance for m in months)
    return safe_ratio(max(min_balance, 0), avg_expenses)


def has_investment_activity(
    transactions: Sequence[EnrichedTransaction], taxonomy: Taxonomy
) -> bool:
    return any(taxonomy.is_investment(tx.category) for tx in transactions)


def calculate_income_stability(months: Sequence[MonthlyAggregate]) -> float:
    """
    Score consistency and diversity of income.

    100 - CV*100, plus up to 20 points for income sources, 15 points when
    at least 75% of months carry a payroll deposit, minus 8 per month with
    no income. CV is 1 when mean income is zero.
    """
    if not months:
        return 0.0

    deposits = [m.total_deposits for m in months]
    base = 100 - coefficient_of_variation(deposits) * 100

    avg_sources = mean([m.income_source_count for m in months])
    source_bonus = min(avg_sources * SOURCE_BONUS_PER_SOURCE, SOURCE_BONUS_CAP)

    payroll_fraction = sum(1 for m in months if m.has_payroll_deposit) / len(months)
    regularity_bonus = PAYROLL_BONUS if payroll_fraction >= PAYROLL_FRACTION_THRESHOLD else 0

    zero_penalty = sum(1 for d in deposits if d == 0) * ZERO_INCOME_PENALTY

    return clamp(base + source_bonus + regularity_bonus - zero_penalty, 0, 100)


def calculate_spending_discipline(months: Sequence[MonthlyAggregate]) -> float:
    """
    Score spending discipline.

    Essential share of total spending earns up to 60 points; any savings
    transfer adds 20; each overdraft-flagged month costs 5; each average
    subscription beyond 8 costs 2; an improving essential ratio between the
    two halves of a 4+ month history adds 10.
    """
    if not months:
        return 0.0

    total_essential = sum(m.essential_spending for m in months)
    total_spending = sum(m.total_spending for m in months)
    base = safe_ratio(total_essential, total_spending) * ESSENTIAL_RATIO_WEIGHT

    savings_bonus = SAVINGS_BONUS if any(m.savings_transfers > 0 for m in months) else 0
    overdraft_penalty = sum(m.overdraft_count for m in months) * OVERDRAFT_PENALTY

    avg_subscriptions = mean([m.subscription_count for m in months])
    subscription_penalty = max(0, avg_subscriptions - SUBSCRIPTION_ALLOWANCE) * SUBSCRIPTION_PENALTY

    trend_bonus = DISCIPLINE_TREND_BONUS if discipline_improving(months) else 0

    return clamp(
        base + savings_bonus - overdraft_penalty - subscription_penalty + trend_bonus,
        0,
        100,
    )


def calculate_debt_trajectory(months: Sequence[MonthlyAggregate]) -> float:
    """
    Score debt-to-income level and direction.

    100 - avgDTI*100, +/-20 for a falling/rising DTI slope, and a further
    15 point penalty when average DTI exceeds 43%.
    """
    if not months:
        return 0.0

    dti = monthly_dti(months)
    avg_dti = mean(dti)
    base = 100 - avg_dti * 100

    slope = linear_regression_slope(dti)
    if slope < -DTI_SLOPE_TOLERANCE:
        trend = DTI_TREND_BONUS
    elif slope > DTI_SLOPE_TOLERANCE:
        trend = -DTI_TREND_BONUS
    else:
        trend = 0

    high_dti_penalty = HIGH_DTI_PENALTY if avg_dti > HIGH_DTI_THRESHOLD else 0

    return clamp(base + trend - high_dti_penalty, 0, 100)


def calculate_financial_resilience(months: Sequence[MonthlyAggregate]) -> float:
    """
    Score ability to absorb shocks.

    Coverage of the lowest balance earns 20 points per month of spending
    (capped at 60); a balance that stayed positive every month adds 20;
    a spending spike followed by a below-average month adds 10; balance
    consistency adds up to 10.
    """
    if not months:
        return 0.0

    coverage_score = min(months_of_coverage(months) * COVERAGE_POINTS_PER_MONTH, COVERAGE_CAP)
    buffer_bonus = BUFFER_BONUS if all(m.end_balance > 0 for m in months) else 0
    recovery_bonus = RECOVERY_BONUS if has_recovery(months) else 0
    consistency_bonus = balance_consistency(months) * CONSISTENCY_WEIGHT

    return clamp(coverage_score + buffer_bonus + recovery_bonus + consistency_bonus, 0, 100)


def calculate_growth_momentum(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> float:
    """
    Score forward momentum.

    Average savings rate earns up to 60 points, normalized income growth up
    to 20, and any investment-category transaction 15.
    """
    if not months:
        return 0.0
    taxonomy = taxonomy or DEFAULT_TAXONOMY

    deposits = [m.total_deposits for m in months]
    avg_deposits = mean(deposits)
    savings_rate = safe_ratio(mean([m.net_savings for m in months]), avg_deposits)
    savings_score = max(savings_rate, 0) * SAVINGS_RATE_WEIGHT

    normalized_growth = safe_ratio(linear_regression_slope(deposits), avg_deposits)
    growth_bonus = min(normalized_growth * 100, GROWTH_BONUS_CAP) if normalized_growth > 0 else 0

    investment_bonus = INVESTMENT_BONUS if has_investment_activity(transactions, taxonomy) else 0

    return clamp(savings_score + growth_bonus + investment_bonus, 0, 100)


def calculate_overall_score(pillars: dict[Pillar, float]) -> float:
    """
    Weighted combination of the five pillar scores.

    Args:
        pillars: Score per pillar

    Returns:
        Weighted sum rounded half-up to two decimals, clamped to [0, 100]
    """
    weighted = sum(pillars[pillar] * weight for pillar, weight in PILLAR_WEIGHTS.items())
    return clamp(round_half_up(weighted, 2), 0, 100)


def calculate_all_scores(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> PillarScores:
    """
    Compute all five pillars and the overall score.

    Args:
        months: Ascending monthly aggregates
        transactions: Raw enriched transactions (used by growth momentum)
        taxonomy: Category sets and keywords (defaults to DEFAULT_TAXONOMY)

    Returns:
        PillarScores

    Example:
        >>> scores = calculate_all_scores(months, transactions)
        >>> scores.overall
        71.45
    """
    months = ensure_month_sequence(months)
    pillars = {
        Pillar.INCOME_STABILITY: calculate_income_stability(months),
        Pillar.SPENDING_DISCIPLINE: calculate_spending_discipline(months),
        Pillar.DEBT_TRAJECTORY: calculate_debt_trajectory(months),
        Pillar.FINANCIAL_RESILIENCE: calculate_financial_resilience(months),
        Pillar.GROWTH_MOMENTUM: calculate_growth_momentum(months, transactions, taxonomy),
    }
    overall = calculate_overall_score(pillars)

    logger.debug(
        "scoring_completed",
        months=len(months),
        overall=overall,
    )

    return PillarScores(
        **{pillar.value: score for pillar, score in pillars.items()},
        overall=overall,
    )
