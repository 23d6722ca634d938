"""
Pillar explainability generator.

Restates each pillar's formula contributions as up to five plain-language
reasons and picks up to three transactions (or month markers) that moved
the score. Scores are explained, never recomputed: the caller passes the
PillarScores it already holds.
"""

from typing import Callable, Optional, Sequence

import structlog

from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.formatting import money, percent, plural
from twinscore.engine.scoring import (
    DISCIPLINE_TREND_BONUS,
    ESSENTIAL_RATIO_WEIGHT,
    GROWTH_BONUS_CAP,
    HIGH_DTI_THRESHOLD,
    SAVINGS_RATE_WEIGHT,
    SOURCE_BONUS_CAP,
    SOURCE_BONUS_PER_SOURCE,
    SUBSCRIPTION_ALLOWANCE,
    TREND_MIN_MONTHS,
    balance_consistency,
    discipline_improving,
    has_recovery,
    monthly_dti,
    months_of_coverage,
)
from twinscore.engine.stats import (
    coefficient_of_variation,
    linear_regression_slope,
    mean,
    round_half_up,
    safe_ratio,
)
from twinscore.models.enums import Impact, Pillar
from twinscore.models.explainability import (
    ExplainabilityReport,
    InfluentialTransaction,
    PillarExplanation,
)
from twinscore.models.scores import PILLAR_LABELS, PillarScores
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

MAX_REASONS = 5
MAX_INFLUENTIAL = 3


def _by_magnitude(transactions: Sequence[EnrichedTransaction]) -> list[EnrichedTransaction]:
    return sorted(transactions, key=lambda tx: -tx.magnitude)


def _influential(
    tx: EnrichedTransaction, fallback_name: str, impact: Impact, reason: str
) -> InfluentialTransaction:
    return InfluentialTransaction(
        date=tx.date.isoformat(),
        merchant_name=tx.merchant_name or fallback_name,
        amount=tx.amount,
        impact=impact,
        reason=reason,
    )


def _month_marker(
    month: str, label: str, amount: float, impact: Impact, reason: str
) -> InfluentialTransaction:
    return InfluentialTransaction(
        date=f"{month}-15",
        merchant_name=label,
        amount=amount,
        impact=impact,
        reason=reason,
    )


def _points(value: float) -> int:
    return int(round_half_up(value))


def explain_income_stability(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Taxonomy,
) -> tuple[list[str], list[InfluentialTransaction]]:
    reasons: list[str] = []
    deposits = [m.total_deposits for m in months]

    if months:
        cv = coefficient_of_variation(deposits)
        if cv < 0.15:
            reasons.append(
                f"Income is very consistent month-to-month ({percent(cv)}% variation); "
                "strong signal of stability."
            )
        elif cv < 0.35:
            reasons.append(
                f"Moderate income variation ({percent(cv)}%); some fluctuation but "
                "generally predictable."
            )
        else:
            reasons.append(
                f"High income volatility ({percent(cv)}% variation); deposits swing "
                "significantly month-to-month, which lowers this score."
            )

        avg_sources = mean([m.income_source_count for m in months])
        if avg_sources >= 2:
            bonus = min(_points(avg_sources * SOURCE_BONUS_PER_SOURCE), SOURCE_BONUS_CAP)
            reasons.append(
                f"Multiple income sources detected (avg {avg_sources:.1f}/month); "
                f"diversification adds a +{bonus}pt bonus."
            )
        else:
            reasons.append(
                f"Only {avg_sources:.1f} income source on average; limited diversification."
            )

        payroll_months = sum(1 for m in months if m.has_payroll_deposit)
        if payroll_months / len(months) >= 0.75:
            reasons.append(
                f"Regular payroll/salary deposits found in {payroll_months} of "
                f"{len(months)} months; earns a +15pt regularity bonus."
            )
        elif payroll_months > 0:
            reasons.append(
                f"Payroll deposits found in only {payroll_months} of {len(months)} "
                "months; not consistent enough for the regularity bonus."
            )
        else:
            reasons.append(
                "No regular payroll/salary deposits detected; income appears to come "
                "from non-traditional sources."
            )

        zero_months = sum(1 for d in deposits if d == 0)
        if zero_months > 0:
            reasons.append(
                f"{plural(zero_months, 'month')} with zero income detected; each costs -8pts."
            )

        avg_income = mean(deposits)
        if avg_income > 0:
            reasons.append(f"Average monthly income: {money(avg_income)}.")

    influential: list[InfluentialTransaction] = []
    income_deposits = _by_magnitude([tx for tx in transactions if tx.is_income_deposit])
    if income_deposits:
        largest = income_deposits[0]
        influential.append(
            _influential(
                largest,
                "Deposit",
                Impact.POSITIVE,
                f"Largest deposit ({money(largest.amount)}); anchors income stability.",
            )
        )

    recurring = next((tx for tx in income_deposits if tx.is_recurring), None)
    if recurring is not None:
        influential.append(
            _influential(
                recurring,
                "Recurring Deposit",
                Impact.POSITIVE,
                f"Recurring income deposit ({money(recurring.amount)}); regularity "
                "boosts the score.",
            )
        )

    zero_month = next((m for m in months if m.total_deposits == 0), None)
    if zero_month is not None:
        influential.append(
            _month_marker(
                zero_month.month,
                "No deposits",
                0,
                Impact.NEGATIVE,
                f"Zero income in {zero_month.month}; caused an 8-point penalty.",
            )
        )

    return reasons, influential


def explain_spending_discipline(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Taxonomy,
) -> tuple[list[str], list[InfluentialTransaction]]:
    reasons: list[str] = []

    if months:
        ratio = safe_ratio(
            sum(m.essential_spending for m in months), sum(m.total_spending for m in months)
        )
        reasons.append(
            f"{percent(ratio)}% of spending goes to essentials (rent, groceries, "
            f"utilities); this ratio drives {_points(ratio * ESSENTIAL_RATIO_WEIGHT)}/60 "
            "base points."
        )

        if any(m.savings_transfers > 0 for m in months):
            reasons.append("Savings transfers detected; earns a +20pt discipline bonus.")
        else:
            reasons.append("No savings transfers detected; missing a potential +20pt bonus.")

        overdrafts = sum(m.overdraft_count for m in months)
        if overdrafts > 0:
            reasons.append(f"{plural(overdrafts, 'overdraft')} recorded; each costs -5pts.")
        else:
            reasons.append("Zero overdrafts; clean spending history.")

        avg_subs = mean([m.subscription_count for m in months])
        if avg_subs > SUBSCRIPTION_ALLOWANCE:
            reasons.append(
                f"High subscription count (avg {avg_subs:.1f}/month); excess beyond 8 "
                "penalizes the score."
            )
        else:
            reasons.append(f"Subscription count is manageable (avg {avg_subs:.1f}/month).")

        if len(months) >= TREND_MIN_MONTHS:
            if discipline_improving(months):
                reasons.append(
                    "Spending discipline is improving over time; earns a "
                    f"+{DISCIPLINE_TREND_BONUS}pt trend bonus."
                )
            else:
                reasons.append(
                    "Spending discipline hasn't improved recently; no trend bonus applied."
                )

    influential: list[InfluentialTransaction] = []
    expenses = _by_magnitude([tx for tx in transactions if not tx.is_income_deposit])

    essential = next((tx for tx in expenses if taxonomy.is_essential(tx.category)), None)
    if essential is not None:
        influential.append(
            _influential(
                essential,
                "Essential",
                Impact.POSITIVE,
                f"{essential.merchant_name or 'Essential payment'} "
                f"({money(essential.amount)}); essential spending keeps the ratio healthy.",
            )
        )

    discretionary = next(
        (
            tx
            for tx in expenses
            if not taxonomy.is_essential(tx.category)
            and tx.category != taxonomy.savings_category
        ),
        None,
    )
    if discretionary is not None:
        influential.append(
            _influential(
                discretionary,
                "Discretionary",
                Impact.NEGATIVE,
                f"{discretionary.merchant_name or 'Discretionary spend'} "
                f"({money(discretionary.amount)}); largest non-essential charge, lowers "
                "the essential ratio.",
            )
        )

    savings = next(
        (
            tx
            for tx in transactions
            if tx.category == taxonomy.savings_category and not tx.is_income_deposit
        ),
        None,
    )
    if savings is not None:
        influential.append(
            _influential(
                savings,
                "Savings Transfer",
                Impact.POSITIVE,
                f"Savings transfer ({money(savings.amount)}); demonstrates active "
                "saving behavior.",
            )
        )

    return reasons, influential


def _dti_band(avg_dti: float) -> str:
    if avg_dti < 0.2:
        return "very healthy"
    if avg_dti < 0.35:
        return "moderate"
    if avg_dti < HIGH_DTI_THRESHOLD:
        return "elevated"
    return "high, triggering a -15pt penalty"


def explain_debt_trajectory(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Taxonomy,
) -> tuple[list[str], list[InfluentialTransaction]]:
    reasons: list[str] = []
    dti = monthly_dti(months)
    avg_dti = mean(dti)

    if months:
        reasons.append(
            f"Average debt-to-income ratio: {percent(avg_dti, 1)}%; {_dti_band(avg_dti)}."
        )

        slope = linear_regression_slope(dti)
        if slope < -0.001:
            reasons.append(
                "DTI is trending downward over time; debt burden is reducing, earning a "
                "+20pt bonus."
            )
        elif slope > 0.001:
            reasons.append(
                "DTI is trending upward; debt is growing relative to income, costing -20pts."
            )
        else:
            reasons.append(
                "DTI is stable over the analysis period; no trend bonus or penalty applied."
            )

        if avg_dti > HIGH_DTI_THRESHOLD:
            reasons.append(
                "DTI exceeds 43% threshold; triggers an additional -15pt high-DTI penalty "
                "(a key lender red flag)."
            )

        avg_debt = mean([m.debt_payments for m in months])
        avg_income = mean([m.total_deposits for m in months])
        reasons.append(
            f"Average monthly debt payments: {money(avg_debt)} on {money(avg_income)} income."
        )

    influential: list[InfluentialTransaction] = []
    debt_payments = _by_magnitude(
        [
            tx
            for tx in transactions
            if tx.category == taxonomy.debt_category and not tx.is_income_deposit
        ]
    )
    manageable = avg_dti < 0.35
    if debt_payments:
        largest = debt_payments[0]
        influential.append(
            _influential(
                largest,
                "Debt Payment",
                Impact.POSITIVE if manageable else Impact.NEGATIVE,
                f"Largest debt payment: {largest.merchant_name or 'Creditor'} "
                f"({money(largest.amount)}); "
                f"{'manageable portion of income' if manageable else 'significant share of income'}.",
            )
        )

        recurring = next((tx for tx in debt_payments if tx.is_recurring), None)
        if recurring is not None and recurring is not largest:
            influential.append(
                _influential(
                    recurring,
                    "Auto-pay",
                    Impact.POSITIVE,
                    f"Recurring debt auto-pay ({money(recurring.amount)}); consistent "
                    "payments signal responsible management.",
                )
            )

    if len(months) >= 2:
        first_dti, last_dti = dti[0], dti[-1]
        last_month = months[-1].month
        if last_dti < first_dti:
            influential.append(
                _month_marker(
                    last_month,
                    "DTI Improvement",
                    0,
                    Impact.POSITIVE,
                    f"DTI improved from {percent(first_dti, 1)}% to {percent(last_dti, 1)}% "
                    "over the analysis period.",
                )
            )
        elif last_dti > first_dti * 1.1:
            influential.append(
                _month_marker(
                    last_month,
                    "DTI Increase",
                    0,
                    Impact.NEGATIVE,
                    f"DTI rose from {percent(first_dti, 1)}% to {percent(last_dti, 1)}%; "
                    "debt growing faster than income.",
                )
            )

    return reasons, influential


def explain_financial_resilience(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Taxonomy,
) -> tuple[list[str], list[InfluentialTransaction]]:
    reasons: list[str] = []

    if months:
        coverage = months_of_coverage(months)
        if coverage >= 3:
            reasons.append(
                f"Lowest balance covers {coverage:.1f} months of expenses; strong safety "
                f"net (earns {_points(min(coverage * 20, 60))}/60 coverage points)."
            )
        elif coverage >= 1:
            reasons.append(
                f"Lowest balance covers only {coverage:.1f} months of expenses; limited "
                f"cushion ({_points(coverage * 20)}/60 coverage points)."
            )
        else:
            reasons.append(
                "Lowest balance provides less than 1 month of expense coverage; very thin "
                "safety net."
            )

        if all(m.end_balance > 0 for m in months):
            reasons.append("Balance stayed positive every month; earns the +20pt buffer bonus.")
        else:
            reasons.append(
                "Balance went negative in at least one month; no buffer bonus awarded."
            )

        if has_recovery(months):
            reasons.append(
                "Recovery pattern detected: after a high-spending month, spending dropped "
                "back to normal. Earns +10pt recovery bonus."
            )
        else:
            reasons.append(
                "No clear recovery pattern after spending spikes; no recovery bonus."
            )

        consistency = balance_consistency(months)
        if consistency > 0.7:
            reasons.append(
                f"Balance is very consistent ({percent(consistency)}% stability); earns "
                f"+{_points(consistency * 10)}pt consistency bonus."
            )
        else:
            reasons.append(
                f"Balance fluctuates significantly ({percent(consistency)}% stability); "
                f"only +{_points(consistency * 10)}pt consistency bonus."
            )

    influential: list[InfluentialTransaction] = []
    expenses = _by_magnitude([tx for tx in transactions if not tx.is_income_deposit])
    if expenses:
        influential.append(
            _influential(
                expenses[0],
                "Large Expense",
                Impact.NEGATIVE,
                f"Largest single expense ({money(expenses[0].amount)}); tests your "
                "balance cushion.",
            )
        )

    deposits = _by_magnitude([tx for tx in transactions if tx.is_income_deposit])
    if deposits:
        influential.append(
            _influential(
                deposits[0],
                "Large Deposit",
                Impact.POSITIVE,
                f"Largest deposit ({money(deposits[0].amount)}); replenishes your "
                "financial buffer.",
            )
        )

    auto_pay = next(
        (
            tx
            for tx in transactions
            if tx.is_recurring
            and not tx.is_income_deposit
            and tx.category in taxonomy.auto_pay_categories
        ),
        None,
    )
    if auto_pay is not None:
        influential.append(
            _influential(
                auto_pay,
                "Auto-pay",
                Impact.POSITIVE,
                f"{auto_pay.merchant_name or 'Essential'} auto-pay ({money(auto_pay.amount)}); "
                "recurring essentials covered reliably.",
            )
        )

    return reasons, influential


def explain_growth_momentum(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Taxonomy,
) -> tuple[list[str], list[InfluentialTransaction]]:
    reasons: list[str] = []
    investments = [tx for tx in transactions if taxonomy.is_investment(tx.category)]

    if months:
        deposits = [m.total_deposits for m in months]
        avg_deposits = mean(deposits)
        savings_rate = safe_ratio(mean([m.net_savings for m in months]), avg_deposits)

        if savings_rate > 0.15:
            reasons.append(
                f"Strong savings rate of {percent(savings_rate, 1)}%; you're keeping a "
                "healthy portion of income (earns "
                f"{_points(savings_rate * SAVINGS_RATE_WEIGHT)}/60 base points)."
            )
        elif savings_rate > 0:
            reasons.append(
                f"Modest savings rate of {percent(savings_rate, 1)}%; positive but room to "
                f"grow (earns {_points(savings_rate * SAVINGS_RATE_WEIGHT)}/60 base points)."
            )
        else:
            reasons.append(
                f"Negative or zero savings rate ({percent(savings_rate, 1)}%); spending "
                "exceeds income on average."
            )

        growth = linear_regression_slope(deposits)
        normalized = safe_ratio(growth, avg_deposits)
        if normalized > 0:
            reasons.append(
                f"Income is growing over time (+{money(growth)}/month trend); earns up to "
                f"+{_points(min(normalized * 100, GROWTH_BONUS_CAP))}pt growth bonus."
            )
        elif normalized < -0.01:
            reasons.append(
                f"Income is declining over time ({money(growth)}/month trend); no growth "
                "bonus and a warning sign."
            )
        else:
            reasons.append("Income is flat; no growth bonus applied.")

        if investments:
            reasons.append(
                "Investment/brokerage activity detected; earns a +15pt investment bonus."
            )
        else:
            reasons.append(
                "No investment or brokerage activity detected; missing a potential "
                "+15pt bonus."
            )

        positive_months = sum(1 for m in months if m.net_savings > 0)
        reasons.append(f"Positive net savings in {positive_months} of {len(months)} months.")

    influential: list[InfluentialTransaction] = []
    if investments:
        influential.append(
            _influential(
                investments[0],
                "Investment",
                Impact.POSITIVE,
                f"Investment transaction ({money(investments[0].amount)}); contributes to "
                "the +15pt investment bonus.",
            )
        )

    if months:
        # max/min return the first extreme, matching a strict-comparison scan
        best = max(months, key=lambda m: m.net_savings)
        if best.net_savings > 0:
            influential.append(
                _month_marker(
                    best.month,
                    "Best Savings Month",
                    best.net_savings,
                    Impact.POSITIVE,
                    f"Best month ({best.month}): saved {money(best.net_savings)}; "
                    f"{percent(best.net_savings / best.total_deposits)}% savings rate.",
                )
            )

        worst = min(months, key=lambda m: m.net_savings)
        if worst.net_savings < 0:
            influential.append(
                _month_marker(
                    worst.month,
                    "Worst Savings Month",
                    worst.net_savings,
                    Impact.NEGATIVE,
                    f"Worst month ({worst.month}): overspent by {money(worst.net_savings)}; "
                    "drags down average savings rate.",
                )
            )

    return reasons, influential


Explainer = Callable[
    [Sequence[MonthlyAggregate], Sequence[EnrichedTransaction], Taxonomy],
    tuple[list[str], list[InfluentialTransaction]],
]

PILLAR_EXPLAINERS: dict[Pillar, Explainer] = {
    Pillar.INCOME_STABILITY: explain_income_stability,
    Pillar.SPENDING_DISCIPLINE: explain_spending_discipline,
    Pillar.DEBT_TRAJECTORY: explain_debt_trajectory,
    Pillar.FINANCIAL_RESILIENCE: explain_financial_resilience,
    Pillar.GROWTH_MOMENTUM: explain_growth_momentum,
}


def generate_explainability_report(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    scores: PillarScores,
    taxonomy: Optional[Taxonomy] = None,
) -> ExplainabilityReport:
    """
    Explain every pillar score.

    Args:
        months: Monthly aggregates the scores were computed from
        transactions: The same enriched transactions
        scores: Already-computed pillar scores
        taxonomy: Category sets and keywords (defaults to DEFAULT_TAXONOMY)

    Returns:
        ExplainabilityReport with one PillarExplanation per pillar, in
        pillar order
    """
    months = ensure_month_sequence(months)
    taxonomy = taxonomy or DEFAULT_TAXONOMY

    explanations = []
    for pillar, explainer in PILLAR_EXPLAINERS.items():
        reasons, influential = explainer(months, transactions, taxonomy)
        explanations.append(
            PillarExplanation(
                pillar=PILLAR_LABELS[pillar],
                pillar_key=pillar,
                score=scores.pillar(pillar),
                reasons=reasons[:MAX_REASONS],
                influential_transactions=influential[:MAX_INFLUENTIAL],
            )
        )

    logger.debug("explainability_generated", months=len(months), pillars=len(explanations))
    return ExplainabilityReport(pillars=explanations)
