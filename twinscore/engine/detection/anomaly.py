"""
Anomaly Engine: behavioral trend detection over monthly aggregates.

Eight detectors, registered in ANOMALY_DETECTORS, each produce zero or more
Anomaly findings with a severity tier:

    1. LIFESTYLE_CREEP: discretionary spending trending up (4+ months)
    2. SPENDING_SPIKE: a recent month far above average spend (3+ months)
    3. SAVINGS_DECLINE: shrinking or negative monthly surplus (3+ months)
    4. BALANCE_EROSION: end balance trending down (3+ months)
    5. INCOME_VOLATILITY: high coefficient of variation of deposits (3+ months)
    6. DISCRETIONARY_SURGE: recent wants share jumped (4+ months)
    7. SUBSCRIPTION_BLOAT: many or costly recurring charges
    8. RECURRING_INCREASE: a recurring charge got more expensive

Findings are sorted alert > warning > info. The health score starts at 100
and loses 15 per alert, 8 per warning and 3 per info.
"""

from collections import defaultdict
from typing import Optional, Sequence

import structlog

from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.detection.registry import DetectionContext, DetectorRegistry
from twinscore.engine.formatting import cents, money, percent, plural, whole
from twinscore.engine.stats import (
    linear_regression_slope,
    mean,
    safe_ratio,
    standard_deviation,
)
from twinscore.models.enums import AnomalySeverity, AnomalyType
from twinscore.models.findings import Anomaly, AnomalyReport
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

ANOMALY_DETECTORS: DetectorRegistry[Anomaly] = DetectorRegistry("anomaly")

# Detector thresholds: (warning, alert)
ANOMALY_THRESHOLDS = {
    "lifestyle_creep_growth": (0.03, 0.06),
    "subscription_count": (8, 12),
    "subscription_income_ratio": (0.10, 0.15),
    "spending_spike_ratio": (1.5, 2.0),
    "savings_decline_slope": (-50, -150),
    "balance_erosion_slope": (-100, -300),
    "income_cv": (0.35, 0.5),
    "discretionary_ratio": (0.45, 0.6),
}

SUBSCRIPTION_INFO_COUNT = 5
SPIKE_LOOKBACK_MONTHS = 3
SURGE_RECENT_MONTHS = 3
SURGE_MIN_INCREASE = 0.1
RECURRING_MIN_CHARGES = 3
RECURRING_INCREASE_RATIO = 0.2

HEALTH_PENALTIES = {
    AnomalySeverity.ALERT: 15,
    AnomalySeverity.WARNING: 8,
    AnomalySeverity.INFO: 3,
}


def _tier(value: float, alert_threshold: float, above: bool = True) -> AnomalySeverity:
    """Warning unless value is past the alert threshold."""
    past = value > alert_threshold if above else value < alert_threshold
    return AnomalySeverity.ALERT if past else AnomalySeverity.WARNING


def _recurring_by_merchant(
    transactions: Sequence[EnrichedTransaction],
) -> dict[str, list[float]]:
    """Absolute amounts of recurring outflows keyed by lowercase merchant."""
    by_merchant: dict[str, list[float]] = defaultdict(list)
    for tx in transactions:
        if tx.is_recurring and not tx.is_income_deposit:
            by_merchant[tx.source_name.lower()].append(tx.magnitude)
    return by_merchant


@ANOMALY_DETECTORS.register("lifestyle_creep", min_months=4)
def detect_lifestyle_creep(ctx: DetectionContext) -> list[Anomaly]:
    discretionary = ctx.series("discretionary_spending")
    avg = mean(discretionary)
    if avg == 0:
        return []

    growth_rate = linear_regression_slope(discretionary) / avg
    warning, alert = ANOMALY_THRESHOLDS["lifestyle_creep_growth"]
    if growth_rate <= warning:
        return []

    mid = len(discretionary) // 2
    first_half = mean(discretionary[:mid])
    second_half = mean(discretionary[mid:])
    pct_increase = safe_ratio(second_half - first_half, first_half) * 100

    return [
        Anomaly(
            type=AnomalyType.LIFESTYLE_CREEP,
            severity=_tier(growth_rate, alert),
            title="Lifestyle Creep Detected",
            description=(
                "Your discretionary spending has been trending upward over the past "
                f"{len(ctx.months)} months. This gradual increase often goes unnoticed "
                "but compounds over time."
            ),
            metric="Discretionary Spending Trend",
            current_value=f"${whole(second_half)}/mo avg (recent)",
            trend=f"+{pct_increase:.1f}% increase from earlier period",
            actionable_advice=(
                "Set a monthly discretionary budget and review it weekly. Consider the "
                '"24-hour rule": wait a day before non-essential purchases over $50.'
            ),
        )
    ]


@ANOMALY_DETECTORS.register("spending_spike", min_months=3)
def detect_spending_spikes(ctx: DetectionContext) -> list[Anomaly]:
    avg = mean(ctx.series("total_spending"))
    if avg == 0:
        return []

    warning, alert = ANOMALY_THRESHOLDS["spending_spike_ratio"]
    findings = []
    for month in ctx.months[-SPIKE_LOOKBACK_MONTHS:]:
        ratio = month.total_spending / avg
        if ratio <= warning:
            continue
        above = whole((ratio - 1) * 100)
        findings.append(
            Anomaly(
                type=AnomalyType.SPENDING_SPIKE,
                severity=_tier(ratio, alert),
                title=f"Spending Spike in {month.month}",
                description=(
                    f"Spending in {month.month} was ${whole(month.total_spending)}, "
                    f"{above}% above your average of ${whole(avg)}."
                ),
                metric="Monthly Total Spending",
                current_value=f"${whole(month.total_spending)}",
                trend=f"{above}% above average",
                actionable_advice=(
                    "Review this month's transactions for one-time vs. recurring charges. "
                    "If it's a one-time expense, ensure you have a recovery plan for the "
                    "next 2 months."
                ),
            )
        )
    return findings


@ANOMALY_DETECTORS.register("savings_decline", min_months=3)
def detect_savings_decline(ctx: DetectionContext) -> list[Anomaly]:
    surpluses = [m.net_savings for m in ctx.months]
    slope = linear_regression_slope(surpluses)
    avg_surplus = mean(surpluses)
    warning, alert = ANOMALY_THRESHOLDS["savings_decline_slope"]

    if slope < warning and avg_surplus > 0:
        return [
            Anomaly(
                type=AnomalyType.SAVINGS_DECLINE,
                severity=_tier(slope, alert, above=False),
                title="Savings Rate Declining",
                description=(
                    "Your monthly surplus (income minus spending) has been shrinking over "
                    "time. If this trend continues, you could slip into deficit."
                ),
                metric="Monthly Surplus Trend",
                current_value=f"${whole(surpluses[-1])} (latest month)",
                trend=f"Declining by ~{money(slope)}/month",
                actionable_advice=(
                    "Automate a fixed savings transfer at the start of each month before "
                    'discretionary spending. "Pay yourself first" reverses this trend.'
                ),
            )
        ]
    if avg_surplus < 0:
        return [
            Anomaly(
                type=AnomalyType.SAVINGS_DECLINE,
                severity=AnomalySeverity.ALERT,
                title="Spending Exceeds Income",
                description=(
                    f"On average, you're spending {money(avg_surplus)} more than you earn "
                    "each month. This is unsustainable long-term."
                ),
                metric="Average Monthly Surplus",
                current_value=f"-{money(avg_surplus)}/mo",
                trend="Negative surplus",
                actionable_advice=(
                    "This is the most critical issue to address. Identify your top 3 "
                    "discretionary expenses and cut or reduce them. Even getting to "
                    "break-even is a huge win."
                ),
            )
        ]
    return []


@ANOMALY_DETECTORS.register("balance_erosion", min_months=3)
def detect_balance_erosion(ctx: DetectionContext) -> list[Anomaly]:
    balances = ctx.series("end_balance")
    slope = linear_regression_slope(balances)
    warning, alert = ANOMALY_THRESHOLDS["balance_erosion_slope"]
    if not (slope < warning and mean(balances) > 0):
        return []

    return [
        Anomaly(
            type=AnomalyType.BALANCE_EROSION,
            severity=_tier(slope, alert, above=False),
            title="Balance Erosion",
            description=(
                "Your account balance has been trending downward. At this rate, your "
                "financial buffer is shrinking."
            ),
            metric="End-of-Month Balance Trend",
            current_value=f"${whole(balances[-1])}",
            trend=f"Declining by ~{money(slope)}/month",
            actionable_advice=(
                "Investigate what's driving the decline: growing expenses, declining "
                "income, or both? Knowing the cause is the first step to reversing it."
            ),
        )
    ]


@ANOMALY_DETECTORS.register("income_volatility", min_months=3)
def detect_income_volatility(ctx: DetectionContext) -> list[Anomaly]:
    incomes = ctx.series("total_deposits")
    avg = mean(incomes)
    if avg == 0:
        return []

    cv = standard_deviation(incomes) / avg
    warning, alert = ANOMALY_THRESHOLDS["income_cv"]
    if cv <= warning:
        return []

    return [
        Anomaly(
            type=AnomalyType.INCOME_VOLATILITY,
            severity=_tier(cv, alert),
            title="High Income Volatility",
            description=(
                "Your monthly income varies significantly (coefficient of variation: "
                f"{percent(cv)}%). This makes budgeting harder and increases financial risk."
            ),
            metric="Income Coefficient of Variation",
            current_value=f"{percent(cv)}% variability",
            trend="Highly variable income pattern",
            actionable_advice=(
                "Budget based on your lowest income month, not your average. Build a "
                '"buffer account" equal to 2x the difference between your high and low '
                "months."
            ),
        )
    ]


@ANOMALY_DETECTORS.register("discretionary_surge", min_months=4)
def detect_discretionary_surge(ctx: DetectionContext) -> list[Anomaly]:
    ratios = [safe_ratio(m.discretionary_spending, m.total_spending) for m in ctx.months]
    recent = mean(ratios[-SURGE_RECENT_MONTHS:])
    earlier = mean(ratios[:-SURGE_RECENT_MONTHS])
    warning, alert = ANOMALY_THRESHOLDS["discretionary_ratio"]

    if not (recent > earlier + SURGE_MIN_INCREASE and recent > warning):
        return []

    return [
        Anomaly(
            type=AnomalyType.DISCRETIONARY_SURGE,
            severity=_tier(recent, alert),
            title="Discretionary Spending Surge",
            description=(
                f"Discretionary spending now makes up {percent(recent)}% of total "
                f"spending, up from {percent(earlier)}% earlier. The 50/30/20 guideline "
                "suggests keeping wants at 30%."
            ),
            metric="Discretionary-to-Total Ratio",
            current_value=f"{percent(recent)}% (recent 3 months)",
            trend=f"Up from {percent(earlier)}%",
            actionable_advice=(
                'Categorize your discretionary spending into "high-joy" and "low-joy" '
                "items. Cut the low-joy items first; you won't miss them."
            ),
        )
    ]


@ANOMALY_DETECTORS.register("subscription_bloat")
def detect_subscription_bloat(ctx: DetectionContext) -> list[Anomaly]:
    totals = {
        merchant: sum(amounts)
        for merchant, amounts in _recurring_by_merchant(ctx.transactions).items()
    }
    count = len(totals)
    months_of_data = len(ctx.months) or 1
    monthly_cost = sum(totals.values()) / months_of_data
    avg_income = mean(ctx.series("total_deposits"))
    income_ratio = monthly_cost / avg_income if avg_income > 0 else 0.0

    count_warning, count_alert = ANOMALY_THRESHOLDS["subscription_count"]
    ratio_warning, ratio_alert = ANOMALY_THRESHOLDS["subscription_income_ratio"]

    if count >= count_warning or income_ratio > ratio_warning:
        top = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:5]
        top_text = ", ".join(
            f"{name}: ${whole(total / months_of_data)}/mo" for name, total in top
        )
        severity = (
            AnomalySeverity.ALERT
            if count >= count_alert or income_ratio > ratio_alert
            else AnomalySeverity.WARNING
        )
        return [
            Anomaly(
                type=AnomalyType.SUBSCRIPTION_BLOAT,
                severity=severity,
                title="Subscription Bloat",
                description=(
                    f"You have {count} recurring charges totaling ~${whole(monthly_cost)}"
                    f"/month ({percent(income_ratio, 1)}% of income)."
                ),
                metric="Recurring Subscriptions",
                current_value=f"{count} active subscriptions, ~${whole(monthly_cost)}/mo",
                trend=f"Top: {top_text}",
                actionable_advice=(
                    "Audit every subscription. Cancel anything you haven't used in 30 "
                    "days. Consider consolidating streaming services or sharing family "
                    "plans."
                ),
            )
        ]

    if count >= SUBSCRIPTION_INFO_COUNT:
        return [
            Anomaly(
                type=AnomalyType.SUBSCRIPTION_BLOAT,
                severity=AnomalySeverity.INFO,
                title="Subscription Check-In",
                description=(
                    f"You have {count} recurring charges (~${whole(monthly_cost)}/month). "
                    "Not excessive, but worth a quarterly review."
                ),
                metric="Recurring Subscriptions",
                current_value=f"{count} subscriptions, ~${whole(monthly_cost)}/mo",
                trend="Within normal range",
                actionable_advice=(
                    "Do a quarterly subscription audit. Set a calendar reminder to review "
                    "what you're actually using."
                ),
            )
        ]
    return []


@ANOMALY_DETECTORS.register("recurring_increase")
def detect_recurring_increase(ctx: DetectionContext) -> list[Anomaly]:
    findings = []
    for merchant, amounts in _recurring_by_merchant(ctx.transactions).items():
        if len(amounts) < RECURRING_MIN_CHARGES:
            continue
        lowest, highest = min(amounts), max(amounts)
        if lowest <= 0 or (highest - lowest) / lowest <= RECURRING_INCREASE_RATIO:
            continue
        increase = (highest - lowest) / lowest
        findings.append(
            Anomaly(
                type=AnomalyType.RECURRING_INCREASE,
                severity=AnomalySeverity.INFO,
                title=f"Price Increase: {merchant}",
                description=(
                    f"{merchant} charges have increased from {cents(lowest)} to "
                    f"{cents(highest)}, a {percent(increase)}% increase."
                ),
                metric="Recurring Charge Amount",
                current_value=f"{cents(highest)}/charge",
                trend=f"Up from {cents(lowest)}",
                actionable_advice=(
                    "Review if this service is still worth the increased price. Look for "
                    "alternatives or consider negotiating."
                ),
            )
        )
    return findings


def compute_health_score(anomalies: Sequence[Anomaly]) -> int:
    score = 100 - sum(HEALTH_PENALTIES[a.severity] for a in anomalies)
    return max(0, min(100, score))


def build_anomaly_summary(anomalies: Sequence[Anomaly], health_score: int) -> str:
    if not anomalies:
        return (
            "No anomalies detected. Your financial patterns look healthy and "
            "consistent. Keep up the great work!"
        )

    counts = {
        severity: sum(1 for a in anomalies if a.severity == severity)
        for severity in AnomalySeverity
    }
    parts = [
        plural(counts[severity], noun)
        for severity, noun in (
            (AnomalySeverity.ALERT, "alert"),
            (AnomalySeverity.WARNING, "warning"),
            (AnomalySeverity.INFO, "insight"),
        )
        if counts[severity] > 0
    ]
    closing = (
        "Address the alerts first; they have the biggest impact on your financial "
        "resilience."
        if counts[AnomalySeverity.ALERT] > 0
        else "No critical issues, but the warnings are worth reviewing."
    )
    return (
        f"Found {', '.join(parts)} across your financial patterns. "
        f"Health score: {health_score}/100. {closing}"
    )


class AnomalyDetector:
    """
    Runs the anomaly detector registry and assembles an AnomalyReport.

    Attributes:
        registry: Detectors to run, in order
        taxonomy: Category sets and keyword lists

    Example:
        >>> report = AnomalyDetector().detect(months, transactions)
        >>> [a.type for a in report.anomalies if a.severity == AnomalySeverity.ALERT]
    """

    def __init__(
        self,
        registry: Optional[DetectorRegistry[Anomaly]] = None,
        taxonomy: Optional[Taxonomy] = None,
    ):
        self.registry = registry if registry is not None else ANOMALY_DETECTORS
        self.taxonomy = taxonomy
        self.logger = structlog.get_logger()

    def detect(
        self,
        months: Sequence[MonthlyAggregate],
        transactions: Sequence[EnrichedTransaction],
    ) -> AnomalyReport:
        months = ensure_month_sequence(months)
        context = DetectionContext(
            months=months,
            transactions=tuple(transactions),
            taxonomy=self.taxonomy or DEFAULT_TAXONOMY,
        )

        anomalies = sorted(self.registry.run(context), key=lambda a: -a.severity.rank)
        health_score = compute_health_score(anomalies)

        self.logger.info(
            "anomaly_detection_completed",
            months=len(months),
            anomalies=len(anomalies),
            health_score=health_score,
        )

        return AnomalyReport(
            anomalies=anomalies,
            health_score=health_score,
            summary=build_anomaly_summary(anomalies, health_score),
        )


def detect_anomalies(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> AnomalyReport:
    """Run every registered anomaly detector and build the report."""
    return AnomalyDetector(taxonomy=taxonomy).detect(months, transactions)
