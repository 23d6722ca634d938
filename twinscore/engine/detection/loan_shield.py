"""
Loan Shield: student-loan risk monitoring from income and debt shape.

Income analysis looks at the overall and recent deposit averages, the
regression slope and trailing months of decline. Debt analysis estimates
the student-loan payment from servicer name matches. An additive risk
score maps onto a RiskLevel, and alerts are raised per triggered rule.
"""

import re
from typing import Optional, Sequence

import structlog

from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.formatting import whole
from twinscore.engine.stats import (
    linear_regression_slope,
    mean,
    round_half_up,
    safe_ratio,
    standard_deviation,
)
from twinscore.models.enums import IncomeTrend, RiskLevel
from twinscore.models.findings import (
    DebtPaymentAnalysis,
    IncomeAnalysis,
    LoanShieldReport,
    ShieldAlert,
)
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

RECENT_MONTHS = 3
DECLINE_STEP = 0.9
VOLATILE_CV = 0.4
TREND_SLOPE = 50
AT_RISK_DTI = 0.35
STUDENT_LOAN_INCOME_SHARE = 0.15
MIN_STUDENT_LOAN_CHARGES = 2

# Lower bound of the additive risk score for each level, highest first
RISK_LEVEL_FLOORS = (
    (8, RiskLevel.CRITICAL),
    (6, RiskLevel.HIGH),
    (4, RiskLevel.ELEVATED),
    (2, RiskLevel.MODERATE),
)


def _months_of_decline(incomes: Sequence[float]) -> int:
    """Consecutive trailing months each more than 10% below the one before."""
    count = 0
    for previous, current in reversed(list(zip(incomes, incomes[1:]))):
        if current < previous * DECLINE_STEP:
            count += 1
        else:
            break
    return count


def analyze_income(months: Sequence[MonthlyAggregate]) -> IncomeAnalysis:
    incomes = [m.total_deposits for m in months]
    avg_income = mean(incomes)
    recent_avg = mean(incomes[-RECENT_MONTHS:])
    slope = linear_regression_slope(incomes)

    drop_percent = (
        max(0.0, (avg_income - recent_avg) / avg_income * 100) if avg_income > 0 else 0.0
    )
    cv = standard_deviation(incomes) / avg_income if avg_income > 0 else 0.0

    if cv > VOLATILE_CV:
        trend = IncomeTrend.VOLATILE
    elif slope > TREND_SLOPE:
        trend = IncomeTrend.GROWING
    elif slope < -TREND_SLOPE:
        trend = IncomeTrend.DECLINING
    else:
        trend = IncomeTrend.STABLE

    return IncomeAnalysis(
        average_monthly_income=round_half_up(avg_income),
        recent_monthly_income=round_half_up(recent_avg),
        income_slope=round_half_up(slope),
        income_trend=trend,
        income_drop_percent=round_half_up(drop_percent, 1),
        months_of_decline=_months_of_decline(incomes),
    )


def analyze_debt(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> DebtPaymentAnalysis:
    taxonomy = taxonomy or DEFAULT_TAXONOMY
    pattern = re.compile(taxonomy.student_loan_pattern, re.IGNORECASE)

    avg_debt = mean([m.debt_payments for m in months])
    avg_income = mean([m.total_deposits for m in months])
    dti = safe_ratio(avg_debt, avg_income)

    student_loan_amounts = [
        tx.magnitude
        for tx in transactions
        if not tx.is_income_deposit
        and (
            pattern.search(tx.merchant_name or "")
            or pattern.search(tx.name)
            or (
                tx.category == taxonomy.debt_category
                and pattern.search((tx.merchant_name or "") + tx.name)
            )
        )
    ]
    estimated_payment = (
        mean(student_loan_amounts)
        if len(student_loan_amounts) >= MIN_STUDENT_LOAN_CHARGES
        else 0.0
    )

    is_at_risk = dti > AT_RISK_DTI or (
        estimated_payment > 0
        and avg_income > 0
        and estimated_payment / avg_income > STUDENT_LOAN_INCOME_SHARE
    )

    return DebtPaymentAnalysis(
        average_monthly_debt=round_half_up(avg_debt),
        debt_to_income_ratio=round_half_up(dti, 3),
        estimated_student_loan_payment=round_half_up(estimated_payment),
        is_at_risk=is_at_risk,
    )


def compute_risk_score(income: IncomeAnalysis, debt: DebtPaymentAnalysis) -> int:
    """Additive risk points from income drop, trend, decline streak and DTI."""
    score = 0

    if income.income_drop_percent > 30:
        score += 3
    elif income.income_drop_percent > 15:
        score += 2
    elif income.income_drop_percent > 5:
        score += 1

    if income.income_trend == IncomeTrend.DECLINING:
        score += 2
    elif income.income_trend == IncomeTrend.VOLATILE:
        score += 1
    if income.months_of_decline >= 3:
        score += 2

    if debt.debt_to_income_ratio > 0.5:
        score += 3
    elif debt.debt_to_income_ratio > 0.35:
        score += 2
    elif debt.debt_to_income_ratio > 0.2:
        score += 1

    if debt.is_at_risk:
        score += 1

    return score


def risk_level_for(score: int) -> RiskLevel:
    for floor, level in RISK_LEVEL_FLOORS:
        if score >= floor:
            return level
    return RiskLevel.LOW


def generate_alerts(
    income: IncomeAnalysis, debt: DebtPaymentAnalysis, risk_level: RiskLevel
) -> list[ShieldAlert]:
    alerts: list[ShieldAlert] = []

    if income.income_drop_percent > 15:
        alerts.append(
            ShieldAlert(
                risk_level=(
                    RiskLevel.CRITICAL if income.income_drop_percent > 30 else RiskLevel.ELEVATED
                ),
                title="Significant Income Drop Detected",
                description=(
                    f"Your recent income is {income.income_drop_percent:.1f}% below your "
                    f"average (${whole(income.recent_monthly_income)}/mo vs "
                    f"${whole(income.average_monthly_income)}/mo). This increases the risk "
                    "of missed payments."
                ),
                recommendation=(
                    "Consider applying for Income-Driven Repayment (IDR) immediately to "
                    "reduce monthly payment to a percentage of discretionary income."
                ),
            )
        )

    if income.income_trend == IncomeTrend.DECLINING and income.months_of_decline >= 2:
        alerts.append(
            ShieldAlert(
                risk_level=RiskLevel.ELEVATED,
                title="Income Trending Downward",
                description=(
                    f"Your income has been declining for {income.months_of_decline} "
                    "consecutive months. Gig workers and freelancers are especially "
                    "vulnerable to this pattern."
                ),
                recommendation=(
                    "Proactively contact your loan servicer before missing a payment. A "
                    "deferment or forbearance request while current keeps more options open."
                ),
            )
        )

    if debt.debt_to_income_ratio > AT_RISK_DTI:
        alerts.append(
            ShieldAlert(
                risk_level=(
                    RiskLevel.HIGH if debt.debt_to_income_ratio > 0.5 else RiskLevel.ELEVATED
                ),
                title="High Debt-to-Income Ratio",
                description=(
                    f"Your DTI is {debt.debt_to_income_ratio * 100:.1f}%, which exceeds the "
                    "recommended 35% threshold. This leaves little margin for income "
                    "disruptions."
                ),
                recommendation=(
                    "IDR plans can reduce your federal student loan payment to 10-20% of "
                    "discretionary income, significantly improving your DTI ratio."
                ),
            )
        )

    if debt.estimated_student_loan_payment > 0 and income.recent_monthly_income > 0:
        payment_ratio = debt.estimated_student_loan_payment / income.recent_monthly_income
        if payment_ratio > STUDENT_LOAN_INCOME_SHARE:
            alerts.append(
                ShieldAlert(
                    risk_level=RiskLevel.HIGH if payment_ratio > 0.25 else RiskLevel.ELEVATED,
                    title="Student Loan Payment Exceeds Safe Threshold",
                    description=(
                        "Your estimated student loan payment "
                        f"(${debt.estimated_student_loan_payment:.0f}/mo) is "
                        f"{payment_ratio * 100:.1f}% of your recent income, above the "
                        "recommended 10-15%."
                    ),
                    recommendation=(
                        "An IDR plan would cap your payment at a percentage of "
                        "discretionary income, bringing it within sustainable range."
                    ),
                )
            )

    if income.income_trend == IncomeTrend.VOLATILE:
        alerts.append(
            ShieldAlert(
                risk_level=RiskLevel.MODERATE,
                title="Volatile Income Pattern",
                description=(
                    "Your income fluctuates significantly month-to-month, which is common "
                    "for gig workers and freelancers but increases default risk."
                ),
                recommendation=(
                    "Build a 2-month payment buffer in a separate account. Consider the "
                    "SAVE plan which adjusts payments quarterly based on income changes."
                ),
            )
        )

    if risk_level == RiskLevel.LOW:
        alerts.append(
            ShieldAlert(
                risk_level=RiskLevel.LOW,
                title="Loan Health Looks Good",
                description=(
                    "Your income is stable and your debt-to-income ratio is within healthy "
                    "range. No immediate action needed."
                ),
                recommendation=(
                    "Keep monitoring. If you anticipate income changes (job switch, "
                    "seasonal work), proactively review your options."
                ),
            )
        )

    return alerts


def runway_without_income(months: Sequence[MonthlyAggregate]) -> int:
    """Whole months the latest non-negative balance covers average spending."""
    if not months:
        return 0
    avg_expenses = mean([m.total_spending for m in months])
    if avg_expenses <= 0:
        return 0
    return int(max(months[-1].end_balance, 0) // avg_expenses)


class LoanShield:
    """
    Student-loan risk analyzer.

    Attributes:
        taxonomy: Category sets and the student-loan servicer pattern

    Example:
        >>> report = LoanShield().analyze(months, transactions)
        >>> report.risk_level
        <RiskLevel.LOW: 'low'>
    """

    def __init__(self, taxonomy: Optional[Taxonomy] = None):
        self.taxonomy = taxonomy or DEFAULT_TAXONOMY
        self.logger = structlog.get_logger()

    def analyze(
        self,
        months: Sequence[MonthlyAggregate],
        transactions: Sequence[EnrichedTransaction],
    ) -> LoanShieldReport:
        months = ensure_month_sequence(months)

        income = analyze_income(months)
        debt = analyze_debt(months, transactions, self.taxonomy)
        risk_score = compute_risk_score(income, debt)
        risk_level = risk_level_for(risk_score)
        alerts = generate_alerts(income, debt, risk_level)

        self.logger.info(
            "loan_shield_analysis_completed",
            months=len(months),
            risk_score=risk_score,
            risk_level=risk_level.value,
            alerts=len(alerts),
        )

        return LoanShieldReport(
            income_analysis=income,
            debt_analysis=debt,
            risk_score=risk_score,
            risk_level=risk_level,
            alerts=alerts,
            runway_without_income=runway_without_income(months),
        )


def analyze_loan_risk(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> LoanShieldReport:
    """Run the loan shield over an aggregate sequence."""
    return LoanShield(taxonomy=taxonomy).analyze(months, transactions)
