"""
Red-Flag Engine: lender-perspective findings with staged fix plans.

Eleven detectors, registered in RED_FLAG_DETECTORS in evaluation order,
each produce at most one RedFlag:

     1. income_volatility: swinging deposits or missed income cycles
     2. minimum_only_payments: debt payments clustered at the same amount
     3. dti_worsening: high or rising debt-to-income (4+ months)
     4. low_emergency_fund: latest balance under 3 months of spending
     5. overdraft_history: months that ended with a negative balance
     6. subscription_burden: estimated subscription cost versus income
     7. high_discretionary: discretionary share of spending at 45% or more
     8. no_savings: no savings transfers at all
     9. single_income: fewer than 1.5 income sources on average
    10. no_payroll: income present but never from payroll
    11. spending_trend: spending growing 2%+ per month (4+ months)

Flags are sorted red, yellow, green. The readiness verdict is derived from
the red and yellow counts.
"""

import math
from typing import Optional, Sequence

import structlog

from twinscore.engine.aggregator import ensure_month_sequence
from twinscore.engine.detection.registry import DetectionContext, DetectorRegistry
from twinscore.engine.formatting import money, percent, plural
from twinscore.engine.scoring import HIGH_DTI_THRESHOLD, monthly_dti
from twinscore.engine.stats import (
    coefficient_of_variation,
    linear_regression_slope,
    mean,
    round_half_up,
)
from twinscore.models.enums import FixPeriod, FlagSeverity
from twinscore.models.findings import FixStep, RedFlag, RedFlagsReport
from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

RED_FLAG_DETECTORS: DetectorRegistry[RedFlag] = DetectorRegistry("red_flag")

MISSED_CYCLE_FRACTION = 0.4
ESTIMATED_SUBSCRIPTION_COST = 15
MINIMUM_PAYMENT_TOLERANCE = 1.05
ELEVATED_DTI = 0.35
EMERGENCY_FUND_MONTHS = 3
DISCRETIONARY_FLAG_RATIO = 0.45
SINGLE_SOURCE_THRESHOLD = 1.5
SPENDING_TREND_THRESHOLD = 0.02

READINESS_VERDICTS = {
    "strong": (
        "Strong position: you have very few flags that would concern a lender. "
        "Focus on maintaining your current habits."
    ),
    "decent": (
        "Decent position with room to improve. Address the yellow flags over the "
        "next 3-6 months and you'll be in strong shape for a loan application."
    ),
    "concerns": (
        "Some concerns that lenders will notice. The red flag should be your top "
        "priority. Fix it before applying for any loan."
    ),
    "serious": (
        "Multiple serious flags. A loan application right now would likely face "
        "tough scrutiny or denial. Focus on the red items first; most can be "
        "meaningfully improved in 3-6 months."
    ),
    "significant": (
        "Significant work needed before applying for a loan. The good news: every "
        "flag has a clear fix path. Start with the top 3 red flags and work down "
        "the list."
    ),
}


def _fix(period: FixPeriod, action: str, impact: str) -> FixStep:
    return FixStep(period=period, action=action, impact=impact)


@RED_FLAG_DETECTORS.register("income_volatility", min_months=1)
def detect_income_volatility(ctx: DetectionContext) -> list[RedFlag]:
    deposits = ctx.series("total_deposits")
    avg = mean(deposits)
    if avg == 0:
        return []

    cv = coefficient_of_variation(deposits)
    missed = sum(1 for d in deposits if d < avg * MISSED_CYCLE_FRACTION)
    if cv < 0.2 and missed == 0:
        return []

    if cv > 0.4 or missed >= 3:
        severity = FlagSeverity.RED
    elif cv > 0.25 or missed >= 1:
        severity = FlagSeverity.YELLOW
    else:
        severity = FlagSeverity.GREEN

    headline = (
        f"{plural(missed, 'missed/low deposit cycle')}" if missed > 0 else f"{percent(cv)}% variation"
    )
    return [
        RedFlag(
            id="income_volatility",
            severity=severity,
            title=f"Income volatility: {headline}",
            detail=(
                f"Your monthly income swings by {percent(cv)}% on average "
                f"({money(avg)}/mo avg). Lenders see {plural(missed, 'month')} where "
                "deposits dropped below 40% of your average."
            ),
            metric=f"CV: {percent(cv)}% | Missed: {missed}",
            lender_perspective=(
                'Lenders calculate a "deposit consistency score." Wide swings or missed '
                "cycles signal gig/freelance risk and lower your internal approval score "
                "by 15-25%."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Set up automatic transfers so income from all sources funnels into "
                    "one primary account on consistent dates.",
                    "Reduces appearance of volatility on bank statements.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Build a 1-month income buffer so even in low months, your checking "
                    "account shows consistent balances.",
                    "Eliminates missed-cycle flags.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Diversify income sources or negotiate retainers/contracts with "
                    "guaranteed minimums.",
                    "Structural fix that improves your income stability score by 20-30pts.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("minimum_only_payments", min_months=1)
def detect_minimum_only_payments(ctx: DetectionContext) -> list[RedFlag]:
    amounts = sorted(
        tx.magnitude
        for tx in ctx.transactions
        if tx.category == ctx.taxonomy.debt_category and not tx.is_income_deposit
    )
    if len(amounts) < 3:
        return []

    median = amounts[len(amounts) // 2]
    min_ratio = sum(1 for a in amounts if a <= median * MINIMUM_PAYMENT_TOLERANCE) / len(amounts)
    if min_ratio < 0.7:
        return []

    severity = FlagSeverity.RED if min_ratio > 0.9 else FlagSeverity.YELLOW
    extra = max(25, round_half_up(median * 0.2))
    return [
        RedFlag(
            id="minimum_only_payments",
            severity=severity,
            title="Credit card/loan payments trending minimum-only",
            detail=(
                f"{percent(min_ratio)}% of your debt payments are at or near the same "
                "amount, a pattern that signals you're only paying the minimum. This is "
                "one of the strongest negative signals lenders look for."
            ),
            metric=f"{percent(min_ratio)}% minimum-pattern | Median payment: {money(median)}",
            lender_perspective=(
                "Minimum-only payments tell lenders you're maxed out. It's the #1 "
                "predictor of future delinquency and can drop your internal risk score "
                "by 30-40%."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    f"Add just {money(extra)} extra to your largest debt payment this "
                    "month. Even small amounts above minimum signal intent.",
                    'Breaks the "minimum-only" pattern immediately.',
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Use the debt avalanche method: pay minimum on all debts, throw every "
                    "extra dollar at the highest-interest one.",
                    "Shows accelerating payoff trajectory, a strong positive signal.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Target paying off at least one debt account entirely. A "
                    "closed-paid account is a powerful signal.",
                    "Can improve your debt trajectory score by 15-25pts.",
                ),
                _fix(
                    FixPeriod.YEAR_1,
                    "Aim to have all revolving debt payments at 2x minimum or higher.",
                    'Eliminates this red flag entirely. Lenders see you as a "transactor" '
                    'not a "revolver."',
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("dti_worsening", min_months=4)
def detect_dti_worsening(ctx: DetectionContext) -> list[RedFlag]:
    dti = monthly_dti(ctx.months)
    avg_dti = mean(dti)
    slope = linear_regression_slope(dti)

    if slope <= 0.001 and avg_dti < ELEVATED_DTI:
        return []

    months_until_critical = 0
    if slope > 0 and avg_dti < HIGH_DTI_THRESHOLD:
        months_until_critical = math.ceil((HIGH_DTI_THRESHOLD - avg_dti) / slope)

    # A flat DTI between 35% and 43% has months_until_critical == 0 and lands in red
    critical = avg_dti > HIGH_DTI_THRESHOLD
    if critical or slope > 0.005 or months_until_critical < 6:
        severity = FlagSeverity.RED
    else:
        severity = FlagSeverity.YELLOW

    if critical:
        title = f"Debt-to-income already critical at {percent(avg_dti, 1)}%"
    elif months_until_critical > 0:
        title = f"Debt-to-income projected to worsen in {months_until_critical} months"
    else:
        title = "Debt-to-income projected to worsen"

    direction = (
        f"rising {percent(slope, 2)}% per month" if slope > 0.001 else "at an elevated level"
    )
    horizon = (
        f"At current trajectory, you'll hit it in ~{months_until_critical} months."
        if months_until_critical > 0
        else ""
    )
    avg_debt = mean(ctx.series("debt_payments"))
    reduction = round_half_up(avg_debt * (0.2 if critical else 0.1))

    return [
        RedFlag(
            id="dti_worsening",
            severity=severity,
            title=title,
            detail=(
                f"Your DTI is currently {percent(avg_dti, 1)}% and {direction}. The "
                f"critical threshold that tanks loan approval is 43%. {horizon}"
            ).strip(),
            metric=(
                f"DTI: {percent(avg_dti, 1)}% | Trend: {'+' if slope > 0 else ''}"
                f"{slope * 100:.2f}%/mo"
            ),
            lender_perspective=(
                "DTI above 43% is the #1 automatic disqualifier for most mortgage "
                "products and a major flag for personal loans. Lenders run 6-month DTI "
                "projections internally."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Stop taking on any new debt. Freeze credit card spending and switch "
                    "to cash/debit for discretionary purchases.",
                    "Halts the upward DTI trajectory immediately.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    f"Reduce monthly debt payments by {money(reduction)} through payoff or "
                    "consolidation at a lower rate.",
                    "Bends the DTI curve downward.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Target getting DTI below 35%. Combine debt paydown with income "
                    "growth for fastest results.",
                    'Moves you from "denied" to "approved with conditions" territory.',
                ),
                _fix(
                    FixPeriod.YEAR_1,
                    'Aim for DTI below 28%, the "ideal" range where you get the best rates.',
                    "Unlocks premium loan terms and lowest interest rates.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("low_emergency_fund", min_months=1)
def detect_low_emergency_fund(ctx: DetectionContext) -> list[RedFlag]:
    avg_expenses = mean(ctx.series("total_spending"))
    if avg_expenses == 0:
        return []

    latest_balance = ctx.months[-1].end_balance
    covered = max(0, latest_balance) / avg_expenses
    if covered >= EMERGENCY_FUND_MONTHS:
        return []

    if covered < 1:
        severity = FlagSeverity.RED
    elif covered < 2:
        severity = FlagSeverity.YELLOW
    else:
        severity = FlagSeverity.GREEN

    below = "1 month" if covered < 1 else f"{covered:.1f} months"
    return [
        RedFlag(
            id="low_emergency_fund",
            severity=severity,
            title=f"Emergency fund below {below}",
            detail=(
                f"Your latest balance covers only {covered:.1f} months of expenses "
                f"({money(latest_balance)} balance / {money(avg_expenses)}/mo spending). "
                "The standard benchmark is 3-6 months."
            ),
            metric=f"{covered:.1f} months coverage | Balance: {money(latest_balance)}",
            lender_perspective=(
                "Banks check your average balance relative to your monthly outflow. "
                'Below 2 months of coverage signals you\'re "one emergency away" from '
                "missed payments."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    f"Set up an automatic weekly transfer of {money(avg_expenses * 0.05)} "
                    "to a separate savings account. Start small but start now.",
                    "Establishes the savings habit and moves the needle immediately.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    f"Target reaching {money(avg_expenses)} in your emergency fund "
                    "(1 month of expenses).",
                    'Crosses the critical 1-month threshold that removes the "red" severity.',
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    f"Grow to {money(avg_expenses * 2)} (2 months). Consider a high-yield "
                    "savings account for the buffer.",
                    'Reaches "yellow" to "green" territory. Lenders see adequate reserves.',
                ),
                _fix(
                    FixPeriod.YEAR_1,
                    f"Target {money(avg_expenses * 3)} (3 months). This is the gold standard.",
                    "Fully eliminates this flag. Your financial resilience score jumps "
                    "20-30pts.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("overdraft_history", min_months=1)
def detect_overdraft_history(ctx: DetectionContext) -> list[RedFlag]:
    overdrafts = sum(m.overdraft_count for m in ctx.months)
    if overdrafts == 0:
        return []

    return [
        RedFlag(
            id="overdraft_history",
            severity=FlagSeverity.RED if overdrafts >= 3 else FlagSeverity.YELLOW,
            title=f"{plural(overdrafts, 'overdraft event')} in your history",
            detail=(
                f"Your account went negative in {plural(overdrafts, 'month')} of the "
                "analysis period. Each overdraft is recorded and visible to lenders for "
                "7 years via ChexSystems."
            ),
            metric=f"{overdrafts} overdrafts | {len(ctx.months)} months analyzed",
            lender_perspective=(
                "Overdrafts signal cash flow mismanagement. Even 1-2 overdrafts in 12 "
                "months can downgrade your risk tier by 1-2 levels, costing you 0.5-2% "
                "in interest rate."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Set up low-balance alerts at $200, $100, and $50. Link a savings "
                    "account as overdraft protection.",
                    "Prevents future overdrafts and stops the bleeding.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    'Build a $500 checking account floor that you mentally treat as "zero."',
                    "3 clean months starts rebuilding your ChexSystems record.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "6 months overdraft-free significantly improves how lenders view "
                    "your account.",
                    "Most lenders weight recent behavior more heavily than older incidents.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("subscription_burden", min_months=1)
def detect_subscription_burden(ctx: DetectionContext) -> list[RedFlag]:
    avg_income = mean(ctx.series("total_deposits"))
    if avg_income == 0:
        return []

    avg_subs = mean(ctx.series("subscription_count"))
    estimate = avg_subs * ESTIMATED_SUBSCRIPTION_COST
    ratio = estimate / avg_income
    if ratio < 0.05 and avg_subs <= 5:
        return []

    if ratio > 0.15 or avg_subs > 12:
        severity = FlagSeverity.RED
    elif ratio > 0.08 or avg_subs > 8:
        severity = FlagSeverity.YELLOW
    else:
        severity = FlagSeverity.GREEN

    subs = int(round_half_up(avg_subs))
    return [
        RedFlag(
            id="subscription_burden",
            severity=severity,
            title=f"Subscriptions consuming ~{percent(ratio)}% of monthly income",
            detail=(
                f"You have approximately {subs} active subscriptions costing an estimated "
                f"{money(estimate)}/month. That's {percent(ratio)}% of your "
                f"{money(avg_income)}/mo income going to recurring discretionary charges."
            ),
            metric=f"{subs} subs | ~{money(estimate)}/mo | {percent(ratio)}% of income",
            lender_perspective=(
                'Lenders see fixed recurring obligations as "committed spend" that '
                "reduces your disposable income. High subscription load shrinks your "
                "effective debt capacity."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    f"Audit and cancel your bottom {max(1, int(round_half_up(avg_subs * 0.3)))} "
                    "least-used subscriptions.",
                    f"Frees up ~{money(estimate * 0.3)}/mo immediately.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Consolidate streaming services: rotate one at a time instead of "
                    "running all simultaneously.",
                    "Can cut subscription spending by 40-60%.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    'Set a "subscription budget" of 5% of income and stick to it. Review '
                    "quarterly.",
                    "Permanently removes this flag from your profile.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("high_discretionary", min_months=1)
def detect_high_discretionary(ctx: DetectionContext) -> list[RedFlag]:
    total_spending = sum(ctx.series("total_spending"))
    if total_spending == 0:
        return []

    total_discretionary = sum(ctx.series("discretionary_spending"))
    ratio = total_discretionary / total_spending
    if ratio < DISCRETIONARY_FLAG_RATIO:
        return []

    return [
        RedFlag(
            id="high_discretionary",
            severity=FlagSeverity.RED if ratio > 0.6 else FlagSeverity.YELLOW,
            title=f"{percent(ratio)}% of spending is discretionary",
            detail=(
                f"Only {percent(1 - ratio)}% of your spending goes to essentials (rent, "
                "food, medical, utilities). The rest is dining out, entertainment, "
                "shopping, and other non-essentials. Lenders want to see at least 55% "
                "going to essentials."
            ),
            metric=(
                f"{percent(ratio)}% discretionary | "
                f"{money(total_discretionary / len(ctx.months))}/mo"
            ),
            lender_perspective=(
                "High discretionary spending tells lenders you could cut back but choose "
                "not to. They question whether you'd prioritize loan payments if things "
                "get tight."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Track every discretionary purchase this month. Awareness alone "
                    "typically cuts spending 10-15%.",
                    "Immediate spending awareness shift.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Implement the 50/30/20 rule: 50% needs, 30% wants, 20% savings/debt.",
                    "Brings discretionary below 45% and removes this flag.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Automate essential payments first, then allocate discretionary as a "
                    'fixed "fun budget."',
                    "Structurally prevents discretionary creep. Score improves 10-20pts.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("no_savings", min_months=1)
def detect_no_savings(ctx: DetectionContext) -> list[RedFlag]:
    if any(m.savings_transfers > 0 for m in ctx.months):
        return []

    return [
        RedFlag(
            id="no_savings",
            severity=FlagSeverity.YELLOW,
            title="No savings transfers detected",
            detail=(
                "Across your entire transaction history, there are zero transfers to "
                "savings accounts. Lenders look for active savings behavior as a sign of "
                "financial discipline."
            ),
            metric="0 savings transfers found",
            lender_perspective=(
                "Active savers are 3x less likely to default. Lenders check for savings "
                "patterns in your bank statements. No savings means a higher risk tier."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Set up a $25/week automatic transfer to a savings account. Even "
                    "$100/month matters.",
                    "Creates the savings signal lenders look for immediately.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Build to saving 5% of income monthly. The consistency matters more "
                    "than the amount.",
                    "3 months of regular saves significantly improves your spending "
                    "discipline score.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Target 10% savings rate. Open a high-yield savings account.",
                    "Earns the full +20pt savings bonus on your spending discipline score.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("single_income", min_months=1)
def detect_single_income(ctx: DetectionContext) -> list[RedFlag]:
    avg_sources = mean(ctx.series("income_source_count"))
    if avg_sources >= SINGLE_SOURCE_THRESHOLD:
        return []

    return [
        RedFlag(
            id="single_income",
            severity=FlagSeverity.YELLOW,
            title="Single income source detected",
            detail=(
                f"You average {avg_sources:.1f} income sources. If that one source dries "
                "up, you have zero fallback. Lenders factor income source diversity into "
                "risk models."
            ),
            metric=f"{avg_sources:.1f} avg sources",
            lender_perspective=(
                "Single-source income is fragile. Lenders assign a 10-15% risk premium to "
                "single-source earners vs. multi-source. Gig workers with 3+ sources "
                "often score better than single-employer workers."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Identify one realistic side income opportunity: freelancing, "
                    "consulting, selling items or tutoring.",
                    "Even $200/mo from a second source shows diversification.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Establish a second income stream that generates at least 10% of your "
                    "primary income.",
                    "Crosses the diversification threshold for a +5-10pt income stability "
                    "bonus.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Aim for 2-3 income sources. Build recurring revenue where possible.",
                    "Full diversification bonus (+20pts) and significantly reduces your "
                    "lender risk profile.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("no_payroll", min_months=1)
def detect_no_payroll(ctx: DetectionContext) -> list[RedFlag]:
    if any(m.has_payroll_deposit for m in ctx.months):
        return []
    if mean(ctx.series("total_deposits")) == 0:
        return []

    return [
        RedFlag(
            id="no_payroll",
            severity=FlagSeverity.YELLOW,
            title="No payroll/salary deposits detected",
            detail=(
                "Your income comes entirely from non-payroll sources (transfers, "
                "peer-to-peer payments, irregular deposits). Lenders heavily weight "
                "W-2/payroll income over other types."
            ),
            metric="0 payroll deposits detected",
            lender_perspective=(
                "Payroll deposits are the gold standard for income verification. Without "
                "them, lenders may require additional documentation (tax returns, 1099s) "
                "and assign higher risk."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "If you have a W-2 job, ensure your direct deposit goes to the "
                    "account being analyzed.",
                    "Instant fix if you have payroll but it's going elsewhere.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "For freelancers: invoice clients on a regular schedule and label "
                    "transfers clearly.",
                    "Regular deposits mimic payroll patterns, improving your stability score.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Consider setting up an S-Corp or LLC that pays you a regular "
                    '"salary" via payroll service.',
                    "Converts freelance income to payroll. Earns the +15pt regularity bonus.",
                ),
            ],
        )
    ]


@RED_FLAG_DETECTORS.register("spending_trend", min_months=4)
def detect_spending_trend(ctx: DetectionContext) -> list[RedFlag]:
    spending = ctx.series("total_spending")
    avg = mean(spending)
    if avg == 0:
        return []

    slope = linear_regression_slope(spending)
    normalized = slope / avg
    if normalized < SPENDING_TREND_THRESHOLD:
        return []

    return [
        RedFlag(
            id="spending_trend",
            severity=FlagSeverity.RED if normalized > 0.05 else FlagSeverity.YELLOW,
            title=f"Spending increasing {percent(normalized, 1)}% per month",
            detail=(
                f"Your spending is growing by ~{money(slope)}/month. Over the analysis "
                f"period, monthly spending has risen from ~{money(spending[0])} to "
                f'~{money(spending[-1])}. This is "lifestyle creep" in action.'
            ),
            metric=f"+{money(slope)}/mo growth | {percent(normalized, 1)}% monthly increase",
            lender_perspective=(
                "Accelerating spending signals lifestyle inflation. Lenders project this "
                "forward: if your expenses are growing faster than income, your debt "
                "capacity shrinks over time."
            ),
            fixes=[
                _fix(
                    FixPeriod.DAYS_30,
                    "Identify the 3 categories where spending grew most. Set hard monthly "
                    "limits for each.",
                    "Stops the upward trend in the biggest offenders.",
                ),
                _fix(
                    FixPeriod.MONTHS_3,
                    "Freeze your spending at last month's level. Any category that "
                    "exceeds gets cut the following month.",
                    "Flattens the spending curve and removes this flag.",
                ),
                _fix(
                    FixPeriod.MONTHS_6,
                    "Build a system where any income increase gets split: 50% to "
                    "savings/debt, 50% to lifestyle.",
                    "Prevents future lifestyle creep permanently.",
                ),
            ],
        )
    ]


def readiness_verdict(red_count: int, yellow_count: int) -> str:
    """Loan-readiness verdict from red and yellow flag counts."""
    if red_count == 0 and yellow_count <= 1:
        return READINESS_VERDICTS["strong"]
    if red_count == 0 and yellow_count <= 3:
        return READINESS_VERDICTS["decent"]
    if red_count <= 1:
        return READINESS_VERDICTS["concerns"]
    if red_count <= 3:
        return READINESS_VERDICTS["serious"]
    return READINESS_VERDICTS["significant"]


class RedFlagDetector:
    """
    Runs the red-flag detector registry and assembles a RedFlagsReport.

    Example:
        >>> report = RedFlagDetector().detect(months, transactions)
        >>> report.loan_readiness_verdict
    """

    def __init__(
        self,
        registry: Optional[DetectorRegistry[RedFlag]] = None,
        taxonomy: Optional[Taxonomy] = None,
    ):
        self.registry = registry if registry is not None else RED_FLAG_DETECTORS
        self.taxonomy = taxonomy or DEFAULT_TAXONOMY
        self.logger = structlog.get_logger()

    def detect(
        self,
        months: Sequence[MonthlyAggregate],
        transactions: Sequence[EnrichedTransaction],
    ) -> RedFlagsReport:
        months = ensure_month_sequence(months)
        context = DetectionContext(
            months=months, transactions=tuple(transactions), taxonomy=self.taxonomy
        )

        flags = sorted(self.registry.run(context), key=lambda f: f.severity.order)
        counts = {
            severity: sum(1 for f in flags if f.severity == severity)
            for severity in FlagSeverity
        }

        if flags:
            summary = f"{plural(len(flags), 'thing')} that could hurt your loan approval"
        else:
            summary = (
                "No red flags detected. Your financial profile looks clean from a "
                "lender's perspective."
            )

        self.logger.info(
            "red_flag_detection_completed",
            months=len(months),
            red=counts[FlagSeverity.RED],
            yellow=counts[FlagSeverity.YELLOW],
            green=counts[FlagSeverity.GREEN],
        )

        return RedFlagsReport(
            flags=flags,
            red_count=counts[FlagSeverity.RED],
            yellow_count=counts[FlagSeverity.YELLOW],
            green_count=counts[FlagSeverity.GREEN],
            summary=summary,
            loan_readiness_verdict=readiness_verdict(
                counts[FlagSeverity.RED], counts[FlagSeverity.YELLOW]
            ),
        )


def detect_red_flags(
    months: Sequence[MonthlyAggregate],
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> RedFlagsReport:
    """Run every registered red-flag detector and build the report."""
    return RedFlagDetector(taxonomy=taxonomy).detect(months, transactions)
