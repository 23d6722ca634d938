"""
Finding models produced by the detection engines.

Three families share the same shape (severity, title, description,
remediation text) with engine-specific severity taxonomies:

- Anomaly: behavioral trend findings, info/warning/alert
- RedFlag: lender-perspective findings, red/yellow/green, with fix plans
- ShieldAlert: student-loan risk alerts, low through critical
"""

from pydantic import BaseModel, ConfigDict, Field

from twinscore.models.enums import (
    AnomalySeverity,
    AnomalyType,
    FixPeriod,
    FlagSeverity,
    IncomeTrend,
    RiskLevel,
)


class Anomaly(BaseModel):
    """
    A behavioral anomaly in the monthly history.

    Attributes:
        type: Detector that produced the finding
        severity: info, warning or alert
        title: Short headline
        description: What was observed
        metric: Name of the measured quantity
        current_value: Formatted measured value
        trend: Formatted trend or comparison context
        actionable_advice: What to do about it
    """

    model_config = ConfigDict(frozen=True)

    type: AnomalyType
    severity: AnomalySeverity
    title: str
    description: str
    metric: str
    current_value: str
    trend: str
    actionable_advice: str


class AnomalyReport(BaseModel):
    """Sorted anomalies with a derived health score and summary."""

    model_config = ConfigDict(frozen=True)

    anomalies: list[Anomaly] = Field(default_factory=list)
    health_score: int = Field(default=100, ge=0, le=100)
    summary: str = Field(default="")

    def count(self, severity: AnomalySeverity) -> int:
        return sum(1 for a in self.anomalies if a.severity == severity)


class FixStep(BaseModel):
    """One staged remediation step of a red flag."""

    model_config = ConfigDict(frozen=True)

    period: FixPeriod = Field(description="Time horizon for the step")
    action: str = Field(description="What to do")
    impact: str = Field(description="Expected effect on the lender's view")


class RedFlag(BaseModel):
    """
    A lender-perspective red flag.

    Attributes:
        id: Stable detector identifier (e.g. "dti_worsening")
        severity: red, yellow or green
        title: Short headline
        detail: What was observed, with figures
        metric: Formatted measured value
        lender_perspective: How an underwriter reads this
        fixes: Ordered remediation plan
    """

    model_config = ConfigDict(frozen=True)

    id: str
    severity: FlagSeverity
    title: str
    detail: str
    metric: str
    lender_perspective: str
    fixes: list[FixStep] = Field(default_factory=list)


class RedFlagsReport(BaseModel):
    """Sorted red flags with counts and a readiness verdict."""

    model_config = ConfigDict(frozen=True)

    flags: list[RedFlag] = Field(default_factory=list)
    red_count: int = Field(default=0, ge=0)
    yellow_count: int = Field(default=0, ge=0)
    green_count: int = Field(default=0, ge=0)
    summary: str = Field(default="")
    loan_readiness_verdict: str = Field(default="")


class ShieldAlert(BaseModel):
    """A student-loan risk alert with a recommendation."""

    model_config = ConfigDict(frozen=True)

    risk_level: RiskLevel
    title: str
    description: str
    recommendation: str


class IncomeAnalysis(BaseModel):
    """
    Income shape as seen by the loan shield.

    Attributes:
        average_monthly_income: Mean deposits across all months
        recent_monthly_income: Mean deposits over the last three months
        income_slope: Regression slope of deposits per month
        income_trend: growing, stable, declining or volatile
        income_drop_percent: Drop of the recent average below the overall average
        months_of_decline: Consecutive trailing months down more than 10%
    """

    model_config = ConfigDict(frozen=True)

    average_monthly_income: float = 0.0
    recent_monthly_income: float = 0.0
    income_slope: float = 0.0
    income_trend: IncomeTrend = IncomeTrend.STABLE
    income_drop_percent: float = Field(default=0.0, ge=0)
    months_of_decline: int = Field(default=0, ge=0)


class DebtPaymentAnalysis(BaseModel):
    """Debt load and estimated student-loan payment."""

    model_config = ConfigDict(frozen=True)

    average_monthly_debt: float = 0.0
    debt_to_income_ratio: float = 0.0
    estimated_student_loan_payment: float = 0.0
    is_at_risk: bool = False


class LoanShieldReport(BaseModel):
    """Income and debt analysis with an overall risk level and alerts."""

    model_config = ConfigDict(frozen=True)

    income_analysis: IncomeAnalysis = Field(default_factory=IncomeAnalysis)
    debt_analysis: DebtPaymentAnalysis = Field(default_factory=DebtPaymentAnalysis)
    risk_score: int = Field(default=0, ge=0)
    risk_level: RiskLevel = RiskLevel.LOW
    alerts: list[ShieldAlert] = Field(default_factory=list)
    runway_without_income: int = Field(default=0, ge=0)
