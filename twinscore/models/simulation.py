"""
What-if simulation models.

Two modes share these records: single-scenario stress tests that report
months of runway and adjusted scores, and multi-modifier forward
simulations that project synthetic months and re-score them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from twinscore.models.enums import ImpactSeverity, Pillar, ScoreMethod
from twinscore.models.scores import PillarScores
from twinscore.models.transactions import MONTH_KEY_PATTERN


class StressScenario(BaseModel):
    """
    A built-in stress scenario.

    Attributes:
        id: Stable scenario identifier
        label: Display name
        description: Question the scenario answers
        income_reduction: Fraction of income lost (0-1)
        expense_increase: Fractional increase of monthly expenses
        emergency_expense: One-time expense taken out of savings
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str
    income_reduction: float = Field(default=0.0, ge=0, le=1)
    expense_increase: float = Field(default=0.0, ge=0)
    emergency_expense: float = Field(default=0.0, ge=0)


class StressTestInput(BaseModel):
    """
    A stress test request.

    The custom_* percentages and emergency_expense only apply to the
    "custom" scenario; built-in scenarios carry their own parameters.
    """

    model_config = ConfigDict(frozen=True)

    scenario_id: str
    custom_label: Optional[str] = None
    income_reduction_percent: float = Field(default=0.0, ge=0, le=100)
    expense_increase_percent: float = Field(default=0.0, ge=0)
    emergency_expense: float = Field(default=0.0, ge=0)
    method: ScoreMethod = ScoreMethod.RECOMPUTE


class RunwayBreakdown(BaseModel):
    """Current versus simulated monthly figures, rounded to whole dollars."""

    model_config = ConfigDict(frozen=True)

    current_monthly_income: float = 0.0
    simulated_monthly_income: float = 0.0
    current_monthly_expenses: float = 0.0
    simulated_monthly_expenses: float = 0.0
    current_monthly_surplus: float = 0.0
    simulated_monthly_surplus: float = 0.0
    estimated_savings: float = 0.0


class StressTestResult(BaseModel):
    """
    Outcome of a stress test.

    Attributes:
        scenario_id: Scenario that was run
        scenario_label: Display label (custom label wins)
        months_of_runway: Months until savings run out, capped for display
        adjusted_resilience: Financial resilience under stress
        impact_severity: low, moderate, high or critical
        adjusted_scores: Pillar scores under stress
        breakdown: Current versus simulated monthly figures
        recommendations: Ordered recommendation strings
        method: How adjusted_scores were obtained
        is_approximation: True when scores come from formulaic penalties
    """

    model_config = ConfigDict(frozen=True)

    scenario_id: str
    scenario_label: str
    months_of_runway: int = Field(ge=0)
    adjusted_resilience: float = Field(ge=0, le=100)
    impact_severity: ImpactSeverity
    adjusted_scores: PillarScores
    breakdown: RunwayBreakdown
    recommendations: list[str] = Field(default_factory=list)
    method: ScoreMethod = ScoreMethod.RECOMPUTE
    is_approximation: bool = False


class ScenarioModifier(BaseModel):
    """
    A bundle of deltas applied to a forward simulation.

    Multiple modifiers are combined additively; the two boolean toggles
    are OR-ed.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    description: str = ""
    income_change_percent: float = 0.0
    extra_monthly_savings: float = 0.0
    extra_monthly_debt_payment: float = 0.0
    monthly_expense_change: float = 0.0
    subscriptions_cancelled: int = Field(default=0, ge=0)
    one_time_expense: float = Field(default=0.0, ge=0)
    switch_to_salaried: bool = False
    lose_income_stream: bool = False

    @classmethod
    def combine(cls, modifiers: list["ScenarioModifier"]) -> "ScenarioModifier":
        """Sum numeric deltas and OR the toggles into a single modifier."""
        return cls(
            label=" + ".join(m.label for m in modifiers) or "Baseline",
            income_change_percent=sum(m.income_change_percent for m in modifiers),
            extra_monthly_savings=sum(m.extra_monthly_savings for m in modifiers),
            extra_monthly_debt_payment=sum(
                m.extra_monthly_debt_payment for m in modifiers
            ),
            monthly_expense_change=sum(m.monthly_expense_change for m in modifiers),
            subscriptions_cancelled=sum(m.subscriptions_cancelled for m in modifiers),
            one_time_expense=sum(m.one_time_expense for m in modifiers),
            switch_to_salaried=any(m.switch_to_salaried for m in modifiers),
            lose_income_stream=any(m.lose_income_stream for m in modifiers),
        )


class ProjectedMonth(BaseModel):
    """A synthetic future month, rounded to whole dollars."""

    model_config = ConfigDict(frozen=True)

    month: str
    total_deposits: float
    total_spending: float
    debt_payments: float
    savings_transfers: float
    end_balance: float
    net_savings: float

    @field_validator("month")
    @classmethod
    def validate_month_key(cls, v: str) -> str:
        """Ensure the month key is a valid YYYY-MM string."""
        if not MONTH_KEY_PATTERN.match(v):
            raise ValueError(f"Month key must be YYYY-MM, got {v!r}")
        return v


class ForwardMetrics(BaseModel):
    """
    Derived metrics of a forward simulation.

    Probabilities are whole percentages (0-100).
    """

    model_config = ConfigDict(frozen=True)

    current_net_worth: float = 0.0
    projected_net_worth: float = 0.0
    net_worth_change: float = 0.0
    current_emergency_runway: int = Field(default=0, ge=0)
    projected_emergency_runway: int = Field(default=0, ge=0)
    loan_approval_probability: int = Field(default=0, ge=0, le=100)
    overdraft_probability: int = Field(default=0, ge=0, le=100)
    total_saved_or_lost: float = 0.0
    projected_debt_remaining: float = Field(default=0.0, ge=0)


class ForwardSimulationResult(BaseModel):
    """
    Outcome of a forward simulation.

    Attributes:
        current_scores: Scores of the historical months
        projected_scores: Scores recomputed on the synthetic months
        score_deltas: Projected minus current, per pillar and overall, 1 decimal
        projected_months: Ordered synthetic months
        metrics: Derived net-worth, runway and probability figures
        active_modifiers: Labels of the modifiers applied
        months_projected: Length of the projection horizon
    """

    model_config = ConfigDict(frozen=True)

    current_scores: PillarScores = Field(default_factory=PillarScores)
    projected_scores: PillarScores = Field(default_factory=PillarScores)
    score_deltas: dict[str, float] = Field(default_factory=dict)
    projected_months: list[ProjectedMonth] = Field(default_factory=list)
    metrics: ForwardMetrics = Field(default_factory=ForwardMetrics)
    active_modifiers: list[str] = Field(default_factory=list)
    months_projected: int = Field(default=0, ge=0)

    def delta(self, pillar: Pillar) -> float:
        return self.score_deltas.get(pillar.value, 0.0)
