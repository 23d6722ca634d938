"""
Pillar score models.

Five behavioral sub-scores plus their weighted combination. Every score is
bounded to [0, 100] and produced fresh by each scoring call.
"""

from pydantic import BaseModel, ConfigDict, Field

from twinscore.models.enums import Pillar

PILLAR_WEIGHTS: dict[Pillar, float] = {
    Pillar.INCOME_STABILITY: 0.25,
    Pillar.SPENDING_DISCIPLINE: 0.20,
    Pillar.DEBT_TRAJECTORY: 0.20,
    Pillar.FINANCIAL_RESILIENCE: 0.20,
    Pillar.GROWTH_MOMENTUM: 0.15,
}

PILLAR_LABELS: dict[Pillar, str] = {
    Pillar.INCOME_STABILITY: "Income Stability",
    Pillar.SPENDING_DISCIPLINE: "Spending Discipline",
    Pillar.DEBT_TRAJECTORY: "Debt Trajectory",
    Pillar.FINANCIAL_RESILIENCE: "Financial Resilience",
    Pillar.GROWTH_MOMENTUM: "Growth Momentum",
}


class PillarScores(BaseModel):
    """
    The five pillar scores and the weighted overall score.

    Attributes:
        income_stability: Consistency and diversity of income (0-100)
        spending_discipline: Essential share, savings habit, overdrafts (0-100)
        debt_trajectory: Debt-to-income level and direction (0-100)
        financial_resilience: Cash coverage and balance stability (0-100)
        growth_momentum: Savings rate, income growth, investing (0-100)
        overall: Weighted combination of the five pillars (0-100)
    """

    model_config = ConfigDict(frozen=True)

    income_stability: float = Field(default=0.0, ge=0, le=100)
    spending_discipline: float = Field(default=0.0, ge=0, le=100)
    debt_trajectory: float = Field(default=0.0, ge=0, le=100)
    financial_resilience: float = Field(default=0.0, ge=0, le=100)
    growth_momentum: float = Field(default=0.0, ge=0, le=100)
    overall: float = Field(default=0.0, ge=0, le=100)

    def pillar(self, pillar: Pillar) -> float:
        return getattr(self, pillar.value)

    def pillar_values(self) -> dict[Pillar, float]:
        return {pillar: self.pillar(pillar) for pillar in Pillar}
