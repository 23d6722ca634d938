"""
Explainability models.

Each pillar score is explained with a short list of reasons that restate its
formula contributions and a handful of transactions that moved it.
"""

from pydantic import BaseModel, ConfigDict, Field

from twinscore.models.enums import Impact, Pillar


class InfluentialTransaction(BaseModel):
    """
    A transaction (or synthetic month marker) that moved a pillar score.

    Month-level markers use the 15th of the month as their date and an
    amount of zero when no single transaction is responsible.
    """

    model_config = ConfigDict(frozen=True)

    date: str = Field(description="ISO date of the transaction or marker")
    merchant_name: str
    amount: float
    impact: Impact
    reason: str


class PillarExplanation(BaseModel):
    """
    Reasons and influential transactions for one pillar.

    Attributes:
        pillar: Display name (e.g. "Income Stability")
        pillar_key: Pillar identifier
        score: The already-computed pillar score being explained
        reasons: Up to five ordered reason strings
        influential_transactions: Up to three influential transactions
    """

    model_config = ConfigDict(frozen=True)

    pillar: str
    pillar_key: Pillar
    score: float = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list, max_length=5)
    influential_transactions: list[InfluentialTransaction] = Field(
        default_factory=list, max_length=3
    )


class ExplainabilityReport(BaseModel):
    """Explanations for all five pillars, in pillar order."""

    model_config = ConfigDict(frozen=True)

    pillars: list[PillarExplanation] = Field(default_factory=list)

    def for_pillar(self, pillar: Pillar) -> PillarExplanation:
        for explanation in self.pillars:
            if explanation.pillar_key == pillar:
                return explanation
        raise KeyError(pillar)
