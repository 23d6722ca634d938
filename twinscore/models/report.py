"""
Twin report model: everything one analysis batch produces.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from twinscore.models.explainability import ExplainabilityReport
from twinscore.models.findings import AnomalyReport, LoanShieldReport, RedFlagsReport
from twinscore.models.scores import PillarScores
from twinscore.models.transactions import MonthlyAggregate, TransactionPatterns


class TwinReport(BaseModel):
    """
    Full analysis of one transaction batch.

    generated_at is the only wall-clock value; every other field is a pure
    function of the input transactions.

    Attributes:
        generated_at: When the report was produced (UTC)
        transaction_count: Number of enriched transactions analysed
        months: Ascending monthly aggregates
        patterns: Descriptive transaction patterns
        scores: Pillar and overall scores
        anomalies: Anomaly findings and health score
        red_flags: Lender-perspective red flags
        loan_shield: Student-loan risk analysis
        explainability: Per-pillar explanations
    """

    model_config = ConfigDict(frozen=True)

    generated_at: datetime = Field(description="Report generation timestamp (UTC)")
    transaction_count: int = Field(default=0, ge=0)
    months: list[MonthlyAggregate] = Field(default_factory=list)
    patterns: TransactionPatterns = Field(default_factory=TransactionPatterns)
    scores: PillarScores = Field(default_factory=PillarScores)
    anomalies: AnomalyReport = Field(default_factory=AnomalyReport)
    red_flags: RedFlagsReport = Field(default_factory=RedFlagsReport)
    loan_shield: LoanShieldReport = Field(default_factory=LoanShieldReport)
    explainability: ExplainabilityReport = Field(default_factory=ExplainabilityReport)
