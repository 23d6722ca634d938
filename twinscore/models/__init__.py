"""
Pydantic v2 data models for the twinscore engine.

Every record handed into or out of the engine is a frozen pydantic model, so
a single set of monthly aggregates can be shared by scoring, detection,
explanation and simulation without any of them mutating it.

Model Organization:
    - enums: Enumeration types for consistent classification
    - taxonomy: Injected category sets and keyword lists
    - transactions: Enriched transactions, monthly aggregates, patterns
    - scores: Pillar scores and their weights
    - findings: Anomalies, red flags and loan-shield alerts
    - explainability: Per-pillar reasons and influential transactions
    - simulation: Stress tests and forward simulations
    - report: The bundled output of one analysis

Usage:
    >>> from twinscore.models import EnrichedTransaction
    >>> tx = EnrichedTransaction(
    ...     amount=-1450.0,
    ...     date="2024-03-01",
    ...     merchant_name="Oakwood Apartments",
    ...     category="rent",
    ...     is_recurring=True,
    ... )
"""

from .enums import (
    AnomalySeverity,
    AnomalyType,
    FixPeriod,
    FlagSeverity,
    Impact,
    ImpactSeverity,
    IncomeTrend,
    Pillar,
    RiskLevel,
    ScoreMethod,
)
from .explainability import (
    ExplainabilityReport,
    InfluentialTransaction,
    PillarExplanation,
)
from .findings import (
    Anomaly,
    AnomalyReport,
    DebtPaymentAnalysis,
    FixStep,
    IncomeAnalysis,
    LoanShieldReport,
    RedFlag,
    RedFlagsReport,
    ShieldAlert,
)
from .report import TwinReport
from .scores import PILLAR_LABELS, PILLAR_WEIGHTS, PillarScores
from .simulation import (
    ForwardMetrics,
    ForwardSimulationResult,
    ProjectedMonth,
    RunwayBreakdown,
    ScenarioModifier,
    StressScenario,
    StressTestInput,
    StressTestResult,
)
from .taxonomy import DEFAULT_TAXONOMY, Taxonomy
from .transactions import EnrichedTransaction, MonthlyAggregate, TransactionPatterns

__all__ = [
    # Enums
    "AnomalySeverity",
    "AnomalyType",
    "FixPeriod",
    "FlagSeverity",
    "Impact",
    "ImpactSeverity",
    "IncomeTrend",
    "Pillar",
    "RiskLevel",
    "ScoreMethod",
    # Taxonomy
    "DEFAULT_TAXONOMY",
    "Taxonomy",
    # Transactions
    "EnrichedTransaction",
    "MonthlyAggregate",
    "TransactionPatterns",
    # Scores
    "PILLAR_LABELS",
    "PILLAR_WEIGHTS",
    "PillarScores",
    # Findings
    "Anomaly",
    "AnomalyReport",
    "DebtPaymentAnalysis",
    "FixStep",
    "IncomeAnalysis",
    "LoanShieldReport",
    "RedFlag",
    "RedFlagsReport",
    "ShieldAlert",
    # Explainability
    "ExplainabilityReport",
    "InfluentialTransaction",
    "PillarExplanation",
    # Simulation
    "ForwardMetrics",
    "ForwardSimulationResult",
    "ProjectedMonth",
    "RunwayBreakdown",
    "ScenarioModifier",
    "StressScenario",
    "StressTestInput",
    "StressTestResult",
    # Report
    "TwinReport",
]
