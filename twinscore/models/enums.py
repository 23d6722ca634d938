"""
Enumeration types for the twinscore engine.

This module defines all enum types used across the system for type safety
and consistent validation. All enums inherit from str to ensure JSON
serialization compatibility.
"""

from enum import Enum


class Pillar(str, Enum):
    """
    The five behavioral sub-scores that make up the overall score.

    Values double as the field names on PillarScores.
    """

    INCOME_STABILITY = "income_stability"
    SPENDING_DISCIPLINE = "spending_discipline"
    DEBT_TRAJECTORY = "debt_trajectory"
    FINANCIAL_RESILIENCE = "financial_resilience"
    GROWTH_MOMENTUM = "growth_momentum"


class AnomalyType(str, Enum):
    """Behavioral trend anomalies detected by the anomaly engine."""

    LIFESTYLE_CREEP = "lifestyle_creep"
    SUBSCRIPTION_BLOAT = "subscription_bloat"
    INCOME_VOLATILITY = "income_volatility"
    SPENDING_SPIKE = "spending_spike"
    SAVINGS_DECLINE = "savings_decline"
    RECURRING_INCREASE = "recurring_increase"
    DISCRETIONARY_SURGE = "discretionary_surge"
    BALANCE_EROSION = "balance_erosion"


class AnomalySeverity(str, Enum):
    """
    Severity tiers for anomalies.

    Ordered info < warning < alert; the health score deducts 3/8/15 points
    respectively.
    """

    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"

    @property
    def rank(self) -> int:
        return {"info": 1, "warning": 2, "alert": 3}[self.value]


class FlagSeverity(str, Enum):
    """Traffic-light severity for lender-perspective red flags."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"

    @property
    def order(self) -> int:
        return {"red": 0, "yellow": 1, "green": 2}[self.value]


class FixPeriod(str, Enum):
    """Time horizon of a remediation step."""

    DAYS_30 = "30 days"
    MONTHS_3 = "3 months"
    MONTHS_6 = "6 months"
    MONTHS_9 = "9 months"
    YEAR_1 = "1 year"


class Impact(str, Enum):
    """Direction in which an influential transaction moved a pillar score."""

    POSITIVE = "positive"
    NEGATIVE = "negative"


class ImpactSeverity(str, Enum):
    """Stress-test impact tier derived from months of runway."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Loan-shield risk tiers, least to most severe."""

    LOW = "low"
    MODERATE = "moderate"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"


class IncomeTrend(str, Enum):
    """Shape of the income series as seen by the loan shield."""

    GROWING = "growing"
    STABLE = "stable"
    DECLINING = "declining"
    VOLATILE = "volatile"


class ScoreMethod(str, Enum):
    """
    How a what-if result obtained its scores.

    RECOMPUTE re-runs the pillar scoring engine on synthetic months.
    PREVIEW applies direct formulaic penalties to the current scores and is
    an approximation.
    """

    RECOMPUTE = "recompute"
    PREVIEW = "preview"
