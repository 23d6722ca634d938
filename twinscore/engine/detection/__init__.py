"""
Rule-based detection engines.

- anomaly: behavioral trend anomalies with a health score
- red_flags: lender-perspective red flags with fix plans
- loan_shield: student-loan risk monitoring
- registry: ordered detector registries shared by the engines
"""

from twinscore.engine.detection.anomaly import (
    ANOMALY_DETECTORS,
    AnomalyDetector,
    detect_anomalies,
)
from twinscore.engine.detection.loan_shield import LoanShield, analyze_loan_risk
from twinscore.engine.detection.red_flags import (
    RED_FLAG_DETECTORS,
    RedFlagDetector,
    detect_red_flags,
)
from twinscore.engine.detection.registry import (
    DetectionContext,
    Detector,
    DetectorRegistry,
)

__all__ = [
    # Registry
    "DetectionContext",
    "Detector",
    "DetectorRegistry",
    # Anomalies
    "ANOMALY_DETECTORS",
    "AnomalyDetector",
    "detect_anomalies",
    # Red flags
    "RED_FLAG_DETECTORS",
    "RedFlagDetector",
    "detect_red_flags",
    # Loan shield
    "LoanShield",
    "analyze_loan_risk",
]
