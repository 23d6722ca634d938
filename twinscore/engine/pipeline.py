"""
Analysis pipeline: enriched transactions in, TwinReport out.

Stages run strictly forward over one immutable batch:

    aggregate -> patterns -> scores -> anomalies -> red flags
              -> loan shield -> explainability

The same monthly aggregates feed every stage. What-if simulations are run
on demand against a finished report.

Example usage:
    >>> analyzer = TwinAnalyzer()
    >>> report = analyzer.analyze(transactions)
    >>> report.scores.overall
    >>> analyzer.stress_test(report, transactions, StressTestInput(scenario_id="car_repair"))
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog

from twinscore.config import Settings, get_settings
from twinscore.engine.aggregator import aggregate_monthly, build_transaction_patterns
from twinscore.engine.detection.anomaly import AnomalyDetector
from twinscore.engine.detection.loan_shield import LoanShield
from twinscore.engine.detection.red_flags import RedFlagDetector
from twinscore.engine.explainability import generate_explainability_report
from twinscore.engine.scoring import calculate_all_scores
from twinscore.engine.simulation.forward import ForwardSimulator
from twinscore.engine.simulation.stress_test import StressTester
from twinscore.models.report import TwinReport
from twinscore.models.simulation import (
    ForwardSimulationResult,
    ScenarioModifier,
    StressTestInput,
    StressTestResult,
)
from twinscore.models.taxonomy import Taxonomy
from twinscore.models.transactions import EnrichedTransaction

logger = structlog.get_logger()


class TwinAnalyzer:
    """
    Runs the full analysis for one transaction batch.

    Attributes:
        settings: Engine settings (taxonomy, horizons, display caps)
        taxonomy: Category sets injected into every stage
        logger: Structured logger for observability

    Example:
        >>> report = TwinAnalyzer().analyze(transactions)
        >>> report.red_flags.loan_readiness_verdict
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        taxonomy: Optional[Taxonomy] = None,
    ):
        self.settings = settings or get_settings()
        self.taxonomy = taxonomy or self.settings.taxonomy()
        self.logger = structlog.get_logger()

        self.anomaly_detector = AnomalyDetector(taxonomy=self.taxonomy)
        self.red_flag_detector = RedFlagDetector(taxonomy=self.taxonomy)
        self.loan_shield = LoanShield(taxonomy=self.taxonomy)
        self.stress_tester = StressTester(taxonomy=self.taxonomy, settings=self.settings)
        self.forward_simulator = ForwardSimulator(
            taxonomy=self.taxonomy, settings=self.settings
        )

    def analyze(self, transactions: Sequence[EnrichedTransaction]) -> TwinReport:
        """
        Analyse a batch of enriched transactions.

        Args:
            transactions: Enriched transactions from the categorizer

        Returns:
            TwinReport with scores, findings and explanations
        """
        transactions = tuple(transactions)
        self.logger.info("twin_analysis_started", transactions=len(transactions))

        months = aggregate_monthly(transactions, self.taxonomy)
        patterns = build_transaction_patterns(transactions, months)
        scores = calculate_all_scores(months, transactions, self.taxonomy)
        anomalies = self.anomaly_detector.detect(months, transactions)
        red_flags = self.red_flag_detector.detect(months, transactions)
        loan_shield = self.loan_shield.analyze(months, transactions)
        explainability = generate_explainability_report(
            months, transactions, scores, self.taxonomy
        )

        report = TwinReport(
            generated_at=datetime.now(timezone.utc),
            transaction_count=len(transactions),
            months=months,
            patterns=patterns,
            scores=scores,
            anomalies=anomalies,
            red_flags=red_flags,
            loan_shield=loan_shield,
            explainability=explainability,
        )

        self.logger.info(
            "twin_analysis_completed",
            months=len(months),
            overall=scores.overall,
            anomalies=len(anomalies.anomalies),
            red_flags=red_flags.red_count,
            risk_level=loan_shield.risk_level.value,
        )
        return report

    def stress_test(
        self,
        report: TwinReport,
        transactions: Sequence[EnrichedTransaction],
        stress_input: StressTestInput,
    ) -> StressTestResult:
        """Run a stress scenario against an analysed batch."""
        return self.stress_tester.run(report.scores, report.months, stress_input, transactions)

    def simulate(
        self,
        report: TwinReport,
        transactions: Sequence[EnrichedTransaction],
        modifiers: Sequence[ScenarioModifier] = (),
        months_forward: Optional[int] = None,
    ) -> ForwardSimulationResult:
        """Project an analysed batch forward under the given modifiers."""
        return self.forward_simulator.simulate(
            report.months, transactions, modifiers, months_forward
        )


def analyze_transactions(
    transactions: Sequence[EnrichedTransaction],
    taxonomy: Optional[Taxonomy] = None,
) -> TwinReport:
    """Run the full analysis with default settings."""
    return TwinAnalyzer(taxonomy=taxonomy).analyze(transactions)
