"""
Financial twin engine core components.

This package contains the analytical engines behind a twin report:

- Aggregation: enriched transactions -> ordered monthly aggregates
- Scoring: five behavioral pillar scores and their weighted overall
- Detection: anomaly, red-flag and loan-shield detector batteries
- Explainability: per-pillar reasons and influential transactions
- Simulation: stress tests and forward "time machine" projections
- Pipeline: the end-to-end TwinAnalyzer

All engine components are designed for:
- Determinism (identical inputs give identical outputs)
- Totality over degenerate input (empty history, zero income, zero spending)
- Observability (structured logging with bound analysis context)
- Testability (pure functions with an injected taxonomy)
"""

__all__ = [
    "TwinAnalyzer",
    "aggregate_monthly",
    "calculate_all_scores",
]

from twinscore.engine.aggregator import aggregate_monthly
from twinscore.engine.pipeline import TwinAnalyzer
from twinscore.engine.scoring import calculate_all_scores
