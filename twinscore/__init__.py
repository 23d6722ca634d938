"""
twinscore: financial-health scoring engine.

Turns a categorized transaction history into five behavioral pillar scores,
anomaly and lender red-flag findings, per-pillar explanations, and what-if
stress tests and forward simulations.
"""

__version__ = "1.0.0"
