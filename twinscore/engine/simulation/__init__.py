"""
What-if simulation engines.

- stress_test: single-shock runway analysis with recomputed or preview scores
- forward: multi-modifier forward projection re-scored by the pillar engine
- projection: historical profile and synthetic month helpers shared by both
"""

from twinscore.engine.simulation.forward import (
    PRESET_SCENARIOS,
    ForwardSimulator,
    simulate_forward,
)
from twinscore.engine.simulation.projection import HistoricalProfile, synthesize_month
from twinscore.engine.simulation.stress_test import (
    BUILT_IN_SCENARIOS,
    StressTester,
    resolve_scenario,
    run_stress_test,
)

__all__ = [
    # Stress test
    "BUILT_IN_SCENARIOS",
    "StressTester",
    "resolve_scenario",
    "run_stress_test",
    # Forward simulation
    "PRESET_SCENARIOS",
    "ForwardSimulator",
    "simulate_forward",
    # Shared
    "HistoricalProfile",
    "synthesize_month",
]
