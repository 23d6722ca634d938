"""
Error classes for the twinscore engine.

Engine functions are total over numeric input: empty histories, zero income
and zero spending all have defined fallbacks. Exceptions are reserved for
contract violations at the boundaries of the engine.
"""


class TwinEngineError(Exception):
    """Base class for every error raised by the twinscore engine."""


class MonthSequenceError(TwinEngineError, ValueError):
    """
    Monthly aggregates are not strictly ordered by month key.

    Raised at the aggregation boundary when a sequence contains duplicate
    month keys (or, for strict validation, keys out of ascending order).
    Trend detectors regress against positional index, so a corrupted order
    would silently distort every slope downstream.
    """

    def __init__(self, message: str, months: list[str]):
        super().__init__(message)
        self.months = months


class UnknownScenarioError(TwinEngineError, KeyError):
    """A stress test was requested for a scenario id that is not built in."""

    def __init__(self, scenario_id: str):
        super().__init__(scenario_id)
        self.scenario_id = scenario_id

    def __str__(self) -> str:
        return f"Unknown stress scenario: {self.scenario_id!r}"
