"""
Statistics kernel shared by every engine.

All functions are total: empty or single-point input returns 0 rather than
raising, so callers never need to guard degenerate histories themselves.
Computation is done over numpy arrays; results come back as plain floats.

Slopes regress against positional index 0..n-1, not elapsed calendar time.
A month sequence with gaps therefore compresses the time axis.
"""

import math
from typing import Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two points."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def linear_regression_slope(values: Sequence[float]) -> float:
    """
    Ordinary-least-squares slope of values against their index.

    Args:
        values: Observations ordered oldest first

    Returns:
        Slope per step, or 0 for fewer than two points or a zero denominator

    Example:
        >>> linear_regression_slope([100, 110, 120])
        10.0
    """
    n = len(values)
    if n < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    x_centered = x - x.mean()
    denominator = float(np.sum(x_centered * x_centered))
    if denominator == 0:
        return 0.0
    return float(np.sum(x_centered * (y - y.mean())) / denominator)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """numerator / denominator, or default when the denominator is zero."""
    if denominator == 0:
        return default
    return numerator / denominator


def coefficient_of_variation(values: Sequence[float], default: float = 1.0) -> float:
    """Standard deviation over mean; default when the mean is zero."""
    avg = mean(values)
    if avg == 0:
        return default
    return standard_deviation(values) / avg


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round with halves going toward +infinity.

    Python's round() rounds halves to even, which would shift displayed
    scores by one point on exact .5 boundaries.

    Example:
        >>> round_half_up(2.5)
        3.0
        >>> round_half_up(72.125, 2)
        72.13
    """
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor
