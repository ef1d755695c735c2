from __future__ import annotations

from typing import Sequence

INCREASING = "increasing"
DECREASING = "decreasing"
STABLE = "stable"

DEFAULT_TREND_THRESHOLD = 0.5


def regression_slope(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index; 0.0 below two points."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = 0.0
    sum_y = 0.0
    sum_xy = 0.0
    sum_x2 = 0.0
    for idx, value in enumerate(values):
        sum_x += idx
        sum_y += value
        sum_xy += idx * value
        sum_x2 += idx * idx
    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


def trend_direction(values: Sequence[float], threshold: float = DEFAULT_TREND_THRESHOLD) -> str:
    if len(values) < 2:
        return STABLE
    slope = regression_slope(values)
    if slope > threshold:
        return INCREASING
    if slope < -threshold:
        return DECREASING
    return STABLE
