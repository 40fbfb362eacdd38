"""Numeric primitives shared by consensus, aggregation and confidence scoring.

All functions are total: an empty sample yields a zero result instead of an
error, so callers never have to guard against buckets with missing data.
"""

from __future__ import annotations

import math
import operator
from enum import Enum
from typing import Callable, Dict, List, Sequence

from forecast_consensus.domain import MetricStatistics


class Comparison(str, Enum):
    """Comparison applied by :func:`ensemble_probability`."""
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


_COMPARATORS: Dict[Comparison, Callable[[float, float], bool]] = {
    Comparison.GT: operator.gt,
    Comparison.GTE: operator.ge,
    Comparison.LT: operator.lt,
    Comparison.LTE: operator.le,
}


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    if len(values) <= 1:
        return 0.0
    avg = mean(values)
    variance = sum((v - avg) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def trimmed_mean(values: Sequence[float], trim_fraction: float = 0.1) -> float:
    """Mean after discarding `trim_fraction` of the sample from each end.

    Three values fall back to the median, since trimming one from each end
    would leave a single value and smaller samples are not trimmed at all.
    At least two values always survive the trim, and samples of four or more
    lose at least one value from each end.
    """
    n = len(values)
    if n <= 2:
        return mean(values)
    if n == 3:
        return median(values)

    ordered = sorted(values)
    trim_count = math.floor(n * trim_fraction)
    if trim_count == 0:
        trim_count = 1
    trim_count = min(trim_count, (n - 2) // 2)
    return mean(ordered[trim_count:n - trim_count])


def calculate_spread(values: Sequence[float]) -> MetricStatistics:
    """Summary statistics for one metric across models."""
    if not values:
        return MetricStatistics()
    low = min(values)
    high = max(values)
    return MetricStatistics(
        mean=mean(values),
        median=median(values),
        min=low,
        max=high,
        std_dev=std_dev(values),
        range=high - low,
    )


def z_score(value: float, values: Sequence[float]) -> float:
    """Signed distance from the sample mean in standard deviations."""
    sd = std_dev(values)
    if sd == 0:
        return 0.0
    return (value - mean(values)) / sd


def find_outlier_indices(values: Sequence[float], threshold: float = 2.0) -> List[int]:
    """Indices whose absolute z-score exceeds `threshold`.

    Needs at least three values and a non-zero spread, otherwise nothing is
    an outlier.
    """
    if len(values) <= 2:
        return []
    sd = std_dev(values)
    if sd == 0:
        return []
    avg = mean(values)
    return [i for i, v in enumerate(values) if abs(v - avg) / sd > threshold]


def ensemble_probability(
    values: Sequence[float],
    threshold: float,
    comparison: Comparison = Comparison.GT,
) -> float:
    """Percentage (0-100) of values that satisfy `comparison` against `threshold`."""
    if not values:
        return 0.0
    compare = _COMPARATORS[Comparison(comparison)]
    hits = sum(1 for v in values if compare(v, threshold))
    return hits / len(values) * 100.0


def confidence_from_std_dev(value: float, high: float, low: float) -> float:
    """Map a dispersion onto [0.3, 1.0].

    At or below `high` the spread is tight enough for full confidence; at or
    above `low` confidence bottoms out at 0.3. In between it falls linearly.
    """
    if value <= high:
        return 1.0
    if value >= low:
        return 0.3
    ratio = (value - high) / (low - high)
    return 1.0 - ratio * 0.7


# Ranges use the same linear ramp as standard deviations.
confidence_from_range = confidence_from_std_dev


def round_half_away_from_zero(value: float) -> float:
    """Round to the nearest integer, with .5 going away from zero (2.5 -> 3)."""
    return math.copysign(math.floor(abs(value) + 0.5), value)
