"""Series preprocessing for the forecasters."""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class StationarityResult:
    is_stationary: bool
    p_value: float  # indicative only: 0.05 stationary, 0.5 not, 1.0 too short


def log_returns(prices: list[float]) -> list[float]:
    """``ln(p[i] / p[i-1])`` for each consecutive pair, length ``n - 1``.

    A pair containing a non-positive price contributes ``0.0``.
    """
    returns: list[float] = []
    for i in range(1, len(prices)):
        if prices[i - 1] > 0 and prices[i] > 0:
            returns.append(math.log(prices[i] / prices[i - 1]))
        else:
            returns.append(0.0)
    return returns


def first_difference(values: list[float]) -> list[float]:
    """``v[i] - v[i-1]``, length ``n - 1``."""
    return [values[i] - values[i - 1] for i in range(1, len(values))]


def test_stationarity(series: list[float]) -> StationarityResult:
    """Heuristic stationarity check standing in for a Dickey-Fuller test.

    This is NOT an augmented Dickey-Fuller test.  It splits the series in
    half and calls it stationary when the two half-means differ by less
    than half the overall (population) standard deviation.  The p-value is
    a fixed indication, not a statistic.

    Series shorter than 10 points are reported as non-stationary.
    """
    n = len(series)
    if n < 10:
        return StationarityResult(is_stationary=False, p_value=1.0)

    mean = sum(series) / n
    std_dev = math.sqrt(sum((v - mean) ** 2 for v in series) / n)

    mid = n // 2
    first, second = series[:mid], series[mid:]
    mean1 = sum(first) / len(first)
    mean2 = sum(second) / len(second)

    stationary = abs(mean1 - mean2) < 0.5 * std_dev
    return StationarityResult(
        is_stationary=stationary,
        p_value=0.05 if stationary else 0.5,
    )


# Keep pytest from collecting the heuristic as a test function
test_stationarity.__test__ = False


def make_stationary(prices: list[float], max_diffs: int = 2) -> tuple[list[float], int]:
    """Difference *prices* until the stationarity heuristic passes.

    Returns ``(series, differences)`` where *differences* is how many times
    the series was differenced (at most *max_diffs*).
    """
    current = list(prices)
    diffs = 0
    for _ in range(max_diffs):
        if test_stationarity(current).is_stationary:
            break
        current = first_difference(current)
        diffs += 1
    return current, diffs


def inverse_difference(
    forecast: list[float], history: list[float], differences: int
) -> list[float]:
    """Re-integrate a forecast of the *differences*-times differenced series.

    *history* is the original (undifferenced) series.  Each integration step
    is a cumulative sum anchored at the last real value of the series one
    differencing level up, so the result continues from ``history[-1]``.
    """
    if differences <= 0:
        return list(forecast)

    # levels[k] is history differenced k times
    levels = [list(history)]
    for _ in range(differences - 1):
        levels.append(first_difference(levels[-1]))

    integrated = list(forecast)
    for level in reversed(levels):
        anchor = level[-1]
        out: list[float] = []
        for step in integrated:
            anchor += step
            out.append(anchor)
        integrated = out
    return integrated


def normalize(values: list[float]) -> tuple[list[float], float, float]:
    """Min-max scale *values* to [0, 1].

    Returns ``(normalized, min, max)``.  A constant series maps to 0.5
    everywhere; an empty series returns ``([], 0.0, 0.0)``.
    """
    if not values:
        return [], 0.0, 0.0
    lo = min(values)
    hi = max(values)
    span = hi - lo
    if span == 0:
        return [0.5] * len(values), lo, hi
    return [(v - lo) / span for v in values], lo, hi


def denormalize(normalized: list[float], lo: float, hi: float) -> list[float]:
    """Inverse of :func:`normalize`."""
    span = hi - lo
    return [v * span + lo for v in normalized]
