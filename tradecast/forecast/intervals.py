"""Prediction-interval calibration shared by all forecasters.

Every model follows the same discipline:
    1. Estimate a one-step standard error, from the model's own in-sample
       residuals when enough exist, else from trailing return volatility.
       Either way it is floored at 1 % of the last price.
    2. Scale by √step for step ``i`` of the horizon.
    3. Multiply by a z/t confidence multiplier.
    4. Clamp the lower bound at zero.
"""

import math

import numpy as np

# Two-sided normal quantiles
Z_SCORES: dict[float, float] = {
    0.50: 0.674,
    0.68: 1.0,
    0.80: 1.282,
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}

# Student-t approximations used below LARGE_SAMPLE observations
T_SCORES: dict[float, float] = {
    0.50: 0.683,
    0.80: 1.310,
    0.90: 1.699,
    0.95: 2.045,
    0.99: 2.756,
}

LARGE_SAMPLE = 30
MIN_RESIDUALS = 5
VOLATILITY_WINDOW = 30
MIN_STD_ERROR_PCT = 0.01


def confidence_multiplier(confidence_level: float, sample_size: int = LARGE_SAMPLE) -> float:
    """Interval multiplier for *confidence_level*.

    Uses the t table for samples smaller than ``LARGE_SAMPLE`` and the z
    table otherwise.  The sample-size check comes first, so even a level
    listed in the z table takes its t value on a short series: 0.95 gives
    2.045 rather than 1.96 below 30 observations.  Levels between table
    entries are linearly interpolated; levels outside the table are clamped
    to its ends.
    """
    table = T_SCORES if sample_size < LARGE_SAMPLE else Z_SCORES
    if confidence_level in table:
        return table[confidence_level]

    levels = sorted(table)
    if confidence_level <= levels[0]:
        return table[levels[0]]
    if confidence_level >= levels[-1]:
        return table[levels[-1]]

    for lower, upper in zip(levels, levels[1:]):
        if lower <= confidence_level <= upper:
            ratio = (confidence_level - lower) / (upper - lower)
            return table[lower] + ratio * (table[upper] - table[lower])
    return table[levels[-1]]  # unreachable for finite input


def return_volatility(prices: list[float]) -> float:
    """Population standard deviation of simple returns (fraction, not price)."""
    arr = np.asarray(prices, dtype=float)
    if arr.size < 2:
        return 0.0
    prev = arr[:-1]
    mask = prev > 0
    if not mask.any():
        return 0.0
    returns = (arr[1:][mask] - prev[mask]) / prev[mask]
    return float(np.std(returns))


def standard_error(prices: list[float], residuals: list[float]) -> float:
    """One-step standard error in price units.

    Root-mean-square of *residuals* when at least ``MIN_RESIDUALS`` exist,
    otherwise trailing-30-bar return volatility scaled to the last price.
    Floored at 1 % of the last price.
    """
    last_price = prices[-1]
    floor = last_price * MIN_STD_ERROR_PCT

    finite = [r for r in residuals if math.isfinite(r)]
    if len(finite) >= MIN_RESIDUALS:
        se = float(np.sqrt(np.mean(np.square(finite))))
    else:
        se = return_volatility(prices[-VOLATILITY_WINDOW:]) * last_price
    return max(se, floor)


def prediction_bounds(
    predicted: list[float],
    std_error: float,
    multiplier: float,
) -> tuple[list[float], list[float]]:
    """Return ``(lower, upper)`` bounds around *predicted*.

    The margin at step ``i`` (1-based) is ``multiplier × std_error × √i``.
    The lower bound never drops below zero.
    """
    lower: list[float] = []
    upper: list[float] = []
    for i, price in enumerate(predicted, start=1):
        margin = multiplier * std_error * math.sqrt(i)
        lower.append(max(0.0, price - margin))
        upper.append(price + margin)
    return lower, upper
