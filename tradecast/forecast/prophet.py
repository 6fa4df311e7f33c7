"""Prophet-like forecaster: additive linear trend plus calendar seasonality.

Each horizon step adds the least-squares slope, the weekday's average
excess change and (with two months of history) the day-of-month's average
excess change.  All three components decay by ``exp(-0.05 * step)``.
"""

import math
from collections import defaultdict
from datetime import date

import numpy as np

from tradecast.forecast.base import BaseForecaster, Projection

COMPONENT_DECAY = 0.05
MONTHLY_MIN_BARS = 60
MONTHLY_MIN_OBSERVATIONS = 2


def linear_slope(values: list[float]) -> float:
    """Least-squares slope of *values* against their index."""
    if len(values) < 2:
        return 0.0
    x = np.arange(len(values), dtype=float)
    slope, _intercept = np.polyfit(x, np.asarray(values, dtype=float), 1)
    return float(slope)


def seasonal_profile(
    changes: list[float], keys: list[int], min_observations: int = 1
) -> dict[int, float]:
    """Average change per calendar key, minus the overall average change."""
    if not changes:
        return {}
    overall = sum(changes) / len(changes)
    groups: dict[int, list[float]] = defaultdict(list)
    for key, change in zip(keys, changes):
        groups[key].append(change)
    return {
        key: sum(values) / len(values) - overall
        for key, values in groups.items()
        if len(values) >= min_observations
    }


class ProphetForecaster(BaseForecaster):
    label = "Prophet"
    min_bars = 20
    min_history = 14

    def project(
        self, closes: list[float], days: list[date], targets: list[date]
    ) -> Projection:
        slope = linear_slope(closes)
        changes = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
        change_days = days[1:]

        weekly = seasonal_profile(changes, [d.weekday() for d in change_days])
        monthly: dict[int, float] = {}
        if len(closes) >= MONTHLY_MIN_BARS:
            monthly = seasonal_profile(
                changes, [d.day for d in change_days], MONTHLY_MIN_OBSERVATIONS
            )

        path: list[float] = []
        price = closes[-1]
        for step, target in enumerate(targets, start=1):
            decay = math.exp(-COMPONENT_DECAY * step)
            seasonal = weekly.get(target.weekday(), 0.0) + monthly.get(target.day, 0.0)
            price += (slope + seasonal) * decay
            path.append(price)
        return Projection(path=path, trend=slope)
