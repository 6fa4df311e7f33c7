"""Simple moving-average trend forecaster (the baseline every model falls back to)."""

import math
from datetime import date

from tradecast.forecast.base import BaseForecaster, Projection

# Step i (1-based) applies exp(-TREND_DECAY * i) of the trend
TREND_DECAY = 0.1


class SimpleMAForecaster(BaseForecaster):
    """Extrapolate the average per-bar change over the trailing window.

    The trend fraction (average change divided by the last close) is
    compounded forward with exponentially decaying strength, so the path
    flattens out as the horizon grows.
    """

    label = "Simple MA"

    def __init__(self, period: int = 20):
        self.period = period

    def project(
        self, closes: list[float], days: list[date], targets: list[date]
    ) -> Projection:
        n = len(closes)
        window = max(1, min(self.period, n))
        last = closes[-1]
        trend = (last - closes[n - window]) / window
        trend_fraction = trend / last if last else 0.0

        path: list[float] = []
        price = last
        for i in range(1, len(targets) + 1):
            price *= 1 + trend_fraction * math.exp(-TREND_DECAY * i)
            path.append(price)
        return Projection(path=path, trend=trend)
